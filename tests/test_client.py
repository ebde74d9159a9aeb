import pytest
from conftest import CHAIN_ID, MNEMONIC, Answer

from gevulot_sdk import ClientConfig, GevulotClient
from gevulot_sdk.errors import (InvalidIntent, MalformedMessage, NotFound,
                                PermanentRejection, RetryExhausted)
from gevulot_sdk.proto import message_class, unpack_any
from gevulot_sdk.query.client import EntityKind, PageOptions
from gevulot_sdk.tx.encode import unpack_signed
from gevulot_sdk.tx.send import Committed, RejectedPermanent
from gevulot_sdk.types.entities import (Metadata, Params, Task, TaskSpec,
                                        TaskState, TaskStatus, Worker,
                                        WorkerSpec)
from gevulot_sdk.types.intents import DeleteTask, RescheduleResult


class StubRpc:
    def __init__(self, height=100):
        self.height = height
        self.closed = False

    async def current_height(self):
        return self.height

    async def block_results(self, height):
        return {"txs_results": []}

    async def wait_for_height(self, height, **kw):
        return max(height, self.height)

    async def close(self):
        self.closed = True


@pytest.fixture
def rpc():
    return StubRpc()


@pytest.fixture
def client(ledger, key, clock, rpc):
    config = ClientConfig(chain_id=CHAIN_ID, max_attempts=3, max_elapsed=None)
    return GevulotClient(key, config, transport=ledger, rpc=rpc, sleep=clock.sleep, clock=clock)


def _sent(ledger, type_name, index=-1):
    """Decode message ``index`` of the last broadcast transaction."""
    raw = ledger.calls_to("BroadcastTx")[-1].tx_bytes
    body_bytes, _, _ = unpack_signed(raw)
    body = message_class("cosmos.tx.v1beta1.TxBody").FromString(body_bytes)
    return unpack_any(body.messages[index], message_class(type_name))


# ---------- Transactions ----------


@pytest.mark.asyncio
async def test_create_worker_returns_the_new_id(client, ledger, key):
    worker_id = await client.create_worker(name="w1", cpus=4000, memory="8 GiB", disk="100 GiB")

    assert worker_id == "worker-1"
    msg = _sent(ledger, "gevulot.gevulot.MsgCreateWorker")
    assert msg.creator == key.address()
    assert (msg.memory, msg.disk) == (8 * 1024**3, 100 * 1024**3)


@pytest.mark.asyncio
async def test_task_lifecycle_through_the_facade(client, ledger):
    task_id = await client.create_task(TaskSpec(image="alpine", command=["true"], cpus=100, time=5))
    assert task_id.startswith("task-")

    accepted = await client.accept_task(task_id, "w1")
    finished = await client.finish_task(task_id, exit_code=0, stdout="ok")
    assert isinstance(accepted, Committed) and isinstance(finished, Committed)
    assert finished.height > accepted.height

    msg = _sent(ledger, "gevulot.gevulot.MsgFinishTask")
    assert (msg.task_id, msg.exit_code, msg.stdout) == (task_id, 0, "ok")
    assert [b.sequence for b in ledger.broadcasts] == [5, 6, 7]


@pytest.mark.asyncio
async def test_reschedule_returns_the_ledger_pair(client):
    assert await client.reschedule_task("t1") == RescheduleResult(primary="worker-a", secondary="worker-b")


@pytest.mark.asyncio
async def test_create_pin_with_fallback_urls_only(client, ledger):
    pin_id = await client.create_pin(bytes="1 MiB", time=3600, fallback_urls=["https://mirror/blob"])
    assert pin_id.startswith("pin-")
    msg = _sent(ledger, "gevulot.gevulot.MsgCreatePin")
    assert msg.bytes == 1024**2
    assert list(msg.fallback_urls) == ["https://mirror/blob"]


@pytest.mark.asyncio
async def test_sudo_messages_are_signed_as_authority(client, ledger, key):
    await client.sudo_freeze_account("gvlt1bad")
    msg = _sent(ledger, "gevulot.gevulot.MsgSudoFreezeAccount")
    assert (msg.authority, msg.account) == (key.address(), "gvlt1bad")


@pytest.mark.asyncio
async def test_update_params_and_transfer(client, ledger, key):
    await client.update_params(Params(worker_exit_delay=20))
    assert _sent(ledger, "gevulot.gevulot.MsgUpdateParams").params.worker_exit_delay == 20

    await client.transfer("gvlt1dest", 250)
    send = _sent(ledger, "cosmos.bank.v1beta1.MsgSend")
    assert (send.from_address, send.to_address) == (key.address(), "gvlt1dest")
    assert [(c.denom, c.amount) for c in send.amount] == [("ucredit", "250")]


@pytest.mark.asyncio
async def test_batched_submit(client, ledger):
    committed = await client.submit(DeleteTask(id="t1"), DeleteTask(id="t2"))
    assert len(committed.responses) == 2
    assert len(ledger.broadcasts) == 1
    assert _sent(ledger, "gevulot.gevulot.MsgDeleteTask", 0).id == "t1"


@pytest.mark.asyncio
async def test_rejections_raise_from_transaction_methods(client, ledger):
    ledger.broadcast_script.append(Answer(5, "sdk", "insufficient funds"))
    with pytest.raises(PermanentRejection) as ei:
        await client.delete_worker("w1")
    assert ei.value.code == 5

    ledger.broadcast_script.extend([Answer(20, "sdk", "mempool is full")] * 3)
    with pytest.raises(RetryExhausted):
        await client.delete_worker("w1")


@pytest.mark.asyncio
async def test_submit_result_returns_instead_of_raising(client, ledger):
    ledger.broadcast_script.append(Answer(5, "sdk", "insufficient funds"))
    result = await client.submit_result(DeleteTask(id="t1"))
    assert isinstance(result, RejectedPermanent)


@pytest.mark.asyncio
async def test_shape_errors_raise_before_sending(client, ledger):
    with pytest.raises(InvalidIntent):
        await client.create_worker(cpus=1)
    with pytest.raises(InvalidIntent):
        await client.finish_task("t1", exit_code=2**40)
    assert ledger.broadcasts == []


@pytest.mark.asyncio
async def test_create_without_a_new_id_raises_after_one_commit(client, ledger, key):
    ledger.data_override = ""
    with pytest.raises(MalformedMessage) as ei:
        await client.create_worker(name="w1", cpus=4000, memory="8 GiB", disk="100 GiB")

    assert ei.value.type_name == "gevulot.gevulot.MsgCreateWorkerResponse"
    assert ledger.broadcasts[0].tx_hash in ei.value.message
    assert len(ledger.broadcasts) == 1
    assert ledger.accounts[key.address()].sequence == 6


# ---------- Queries ----------


@pytest.mark.asyncio
async def test_entity_queries(client, ledger):
    task = Task(
        metadata=Metadata(id="t1", creator="gvlt1x"),
        spec=TaskSpec(image="alpine"),
        status=TaskStatus(state=TaskState.DONE, exit_code=0),
    )
    ledger.add_entity(EntityKind.TASK, task)
    for i in range(3):
        ledger.add_entity(EntityKind.WORKER, Worker(metadata=Metadata(id=f"w{i}"), spec=WorkerSpec(cpus=i)))

    assert (await client.get_task("t1")).state is TaskState.DONE
    workers = await client.list_workers(PageOptions(limit=2)).collect()
    assert [w.id for w in workers] == ["w0", "w1", "w2"]
    assert await client.list_pins().collect() == []
    with pytest.raises(NotFound):
        await client.get_worker("nope")


@pytest.mark.asyncio
async def test_account_balance_and_params(client, ledger, key):
    ledger.balances[(key.address(), "ucredit")] = 1_000
    ledger.params = Params(worker_exit_delay=3)

    assert (await client.get_account()).sequence == 5
    assert (await client.get_balance()).amount == 1_000
    assert (await client.params()).worker_exit_delay == 3


# ---------- Blocks & lifecycle ----------


@pytest.mark.asyncio
async def test_heights_and_event_fetcher(client, rpc):
    assert await client.current_height() == 100
    assert await client.wait_for_height(90) == 100

    async def handler(event):
        pass

    fetcher = client.event_fetcher(handler, start_height=98)
    assert await fetcher.poll_once() == 2
    assert fetcher.poll_interval == client.config.poll_interval


@pytest.mark.asyncio
async def test_from_mnemonic_with_injected_parts_does_not_close_them(ledger, rpc):
    config = ClientConfig(chain_id=CHAIN_ID)
    async with await GevulotClient.from_mnemonic(MNEMONIC, config, transport=ledger, rpc=rpc) as client:
        assert client.address.startswith("gvlt1")
        assert CHAIN_ID in repr(client)
    assert not rpc.closed


@pytest.mark.asyncio
async def test_config_prefix_sets_the_address_prefix(ledger, rpc):
    config = ClientConfig(chain_id=CHAIN_ID, hrp="cosmos")
    client = await GevulotClient.from_mnemonic(MNEMONIC, config, transport=ledger, rpc=rpc)
    assert client.address == "cosmos19rl4cm2hmr8afy4kldpxz3fka4jguq0auqdal4"
    await client.close()

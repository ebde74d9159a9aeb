import asyncio

import pytest

from gevulot_sdk.errors import (InvalidEventAttribute, MissingEventAttribute,
                                UnknownEventKind)
from gevulot_sdk.events import (AbciEvent, EventFetcher, PinAcked, PinCreated,
                                PinDeleted, TaskAccepted, TaskCreated,
                                WorkerCreated, WorkflowProgressed,
                                events_from_block_results, parse_event,
                                parse_events)


def ev(kind, *attrs):
    return AbciEvent(kind=kind, attributes=tuple(attrs))


# ---------- Parsing ----------


def test_worker_and_task_events():
    assert parse_event(ev("create-worker", ("worker-id", "w1"), ("creator", "gvlt1a")), 7) == WorkerCreated(
        block_height=7, worker_id="w1", creator="gvlt1a"
    )
    accepted = parse_event(ev("accept-task", ("task-id", "t1"), ("worker-id", "w1")))
    assert accepted == TaskAccepted(task_id="t1", worker_id="w1")
    assert accepted.creator == ""


def test_task_created_collects_repeated_worker_ids():
    e = parse_event(ev("create-task", ("task-id", "t1"), ("worker-id", "w1"), ("worker-id", "w2,w3")))
    assert isinstance(e, TaskCreated)
    assert e.assigned_workers == ("w1", "w2", "w3")


def test_pin_events_fall_back_to_cid_for_id():
    created = parse_event(
        ev(
            "create-pin",
            ("cid", "bafy"),
            ("creator", "gvlt1a"),
            ("assigned-workers", "w1, w2"),
            ("retention-period", "3600"),
            ("fallback-urls", "https://a,https://b"),
        )
    )
    assert created == PinCreated(
        cid="bafy",
        id="bafy",
        creator="gvlt1a",
        assigned_workers=("w1", "w2"),
        retention_period=3600,
        fallback_urls=("https://a", "https://b"),
    )
    deleted = parse_event(ev("delete-pin", ("cid", "bafy"), ("id", "pin-9"), ("creator", "gvlt1a")))
    assert deleted == PinDeleted(cid="bafy", id="pin-9", creator="gvlt1a")


@pytest.mark.parametrize("raw,expected", [(None, True), ("true", True), ("FALSE", False), ("maybe", True)])
def test_pin_ack_success_flag(raw, expected):
    attrs = [("cid", "bafy"), ("worker-id", "w1")]
    if raw is not None:
        attrs.append(("success", raw))
    e = parse_event(ev("ack-pin", *attrs))
    assert isinstance(e, PinAcked)
    assert e.success is expected


@pytest.mark.parametrize(
    "event,attribute",
    [
        (ev("create-worker", ("creator", "gvlt1a")), "worker-id"),
        (ev("finish-task", ("task-id", "t1")), "worker-id"),
        (ev("create-pin", ("cid", "bafy"), ("retention-period", "1")), "creator"),
        (ev("progress-workflow", ("workflow-id", "wf1")), "creator"),
        (ev("delete-proof"), "proof-id"),
    ],
)
def test_missing_required_attributes(event, attribute):
    with pytest.raises(MissingEventAttribute) as ei:
        parse_event(event)
    assert ei.value.attribute == attribute
    assert ei.value.event_kind == event.kind


def test_progress_workflow_with_creator():
    e = parse_event(ev("progress-workflow", ("workflow-id", "wf1"), ("creator", "gvlt1a")))
    assert e == WorkflowProgressed(workflow_id="wf1", creator="gvlt1a")


def test_non_integer_attribute():
    with pytest.raises(InvalidEventAttribute) as ei:
        parse_event(ev("create-pin", ("cid", "c"), ("creator", "x"), ("retention-period", "soon")))
    assert ei.value.value == "soon"


def test_unknown_kind_is_an_error_for_single_events_and_skipped_in_lists():
    with pytest.raises(UnknownEventKind):
        parse_event(ev("transfer", ("amount", "1ucredit")))
    parsed = parse_events([ev("message", ("action", "x")), ev("delete-task", ("task-id", "t1"))], block_height=3)
    assert [(type(e).__name__, e.block_height) for e in parsed] == [("TaskDeleted", 3)]


def test_events_from_block_results_json():
    results = {
        "height": "12",
        "txs_results": [
            {"events": [{"type": "create-worker", "attributes": [{"key": "worker-id", "value": "w1"}]}]},
            {"events": None},
            {"events": [{"type": "message", "attributes": [{"key": "action", "value": None}]}]},
        ],
    }
    events = events_from_block_results(results)
    assert [e.kind for e in events] == ["create-worker", "message"]
    assert events[1].get("action") == ""
    assert events_from_block_results({"txs_results": None}) == []


# ---------- Fetcher ----------


class FakeRpc:
    def __init__(self, height):
        self.height = height
        self.blocks = {}
        self.requested = []

    async def current_height(self):
        return self.height

    async def block_results(self, height):
        self.requested.append(height)
        return {"txs_results": [{"events": self.blocks.get(height, [])}]}


def _worker_event(wid):
    return {"type": "create-worker", "attributes": [{"key": "worker-id", "value": wid}]}


@pytest.mark.asyncio
async def test_fetcher_walks_new_blocks_in_order():
    rpc = FakeRpc(height=5)
    rpc.blocks = {4: [_worker_event("w4")], 5: [_worker_event("w5a"), _worker_event("w5b")]}
    seen = []

    async def handler(e):
        seen.append((e.block_height, e.worker_id))

    fetcher = EventFetcher(rpc, handler, start_height=3)
    assert await fetcher.poll_once() == 2
    assert seen == [(4, "w4"), (5, "w5a"), (5, "w5b")]
    assert fetcher.last_height == 5

    assert await fetcher.poll_once() == 0
    rpc.height = 6
    assert await fetcher.poll_once() == 1
    assert rpc.requested == [4, 5, 6]


@pytest.mark.asyncio
async def test_fetcher_without_start_height_begins_at_the_head():
    rpc = FakeRpc(height=40)

    async def handler(e):
        raise AssertionError("no events expected")

    fetcher = EventFetcher(rpc, handler)
    assert await fetcher.poll_once() == 0
    assert fetcher.last_height == 40
    assert rpc.requested == []


@pytest.mark.asyncio
async def test_handler_error_stops_at_the_last_complete_block():
    rpc = FakeRpc(height=3)
    rpc.blocks = {2: [_worker_event("ok")], 3: [_worker_event("bad")]}

    async def handler(e):
        if e.worker_id == "bad":
            raise RuntimeError("handler failed")

    fetcher = EventFetcher(rpc, handler, start_height=1)
    with pytest.raises(RuntimeError):
        await fetcher.poll_once()
    assert fetcher.last_height == 2


@pytest.mark.asyncio
async def test_run_until_stopped():
    rpc = FakeRpc(height=2)
    rpc.blocks = {2: [_worker_event("w2")]}
    seen = []
    sleeps = []

    async def handler(e):
        seen.append(e.worker_id)

    async def sleep(s):
        sleeps.append(s)
        rpc.height += 1
        if len(sleeps) == 3:
            fetcher.stop()
        await asyncio.sleep(0)

    fetcher = EventFetcher(rpc, handler, start_height=1, poll_interval=0.5, sleep=sleep)
    await fetcher.run()

    assert seen == ["w2"]
    assert sleeps == [0.5, 0.5, 0.5]
    assert fetcher.last_height == 4

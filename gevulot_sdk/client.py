"""
gevulot_sdk.client
==================

One object for everything a Gevulot worker or task submitter needs.

``GevulotClient`` owns the long-lived gRPC channel, the Tendermint RPC
client and the signer's ``AccountSession``. Transaction methods funnel
through ``TransactionBuilder`` and ``Broadcaster``; query methods funnel
through ``QueryClient`` and the entity codec.

Typical usage
-------------
    from gevulot_sdk import ClientConfig, GevulotClient

    async with await GevulotClient.from_mnemonic(phrase, ClientConfig.from_env()) as client:
        worker_id = await client.create_worker(name="w1", cpus=4000, memory="8 GiB", disk="100 GiB")
        async for task in client.list_tasks():
            ...

Design notes
------------
* Transaction methods raise on anything but a commit: ``PermanentRejection``,
  ``RetryExhausted``, ``InvalidIntent``, ``Unavailable``. Use ``submit_result``
  to get the ``TxResult`` instead.
* Create methods return the new entity id; ``submit_proposal`` and
  ``submit_software_upgrade`` return the new proposal id; ``reschedule_task``
  returns the ledger's ``RescheduleResult``; everything else returns the
  ``Committed`` result.
* Queries are never retried here; ``NotFound`` is a normal answer.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import (Any, Awaitable, Callable, Mapping, Optional, Sequence,
                    Tuple, Union)

from .address import module_address
from .config import ClientConfig
from .errors import InvalidIntent, MalformedMessage
from .events.fetcher import EventFetcher, Handler
from .query.client import EntityKind, EntityStream, PageOptions, QueryClient
from .query.gov import GovQueryClient
from .rpc.channel import GrpcTransport
from .rpc.http import TendermintRpc
from .tx.build import TransactionBuilder
from .tx.send import Broadcaster, Committed, TxResult
from .tx.session import AccountSession
from .types.entities import (AccountInfo, Coin, Label, Params, Pin, Proof,
                             ProofSpec, Task, TaskSpec, Worker, Workflow,
                             WorkflowSpec)
from .types.gov import (Deposit, GovParams, Plan, Proposal, ProposalContent,
                        ProposalDeposit, ProposalStatus, ProposalVote,
                        SoftwareUpgrade, SubmitProposal, TallyResult, Vote,
                        VoteOption, VoteWeighted, WeightedVoteOption)
from .types.intents import (AckPin, AcceptTask, AnnounceWorkerExit,
                            CreatePin, CreateProof, CreateTask, CreateWorker,
                            CreateWorkflow, DeclineTask, DeletePin,
                            DeleteProof, DeleteTask, DeleteWorker,
                            DeleteWorkflow, FinishTask, Intent,
                            RescheduleResult, RescheduleTask, SudoDeletePin,
                            SudoDeleteTask, SudoDeleteWorker,
                            SudoFreezeAccount, Transfer, UpdateParams,
                            UpdateWorker)
from .types.units import ByteSize
from .utils.retry import RetryPolicy
from .wallet.signer import KeyHandle

log = logging.getLogger(__name__)

Size = Union[int, str, ByteSize]


def _size(value: Size) -> Union[int, ByteSize]:
    return ByteSize.parse(value) if isinstance(value, str) else value


class GevulotClient:
    """
    Parameters
    ----------
    key : KeyHandle
        Signing key; its address is the session account.
    config : ClientConfig | None
        Endpoints, chain id, fees and retry budget. Defaults to ``ClientConfig()``.
    transport : object | None
        Anything with an async ``unary(method, request, response_cls, timeout=)``.
        When omitted a ``GrpcTransport`` to ``config.grpc_url`` is opened and
        closed with the client.
    rpc : TendermintRpc | None
        Block/height client. Opened from ``config.rpc_url`` when omitted.
    sleep, clock, rng
        Injected into the broadcaster; tests pass fakes.
    """

    def __init__(
        self,
        key: KeyHandle,
        config: Optional[ClientConfig] = None,
        *,
        transport: Any = None,
        rpc: Optional[TendermintRpc] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.key = key
        self.address = key.address()

        self._owns_transport = transport is None
        self.transport = transport if transport is not None else GrpcTransport(
            self.config.grpc_url, timeout=self.config.request_timeout
        )
        self._owns_rpc = rpc is None
        self.rpc = rpc if rpc is not None else TendermintRpc(self.config.rpc_url, timeout=self.config.request_timeout)

        self.query = QueryClient(self.transport, timeout=self.config.request_timeout)
        self.gov = GovQueryClient(self.transport, timeout=self.config.request_timeout)
        self.session = AccountSession(self.address, self.query.account)
        self.builder = TransactionBuilder(self.config.chain_id)
        self.broadcaster = Broadcaster(
            self.transport,
            key,
            self.session,
            self.builder,
            gas_params=self.config.gas_params(),
            retry_policy=self.config.retry_policy(),
            inclusion_timeout=self.config.inclusion_timeout,
            poll_interval=self.config.poll_interval,
            sleep=sleep,
            clock=clock,
            rng=rng,
        )
        self._sleep = sleep

    # ---- construction & lifecycle ----

    @classmethod
    async def connect(
        cls, key: KeyHandle, config: Optional[ClientConfig] = None, *, wait_ready: bool = True, **kwargs: Any
    ) -> "GevulotClient":
        """Build a client and, for a channel it opened itself, wait until it is ready."""
        client = cls(key, config, **kwargs)
        if wait_ready and client._owns_transport:
            try:
                await client.transport.wait_ready()
            except BaseException:
                await client.close()
                raise
        log.info("connected to %s as %s", client.config.grpc_url, client.address)
        return client

    @classmethod
    async def from_mnemonic(
        cls, phrase: str, config: Optional[ClientConfig] = None, *, passphrase: str = "", **kwargs: Any
    ) -> "GevulotClient":
        config = config or ClientConfig()
        key = KeyHandle.from_mnemonic(phrase, passphrase, hrp=config.hrp)
        return await cls.connect(key, config, **kwargs)

    async def close(self) -> None:
        if self._owns_rpc:
            await self.rpc.close()
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> "GevulotClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    # ---- submission ----

    async def submit_result(
        self,
        *intents: Intent,
        retry_policy: Optional[RetryPolicy] = None,
        gas_limit: Optional[int] = None,
        memo: str = "",
    ) -> TxResult:
        return await self.broadcaster.submit(intents, retry_policy=retry_policy, gas_limit=gas_limit, memo=memo)

    async def submit(
        self,
        *intents: Intent,
        retry_policy: Optional[RetryPolicy] = None,
        gas_limit: Optional[int] = None,
        memo: str = "",
    ) -> Committed:
        """Submit ``intents`` as one transaction; raises unless it commits."""
        result = await self.submit_result(*intents, retry_policy=retry_policy, gas_limit=gas_limit, memo=memo)
        return result.raise_for_result()

    async def _created_id(self, intent: Intent, kind: type = str) -> Any:
        committed = await self.submit(intent)
        if not isinstance(committed.response, kind):
            raise MalformedMessage(
                f"tx {committed.tx_hash} committed at height {committed.height} but carries no new id"
                + (f" ({committed.response_error})" if committed.response_error else ""),
                type_name=intent.response_type,
            )
        return committed.response

    # ---- workers ----

    async def create_worker(
        self,
        *,
        name: str = "",
        description: str = "",
        cpus: int = 0,
        gpus: int = 0,
        memory: Size = 0,
        disk: Size = 0,
        labels: Sequence[Label] = (),
        tags: Sequence[str] = (),
    ) -> str:
        return await self._created_id(
            CreateWorker(
                name=name,
                description=description,
                cpus=cpus,
                gpus=gpus,
                memory=_size(memory),
                disk=_size(disk),
                labels=tuple(labels),
                tags=tuple(tags),
            )
        )

    async def update_worker(
        self,
        id: str,
        *,
        name: str = "",
        description: str = "",
        cpus: int = 0,
        gpus: int = 0,
        memory: Size = 0,
        disk: Size = 0,
        labels: Sequence[Label] = (),
        tags: Sequence[str] = (),
    ) -> Committed:
        return await self.submit(
            UpdateWorker(
                id=id,
                name=name,
                description=description,
                cpus=cpus,
                gpus=gpus,
                memory=_size(memory),
                disk=_size(disk),
                labels=tuple(labels),
                tags=tuple(tags),
            )
        )

    async def delete_worker(self, id: str) -> Committed:
        return await self.submit(DeleteWorker(id=id))

    async def announce_worker_exit(self, worker_id: str) -> Committed:
        return await self.submit(AnnounceWorkerExit(worker_id=worker_id))

    # ---- tasks ----

    async def create_task(self, spec: TaskSpec, *, tags: Sequence[str] = (), labels: Sequence[Label] = ()) -> str:
        return await self._created_id(CreateTask(spec=spec, tags=tuple(tags), labels=tuple(labels)))

    async def delete_task(self, id: str) -> Committed:
        return await self.submit(DeleteTask(id=id))

    async def reschedule_task(self, id: str) -> RescheduleResult:
        committed = await self.submit(RescheduleTask(id=id))
        return committed.response

    async def accept_task(self, task_id: str, worker_id: str) -> Committed:
        return await self.submit(AcceptTask(task_id=task_id, worker_id=worker_id))

    async def decline_task(self, task_id: str, worker_id: str, error: str = "") -> Committed:
        return await self.submit(DeclineTask(task_id=task_id, worker_id=worker_id, error=error))

    async def finish_task(
        self,
        task_id: str,
        *,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
        output_contexts: Sequence[str] = (),
        error: str = "",
    ) -> Committed:
        return await self.submit(
            FinishTask(
                task_id=task_id,
                exit_code=exit_code,
                stdout=stdout,
                stderr=stderr,
                output_contexts=tuple(output_contexts),
                error=error,
            )
        )

    # ---- workflows ----

    async def create_workflow(self, spec: WorkflowSpec) -> str:
        return await self._created_id(CreateWorkflow(spec=spec))

    async def delete_workflow(self, id: str) -> Committed:
        return await self.submit(DeleteWorkflow(id=id))

    # ---- proofs ----

    async def create_proof(self, spec: ProofSpec, *, labels: Optional[Mapping[str, str]] = None) -> str:
        return await self._created_id(CreateProof(spec=spec, labels=dict(labels or {})))

    async def delete_proof(self, id: str) -> Committed:
        return await self.submit(DeleteProof(id=id))

    # ---- pins ----

    async def create_pin(
        self,
        cid: str = "",
        *,
        bytes: Size = 0,
        time: int = 0,
        redundancy: int = 1,
        name: str = "",
        description: str = "",
        tags: Sequence[str] = (),
        labels: Sequence[Label] = (),
        fallback_urls: Sequence[str] = (),
    ) -> str:
        return await self._created_id(
            CreatePin(
                cid=cid,
                bytes=_size(bytes),
                time=time,
                redundancy=redundancy,
                name=name,
                description=description,
                tags=tuple(tags),
                labels=tuple(labels),
                fallback_urls=tuple(fallback_urls),
            )
        )

    async def delete_pin(self, cid: str = "", *, id: str = "") -> Committed:
        return await self.submit(DeletePin(cid=cid, id=id))

    async def ack_pin(
        self, worker_id: str, cid: str = "", *, id: str = "", success: bool = True, error: str = ""
    ) -> Committed:
        return await self.submit(AckPin(worker_id=worker_id, cid=cid, id=id, success=success, error=error))

    # ---- sudo ----

    async def sudo_delete_worker(self, id: str) -> Committed:
        return await self.submit(SudoDeleteWorker(id=id))

    async def sudo_delete_pin(self, cid: str) -> Committed:
        return await self.submit(SudoDeletePin(cid=cid))

    async def sudo_delete_task(self, id: str) -> Committed:
        return await self.submit(SudoDeleteTask(id=id))

    async def sudo_freeze_account(self, account: str) -> Committed:
        return await self.submit(SudoFreezeAccount(account=account))

    async def update_params(self, params: Params) -> Committed:
        return await self.submit(UpdateParams(params=params))

    # ---- governance ----

    @property
    def gov_authority(self) -> str:
        """Governance module account, the authority of upgrade proposals."""
        return module_address("gov", hrp=self.config.hrp)

    def _coins(self, amount: int, denom: Optional[str]) -> Tuple[Coin, ...]:
        return (Coin(denom=denom or self.config.denom, amount=amount),) if amount else ()

    @staticmethod
    def _option(value: Union[VoteOption, int, str], intent: str) -> VoteOption:
        try:
            return VoteOption.parse(value)
        except ValueError as e:
            raise InvalidIntent(str(e), intent=intent, field="option") from None

    async def submit_proposal(self, content: ProposalContent, *, deposit: int = 0, denom: Optional[str] = None) -> int:
        """Submit ``content`` with an optional initial deposit; returns the new proposal id."""
        return await self._created_id(SubmitProposal(content=content, initial_deposit=self._coins(deposit, denom)), int)

    async def submit_software_upgrade(
        self,
        name: str,
        height: int,
        *,
        info: str = "",
        deposit: int = 0,
        authority: Optional[str] = None,
    ) -> int:
        """Propose halting at ``height`` for upgrade ``name``; the deposit is in the client's denom."""
        upgrade = SoftwareUpgrade(plan=Plan(name=name, height=height, info=info), authority=authority or self.gov_authority)
        return await self.submit_proposal(upgrade, deposit=deposit)

    async def vote(self, proposal_id: int, option: Union[VoteOption, int, str]) -> Committed:
        return await self.submit(Vote(proposal_id=proposal_id, option=self._option(option, "Vote")))

    async def vote_weighted(
        self,
        proposal_id: int,
        options: Union[Sequence[WeightedVoteOption], Mapping[Union[VoteOption, int, str], Any]],
    ) -> Committed:
        """Split vote, e.g. ``{"yes": "0.7", "abstain": "0.3"}``."""
        if isinstance(options, Mapping):
            options = [
                WeightedVoteOption(option=self._option(k, "VoteWeighted"), weight=str(w)) for k, w in options.items()
            ]
        return await self.submit(VoteWeighted(proposal_id=proposal_id, options=tuple(options)))

    async def deposit(self, proposal_id: int, amount: int, denom: Optional[str] = None) -> Committed:
        return await self.submit(Deposit(proposal_id=proposal_id, amount=self._coins(amount, denom)))

    async def get_proposal(self, proposal_id: int) -> Proposal:
        return await self.gov.proposal(proposal_id)

    def list_proposals(
        self,
        options: Optional[PageOptions] = None,
        *,
        status: Union[ProposalStatus, int] = ProposalStatus.UNSPECIFIED,
        voter: str = "",
        depositor: str = "",
    ) -> EntityStream:
        return self.gov.proposals(options, status=status, voter=voter, depositor=depositor)

    async def get_vote(self, proposal_id: int, voter: Optional[str] = None) -> ProposalVote:
        return await self.gov.vote(proposal_id, voter or self.address)

    def list_votes(self, proposal_id: int, options: Optional[PageOptions] = None) -> EntityStream:
        return self.gov.votes(proposal_id, options)

    async def get_deposit(self, proposal_id: int, depositor: Optional[str] = None) -> ProposalDeposit:
        return await self.gov.deposit(proposal_id, depositor or self.address)

    def list_deposits(self, proposal_id: int, options: Optional[PageOptions] = None) -> EntityStream:
        return self.gov.deposits(proposal_id, options)

    async def get_tally_result(self, proposal_id: int) -> TallyResult:
        return await self.gov.tally_result(proposal_id)

    async def gov_params(self, params_type: Optional[str] = None) -> GovParams:
        return await self.gov.params(params_type)

    # ---- bank ----

    async def transfer(self, to_address: str, amount: int, denom: Optional[str] = None) -> Committed:
        return await self.submit(Transfer(to_address=to_address, amount=amount, denom=denom or self.config.denom))

    async def get_account(self, address: Optional[str] = None) -> AccountInfo:
        return await self.query.account(address or self.address)

    async def get_balance(self, address: Optional[str] = None, denom: Optional[str] = None) -> Coin:
        return await self.query.balance(address or self.address, denom or self.config.denom)

    # ---- queries ----

    async def get_worker(self, id: str) -> Worker:
        return await self.query.get_one(EntityKind.WORKER, id)

    async def get_task(self, id: str) -> Task:
        return await self.query.get_one(EntityKind.TASK, id)

    async def get_workflow(self, id: str) -> Workflow:
        return await self.query.get_one(EntityKind.WORKFLOW, id)

    async def get_proof(self, id: str) -> Proof:
        return await self.query.get_one(EntityKind.PROOF, id)

    async def get_pin(self, cid: str) -> Pin:
        return await self.query.get_one(EntityKind.PIN, cid)

    def list_workers(self, options: Optional[PageOptions] = None) -> EntityStream:
        return self.query.list(EntityKind.WORKER, options)

    def list_tasks(self, options: Optional[PageOptions] = None) -> EntityStream:
        return self.query.list(EntityKind.TASK, options)

    def list_workflows(self, options: Optional[PageOptions] = None) -> EntityStream:
        return self.query.list(EntityKind.WORKFLOW, options)

    def list_proofs(self, options: Optional[PageOptions] = None) -> EntityStream:
        return self.query.list(EntityKind.PROOF, options)

    def list_pins(self, options: Optional[PageOptions] = None) -> EntityStream:
        return self.query.list(EntityKind.PIN, options)

    async def params(self) -> Params:
        return await self.query.params()

    # ---- blocks & events ----

    async def current_height(self) -> int:
        return await self.rpc.current_height()

    async def wait_for_height(self, height: int, *, timeout: float = 30.0) -> int:
        return await self.rpc.wait_for_height(
            height, timeout=timeout, poll_interval=self.config.poll_interval, sleep=self._sleep
        )

    def event_fetcher(self, handler: Handler, *, start_height: Optional[int] = None) -> EventFetcher:
        return EventFetcher(
            self.rpc, handler, start_height=start_height, poll_interval=self.config.poll_interval, sleep=self._sleep
        )

    def __repr__(self) -> str:
        return f"GevulotClient(address={self.address!r}, chain_id={self.config.chain_id!r})"


__all__ = ["GevulotClient"]

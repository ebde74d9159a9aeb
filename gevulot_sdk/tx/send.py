"""
gevulot_sdk.tx.send
===================

Sign, broadcast and confirm transactions, with bounded retries.

Primary entry points
--------------------
- ``Broadcaster.submit(intents, retry_policy=None) -> TxResult``
    The full pipeline. Every attempt reserves a fresh sequence, (re)builds and
    re-signs the envelope, broadcasts it in SYNC mode, classifies the CheckTx
    answer and then polls ``GetTx`` until the transaction lands in a block.
    Transient failures retry according to the policy; the outcome is always
    one of ``Committed``, ``RejectedPermanent`` or ``Exhausted``.

- ``Broadcaster.submit_once(intents) -> TxResult``
    A single attempt; transient failures come back as ``RejectedTransient``.

Idempotence
-----------
A retried submission is re-signed with whatever sequence the ledger reports,
so two attempts never share a transaction hash unless they are byte-identical
(same sequence, same gas), in which case the mempool answers "already in
cache" and the broadcaster simply waits for inclusion. When an attempt's fate
is unknown (the broadcast call failed in transit, or inclusion timed out) the
next attempt first asks the ledger for the previous hash and returns its
result if it did commit.

Classification (Cosmos SDK ``sdk`` codespace)
---------------------------------------------
- 3, 32 and any "account sequence mismatch" log: ``SequenceMismatch`` (resync, then retry)
- 20 mempool full, 30 timeout height, 42 tx timeout: transient
- 19 already in mempool cache: treated as accepted
- everything else non-zero (including the ``gevulot`` codespace): permanent

A gRPC error status from ``BroadcastTx`` or ``GetTx`` is classified by
``rejection_from_rpc``: client-fault statuses are permanent, everything else
is transient. Message responses that fail to decode after a commit leave
``Committed.responses`` empty and set ``Committed.response_error``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import (Any, Awaitable, Callable, ClassVar, List, Optional,
                    Sequence, Tuple, Union)

from google.protobuf.message import DecodeError

from ..codec import decode_response
from ..errors import (CodecError, ErrorKind, LedgerRejection,
                      MalformedMessage, NotFound, PermanentRejection,
                      RetryExhausted, RpcError, SequenceMismatch,
                      TransientRejection, TransportError, Unavailable)
from ..events.types import AbciEvent, LedgerEvent, parse_events
from ..proto import message_class
from ..types.intents import Intent
from ..utils.retry import BackoffState, RetryPolicy
from .build import GasParams, TransactionBuilder, UnsignedEnvelope
from .encode import pack_for_simulation, pack_signed, sign_bytes, tx_hash
from .session import AccountSession, Reservation

log = logging.getLogger(__name__)

TX_SERVICE = "/cosmos.tx.v1beta1.Service/"
BROADCAST_MODE_SYNC = 2

SDK_CODESPACE = "sdk"
_SEQUENCE_CODES = frozenset({3, 32})
_TRANSIENT_CODES = frozenset({20, 30, 42})
_IN_MEMPOOL_CACHE = 19
_SEQUENCE_PHRASES = ("account sequence mismatch", "incorrect account sequence")


def _mentions_sequence(text: str) -> bool:
    low = text.lower()
    return any(p in low for p in _SEQUENCE_PHRASES)


def classify(code: int, codespace: str, reason: str, *, tx_hash: Optional[str] = None) -> Optional[LedgerRejection]:
    """Map an ABCI result code to a rejection (None for success)."""
    if code == 0:
        return None
    kw = dict(reason=reason, code=code, codespace=codespace, tx_hash=tx_hash)
    if _mentions_sequence(reason) or (codespace == SDK_CODESPACE and code in _SEQUENCE_CODES):
        return SequenceMismatch(**kw)
    if codespace == SDK_CODESPACE and code in _TRANSIENT_CODES:
        return TransientRejection(**kw)
    return PermanentRejection(**kw)


def rejection_from_rpc(e: RpcError, *, tx_hash: Optional[str] = None) -> LedgerRejection:
    """
    Classify a non-transport gRPC failure from the tx service.

    Client-fault statuses (INVALID_ARGUMENT and friends) are permanent, a
    sequence complaint is a ``SequenceMismatch``, anything else (INTERNAL,
    UNKNOWN, ...) is transient.
    """
    if _mentions_sequence(e.message):
        return SequenceMismatch(reason=e.message, codespace=SDK_CODESPACE, tx_hash=tx_hash)
    if e.kind is ErrorKind.INVALID_REQUEST:
        return PermanentRejection(reason=e.message, tx_hash=tx_hash)
    return TransientRejection(reason=e.message, tx_hash=tx_hash)


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Committed:
    """Included in a block with result code 0."""

    ok: ClassVar[bool] = True

    height: int
    tx_hash: str
    gas_used: int = 0
    gas_wanted: int = 0
    events: Tuple[AbciEvent, ...] = ()
    responses: Tuple[Any, ...] = ()
    attempts: int = 1
    sequence: Optional[int] = None
    response_error: Optional[str] = None

    @property
    def response(self) -> Any:
        """
        Decoded response of the first message (new id for create intents).

        None when the ledger's message responses could not be decoded; the
        transaction still committed and ``response_error`` says why.
        """
        return self.responses[0] if self.responses else None

    def ledger_events(self) -> List[LedgerEvent]:
        return parse_events(self.events, block_height=self.height)

    def raise_for_result(self) -> "Committed":
        return self


@dataclass(frozen=True)
class RejectedPermanent:
    ok: ClassVar[bool] = False

    reason: str
    code: int = 0
    codespace: str = ""
    tx_hash: Optional[str] = None
    attempts: int = 1

    @classmethod
    def from_error(cls, e: LedgerRejection, attempts: int) -> "RejectedPermanent":
        return cls(reason=e.reason, code=e.code, codespace=e.codespace, tx_hash=e.tx_hash, attempts=attempts)

    def raise_for_result(self) -> "Committed":
        raise PermanentRejection(reason=self.reason, code=self.code, codespace=self.codespace, tx_hash=self.tx_hash)


@dataclass(frozen=True)
class RejectedTransient:
    ok: ClassVar[bool] = False

    reason: str
    code: int = 0
    codespace: str = ""
    tx_hash: Optional[str] = None
    attempts: int = 1
    sequence_mismatch: bool = False

    @classmethod
    def from_error(cls, e: LedgerRejection, attempts: int) -> "RejectedTransient":
        return cls(
            reason=e.reason,
            code=e.code,
            codespace=e.codespace,
            tx_hash=e.tx_hash,
            attempts=attempts,
            sequence_mismatch=isinstance(e, SequenceMismatch),
        )

    def raise_for_result(self) -> "Committed":
        err_cls = SequenceMismatch if self.sequence_mismatch else TransientRejection
        raise err_cls(reason=self.reason, code=self.code, codespace=self.codespace, tx_hash=self.tx_hash)


@dataclass(frozen=True)
class Exhausted:
    """The retry budget ran out while failures were still transient."""

    ok: ClassVar[bool] = False

    last_reason: str
    attempts: int
    last_error: Optional[BaseException] = None

    def raise_for_result(self) -> "Committed":
        raise RetryExhausted(
            last_reason=self.last_reason, attempts=self.attempts, last_error=self.last_error
        ) from self.last_error


TxResult = Union[Committed, RejectedPermanent, RejectedTransient, Exhausted]


@dataclass
class PendingTransaction:
    """Bookkeeping for one logical submission across its attempts."""

    intents: Tuple[Intent, ...]
    started_at: float
    attempts: int = 0
    tx_hash: Optional[str] = None
    sequence: Optional[int] = None
    submitted_at: Optional[float] = None
    last_result: str = ""
    outcome_unknown: bool = False


# -----------------------------------------------------------------------------
# Broadcaster
# -----------------------------------------------------------------------------


class Broadcaster:
    def __init__(
        self,
        transport: Any,
        signer: Any,
        session: AccountSession,
        builder: TransactionBuilder,
        *,
        gas_params: Optional[GasParams] = None,
        retry_policy: Optional[RetryPolicy] = None,
        inclusion_timeout: float = 30.0,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.transport = transport
        self.signer = signer
        self.session = session
        self.builder = builder
        self.gas_params = gas_params or GasParams()
        self.retry_policy = retry_policy or RetryPolicy()
        self.inclusion_timeout = inclusion_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        self._address = signer.address()

    # ---- public ----

    async def submit(
        self,
        intents: Sequence[Intent],
        *,
        retry_policy: Optional[RetryPolicy] = None,
        gas_limit: Optional[int] = None,
        memo: str = "",
    ) -> TxResult:
        policy = retry_policy or self.retry_policy
        pending = PendingTransaction(
            intents=self.builder.prepare(intents, signer=self._address), started_at=self._clock()
        )
        backoff = BackoffState()
        while True:
            try:
                if pending.outcome_unknown and pending.tx_hash is not None:
                    found = await self._find_landed(pending, pending.tx_hash)
                    if found is not None:
                        return found
                pending.attempts += 1
                return await self._attempt(pending, gas_limit=gas_limit, memo=memo)
            except PermanentRejection as e:
                pending.last_result = str(e)
                log.info("tx %s rejected: %s", pending.tx_hash or "-", e)
                return RejectedPermanent.from_error(e, pending.attempts)
            except (TransientRejection, TransportError) as e:
                error: BaseException = e
                pending.last_result = str(e)

            decision = policy.decide(
                pending.attempts, self._clock() - pending.started_at, error, rng=self._rng, state=backoff
            )
            if not decision.retry:
                log.warning("giving up after %d attempts (%s): %s", pending.attempts, decision.reason, error)
                return Exhausted(last_reason=str(error), attempts=pending.attempts, last_error=error)
            if isinstance(error, SequenceMismatch):
                await self.session.resync()
            log.warning("attempt %d failed, retrying in %.2fs: %s", pending.attempts, decision.delay, error)
            await self._sleep(decision.delay)

    async def submit_once(self, intents: Sequence[Intent], *, gas_limit: Optional[int] = None, memo: str = "") -> TxResult:
        pending = PendingTransaction(
            intents=self.builder.prepare(intents, signer=self._address), started_at=self._clock(), attempts=1
        )
        try:
            return await self._attempt(pending, gas_limit=gas_limit, memo=memo)
        except PermanentRejection as e:
            return RejectedPermanent.from_error(e, 1)
        except TransientRejection as e:
            return RejectedTransient.from_error(e, 1)

    # ---- one attempt ----

    def _build(self, pending: PendingTransaction, r: Reservation, gas_limit: Optional[int], memo: str) -> UnsignedEnvelope:
        return self.builder.build(
            pending.intents,
            sequence=r.sequence,
            account_number=r.account_number,
            public_key=self.signer.public_key,
            gas_params=self.gas_params,
            gas_limit=gas_limit,
            memo=memo,
        )

    async def _attempt(self, pending: PendingTransaction, *, gas_limit: Optional[int], memo: str) -> Committed:
        r = await self.session.reserve()
        try:
            fixed = gas_limit if gas_limit is not None else self.gas_params.gas_limit
            env = self._build(pending, r, fixed, memo)
            if fixed is None:
                used = await self._simulate(env)
                env = self._build(pending, r, self.gas_params.limit_from_simulation(used), memo)
                log.debug("simulated gas %d, limit %d, fee %s", used, env.gas_limit, env.fee)

            raw = pack_signed(env, self.signer.sign(sign_bytes(env)))
            h = tx_hash(raw)
            pending.tx_hash, pending.sequence, pending.submitted_at = h, r.sequence, self._clock()
            log.debug("attempt %d: tx %s sequence %d", pending.attempts, h, r.sequence)

            pending.outcome_unknown = True
            resp = await self._broadcast(raw)
            if resp.code == _IN_MEMPOOL_CACHE and resp.codespace == SDK_CODESPACE:
                log.debug("tx %s already in mempool; waiting for inclusion", h)
            else:
                rejection = classify(resp.code, resp.codespace, resp.raw_log, tx_hash=h)
                if rejection is not None:
                    pending.outcome_unknown = False
                    raise rejection
            included = await self._wait_for_inclusion(h)
        except BaseException:
            self.session.invalidate()
            raise
        pending.outcome_unknown = False
        return self._finish(pending, included)

    async def _simulate(self, env: UnsignedEnvelope) -> int:
        req = message_class("cosmos.tx.v1beta1.SimulateRequest")(tx_bytes=pack_for_simulation(env))
        try:
            resp = await self.transport.unary(
                TX_SERVICE + "Simulate", req, message_class("cosmos.tx.v1beta1.SimulateResponse")
            )
        except RpcError as e:
            if _mentions_sequence(e.message):
                raise SequenceMismatch(reason=e.message, codespace=SDK_CODESPACE) from e
            raise PermanentRejection(reason=e.message) from e
        return int(resp.gas_info.gas_used)

    async def _broadcast(self, raw: bytes) -> Any:
        req = message_class("cosmos.tx.v1beta1.BroadcastTxRequest")(tx_bytes=raw, mode=BROADCAST_MODE_SYNC)
        try:
            resp = await self.transport.unary(
                TX_SERVICE + "BroadcastTx", req, message_class("cosmos.tx.v1beta1.BroadcastTxResponse")
            )
        except RpcError as e:
            raise rejection_from_rpc(e, tx_hash=tx_hash(raw)) from e
        return resp.tx_response

    async def _get_tx(self, h: str) -> Optional[Any]:
        req = message_class("cosmos.tx.v1beta1.GetTxRequest")(hash=h)
        try:
            resp = await self.transport.unary(TX_SERVICE + "GetTx", req, message_class("cosmos.tx.v1beta1.GetTxResponse"))
        except NotFound:
            return None
        except RpcError as e:
            raise rejection_from_rpc(e, tx_hash=h) from e
        if resp.HasField("tx_response") and resp.tx_response.height > 0:
            return resp.tx_response
        return None

    async def _wait_for_inclusion(self, h: str) -> Any:
        deadline = self._clock() + self.inclusion_timeout
        while True:
            try:
                found = await self._get_tx(h)
            except Unavailable as e:
                log.debug("GetTx %s failed: %s", h, e)
                found = None
            if found is not None:
                return found
            if self._clock() >= deadline:
                raise Unavailable(
                    message=f"tx {h} not included within {self.inclusion_timeout:g}s",
                    method="GetTx",
                    status="INCLUSION_TIMEOUT",
                )
            await self._sleep(self.poll_interval)

    async def _find_landed(self, pending: PendingTransaction, h: str) -> Optional[Committed]:
        """Ask once whether the previous attempt ``h`` landed after all."""
        try:
            found = await self._get_tx(h)
        except (TransportError, TransientRejection) as e:
            log.debug("lookup of previous attempt %s failed: %s", h, e)
            return None
        pending.outcome_unknown = False
        if found is None:
            return None
        log.info("previous attempt %s was included at height %d", h, found.height)
        return self._finish(pending, found)

    # ---- results ----

    def _finish(self, pending: PendingTransaction, tx_response: Any) -> Committed:
        rejection = classify(tx_response.code, tx_response.codespace, tx_response.raw_log, tx_hash=tx_response.txhash)
        if rejection is not None:
            raise rejection
        h = tx_response.txhash or pending.tx_hash or ""
        response_error: Optional[str] = None
        try:
            responses = self._decode_responses(pending.intents, tx_response.data)
        except CodecError as e:
            # the transaction is already in a block
            log.warning("tx %s committed but its message responses did not decode: %s", h, e)
            responses, response_error = (), str(e)
        return Committed(
            height=int(tx_response.height),
            tx_hash=h,
            gas_used=int(tx_response.gas_used),
            gas_wanted=int(tx_response.gas_wanted),
            events=tuple(AbciEvent.from_proto(e) for e in tx_response.events),
            responses=responses,
            attempts=pending.attempts,
            sequence=pending.sequence,
            response_error=response_error,
        )

    @staticmethod
    def _decode_responses(intents: Tuple[Intent, ...], data: str) -> Tuple[Any, ...]:
        if not data:
            return ()
        cls = message_class("cosmos.base.abci.v1beta1.TxMsgData")
        try:
            msg = cls.FromString(bytes.fromhex(data))
        except (ValueError, DecodeError) as e:
            raise MalformedMessage(f"undecodable tx data: {e}", type_name=cls.DESCRIPTOR.full_name) from e
        if len(msg.msg_responses) != len(intents):
            raise MalformedMessage(
                f"{len(msg.msg_responses)} message responses for {len(intents)} messages",
                type_name=cls.DESCRIPTOR.full_name,
            )
        return tuple(decode_response(i, a) for i, a in zip(intents, msg.msg_responses))


__all__ = [
    "Broadcaster",
    "Committed",
    "RejectedPermanent",
    "RejectedTransient",
    "Exhausted",
    "TxResult",
    "PendingTransaction",
    "classify",
    "rejection_from_rpc",
    "TX_SERVICE",
    "BROADCAST_MODE_SYNC",
]

"""
Shared pytest fixtures:
- A deterministic test key (the well-known "abandon ... about" mnemonic)
- FakeLedger: an in-memory stand-in for a node's gRPC services that records calls
- Instant sleep and a manual clock for retry/backoff tests
"""
from __future__ import annotations

import asyncio
import random
from collections import deque
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

import pytest

from gevulot_sdk import address as addr
from gevulot_sdk.codec import to_proto
from gevulot_sdk.errors import RpcError, from_grpc_status
from gevulot_sdk.proto import message_class, pack_any, unpack_any
from gevulot_sdk.query.client import (AUTH_ACCOUNT, BANK_BALANCE, GEVULOT_QUERY,
                                      EntityKind, QueryClient)
from gevulot_sdk.query.gov import GOV_QUERY
from gevulot_sdk.tx.build import GasParams, TransactionBuilder
from gevulot_sdk.tx.encode import tx_hash, unpack_signed
from gevulot_sdk.tx.send import TX_SERVICE, Broadcaster
from gevulot_sdk.tx.session import AccountSession
from gevulot_sdk.types.entities import Params
from gevulot_sdk.utils.retry import RetryPolicy
from gevulot_sdk.wallet.signer import KeyHandle, verify_signature

MNEMONIC = " ".join(["abandon"] * 11 + ["about"])
CHAIN_ID = "gevulot-test"


# ---------- CLOCK & SLEEP ----------


class ManualClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


# ---------- KEYS ----------


@pytest.fixture(scope="session")
def key() -> KeyHandle:
    return KeyHandle.from_mnemonic(MNEMONIC)


# ---------- FAKE LEDGER ----------


@dataclass
class Answer:
    """Scripted CheckTx answer for the next broadcast (``commit`` still includes it)."""

    code: int
    codespace: str = "sdk"
    log: str = ""
    commit: bool = False


@dataclass
class Lost:
    """Commit the next broadcast, then fail the call as if the reply was lost."""


@dataclass
class Account:
    account_number: int
    sequence: int
    pub_key: Optional[bytes] = None


@dataclass
class Broadcast:
    sequence: int
    tx_hash: str
    gas_limit: int
    messages: List[str] = field(default_factory=list)


Step = Union[Answer, Lost, BaseException]


class FakeLedger:
    """
    Minimal in-memory node implementing the gRPC methods the SDK calls.

    Broadcasts are checked the way the ledger checks them: the signature must
    verify against the sign-doc for ``chain_id`` and the signer's account
    number, and the signed sequence must equal the account's next sequence.
    """

    def __init__(self, *, chain_id: str = CHAIN_ID, height: int = 100) -> None:
        self.chain_id = chain_id
        self.height = height
        self.calls: List[Tuple[str, Any]] = []
        self.accounts: Dict[str, Account] = {}
        self.balances: Dict[Tuple[str, str], int] = {}
        self.entities: Dict[EntityKind, List[Any]] = {kind: [] for kind in EntityKind}
        self.params = Params()
        self.txs: Dict[str, Any] = {}
        self.broadcasts: List[Broadcast] = []
        self.broadcast_script: Deque[Step] = deque()
        self.simulate_script: Deque[BaseException] = deque()
        self.get_tx_script: Deque[BaseException] = deque()
        self.data_override: Optional[str] = None
        self.interleave = False
        self.get_tx_misses = 0
        self.gas_used = 80_000
        self.next_events: List[Tuple[str, List[Tuple[str, str]]]] = []
        # governance query name -> response message, exception, or callable(request, response_cls)
        self.gov_answers: Dict[str, Any] = {}
        self._ids = count(1)

    # --- setup helpers ---

    def add_account(self, address: str, *, account_number: int = 7, sequence: int = 0) -> Account:
        acct = Account(account_number=account_number, sequence=sequence)
        self.accounts[address] = acct
        return acct

    def add_entity(self, kind: EntityKind, entity: Any) -> None:
        self.entities[kind].append(to_proto(entity))

    def bump(self, address: str, by: int = 1) -> None:
        """Simulate transactions sent from the same account by someone else."""
        self.accounts[address].sequence += by

    def calls_to(self, name: str) -> List[Any]:
        return [req for method, req in self.calls if method.rsplit("/", 1)[-1] == name]

    # --- transport surface ---

    async def unary(self, method: str, request: Any, response_cls: Any, *, timeout: Optional[float] = None) -> Any:
        if self.interleave:
            await asyncio.sleep(0)
        self.calls.append((method, request))
        if method == AUTH_ACCOUNT:
            return self._account(method, request, response_cls)
        if method == BANK_BALANCE:
            resp = response_cls()
            resp.balance.denom = request.denom
            resp.balance.amount = str(self.balances.get((request.address, request.denom), 0))
            return resp
        if method == TX_SERVICE + "Simulate":
            return self._simulate(method, request, response_cls)
        if method == TX_SERVICE + "BroadcastTx":
            return self._broadcast(method, request, response_cls)
        if method == TX_SERVICE + "GetTx":
            return self._get_tx(method, request, response_cls)
        if method.startswith(GOV_QUERY):
            return self._gov(method, request, response_cls)
        if method == GEVULOT_QUERY + "Params":
            return response_cls(params=to_proto(self.params))
        for kind in EntityKind:
            if method == GEVULOT_QUERY + kind.value:
                return self._get_entity(method, kind, request, response_cls)
            if method == GEVULOT_QUERY + kind.value + "All":
                return self._list_entities(kind, request, response_cls)
        raise from_grpc_status("UNIMPLEMENTED", f"unknown method {method}", method=method)

    async def close(self) -> None:
        pass

    # --- handlers ---

    def _account(self, method: str, request: Any, response_cls: Any) -> Any:
        acct = self.accounts.get(request.address)
        if acct is None:
            raise from_grpc_status("NOT_FOUND", f"account {request.address} not found", method=method)
        base = message_class("cosmos.auth.v1beta1.BaseAccount")(
            address=request.address, account_number=acct.account_number, sequence=acct.sequence
        )
        if acct.pub_key is not None:
            base.pub_key.CopyFrom(pack_any(message_class("cosmos.crypto.secp256k1.PubKey")(key=acct.pub_key)))
        return response_cls(account=pack_any(base))

    def _decode(self, raw: bytes) -> Tuple[Any, Any, List[bytes], bytes, str]:
        body_bytes, auth_bytes, sigs = unpack_signed(raw)
        body = message_class("cosmos.tx.v1beta1.TxBody").FromString(body_bytes)
        auth = message_class("cosmos.tx.v1beta1.AuthInfo").FromString(auth_bytes)
        pub = unpack_any(auth.signer_infos[0].public_key, message_class("cosmos.crypto.secp256k1.PubKey")).key
        return body, auth, sigs, bytes(pub), addr.from_pubkey(bytes(pub))

    def _sequence_error(self, acct: Account, got: int) -> str:
        return f"account sequence mismatch, expected {acct.sequence}, got {got}: incorrect account sequence"

    def _simulate(self, method: str, request: Any, response_cls: Any) -> Any:
        if self.simulate_script:
            raise self.simulate_script.popleft()
        _, auth, _, _, address = self._decode(request.tx_bytes)
        acct = self.accounts[address]
        got = auth.signer_infos[0].sequence
        if got != acct.sequence:
            raise RpcError(method=method, status="UNKNOWN", message=self._sequence_error(acct, got))
        resp = response_cls()
        resp.gas_info.gas_wanted = auth.fee.gas_limit
        resp.gas_info.gas_used = self.gas_used
        return resp

    def _broadcast(self, method: str, request: Any, response_cls: Any) -> Any:
        raw = bytes(request.tx_bytes)
        body, auth, sigs, pub, address = self._decode(raw)
        body_bytes, auth_bytes, _ = unpack_signed(raw)
        h = tx_hash(raw)
        si = auth.signer_infos[0]
        self.broadcasts.append(
            Broadcast(
                sequence=si.sequence,
                tx_hash=h,
                gas_limit=auth.fee.gas_limit,
                messages=[m.type_url for m in body.messages],
            )
        )

        step: Optional[Step] = self.broadcast_script.popleft() if self.broadcast_script else None
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, Answer) and not step.commit:
            return self._check_tx(response_cls, h, step.code, step.codespace, step.log)

        acct = self.accounts[address]
        doc = message_class("cosmos.tx.v1beta1.SignDoc")(
            body_bytes=body_bytes,
            auth_info_bytes=auth_bytes,
            chain_id=self.chain_id,
            account_number=acct.account_number,
        )
        if not verify_signature(pub, doc.SerializeToString(deterministic=True), sigs[0]):
            return self._check_tx(response_cls, h, 4, "sdk", "signature verification failed; please verify account number and chain-id")
        if si.sequence != acct.sequence:
            return self._check_tx(response_cls, h, 32, "sdk", self._sequence_error(acct, si.sequence))

        acct.sequence += 1
        acct.pub_key = pub
        self._commit(h, body, auth)
        if isinstance(step, Lost):
            raise from_grpc_status("UNAVAILABLE", "connection reset", method=method)
        if isinstance(step, Answer):
            return self._check_tx(response_cls, h, step.code, step.codespace, step.log)
        return self._check_tx(response_cls, h, 0, "", "")

    def _check_tx(self, response_cls: Any, h: str, code: int, codespace: str, log: str) -> Any:
        resp = response_cls()
        resp.tx_response.txhash = h
        resp.tx_response.code = code
        resp.tx_response.codespace = codespace
        resp.tx_response.raw_log = log
        return resp

    def _commit(self, h: str, body: Any, auth: Any) -> None:
        self.height += 1
        data = message_class("cosmos.base.abci.v1beta1.TxMsgData")()
        for msg in body.messages:
            resp = message_class(msg.type_url[1:] + "Response")()
            fields = resp.DESCRIPTOR.fields_by_name
            if "id" in fields:
                resp.id = f"{msg.type_url.rsplit('Create', 1)[-1].lower()}-{next(self._ids)}"
            if "primary" in fields:
                resp.primary, resp.secondary = "worker-a", "worker-b"
            if "proposal_id" in fields:
                resp.proposal_id = next(self._ids)
            data.msg_responses.append(pack_any(resp))
        tx_response = message_class("cosmos.base.abci.v1beta1.TxResponse")(
            height=self.height,
            txhash=h,
            code=0,
            gas_wanted=auth.fee.gas_limit,
            gas_used=self.gas_used,
            data=self.data_override if self.data_override is not None else data.SerializeToString(deterministic=True).hex().upper(),
        )
        for kind, attrs in self.next_events:
            ev = tx_response.events.add(type=kind)
            for k, v in attrs:
                ev.attributes.add(key=k, value=v)
        self.next_events = []
        self.txs[h] = tx_response

    def _get_tx(self, method: str, request: Any, response_cls: Any) -> Any:
        if self.get_tx_script:
            raise self.get_tx_script.popleft()
        found = self.txs.get(request.hash)
        if found is None or self.get_tx_misses > 0:
            self.get_tx_misses = max(0, self.get_tx_misses - 1)
            raise from_grpc_status("NOT_FOUND", f"tx {request.hash} not found", method=method)
        return response_cls(tx_response=found)

    def _gov(self, method: str, request: Any, response_cls: Any) -> Any:
        answer = self.gov_answers.get(method.rsplit("/", 1)[-1])
        if answer is None:
            raise from_grpc_status("NOT_FOUND", f"nothing scripted for {method}", method=method)
        if isinstance(answer, BaseException):
            raise answer
        return answer(request, response_cls) if callable(answer) else answer

    def _get_entity(self, method: str, kind: EntityKind, request: Any, response_cls: Any) -> Any:
        key = getattr(request, kind.key_field)
        for item in self.entities[kind]:
            item_key = item.id if kind is EntityKind.PROOF else (item.metadata.id or "")
            if kind is EntityKind.PIN:
                item_key = item.status.cid or item.metadata.id
            if item_key == key:
                return response_cls(**{kind.response_field: item})
        raise from_grpc_status("NOT_FOUND", f"{kind.value} {key} not found", method=method)

    def _list_entities(self, kind: EntityKind, request: Any, response_cls: Any) -> Any:
        items = self.entities[kind]
        start = int(request.pagination.key.decode() or "0")
        limit = request.pagination.limit or 100
        page = items[start : start + limit]
        end = start + len(page)
        resp = response_cls()
        getattr(resp, kind.response_field).extend(page)
        resp.pagination.next_key = str(end).encode() if end < len(items) else b""
        if request.pagination.count_total:
            resp.pagination.total = len(items)
        return resp


@pytest.fixture
def ledger(key: KeyHandle) -> FakeLedger:
    led = FakeLedger()
    led.add_account(key.address(), account_number=7, sequence=5)
    return led


@pytest.fixture
def session(ledger: FakeLedger, key: KeyHandle) -> AccountSession:
    return AccountSession(key.address(), QueryClient(ledger).account)


@pytest.fixture
def broadcaster(ledger: FakeLedger, key: KeyHandle, session: AccountSession, clock: ManualClock) -> Broadcaster:
    return Broadcaster(
        ledger,
        key,
        session,
        TransactionBuilder(CHAIN_ID),
        gas_params=GasParams(),
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=4.0, max_elapsed=None),
        inclusion_timeout=10.0,
        poll_interval=1.0,
        sleep=clock.sleep,
        clock=clock,
        rng=random.Random(7),
    )

"""
gevulot_sdk.query.client
========================

Read-only access to ledger state.

* ``get_one(kind, key)``: single-entity lookup; a miss raises ``NotFound``
  carrying the entity kind and key.
* ``list(kind, options)``: a lazy ``EntityStream`` that fetches one page at a
  time, only when the consumer has drained the previous one. The stream ends
  on an empty continuation token, or when the server repeats a token it
  already sent (logged, then treated as exhausted).
* ``fetch_page(kind, options)``: one raw page, for callers that keep their own
  cursor.

Transport failures surface unchanged (``Unavailable``); queries are never
retried here.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import (Any, Awaitable, Callable, Deque, Generic, List, Optional,
                    Set, TypeVar)

from ..codec import coin_from_proto, from_proto
from ..errors import MalformedMessage, NotFound
from ..proto import message_class, unpack_any
from ..types.entities import (AccountInfo, Coin, Params, Pin, Proof, Task,
                              Worker, Workflow)

log = logging.getLogger(__name__)

T = TypeVar("T")

GEVULOT_QUERY = "/gevulot.gevulot.Query/"
AUTH_ACCOUNT = "/cosmos.auth.v1beta1.Query/Account"
BANK_BALANCE = "/cosmos.bank.v1beta1.Query/Balance"

_BASE_ACCOUNT = "cosmos.auth.v1beta1.BaseAccount"
_PUBKEY = "cosmos.crypto.secp256k1.PubKey"


class EntityKind(str, Enum):
    WORKER = "Worker"
    TASK = "Task"
    WORKFLOW = "Workflow"
    PROOF = "Proof"
    PIN = "Pin"

    @property
    def entity_type(self) -> type:
        return _ENTITY_TYPES[self]

    @property
    def key_field(self) -> str:
        """Request field naming the lookup key (pins are addressed by content id)."""
        return "cid" if self is EntityKind.PIN else "id"

    @property
    def response_field(self) -> str:
        return self.value.lower()


_ENTITY_TYPES = {
    EntityKind.WORKER: Worker,
    EntityKind.TASK: Task,
    EntityKind.WORKFLOW: Workflow,
    EntityKind.PROOF: Proof,
    EntityKind.PIN: Pin,
}


@dataclass(frozen=True)
class PageOptions:
    """
    Pagination request.

    ``key`` is the opaque continuation token from a previous page (or a
    stream's ``cursor``); ``limit`` of None leaves the page size to the node.
    """

    limit: Optional[int] = None
    key: bytes = b""
    count_total: bool = False
    reverse: bool = False


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    next_key: bytes = b""
    total: Optional[int] = None


FetchPage = Callable[[PageOptions], Awaitable[Page]]


def apply_pagination(req: Any, options: PageOptions) -> None:
    """Copy ``options`` into the request's ``pagination`` field."""
    req.pagination.SetInParent()
    req.pagination.key = options.key
    if options.limit is not None:
        req.pagination.limit = options.limit
    req.pagination.count_total = options.count_total
    req.pagination.reverse = options.reverse


def page_of(items: List[T], resp: Any, options: PageOptions) -> Page:
    return Page(
        items=items,
        next_key=bytes(resp.pagination.next_key),
        total=resp.pagination.total if options.count_total else None,
    )


class EntityStream(Generic[T]):
    """
    Async iterator over every item of one paginated listing, in server order.

    ``fetch`` returns one page for the given options. Not restartable
    mid-walk: start a new listing for a fresh walk, or pass ``cursor`` as
    ``PageOptions.key`` to continue elsewhere.
    """

    def __init__(self, fetch: FetchPage, options: PageOptions, *, label: str = "entity") -> None:
        self._fetch_page = fetch
        self._label = label
        self._options = options
        self._buffer: Deque[T] = deque()
        self._next_key: bytes = options.key
        self._seen: Set[bytes] = set()
        self._done = False
        self.pages_fetched = 0
        self.total: Optional[int] = None

    @property
    def cursor(self) -> bytes:
        """Token for the page after the last one fetched (empty when exhausted)."""
        return b"" if self._done else self._next_key

    def __aiter__(self) -> "EntityStream[T]":
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            if self._done:
                raise StopAsyncIteration
            await self._fetch()
        return self._buffer.popleft()

    async def _fetch(self) -> None:
        opts = PageOptions(
            limit=self._options.limit,
            key=self._next_key,
            count_total=self._options.count_total and self.pages_fetched == 0,
            reverse=self._options.reverse,
        )
        page = await self._fetch_page(opts)
        self.pages_fetched += 1
        if page.total is not None and self.total is None:
            self.total = page.total
        self._buffer.extend(page.items)

        token = page.next_key
        if not token:
            self._done = True
        elif token in self._seen or token == opts.key:
            log.warning("%s pagination repeated a continuation token; stopping", self._label)
            self._done = True
        else:
            self._seen.add(token)
        self._next_key = token

    async def collect(self) -> List[T]:
        return [item async for item in self]


class QueryClient:
    """Ledger queries over any transport with a ``unary`` coroutine."""

    def __init__(self, transport: Any, *, timeout: Optional[float] = None) -> None:
        self._transport = transport
        self._timeout = timeout

    async def _call(self, method: str, request: Any, response_type: str) -> Any:
        return await self._transport.unary(method, request, message_class(response_type), timeout=self._timeout)

    # ---- entities ----

    async def get_one(self, kind: EntityKind, key: str) -> Any:
        kind = EntityKind(kind)
        req = message_class(f"gevulot.gevulot.QueryGet{kind.value}Request")(**{kind.key_field: key})
        try:
            resp = await self._call(
                GEVULOT_QUERY + kind.value, req, f"gevulot.gevulot.QueryGet{kind.value}Response"
            )
        except NotFound:
            raise NotFound(what=kind.value, key=key) from None
        if not resp.HasField(kind.response_field):
            raise NotFound(what=kind.value, key=key)
        return from_proto(kind.entity_type, getattr(resp, kind.response_field))

    async def fetch_page(self, kind: EntityKind, options: Optional[PageOptions] = None) -> Page:
        kind = EntityKind(kind)
        options = options or PageOptions()
        req = message_class(f"gevulot.gevulot.QueryAll{kind.value}Request")()
        apply_pagination(req, options)

        resp = await self._call(GEVULOT_QUERY + kind.value + "All", req, f"gevulot.gevulot.QueryAll{kind.value}Response")
        items = [from_proto(kind.entity_type, m) for m in getattr(resp, kind.response_field)]
        log.debug("%s page: %d items, next_key=%s", kind.value, len(items), resp.pagination.next_key.hex() or "-")
        return page_of(items, resp, options)

    def list(self, kind: EntityKind, options: Optional[PageOptions] = None) -> EntityStream:
        kind = EntityKind(kind)
        return EntityStream(partial(self.fetch_page, kind), options or PageOptions(), label=kind.value)

    async def params(self) -> Params:
        req = message_class("gevulot.gevulot.QueryParamsRequest")()
        resp = await self._call(GEVULOT_QUERY + "Params", req, "gevulot.gevulot.QueryParamsResponse")
        return from_proto(Params, resp.params)

    # ---- accounts ----

    async def account(self, address: str) -> AccountInfo:
        req = message_class("cosmos.auth.v1beta1.QueryAccountRequest")(address=address)
        try:
            resp = await self._call(AUTH_ACCOUNT, req, "cosmos.auth.v1beta1.QueryAccountResponse")
        except NotFound:
            raise NotFound(what="account", key=address) from None
        if not resp.HasField("account"):
            raise NotFound(what="account", key=address)
        acct = unpack_any(resp.account, message_class(_BASE_ACCOUNT))
        public_key: Optional[bytes] = None
        if acct.HasField("pub_key"):
            public_key = bytes(unpack_any(acct.pub_key, message_class(_PUBKEY)).key)
        if acct.address and acct.address != address:
            raise MalformedMessage(f"asked for {address}, ledger answered {acct.address}", type_name=_BASE_ACCOUNT)
        return AccountInfo(
            address=address,
            account_number=acct.account_number,
            sequence=acct.sequence,
            public_key=public_key,
        )

    async def balance(self, address: str, denom: str) -> Coin:
        req = message_class("cosmos.bank.v1beta1.QueryBalanceRequest")(address=address, denom=denom)
        resp = await self._call(BANK_BALANCE, req, "cosmos.bank.v1beta1.QueryBalanceResponse")
        if not resp.HasField("balance"):
            return Coin(denom=denom, amount=0)
        return coin_from_proto(resp.balance)


__all__ = [
    "EntityKind",
    "PageOptions",
    "Page",
    "EntityStream",
    "QueryClient",
    "apply_pagination",
    "page_of",
]

"""
Typed error classes for the Gevulot Python SDK.

Every class carries a ``kind`` so callers can branch on *what went wrong*
without parsing messages:

- ``INVALID_REQUEST``: the request itself was bad (mnemonic, intent shape, wire data)
- ``UNAVAILABLE``: the node or network is temporarily unable to serve it
- ``REJECTED``: the ledger permanently refused it
- ``NOT_FOUND``: a single-entity lookup missed (a normal negative result)

Everything can still be caught through the base ``GevulotSdkError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

__all__ = [
    "ErrorKind",
    "GevulotSdkError",
    "KeyDerivationError",
    "InvalidMnemonic",
    "CodecError",
    "MalformedMessage",
    "InvalidIntent",
    "TransportError",
    "Unavailable",
    "RpcError",
    "NotFound",
    "LedgerRejection",
    "PermanentRejection",
    "TransientRejection",
    "SequenceMismatch",
    "RetryExhausted",
    "EventError",
    "MissingEventAttribute",
    "InvalidEventAttribute",
    "UnknownEventKind",
    "from_grpc_status",
]


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"


class GevulotSdkError(Exception):
    """Base class for all SDK errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_REQUEST


# -----------------------------------------------------------------------------
# Keys & codec
# -----------------------------------------------------------------------------


@dataclass(eq=False)
class KeyDerivationError(GevulotSdkError):
    """Raised when a key cannot be derived (bad seed, bad path, invalid child key)."""

    message: str
    path: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [path={self.path}]" if self.path else ""
        return f"KeyDerivationError{where}: {self.message}"


class InvalidMnemonic(KeyDerivationError):
    """The phrase is not a checksum-valid BIP-39 mnemonic."""


@dataclass(eq=False)
class CodecError(GevulotSdkError):
    """
    Raised when wire data cannot be mapped to or from a domain value.

    Fatal for the one message involved; other in-flight operations are unaffected.
    """

    message: str
    type_name: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [{self.type_name}]" if self.type_name else ""
        return f"{type(self).__name__}{where}: {self.message}"


class MalformedMessage(CodecError):
    """Required fields are absent, carry the wrong wire type, or the bytes do not parse."""


@dataclass(eq=False)
class InvalidIntent(GevulotSdkError):
    """A transaction intent failed shape validation before anything was signed."""

    message: str
    intent: Optional[str] = None
    field: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = []
        if self.intent:
            where.append(self.intent)
        if self.field:
            where.append(f"field={self.field}")
        where_s = (" [" + ", ".join(where) + "]") if where else ""
        return f"InvalidIntent{where_s}: {self.message}"


# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------


@dataclass(eq=False)
class TransportError(GevulotSdkError):
    """Connectivity failure talking to a node."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNAVAILABLE

    message: str
    method: Optional[str] = None
    status: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"{type(self).__name__}[{self.method or '-'}]"]
        if self.status:
            parts.append(f"status={self.status}")
        parts.append(self.message)
        return " ".join(parts)


class Unavailable(TransportError):
    """The node could not be reached or did not answer in time."""


_CLIENT_FAULT_STATUSES = frozenset(
    {
        "INVALID_ARGUMENT",
        "FAILED_PRECONDITION",
        "OUT_OF_RANGE",
        "ALREADY_EXISTS",
        "PERMISSION_DENIED",
        "UNAUTHENTICATED",
        "UNIMPLEMENTED",
    }
)


@dataclass(eq=False)
class RpcError(GevulotSdkError):
    """The node answered with a non-OK status that is not a transport failure."""

    method: Optional[str]
    status: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"RPC[{self.method or '-'}] status={self.status} msg={self.message!r}"

    @property  # type: ignore[override]
    def kind(self) -> ErrorKind:
        if self.status in _CLIENT_FAULT_STATUSES:
            return ErrorKind.INVALID_REQUEST
        return ErrorKind.UNAVAILABLE


@dataclass(eq=False)
class NotFound(GevulotSdkError):
    """A single-entity lookup found nothing under the given key."""

    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    what: str
    key: str = ""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.what} not found" + (f": {self.key}" if self.key else "")


# -----------------------------------------------------------------------------
# Ledger outcomes
# -----------------------------------------------------------------------------


@dataclass(eq=False)
class LedgerRejection(GevulotSdkError):
    """
    The ledger refused a transaction.

    Fields:
      - reason: the ledger's log / reason string
      - code: ABCI result code (0 only for client-side classifications)
      - codespace: module that produced the code ("sdk", "gevulot", ...)
      - tx_hash: hash of the rejected transaction, if it was broadcast
    """

    kind: ClassVar[ErrorKind] = ErrorKind.REJECTED
    retryable: ClassVar[bool] = False

    reason: str
    code: int = 0
    codespace: str = ""
    tx_hash: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [type(self).__name__]
        if self.codespace or self.code:
            bits.append(f"{self.codespace or '-'}/{self.code}")
        if self.tx_hash:
            bits.append(f"tx={self.tx_hash}")
        return " ".join(bits) + f": {self.reason}"


class PermanentRejection(LedgerRejection):
    """Malformed, unfunded, or business-rule violation. Never retried."""


class TransientRejection(LedgerRejection):
    """Node overloaded, mempool full, and the like. Eligible for retry."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNAVAILABLE
    retryable: ClassVar[bool] = True


class SequenceMismatch(TransientRejection):
    """The signed sequence number was stale; the session must resync before retrying."""


@dataclass(eq=False)
class RetryExhausted(GevulotSdkError):
    """The retry budget ran out while failures were still transient."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNAVAILABLE

    last_reason: str
    attempts: int
    last_error: Optional[BaseException] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"exhausted after {self.attempts} attempts: {self.last_reason}"


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


class EventError(GevulotSdkError):
    """Base class for ledger event parsing failures."""


@dataclass(eq=False)
class MissingEventAttribute(EventError):
    event_kind: str
    attribute: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"event {self.event_kind!r} is missing attribute {self.attribute!r}"


@dataclass(eq=False)
class InvalidEventAttribute(EventError):
    event_kind: str
    attribute: str
    value: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"event {self.event_kind!r} has invalid {self.attribute}={self.value!r}"


@dataclass(eq=False)
class UnknownEventKind(EventError):
    event_kind: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"unknown event kind {self.event_kind!r}"


_UNAVAILABLE_STATUSES = frozenset(
    {"UNAVAILABLE", "DEADLINE_EXCEEDED", "CANCELLED", "RESOURCE_EXHAUSTED"}
)


def from_grpc_status(
    status: str, message: str, *, method: Optional[str] = None
) -> GevulotSdkError:
    """
    Convert a gRPC status name (e.g. ``"NOT_FOUND"``) into the matching SDK error.

    The caller raises the result; NOT_FOUND carries the method as ``what`` so
    higher layers can re-raise with the entity kind and key.
    """
    if status == "NOT_FOUND":
        return NotFound(what=method or "resource", key="")
    if status in _UNAVAILABLE_STATUSES:
        return Unavailable(message=message, method=method, status=status)
    return RpcError(method=method, status=status, message=message)

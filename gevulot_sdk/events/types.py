"""
Typed ledger events.

The ledger emits ABCI events (a kind string plus key/value attributes) for
every state change. ``parse_event`` turns the ones the gevulot module emits
into frozen dataclasses; ``parse_events`` does the same for a whole list and
skips the Cosmos bookkeeping events (``message``, ``transfer``, ``tx`` ...).

Attribute rules:

* ids (``worker-id``, ``task-id``, ``workflow-id``, ``proof-id``, ``cid``)
  are required and raise ``MissingEventAttribute`` when absent;
* ``creator`` is optional except on pin events and ``progress-workflow``;
* list attributes are comma-separated and may repeat;
* pin ``id`` falls back to the ``cid``; ``success`` defaults to true.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import InvalidEventAttribute, MissingEventAttribute, UnknownEventKind


@dataclass(frozen=True)
class AbciEvent:
    """Raw event as delivered by the node."""

    kind: str
    attributes: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_proto(cls, msg: Any) -> "AbciEvent":
        return cls(kind=msg.type, attributes=tuple((a.key, a.value) for a in msg.attributes))

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "AbciEvent":
        attrs = tuple(
            (str(a.get("key", "")), str(a.get("value") or "")) for a in obj.get("attributes") or ()
        )
        return cls(kind=str(obj.get("type", "")), attributes=attrs)

    def get(self, key: str) -> Optional[str]:
        for k, v in self.attributes:
            if k == key:
                return v
        return None


# -----------------------------------------------------------------------------
# Event types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEvent:
    kind: ClassVar[str] = ""
    block_height: int = 0


@dataclass(frozen=True)
class WorkerEvent(LedgerEvent):
    worker_id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class WorkerCreated(WorkerEvent):
    kind: ClassVar[str] = "create-worker"


@dataclass(frozen=True)
class WorkerUpdated(WorkerEvent):
    kind: ClassVar[str] = "update-worker"


@dataclass(frozen=True)
class WorkerDeleted(WorkerEvent):
    kind: ClassVar[str] = "delete-worker"


@dataclass(frozen=True)
class WorkerExitAnnounced(WorkerEvent):
    kind: ClassVar[str] = "announce-worker-exit"


@dataclass(frozen=True)
class TaskCreated(LedgerEvent):
    kind: ClassVar[str] = "create-task"
    task_id: str = ""
    creator: str = ""
    assigned_workers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TaskDeleted(LedgerEvent):
    kind: ClassVar[str] = "delete-task"
    task_id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class TaskWorkerEvent(LedgerEvent):
    task_id: str = ""
    worker_id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class TaskAccepted(TaskWorkerEvent):
    kind: ClassVar[str] = "accept-task"


@dataclass(frozen=True)
class TaskDeclined(TaskWorkerEvent):
    kind: ClassVar[str] = "decline-task"


@dataclass(frozen=True)
class TaskFinished(TaskWorkerEvent):
    kind: ClassVar[str] = "finish-task"


@dataclass(frozen=True)
class WorkflowEvent(LedgerEvent):
    workflow_id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class WorkflowCreated(WorkflowEvent):
    kind: ClassVar[str] = "create-workflow"


@dataclass(frozen=True)
class WorkflowDeleted(WorkflowEvent):
    kind: ClassVar[str] = "delete-workflow"


@dataclass(frozen=True)
class WorkflowUpdated(WorkflowEvent):
    kind: ClassVar[str] = "update-workflow"


@dataclass(frozen=True)
class WorkflowFinished(WorkflowEvent):
    kind: ClassVar[str] = "finish-workflow"


@dataclass(frozen=True)
class WorkflowProgressed(WorkflowEvent):
    kind: ClassVar[str] = "progress-workflow"


@dataclass(frozen=True)
class PinCreated(LedgerEvent):
    kind: ClassVar[str] = "create-pin"
    cid: str = ""
    id: str = ""
    creator: str = ""
    assigned_workers: Tuple[str, ...] = ()
    retention_period: int = 0
    fallback_urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PinDeleted(LedgerEvent):
    kind: ClassVar[str] = "delete-pin"
    cid: str = ""
    id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class PinAcked(LedgerEvent):
    kind: ClassVar[str] = "ack-pin"
    cid: str = ""
    id: str = ""
    worker_id: str = ""
    success: bool = True


@dataclass(frozen=True)
class ProofEvent(LedgerEvent):
    proof_id: str = ""
    creator: str = ""


@dataclass(frozen=True)
class ProofCreated(ProofEvent):
    kind: ClassVar[str] = "create-proof"


@dataclass(frozen=True)
class ProofUpdated(ProofEvent):
    kind: ClassVar[str] = "update-proof"


@dataclass(frozen=True)
class ProofDeleted(ProofEvent):
    kind: ClassVar[str] = "delete-proof"


@dataclass(frozen=True)
class ProofFinished(ProofEvent):
    kind: ClassVar[str] = "finish-proof"


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


class _Attrs:
    __slots__ = ("event",)

    def __init__(self, event: AbciEvent) -> None:
        self.event = event

    def required(self, key: str) -> str:
        v = self.event.get(key)
        if v is None:
            raise MissingEventAttribute(event_kind=self.event.kind, attribute=key)
        return v

    def optional(self, key: str, default: str = "") -> str:
        v = self.event.get(key)
        return default if v is None else v

    def listed(self, key: str) -> Tuple[str, ...]:
        out: List[str] = []
        for k, v in self.event.attributes:
            if k == key:
                out.extend(x.strip() for x in v.split(","))
        return tuple(x for x in out if x)

    def integer(self, key: str) -> int:
        raw = self.required(key)
        try:
            return int(raw)
        except ValueError:
            raise InvalidEventAttribute(event_kind=self.event.kind, attribute=key, value=raw) from None

    def flag(self, key: str, default: bool = True) -> bool:
        raw = self.event.get(key)
        if raw is None:
            return default
        return {"true": True, "false": False}.get(raw.strip().lower(), default)


Parser = Callable[[_Attrs, int], LedgerEvent]


def _worker(cls: type) -> Parser:
    return lambda a, h: cls(block_height=h, worker_id=a.required("worker-id"), creator=a.optional("creator"))


def _task_worker(cls: type) -> Parser:
    return lambda a, h: cls(
        block_height=h,
        task_id=a.required("task-id"),
        worker_id=a.required("worker-id"),
        creator=a.optional("creator"),
    )


def _workflow(cls: type, *, creator_required: bool = False) -> Parser:
    def parse(a: _Attrs, h: int) -> LedgerEvent:
        creator = a.required("creator") if creator_required else a.optional("creator")
        return cls(block_height=h, workflow_id=a.required("workflow-id"), creator=creator)

    return parse


def _proof(cls: type) -> Parser:
    return lambda a, h: cls(block_height=h, proof_id=a.required("proof-id"), creator=a.optional("creator"))


def _pin_created(a: _Attrs, h: int) -> LedgerEvent:
    cid = a.required("cid")
    return PinCreated(
        block_height=h,
        cid=cid,
        id=a.optional("id", cid),
        creator=a.required("creator"),
        assigned_workers=a.listed("assigned-workers"),
        retention_period=a.integer("retention-period"),
        fallback_urls=a.listed("fallback-urls"),
    )


def _pin_deleted(a: _Attrs, h: int) -> LedgerEvent:
    cid = a.required("cid")
    return PinDeleted(block_height=h, cid=cid, id=a.optional("id", cid), creator=a.required("creator"))


def _pin_acked(a: _Attrs, h: int) -> LedgerEvent:
    cid = a.required("cid")
    return PinAcked(
        block_height=h,
        cid=cid,
        id=a.optional("id", cid),
        worker_id=a.required("worker-id"),
        success=a.flag("success"),
    )


def _task_created(a: _Attrs, h: int) -> LedgerEvent:
    # the ledger lists the assigned workers under repeated "worker-id" keys
    return TaskCreated(
        block_height=h,
        task_id=a.required("task-id"),
        creator=a.optional("creator"),
        assigned_workers=a.listed("worker-id"),
    )


_PARSERS: Dict[str, Parser] = {
    WorkerCreated.kind: _worker(WorkerCreated),
    WorkerUpdated.kind: _worker(WorkerUpdated),
    WorkerDeleted.kind: _worker(WorkerDeleted),
    WorkerExitAnnounced.kind: _worker(WorkerExitAnnounced),
    TaskCreated.kind: _task_created,
    TaskDeleted.kind: lambda a, h: TaskDeleted(
        block_height=h, task_id=a.required("task-id"), creator=a.optional("creator")
    ),
    TaskAccepted.kind: _task_worker(TaskAccepted),
    TaskDeclined.kind: _task_worker(TaskDeclined),
    TaskFinished.kind: _task_worker(TaskFinished),
    WorkflowCreated.kind: _workflow(WorkflowCreated),
    WorkflowDeleted.kind: _workflow(WorkflowDeleted),
    WorkflowUpdated.kind: _workflow(WorkflowUpdated),
    WorkflowFinished.kind: _workflow(WorkflowFinished),
    WorkflowProgressed.kind: _workflow(WorkflowProgressed, creator_required=True),
    PinCreated.kind: _pin_created,
    PinDeleted.kind: _pin_deleted,
    PinAcked.kind: _pin_acked,
    ProofCreated.kind: _proof(ProofCreated),
    ProofUpdated.kind: _proof(ProofUpdated),
    ProofDeleted.kind: _proof(ProofDeleted),
    ProofFinished.kind: _proof(ProofFinished),
}

EVENT_KINDS = frozenset(_PARSERS)


def parse_event(event: AbciEvent, block_height: int = 0) -> LedgerEvent:
    try:
        parser = _PARSERS[event.kind]
    except KeyError:
        raise UnknownEventKind(event_kind=event.kind) from None
    return parser(_Attrs(event), block_height)


def parse_events(events: Iterable[AbciEvent], block_height: int = 0) -> List[LedgerEvent]:
    """Parse every gevulot event in ``events``; other kinds are skipped."""
    out: List[LedgerEvent] = []
    for ev in events:
        if ev.kind not in _PARSERS:
            continue
        out.append(parse_event(ev, block_height))
    return out


__all__ = [
    "AbciEvent",
    "LedgerEvent",
    "WorkerEvent",
    "WorkerCreated",
    "WorkerUpdated",
    "WorkerDeleted",
    "WorkerExitAnnounced",
    "TaskCreated",
    "TaskDeleted",
    "TaskWorkerEvent",
    "TaskAccepted",
    "TaskDeclined",
    "TaskFinished",
    "WorkflowEvent",
    "WorkflowCreated",
    "WorkflowDeleted",
    "WorkflowUpdated",
    "WorkflowFinished",
    "WorkflowProgressed",
    "PinCreated",
    "PinDeleted",
    "PinAcked",
    "ProofEvent",
    "ProofCreated",
    "ProofUpdated",
    "ProofDeleted",
    "ProofFinished",
    "EVENT_KINDS",
    "parse_event",
    "parse_events",
]

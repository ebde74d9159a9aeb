"""
gevulot_sdk.codec.entities
==========================

Bidirectional mapping between wire messages and the domain dataclasses in
``gevulot_sdk.types.entities``.

- ``encode(x) -> bytes`` / ``decode(cls, data) -> x`` are inverses for every
  well-formed value: ``decode(type(x), encode(x)) == x``.
- Unrecognised fields on decode are dropped without error (the dataclasses
  have nowhere to keep them).
- A field whose number is known but whose wire type is wrong lands in the
  unknown-field set; that, truncated bytes, and missing required
  sub-messages raise ``MalformedMessage``.
- Enum values the client does not know decode to the ``UNKNOWN`` pseudo-member
  and encode back to the same number.

The mapping is table-driven: each dataclass lists its fields, and a field
entry is either a plain name (scalar or repeated scalar), ``(name, Enum)``,
``(name, Dataclass)`` for a repeated sub-message, or
``(name, Dataclass, REQUIRED|OPTIONAL)`` for a singular sub-message.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple, Type, TypeVar, Union

from google.protobuf import unknown_fields
from google.protobuf.message import DecodeError, Message

from ..errors import CodecError, MalformedMessage
from ..proto import message_class
from ..types.entities import (Coin, InputContext, Label, LedgerEnum, Metadata,
                              OutputContext, Params, Pin, PinAck, PinSpec,
                              PinStatus, Proof, ProofSpec, ProofStatus, Task,
                              TaskEnv, TaskSpec, TaskState, TaskStatus, Worker,
                              WorkerSpec, WorkerStatus, Workflow,
                              WorkflowSpec, WorkflowStage,
                              WorkflowStageStatus, WorkflowState,
                              WorkflowStatus)
from ..types.units import ByteSize

log = logging.getLogger(__name__)

__all__ = [
    "ENTITY_TYPES",
    "proto_name",
    "to_proto",
    "from_proto",
    "fill_proto",
    "encode",
    "decode",
    "coin_from_proto",
]

T = TypeVar("T")

REQUIRED = "required"
OPTIONAL = "optional"

FieldEntry = Union[str, Tuple[str, type], Tuple[str, type, str]]

_G = "gevulot.gevulot."

_TABLE: Dict[type, Tuple[str, Tuple[FieldEntry, ...]]] = {
    Label: (_G + "Label", ("key", "value")),
    Metadata: (
        _G + "Metadata",
        ("id", "creator", "name", "description", "tags", ("labels", Label), "workflow_ref"),
    ),
    # Worker
    WorkerSpec: (_G + "WorkerSpec", ("cpus", "gpus", "memory", "disk")),
    WorkerStatus: (
        _G + "WorkerStatus",
        ("cpus_used", "gpus_used", "memory_used", "disk_used", "exit_announced_at"),
    ),
    Worker: (
        _G + "Worker",
        (
            ("metadata", Metadata, REQUIRED),
            ("spec", WorkerSpec, REQUIRED),
            ("status", WorkerStatus, OPTIONAL),
        ),
    ),
    # Task
    TaskEnv: (_G + "TaskEnv", ("name", "value")),
    InputContext: (_G + "InputContext", ("source", "target")),
    OutputContext: (_G + "OutputContext", ("source", "retention_period")),
    TaskSpec: (
        _G + "TaskSpec",
        (
            "image",
            "command",
            "args",
            ("env", TaskEnv),
            ("input_contexts", InputContext),
            ("output_contexts", OutputContext),
            "cpus",
            "gpus",
            "memory",
            "time",
            "store_stdout",
            "store_stderr",
            "workflow_ref",
        ),
    ),
    TaskStatus: (
        _G + "TaskStatus",
        (
            ("state", TaskState),
            "created_at",
            "started_at",
            "completed_at",
            "assigned_workers",
            "active_worker",
            "exit_code",
            "stdout",
            "stderr",
            "output_contexts",
            "error",
        ),
    ),
    Task: (
        _G + "Task",
        (
            ("metadata", Metadata, REQUIRED),
            ("spec", TaskSpec, REQUIRED),
            ("status", TaskStatus, OPTIONAL),
        ),
    ),
    # Workflow
    WorkflowStage: (_G + "WorkflowSpec.Stage", (("tasks", TaskSpec),)),
    WorkflowSpec: (_G + "WorkflowSpec", (("stages", WorkflowStage),)),
    WorkflowStageStatus: (_G + "WorkflowStatus.StageState", ("task_ids", "finished_tasks")),
    WorkflowStatus: (
        _G + "WorkflowStatus",
        (("state", WorkflowState), "current_stage", ("stages", WorkflowStageStatus)),
    ),
    Workflow: (
        _G + "Workflow",
        (
            ("metadata", Metadata, REQUIRED),
            ("spec", WorkflowSpec, REQUIRED),
            ("status", WorkflowStatus, OPTIONAL),
        ),
    ),
    # Proof
    ProofSpec: (
        _G + "ProofSpec",
        (
            "prover_image",
            "verifier_image",
            "prover_command",
            "verifier_command",
            "prover_env",
            "verifier_env",
            "input_contexts",
            "cpus",
            "gpus",
            "memory",
            "time",
        ),
    ),
    ProofStatus: (_G + "ProofStatus", ()),
    Proof: (
        _G + "Proof",
        ("id", "creator", ("spec", ProofSpec, REQUIRED), ("status", ProofStatus, OPTIONAL)),
    ),
    # Pin
    PinSpec: (_G + "PinSpec", ("bytes", "time", "redundancy", "fallback_urls")),
    PinAck: (_G + "PinAck", ("worker", "block_height", "success", "error")),
    PinStatus: (_G + "PinStatus", ("assigned_workers", ("worker_acks", PinAck), "cid")),
    Pin: (
        _G + "Pin",
        (
            ("metadata", Metadata, REQUIRED),
            ("spec", PinSpec, REQUIRED),
            ("status", PinStatus, OPTIONAL),
        ),
    ),
    Params: (
        _G + "Params",
        (
            "required_worker_stake",
            "worker_exit_delay",
            "cpu_price",
            "memory_price",
            "storage_price",
            "gpu_price",
            "cpu_node_base_price",
            "gpu_node_base_price",
            "dust_collector_address",
            "cpu_node_max_cpus",
            "cpu_node_max_memory",
            "gpu_node_max_cpus",
            "gpu_node_max_memory",
            "gpu_node_max_gpus",
        ),
    ),
}

ENTITY_TYPES: Tuple[type, ...] = (Worker, Task, Workflow, Proof, Pin)


def proto_name(cls: type) -> str:
    try:
        return _TABLE[cls][0]
    except KeyError:
        raise CodecError(f"no wire mapping for {cls.__name__}") from None


def _scalar(value: Any) -> Any:
    if isinstance(value, ByteSize):
        return value.to_bytes()
    if isinstance(value, LedgerEnum):
        return int(value)
    return value


# -----------------------------------------------------------------------------
# Domain -> wire
# -----------------------------------------------------------------------------


def fill_proto(dst: Message, obj: Any) -> None:
    """Write dataclass ``obj`` into the (possibly nested) message ``dst``."""
    _, entries = _TABLE[type(obj)]
    dst.SetInParent()
    for entry in entries:
        if isinstance(entry, str):
            value = getattr(obj, entry)
            if isinstance(value, (list, tuple)):
                getattr(dst, entry).extend(_scalar(v) for v in value)
            else:
                setattr(dst, entry, _scalar(value))
            continue

        name, kind = entry[0], entry[1]
        value = getattr(obj, name)
        if len(entry) == 3:
            if value is None:
                if entry[2] == REQUIRED:
                    raise CodecError(f"{name} is required", type_name=_TABLE[type(obj)][0])
                continue
            fill_proto(getattr(dst, name), value)
        elif issubclass(kind, LedgerEnum):
            setattr(dst, name, int(value))
        else:
            container = getattr(dst, name)
            for item in value:
                fill_proto(container.add(), item)


def to_proto(obj: Any) -> Message:
    name = proto_name(type(obj))
    msg = message_class(name)()
    try:
        fill_proto(msg, obj)
    except (TypeError, ValueError) as e:
        raise CodecError(str(e), type_name=name) from e
    return msg


def encode(obj: Any) -> bytes:
    """Deterministic wire bytes for a domain value."""
    return to_proto(obj).SerializeToString(deterministic=True)


# -----------------------------------------------------------------------------
# Wire -> domain
# -----------------------------------------------------------------------------


def _check_wire_types(msg: Message) -> None:
    known = msg.DESCRIPTOR.fields_by_number
    for unknown in unknown_fields.UnknownFieldSet(msg):
        if unknown.field_number in known:
            raise MalformedMessage(
                f"field {known[unknown.field_number].name!r} has wrong wire type {unknown.wire_type}",
                type_name=msg.DESCRIPTOR.full_name,
            )
    for fd, value in msg.ListFields():
        if isinstance(value, Message):
            _check_wire_types(value)
        elif fd.message_type is not None:
            for item in value:
                if isinstance(item, Message):
                    _check_wire_types(item)


def _read(cls: Type[T], src: Message) -> T:
    _, entries = _TABLE[cls]
    kwargs: Dict[str, Any] = {}
    for entry in entries:
        if isinstance(entry, str):
            value = getattr(src, entry)
            kwargs[entry] = value if isinstance(value, (str, bytes, bool, int, float)) else list(value)
            continue

        name, kind = entry[0], entry[1]
        if len(entry) == 3:
            if src.HasField(name):
                kwargs[name] = _read(kind, getattr(src, name))
            elif entry[2] == REQUIRED:
                raise MalformedMessage(f"missing required field {name!r}", type_name=src.DESCRIPTOR.full_name)
            else:
                kwargs[name] = None
        elif issubclass(kind, LedgerEnum):
            value = kind(getattr(src, name))
            if not value.is_known:
                log.debug("unrecognised %s value %d", kind.__name__, int(value))
            kwargs[name] = value
        else:
            kwargs[name] = [_read(kind, item) for item in getattr(src, name)]
    return cls(**kwargs)


def from_proto(cls: Type[T], msg: Message) -> T:
    expected = proto_name(cls)
    if msg.DESCRIPTOR.full_name != expected:
        raise MalformedMessage(f"expected {expected}, got {msg.DESCRIPTOR.full_name}", type_name=expected)
    _check_wire_types(msg)
    return _read(cls, msg)


def decode(cls: Type[T], data: bytes) -> T:
    """Parse wire bytes into ``cls``; raises MalformedMessage on bad input."""
    name = proto_name(cls)
    msg = message_class(name)()
    try:
        msg.ParseFromString(bytes(data))
    except DecodeError as e:
        raise MalformedMessage(str(e), type_name=name) from e
    return from_proto(cls, msg)


def coin_from_proto(msg: Message) -> Coin:
    try:
        amount = int(msg.amount or "0")
    except ValueError as e:
        raise MalformedMessage(f"coin amount {msg.amount!r} is not an integer", type_name="cosmos.base.v1beta1.Coin") from e
    return Coin(denom=msg.denom, amount=amount)

"""
Transaction intents: one typed, requested state change per ledger message.

Intents are validated for *shape* only (non-empty required strings,
non-negative resource counts, integer ranges). Whether a transition is legal
(enough capacity, right owner, task in the right state) is the ledger's call;
nothing here second-guesses it.

The signer field (``creator``, or ``authority`` for sudo/governance messages)
may be left empty; the client fills it with the session's address before
building an envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable, List, Mapping, Optional, Sequence, Union

from ..errors import InvalidIntent
from .entities import (Label, Params, ProofSpec, TaskSpec, TaskState,
                       WorkflowSpec)
from .units import ByteSize

__all__ = [
    "Intent",
    "CreateWorker",
    "UpdateWorker",
    "DeleteWorker",
    "AnnounceWorkerExit",
    "CreateTask",
    "DeleteTask",
    "RescheduleTask",
    "AcceptTask",
    "DeclineTask",
    "FinishTask",
    "CreateWorkflow",
    "DeleteWorkflow",
    "CreateProof",
    "DeleteProof",
    "CreatePin",
    "DeletePin",
    "AckPin",
    "SudoDeleteWorker",
    "SudoDeletePin",
    "SudoDeleteTask",
    "SudoFreezeAccount",
    "UpdateParams",
    "Transfer",
    "RescheduleResult",
    "task_transition",
    "intended_task_states",
]

U64_MAX = 2**64 - 1
I32_MIN, I32_MAX = -(2**31), 2**31 - 1

Count = Union[int, ByteSize]

_MISSING = object()


def _as_int(value: object) -> object:
    return value.to_bytes() if isinstance(value, ByteSize) else value


@dataclass(frozen=True)
class Intent:
    """Base class. Subclasses name their wire message and response type."""

    type_name: ClassVar[str]
    response_type: ClassVar[str]
    signer_field: ClassVar[str] = "creator"

    @property
    def signer(self) -> str:
        return getattr(self, self.signer_field)

    def validate(self) -> None:
        self._require_str(self.signer_field)

    # ---- shape checks ----

    @property
    def _name(self) -> str:
        return type(self).__name__

    def _require_str(self, name: str, value: object = _MISSING) -> None:
        v = getattr(self, name) if value is _MISSING else value
        if not isinstance(v, str) or not v.strip():
            raise InvalidIntent(f"{name} must be a non-empty string", intent=self._name, field=name)

    def _require_count(self, name: str, value: object, *, maximum: int = U64_MAX) -> None:
        v = _as_int(value)
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= maximum:
            raise InvalidIntent(
                f"{name} must be an integer in [0, {maximum}], got {value!r}",
                intent=self._name,
                field=name,
            )

    def _require_strings(self, name: str, values: Iterable[object]) -> None:
        for v in values:
            if not isinstance(v, str):
                raise InvalidIntent(f"{name} entries must be strings", intent=self._name, field=name)

    def _require_one_of(self, *names: str) -> None:
        if not any(isinstance(getattr(self, n), str) and getattr(self, n).strip() for n in names):
            raise InvalidIntent(
                f"one of {', '.join(names)} must be a non-empty string", intent=self._name
            )

    def _validate_labels(self, labels: Iterable[Label]) -> None:
        for label in labels:
            if not isinstance(label, Label):
                raise InvalidIntent("labels must be Label values", intent=self._name, field="labels")
            self._require_str("labels.key", label.key)

    def _validate_task_spec(self, spec: TaskSpec, prefix: str = "spec") -> None:
        if not isinstance(spec, TaskSpec):
            raise InvalidIntent(f"{prefix} must be a TaskSpec", intent=self._name, field=prefix)
        self._require_str(f"{prefix}.image", spec.image)
        for name in ("cpus", "gpus", "memory", "time"):
            self._require_count(f"{prefix}.{name}", getattr(spec, name))
        self._require_strings(f"{prefix}.command", spec.command)
        self._require_strings(f"{prefix}.args", spec.args)
        for env in spec.env:
            self._require_str(f"{prefix}.env.name", env.name)
        for ctx in spec.input_contexts:
            self._require_str(f"{prefix}.input_contexts.source", ctx.source)
            self._require_str(f"{prefix}.input_contexts.target", ctx.target)
        for ctx in spec.output_contexts:
            self._require_str(f"{prefix}.output_contexts.source", ctx.source)
            self._require_count(f"{prefix}.output_contexts.retention_period", ctx.retention_period)


# -----------------------------------------------------------------------------
# Workers
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateWorker(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgCreateWorker"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgCreateWorkerResponse"

    creator: str = ""
    name: str = ""
    description: str = ""
    cpus: int = 0
    gpus: int = 0
    memory: Count = 0
    disk: Count = 0
    labels: Sequence[Label] = ()
    tags: Sequence[str] = ()

    def validate(self) -> None:
        super().validate()
        self._require_str("name")
        for name in ("cpus", "gpus", "memory", "disk"):
            self._require_count(name, getattr(self, name))
        self._validate_labels(self.labels)
        self._require_strings("tags", self.tags)


@dataclass(frozen=True)
class UpdateWorker(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgUpdateWorker"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgUpdateWorkerResponse"

    creator: str = ""
    id: str = ""
    name: str = ""
    description: str = ""
    cpus: int = 0
    gpus: int = 0
    memory: Count = 0
    disk: Count = 0
    labels: Sequence[Label] = ()
    tags: Sequence[str] = ()

    def validate(self) -> None:
        super().validate()
        self._require_str("id")
        for name in ("cpus", "gpus", "memory", "disk"):
            self._require_count(name, getattr(self, name))
        self._validate_labels(self.labels)
        self._require_strings("tags", self.tags)


@dataclass(frozen=True)
class DeleteWorker(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeleteWorker"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeleteWorkerResponse"

    creator: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


@dataclass(frozen=True)
class AnnounceWorkerExit(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgAnnounceWorkerExit"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgAnnounceWorkerExitResponse"

    creator: str = ""
    worker_id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("worker_id")


# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgCreateTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgCreateTaskResponse"

    creator: str = ""
    spec: TaskSpec = field(default_factory=TaskSpec)
    tags: Sequence[str] = ()
    labels: Sequence[Label] = ()

    def validate(self) -> None:
        super().validate()
        self._validate_task_spec(self.spec)
        self._require_strings("tags", self.tags)
        self._validate_labels(self.labels)


@dataclass(frozen=True)
class DeleteTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeleteTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeleteTaskResponse"

    creator: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


@dataclass(frozen=True)
class RescheduleTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgRescheduleTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgRescheduleTaskResponse"

    creator: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


@dataclass(frozen=True)
class AcceptTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgAcceptTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgAcceptTaskResponse"

    creator: str = ""
    task_id: str = ""
    worker_id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("task_id")
        self._require_str("worker_id")


@dataclass(frozen=True)
class DeclineTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeclineTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeclineTaskResponse"

    creator: str = ""
    task_id: str = ""
    worker_id: str = ""
    error: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("task_id")
        self._require_str("worker_id")


@dataclass(frozen=True)
class FinishTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgFinishTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgFinishTaskResponse"

    creator: str = ""
    task_id: str = ""
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    output_contexts: Sequence[str] = ()
    error: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("task_id")
        if isinstance(self.exit_code, bool) or not isinstance(self.exit_code, int) or not (
            I32_MIN <= self.exit_code <= I32_MAX
        ):
            raise InvalidIntent("exit_code must be a 32-bit integer", intent=self._name, field="exit_code")
        self._require_strings("output_contexts", self.output_contexts)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.error


# -----------------------------------------------------------------------------
# Workflows
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateWorkflow(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgCreateWorkflow"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgCreateWorkflowResponse"

    creator: str = ""
    spec: WorkflowSpec = field(default_factory=WorkflowSpec)

    def validate(self) -> None:
        super().validate()
        if not self.spec.stages:
            raise InvalidIntent("workflow needs at least one stage", intent=self._name, field="spec.stages")
        for i, stage in enumerate(self.spec.stages):
            if not stage.tasks:
                raise InvalidIntent(
                    f"stage {i} has no tasks", intent=self._name, field=f"spec.stages[{i}]"
                )
            for j, task in enumerate(stage.tasks):
                self._validate_task_spec(task, prefix=f"spec.stages[{i}].tasks[{j}]")


@dataclass(frozen=True)
class DeleteWorkflow(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeleteWorkflow"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeleteWorkflowResponse"

    creator: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


# -----------------------------------------------------------------------------
# Proofs
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateProof(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgCreateProof"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgCreateProofResponse"

    creator: str = ""
    spec: ProofSpec = field(default_factory=ProofSpec)
    labels: Mapping[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        super().validate()
        self._require_str("spec.prover_image", self.spec.prover_image)
        self._require_str("spec.verifier_image", self.spec.verifier_image)
        for name in ("cpus", "gpus", "memory", "time"):
            self._require_count(f"spec.{name}", getattr(self.spec, name))
        for name in ("prover_command", "verifier_command", "prover_env", "verifier_env", "input_contexts"):
            self._require_strings(f"spec.{name}", getattr(self.spec, name))
        self._require_strings("labels", list(self.labels.keys()) + list(self.labels.values()))


@dataclass(frozen=True)
class DeleteProof(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeleteProof"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeleteProofResponse"

    creator: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


# -----------------------------------------------------------------------------
# Pins
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CreatePin(Intent):
    """Pin content by ``cid``, by ``fallback_urls``, or both."""

    type_name: ClassVar[str] = "gevulot.gevulot.MsgCreatePin"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgCreatePinResponse"

    creator: str = ""
    cid: str = ""
    bytes: Count = 0
    time: int = 0
    redundancy: int = 1
    name: str = ""
    description: str = ""
    tags: Sequence[str] = ()
    labels: Sequence[Label] = ()
    fallback_urls: Sequence[str] = ()

    def validate(self) -> None:
        super().validate()
        if not (self.cid.strip() or any(u.strip() for u in self.fallback_urls)):
            raise InvalidIntent("cid or fallback_urls is required", intent=self._name, field="cid")
        for name in ("bytes", "time", "redundancy"):
            self._require_count(name, getattr(self, name))
        self._require_strings("tags", self.tags)
        self._require_strings("fallback_urls", self.fallback_urls)
        self._validate_labels(self.labels)


@dataclass(frozen=True)
class DeletePin(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgDeletePin"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgDeletePinResponse"

    creator: str = ""
    cid: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_one_of("cid", "id")


@dataclass(frozen=True)
class AckPin(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgAckPin"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgAckPinResponse"

    creator: str = ""
    worker_id: str = ""
    cid: str = ""
    id: str = ""
    success: bool = True
    error: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("worker_id")
        self._require_one_of("cid", "id")


# -----------------------------------------------------------------------------
# Sudo / governance
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SudoDeleteWorker(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgSudoDeleteWorker"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgSudoDeleteWorkerResponse"
    signer_field: ClassVar[str] = "authority"

    authority: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


@dataclass(frozen=True)
class SudoDeletePin(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgSudoDeletePin"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgSudoDeletePinResponse"
    signer_field: ClassVar[str] = "authority"

    authority: str = ""
    cid: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("cid")


@dataclass(frozen=True)
class SudoDeleteTask(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgSudoDeleteTask"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgSudoDeleteTaskResponse"
    signer_field: ClassVar[str] = "authority"

    authority: str = ""
    id: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("id")


@dataclass(frozen=True)
class SudoFreezeAccount(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgSudoFreezeAccount"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgSudoFreezeAccountResponse"
    signer_field: ClassVar[str] = "authority"

    authority: str = ""
    account: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_str("account")


@dataclass(frozen=True)
class UpdateParams(Intent):
    type_name: ClassVar[str] = "gevulot.gevulot.MsgUpdateParams"
    response_type: ClassVar[str] = "gevulot.gevulot.MsgUpdateParamsResponse"
    signer_field: ClassVar[str] = "authority"

    authority: str = ""
    params: Params = field(default_factory=Params)

    def validate(self) -> None:
        super().validate()
        p = self.params
        for name in (
            "worker_exit_delay",
            "cpu_node_max_cpus",
            "cpu_node_max_memory",
            "gpu_node_max_cpus",
            "gpu_node_max_memory",
            "gpu_node_max_gpus",
        ):
            self._require_count(f"params.{name}", getattr(p, name))


# -----------------------------------------------------------------------------
# Bank
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Transfer(Intent):
    """Send tokens to another account (``cosmos.bank.v1beta1.MsgSend``)."""

    type_name: ClassVar[str] = "cosmos.bank.v1beta1.MsgSend"
    response_type: ClassVar[str] = "cosmos.bank.v1beta1.MsgSendResponse"

    creator: str = ""
    to_address: str = ""
    amount: int = 0
    denom: str = "ucredit"

    def validate(self) -> None:
        super().validate()
        self._require_str("to_address")
        self._require_str("denom")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise InvalidIntent("amount must be a positive integer", intent=self._name, field="amount")


# -----------------------------------------------------------------------------
# Responses & task-state projection
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RescheduleResult:
    """Opaque pair returned by the ledger for RescheduleTask; meaning is ledger-defined."""

    primary: str
    secondary: str


def task_transition(intent: Intent) -> Optional[TaskState]:
    """The task state an intent asks the ledger to move its task into, if any."""
    if isinstance(intent, AcceptTask):
        return TaskState.RUNNING
    if isinstance(intent, FinishTask):
        return TaskState.DONE if intent.succeeded else TaskState.FAILED
    if isinstance(intent, DeclineTask):
        return TaskState.DECLINED
    if isinstance(intent, RescheduleTask):
        return TaskState.PENDING
    return None


def _target_task(intent: Intent) -> Optional[str]:
    if isinstance(intent, (AcceptTask, DeclineTask, FinishTask)):
        return intent.task_id
    if isinstance(intent, RescheduleTask):
        return intent.id
    return None


def intended_task_states(
    start: TaskState, intents: Iterable[Intent], *, task_id: Optional[str] = None
) -> List[TaskState]:
    """
    Project the state path a batch requests for one task, starting at ``start``.

    This is a description of intent, not a prediction: the ledger may refuse
    any step. Intents for other tasks are skipped when ``task_id`` is given.
    """
    path = [start]
    for intent in intents:
        if task_id is not None and _target_task(intent) != task_id:
            continue
        nxt = task_transition(intent)
        if nxt is not None:
            path.append(nxt)
    return path

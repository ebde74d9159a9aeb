"""
Domain entities mirrored from the ledger: workers, tasks, workflows, proofs
and pins, plus their spec/status substructures.

Status fields are ledger-authoritative. The client never mutates them; they
only change by observing the ledger after a committed transaction.

Ledger state machines are closed ``IntEnum``s with an explicit unrecognised
case: ``TaskState(9)`` does not raise, it yields a pseudo-member named
``UNKNOWN`` that still carries the raw value 9, so it encodes back unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

__all__ = [
    "LedgerEnum",
    "TaskState",
    "WorkflowState",
    "Label",
    "Metadata",
    "WorkerSpec",
    "WorkerStatus",
    "Worker",
    "TaskEnv",
    "InputContext",
    "OutputContext",
    "TaskSpec",
    "TaskStatus",
    "Task",
    "WorkflowStage",
    "WorkflowSpec",
    "WorkflowStageStatus",
    "WorkflowStatus",
    "Workflow",
    "ProofSpec",
    "ProofStatus",
    "Proof",
    "PinSpec",
    "PinAck",
    "PinStatus",
    "Pin",
    "Params",
    "Coin",
    "AccountInfo",
]


class LedgerEnum(IntEnum):
    """IntEnum that maps values it does not know to an ``UNKNOWN`` pseudo-member."""

    @classmethod
    def _missing_(cls, value: object) -> Optional["LedgerEnum"]:
        if isinstance(value, int) and not isinstance(value, bool):
            member = int.__new__(cls, value)
            member._name_ = "UNKNOWN"
            member._value_ = value
            return member
        return None

    @property
    def is_known(self) -> bool:
        return self._name_ != "UNKNOWN"


class TaskState(LedgerEnum):
    PENDING = 0
    RUNNING = 1
    DECLINED = 2
    DONE = 3
    FAILED = 4

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.DECLINED, TaskState.DONE, TaskState.FAILED)


class WorkflowState(LedgerEnum):
    PENDING = 0
    RUNNING = 1
    DONE = 2
    FAILED = 3
    SUCCEEDED = 2  # alias of DONE

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.DONE, WorkflowState.FAILED)


# -----------------------------------------------------------------------------
# Shared
# -----------------------------------------------------------------------------


@dataclass
class Label:
    key: str = ""
    value: str = ""


@dataclass
class Metadata:
    """Identity and annotations shared by workers, tasks, workflows and pins."""

    id: str = ""
    creator: str = ""
    name: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)
    workflow_ref: str = ""


# -----------------------------------------------------------------------------
# Worker
# -----------------------------------------------------------------------------


@dataclass
class WorkerSpec:
    """Advertised capacity. ``cpus`` is in milli-CPUs; memory and disk in bytes."""

    cpus: int = 0
    gpus: int = 0
    memory: int = 0
    disk: int = 0


@dataclass
class WorkerStatus:
    cpus_used: int = 0
    gpus_used: int = 0
    memory_used: int = 0
    disk_used: int = 0
    exit_announced_at: int = 0


@dataclass
class Worker:
    metadata: Metadata = field(default_factory=Metadata)
    spec: WorkerSpec = field(default_factory=WorkerSpec)
    status: Optional[WorkerStatus] = None

    @property
    def id(self) -> str:
        return self.metadata.id


# -----------------------------------------------------------------------------
# Task
# -----------------------------------------------------------------------------


@dataclass
class TaskEnv:
    name: str = ""
    value: str = ""


@dataclass
class InputContext:
    source: str = ""
    target: str = ""


@dataclass
class OutputContext:
    source: str = ""
    retention_period: int = 0


@dataclass
class TaskSpec:
    image: str = ""
    command: List[str] = field(default_factory=list)
    args: List[str] = field(default_factory=list)
    env: List[TaskEnv] = field(default_factory=list)
    input_contexts: List[InputContext] = field(default_factory=list)
    output_contexts: List[OutputContext] = field(default_factory=list)
    cpus: int = 0
    gpus: int = 0
    memory: int = 0
    time: int = 0
    store_stdout: bool = True
    store_stderr: bool = True
    workflow_ref: str = ""


@dataclass
class TaskStatus:
    state: TaskState = TaskState.PENDING
    created_at: int = 0
    started_at: int = 0
    completed_at: int = 0
    assigned_workers: List[str] = field(default_factory=list)
    active_worker: str = ""
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    output_contexts: List[str] = field(default_factory=list)
    error: str = ""


@dataclass
class Task:
    metadata: Metadata = field(default_factory=Metadata)
    spec: TaskSpec = field(default_factory=TaskSpec)
    status: Optional[TaskStatus] = None

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def state(self) -> Optional[TaskState]:
        return self.status.state if self.status is not None else None


# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------


@dataclass
class WorkflowStage:
    tasks: List[TaskSpec] = field(default_factory=list)


@dataclass
class WorkflowSpec:
    stages: List[WorkflowStage] = field(default_factory=list)


@dataclass
class WorkflowStageStatus:
    task_ids: List[str] = field(default_factory=list)
    finished_tasks: int = 0


@dataclass
class WorkflowStatus:
    state: WorkflowState = WorkflowState.PENDING
    current_stage: int = 0
    stages: List[WorkflowStageStatus] = field(default_factory=list)


@dataclass
class Workflow:
    metadata: Metadata = field(default_factory=Metadata)
    spec: WorkflowSpec = field(default_factory=WorkflowSpec)
    status: Optional[WorkflowStatus] = None

    @property
    def id(self) -> str:
        return self.metadata.id


# -----------------------------------------------------------------------------
# Proof
# -----------------------------------------------------------------------------


@dataclass
class ProofSpec:
    prover_image: str = ""
    verifier_image: str = ""
    prover_command: List[str] = field(default_factory=list)
    verifier_command: List[str] = field(default_factory=list)
    prover_env: List[str] = field(default_factory=list)
    verifier_env: List[str] = field(default_factory=list)
    input_contexts: List[str] = field(default_factory=list)
    cpus: int = 0
    gpus: int = 0
    memory: int = 0
    time: int = 0


@dataclass
class ProofStatus:
    """Reserved by the ledger; currently carries no fields."""


@dataclass
class Proof:
    id: str = ""
    creator: str = ""
    spec: ProofSpec = field(default_factory=ProofSpec)
    status: Optional[ProofStatus] = None


# -----------------------------------------------------------------------------
# Pin
# -----------------------------------------------------------------------------


@dataclass
class PinSpec:
    bytes: int = 0
    time: int = 0
    redundancy: int = 0
    fallback_urls: List[str] = field(default_factory=list)


@dataclass
class PinAck:
    worker: str = ""
    block_height: int = 0
    success: bool = False
    error: str = ""


@dataclass
class PinStatus:
    assigned_workers: List[str] = field(default_factory=list)
    worker_acks: List[PinAck] = field(default_factory=list)
    cid: str = ""


@dataclass
class Pin:
    metadata: Metadata = field(default_factory=Metadata)
    spec: PinSpec = field(default_factory=PinSpec)
    status: Optional[PinStatus] = None

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def successful_acks(self) -> int:
        if self.status is None:
            return 0
        return sum(1 for ack in self.status.worker_acks if ack.success)

    @property
    def fully_replicated(self) -> bool:
        return self.successful_acks >= self.spec.redundancy


# -----------------------------------------------------------------------------
# Module params & accounts
# -----------------------------------------------------------------------------


@dataclass
class Params:
    """Module parameters. Prices are decimal integer strings (cosmos ``math.Int``)."""

    required_worker_stake: str = ""
    worker_exit_delay: int = 0
    cpu_price: str = ""
    memory_price: str = ""
    storage_price: str = ""
    gpu_price: str = ""
    cpu_node_base_price: str = ""
    gpu_node_base_price: str = ""
    dust_collector_address: str = ""
    cpu_node_max_cpus: int = 0
    cpu_node_max_memory: int = 0
    gpu_node_max_cpus: int = 0
    gpu_node_max_memory: int = 0
    gpu_node_max_gpus: int = 0


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class AccountInfo:
    address: str
    account_number: int
    sequence: int
    public_key: Optional[bytes] = None

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidArgumentError

MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_PRIORITY = 3

NOT_SET = -1


class ProcessState(Enum):
    NEW = "NEW"
    READY = "READY"
    RUNNING = "RUNNING"
    # Reserved for I/O modeling; no discipline moves a process here.
    BLOCKED = "BLOCKED"
    TERMINATED = "TERMINATED"


_STATE_DESCRIPTIONS = {
    ProcessState.NEW: "Just created",
    ProcessState.READY: "Waiting for the CPU",
    ProcessState.RUNNING: "Running on the CPU",
    ProcessState.BLOCKED: "Waiting for a resource",
    ProcessState.TERMINATED: "Execution completed",
}


@dataclass(eq=False)
class Process:
    """
    A simulated process. Timing fields are in ticks; priority 1 is highest.
    """

    pid: int
    name: Optional[str] = None
    arrival: int = 0
    burst: int = 1
    priority: int = DEFAULT_PRIORITY
    remaining: int = field(init=False)
    state: ProcessState = field(init=False, default=ProcessState.NEW)
    wait_time: int = field(init=False, default=0)
    response_time: int = field(init=False, default=NOT_SET)
    completion_time: int = field(init=False, default=NOT_SET)

    def __post_init__(self) -> None:
        if self.pid <= 0:
            raise InvalidArgumentError(f"pid must be positive, got {self.pid}")
        if self.burst <= 0:
            raise InvalidArgumentError(f"burst must be positive, got {self.burst}")
        if self.arrival < 0:
            raise InvalidArgumentError(f"arrival cannot be negative, got {self.arrival}")

        if not self.name:
            self.name = f"Process_{self.pid}"
        self.priority = max(MIN_PRIORITY, min(MAX_PRIORITY, self.priority))
        self.remaining = self.burst

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Process):
            return NotImplemented
        return self.pid == other.pid

    def __hash__(self) -> int:
        return hash(self.pid)

    @property
    def is_finished(self) -> bool:
        return self.state is ProcessState.TERMINATED

    def run_one_unit(self) -> None:
        if self.remaining > 0:
            self.remaining -= 1
            if self.remaining == 0:
                self.state = ProcessState.TERMINATED

    def record_wait(self, wait_time: int) -> None:
        self.wait_time = max(0, wait_time)

    def progress_percent(self) -> float:
        executed = self.burst - self.remaining
        return executed / self.burst * 100.0

    def is_high_priority(self) -> bool:
        return self.priority <= 2

    def state_description(self) -> str:
        return _STATE_DESCRIPTIONS[self.state]


class BlockKind(Enum):
    FREE = "FREE"
    ALLOCATED = "ALLOCATED"
    SYSTEM = "SYSTEM"
    FRAGMENTED = "FRAGMENTED"


SYSTEM_LABEL = "SYSTEM"


@dataclass
class MemoryBlock:
    """
    One region of simulated memory, sized in KB.

    ``page`` is the 1-based page number for blocks created by the paging
    allocator and ``None`` for partition blocks.
    """

    block_id: int
    size: int
    kind: BlockKind = BlockKind.FREE
    owner_pid: Optional[int] = None
    owner_label: str = ""
    page: Optional[int] = None

    @classmethod
    def system(cls, block_id: int, size: int) -> "MemoryBlock":
        return cls(block_id=block_id, size=size, kind=BlockKind.SYSTEM, owner_label=SYSTEM_LABEL)

    @property
    def is_free(self) -> bool:
        return self.kind is BlockKind.FREE

    @property
    def is_system(self) -> bool:
        return self.kind is BlockKind.SYSTEM

    def assign(self, pid: int, label: str) -> None:
        self.kind = BlockKind.ALLOCATED
        self.owner_pid = pid
        self.owner_label = label

    def release(self) -> None:
        self.kind = BlockKind.FREE
        self.owner_pid = None
        self.owner_label = ""
        self.page = None

    def can_fit(self, size: int) -> bool:
        return self.is_free and self.size >= size

    def belongs_to(self, pid: int) -> bool:
        return self.kind is BlockKind.ALLOCATED and self.owner_pid == pid

    def describe(self) -> str:
        text = f"Block {self.block_id}: {self.size}KB - {self.kind.value}"
        if self.owner_label:
            text += f" ({self.owner_label})"
        return text


@dataclass
class ScheduledSlice:
    """
    One contiguous slice of execution for a process in the Gantt chart.
    """

    pid: int
    start_time: int
    end_time: int


@dataclass
class SchedulerSnapshot:
    discipline: str
    quantum: Optional[int]
    clock: int
    running: Optional[Process]
    ready: List[Process] = field(default_factory=list)
    terminated: List[Process] = field(default_factory=list)
    timeline: List[ScheduledSlice] = field(default_factory=list)


@dataclass
class SystemMetrics:
    cpu_busy_time: int
    makespan: int
    throughput: float
    cpu_utilization: float
    starvation_count: int = 0


@dataclass
class MemoryStats:
    total_kb: int
    used_kb: int
    free_kb: int
    fragmentation_ratio: float
    algorithm: str = ""

    def summary(self) -> str:
        return (
            f"Total: {self.total_kb} KB | Used: {self.used_kb} KB | "
            f"Free: {self.free_kb} KB | Fragmentation: {self.fragmentation_ratio:.1f}%"
        )


@dataclass
class MemoryRequest:
    """
    One step of a memory script: ``alloc`` (needs label and size) or ``free``.
    """

    op: str
    pid: int
    label: str = ""
    size: int = 0


Registry = Dict[int, List[MemoryBlock]]

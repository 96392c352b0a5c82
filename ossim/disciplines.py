from __future__ import annotations

from typing import Deque, Dict, Optional, Type

from .errors import InvalidArgumentError
from .models import Process

DEFAULT_QUANTUM = 3


class Discipline:
    """
    Ready-queue policy used by the scheduler.

    The base class is plain FIFO: new arrivals go to the tail and nothing is
    preempted.
    """

    name = "FIFO"
    quantum: Optional[int] = None

    @property
    def preemptive(self) -> bool:
        return False

    def enqueue(self, ready: Deque[Process], process: Process) -> None:
        ready.append(process)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FifoDiscipline(Discipline):
    pass


class RoundRobinDiscipline(Discipline):
    """
    FIFO order with forced preemption after ``quantum`` ticks of CPU time.
    """

    name = "Round Robin"

    def __init__(self, quantum: int = DEFAULT_QUANTUM) -> None:
        self.quantum = validate_quantum(quantum)

    @property
    def preemptive(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"RoundRobinDiscipline(quantum={self.quantum})"


class PriorityDiscipline(Discipline):
    """
    Non-preemptive priority. The queue is rebuilt and stable-sorted on every
    submission, so equal priorities keep their submission order.
    """

    name = "Priority"

    def enqueue(self, ready: Deque[Process], process: Process) -> None:
        ordered = list(ready)
        ordered.append(process)
        ordered.sort(key=lambda p: p.priority)
        ready.clear()
        ready.extend(ordered)


def validate_quantum(quantum: int) -> int:
    if quantum is None or quantum <= 0:
        raise InvalidArgumentError(f"Round Robin requires a positive quantum, got {quantum}")
    return quantum


DISCIPLINES: Dict[str, Type[Discipline]] = {
    "fifo": FifoDiscipline,
    "fcfs": FifoDiscipline,
    "rr": RoundRobinDiscipline,
    "round_robin": RoundRobinDiscipline,
    "priority": PriorityDiscipline,
}


def make_discipline(name: str, quantum: Optional[int] = None) -> Discipline:
    """
    Build a discipline from its CLI/config name. ``quantum`` only matters for
    round robin and falls back to the default when omitted.
    """
    key = name.lower()
    if key not in DISCIPLINES:
        raise InvalidArgumentError(f"Unknown scheduling discipline '{name}'")

    cls = DISCIPLINES[key]
    if cls is RoundRobinDiscipline:
        return RoundRobinDiscipline(DEFAULT_QUANTUM if quantum is None else quantum)
    return cls()

from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional, Union

from .disciplines import Discipline, RoundRobinDiscipline, make_discipline, validate_quantum
from .models import Process, ProcessState, ScheduledSlice, SchedulerSnapshot

logger = logging.getLogger(__name__)

DisciplineSpec = Union[str, Discipline]


def _coerce_discipline(discipline: DisciplineSpec, quantum: Optional[int]) -> Discipline:
    if isinstance(discipline, Discipline):
        # Each scheduler owns its discipline; quantum changes must not leak.
        discipline = copy.copy(discipline)
        if quantum is not None and isinstance(discipline, RoundRobinDiscipline):
            discipline.quantum = validate_quantum(quantum)
        return discipline
    return make_discipline(discipline, quantum)


class Scheduler:
    """
    Tick-driven CPU scheduler.

    The caller submits processes and advances the clock one unit at a time
    with :meth:`tick`. Each tick dispatches (if the CPU is idle), executes one
    unit of the running process, then handles termination and, for round
    robin, quantum expiry. Completion is stamped at the end of the tick, so a
    process that finishes during tick ``t`` completes at ``t + 1``.
    """

    def __init__(self, discipline: DisciplineSpec = "fifo", quantum: Optional[int] = None) -> None:
        self._lock = threading.RLock()
        self._discipline = _coerce_discipline(discipline, quantum)
        self._reset_state()

    def _reset_state(self) -> None:
        self._ready: Deque[Process] = deque()
        self._running: Optional[Process] = None
        self._terminated: List[Process] = []
        self._timeline: List[ScheduledSlice] = []
        self._clock = 0
        self._quantum_left = self._discipline.quantum or 0

    # -- configuration -------------------------------------------------

    @property
    def discipline(self) -> Discipline:
        return self._discipline

    @property
    def quantum(self) -> Optional[int]:
        return self._discipline.quantum

    def set_discipline(self, discipline: DisciplineSpec, quantum: Optional[int] = None) -> None:
        """
        Switch discipline. This starts a fresh simulation: queues, the running
        slot, the timeline and the clock are all cleared.
        """
        with self._lock:
            self._discipline = _coerce_discipline(discipline, quantum)
            self._reset_state()
            logger.debug("Discipline set to %r", self._discipline)

    def set_quantum(self, quantum: int) -> None:
        with self._lock:
            validate_quantum(quantum)
            if isinstance(self._discipline, RoundRobinDiscipline):
                self._discipline.quantum = quantum
            self._quantum_left = quantum

    # -- simulation ----------------------------------------------------

    def submit(self, process: Process) -> None:
        with self._lock:
            process.state = ProcessState.READY
            self._discipline.enqueue(self._ready, process)
            logger.debug("Submitted pid=%d (%s) priority=%d", process.pid, process.name, process.priority)

    def tick(self) -> bool:
        """
        Advance the clock by one unit. Returns True while work remains.
        """
        with self._lock:
            if self._running is None and self._ready:
                self._dispatch(self._ready.popleft())

            current = self._running
            if current is not None:
                current.run_one_unit()
                self._quantum_left -= 1
                self._record_slice(current.pid)

                if current.is_finished:
                    self._finish(current)
                elif self._discipline.preemptive and self._quantum_left <= 0:
                    self._preempt(current)

            self._clock += 1
            return self.has_work

    def run_to_completion(
        self,
        on_tick: Optional[Callable[["Scheduler"], None]] = None,
        max_ticks: Optional[int] = None,
    ) -> int:
        """
        Tick until no work remains (or ``max_ticks`` is reached). ``on_tick``
        is called after every tick and is where a caller puts pacing.
        Returns the number of ticks performed.
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            more = self.tick()
            ticks += 1
            if on_tick is not None:
                on_tick(self)
            if not more:
                break
        return ticks

    def _dispatch(self, process: Process) -> None:
        process.state = ProcessState.RUNNING
        if process.response_time == -1:
            process.response_time = self._clock - process.arrival
        self._running = process
        self._quantum_left = self._discipline.quantum or 0
        logger.debug("t=%d dispatch pid=%d", self._clock, process.pid)

    def _finish(self, process: Process) -> None:
        process.state = ProcessState.TERMINATED
        process.completion_time = self._clock + 1
        process.record_wait(process.completion_time - process.arrival - process.burst)
        self._terminated.append(process)
        self._running = None
        self._quantum_left = self._discipline.quantum or 0
        logger.debug(
            "t=%d pid=%d terminated (completion=%d wait=%d)",
            self._clock,
            process.pid,
            process.completion_time,
            process.wait_time,
        )

    def _preempt(self, process: Process) -> None:
        process.state = ProcessState.READY
        self._ready.append(process)
        self._running = None
        self._quantum_left = self._discipline.quantum or 0
        logger.debug("t=%d quantum expired for pid=%d, requeued", self._clock, process.pid)

    def _record_slice(self, pid: int) -> None:
        if self._timeline:
            last = self._timeline[-1]
            if last.pid == pid and last.end_time == self._clock:
                last.end_time = self._clock + 1
                return
        self._timeline.append(ScheduledSlice(pid=pid, start_time=self._clock, end_time=self._clock + 1))

    # -- introspection -------------------------------------------------

    @property
    def clock(self) -> int:
        return self._clock

    @property
    def has_work(self) -> bool:
        return self._running is not None or bool(self._ready)

    @property
    def running(self) -> Optional[Process]:
        with self._lock:
            return copy.deepcopy(self._running)

    @property
    def terminated(self) -> List[Process]:
        with self._lock:
            return copy.deepcopy(self._terminated)

    def ready_order(self) -> List[int]:
        with self._lock:
            return [p.pid for p in self._ready]

    def snapshot(self) -> SchedulerSnapshot:
        with self._lock:
            return SchedulerSnapshot(
                discipline=self._discipline.name,
                quantum=self._discipline.quantum,
                clock=self._clock,
                running=copy.deepcopy(self._running),
                ready=copy.deepcopy(list(self._ready)),
                terminated=copy.deepcopy(self._terminated),
                timeline=copy.deepcopy(self._timeline),
            )


def run_workload(
    scheduler: Scheduler,
    processes: List[Process],
    on_tick: Optional[Callable[[Scheduler], None]] = None,
) -> int:
    """
    Drive ``scheduler`` over a workload, submitting each process once the
    clock reaches its arrival time. Ties keep the workload order. The CPU
    idles through gaps between arrivals. Returns the number of ticks run.
    """
    pending = deque(sorted(processes, key=lambda p: p.arrival))
    ticks = 0
    while True:
        while pending and pending[0].arrival <= scheduler.clock:
            scheduler.submit(pending.popleft())
        if not pending and not scheduler.has_work:
            return ticks
        scheduler.tick()
        ticks += 1
        if on_tick is not None:
            on_tick(scheduler)

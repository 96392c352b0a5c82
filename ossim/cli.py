from __future__ import annotations

import argparse
import copy
import logging
import time
from pathlib import Path
from typing import List

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .allocator import DEFAULT_TOTAL_KB, Allocator
from .disciplines import DEFAULT_QUANTUM
from .gantt import build_memory_map, build_rich_gantt, slice_label
from .metrics import compute_system_metrics, summarize_processes, turnaround_time
from .models import MemoryRequest, Process, SchedulerSnapshot
from .placement import PLACEMENTS
from .scheduler import Scheduler, run_workload
from .workload_io import load_memory_script, load_workload

DISCIPLINE_CHOICES = ["fifo", "rr", "priority"]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ossim",
        description="Educational OS simulator: CPU scheduling (FIFO, RR, Priority) and memory allocation.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every dispatch, preemption and allocation.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    schedule_parser = subparsers.add_parser("schedule", help="Run a scheduling discipline on a workload file.")
    schedule_parser.add_argument(
        "--discipline",
        "-d",
        default="fifo",
        choices=DISCIPLINE_CHOICES,
        help="Scheduling discipline (default: fifo).",
    )
    schedule_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    schedule_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=DEFAULT_QUANTUM,
        help=f"Time quantum for round robin (default: {DEFAULT_QUANTUM}).",
    )
    schedule_parser.add_argument(
        "--step",
        action="store_true",
        help="Print the simulation tick by tick.",
    )
    schedule_parser.add_argument(
        "--step-delay",
        type=float,
        default=0.3,
        help="Seconds to wait between ticks when --step is used (default: 0.3).",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run several disciplines on the same workload and compare average metrics.",
    )
    compare_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    compare_parser.add_argument(
        "--disciplines",
        "-d",
        nargs="+",
        default=DISCIPLINE_CHOICES,
        choices=DISCIPLINE_CHOICES,
        help="Disciplines to compare (default: fifo rr priority).",
    )
    compare_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=DEFAULT_QUANTUM,
        help=f"Time quantum used for rr when included (default: {DEFAULT_QUANTUM}).",
    )

    memory_parser = subparsers.add_parser("memory", help="Replay a script of alloc/free requests.")
    memory_parser.add_argument(
        "--script",
        "-s",
        required=True,
        help="Path to JSON or CSV memory script.",
    )
    memory_parser.add_argument(
        "--total",
        "-t",
        type=int,
        default=DEFAULT_TOTAL_KB,
        help=f"Total memory in KB (default: {DEFAULT_TOTAL_KB}).",
    )
    memory_parser.add_argument(
        "--algorithm",
        "-a",
        default="first_fit",
        choices=sorted(PLACEMENTS),
        help="Allocation algorithm (default: first_fit).",
    )

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def simulate(discipline: str, processes: List[Process], quantum: int, on_tick=None) -> SchedulerSnapshot:
    """
    Run a fresh scheduler over copies of ``processes`` and return the final snapshot.
    """
    scheduler = Scheduler(discipline, quantum=quantum if discipline == "rr" else None)
    run_workload(scheduler, copy.deepcopy(processes), on_tick=on_tick)
    return scheduler.snapshot()


def _print_result(snapshot: SchedulerSnapshot, console: Console) -> None:
    console.print(f"[bold]Discipline:[/bold] {snapshot.discipline}")
    if snapshot.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {snapshot.quantum}")
    console.print(f"[bold]Total time:[/bold] {snapshot.clock}")

    console.print()

    panel, time_marks = build_rich_gantt(snapshot.timeline)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()

    headers = [
        "PID",
        "Name",
        "Arrive",
        "Burst",
        "Priority",
        "Wait",
        "Response",
        "Complete",
        "Turnaround",
    ]

    proc_table = Table(title="Per-process metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "left" if h == "Name" else "right"
        proc_table.add_column(h, justify=justify)

    for p in snapshot.terminated:
        proc_table.add_row(
            str(p.pid),
            p.name,
            str(p.arrival),
            str(p.burst),
            str(p.priority),
            str(p.wait_time),
            str(p.response_time),
            str(p.completion_time),
            str(turnaround_time(p)),
        )

    console.print(proc_table)
    console.print()

    summary = summarize_processes(snapshot.terminated)
    system = compute_system_metrics(snapshot)

    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", f"{summary['avg_waiting']:.2f}")
    sys_table.add_row("Avg turnaround", f"{summary['avg_turnaround']:.2f}")
    sys_table.add_row("Avg response", f"{summary['avg_response']:.2f}")
    sys_table.add_row("Throughput (proc/time)", f"{system.throughput:.3f}")
    sys_table.add_row("CPU utilization", f"{system.cpu_utilization*100:.1f}%")
    sys_table.add_row("Starvation count", str(system.starvation_count))

    console.print(sys_table)


def _step_printer(console: Console, delay: float):
    """
    Per-tick hook: show what ran and what is queued, then pause.
    """

    def on_tick(scheduler: Scheduler) -> None:
        snap = scheduler.snapshot()
        t = snap.clock - 1
        ran = next((sl.pid for sl in reversed(snap.timeline) if sl.start_time <= t < sl.end_time), None)
        ready = " ".join(slice_label(p.pid) for p in snap.ready) or "-"
        running = "[dim]idle[/dim]" if ran is None else f"[green]{slice_label(ran)}[/green]"
        console.print(f"t={t:3d}: {running}  ready: {ready}")
        time.sleep(delay)

    return on_tick


def _run_schedule(args, console: Console) -> None:
    processes = load_workload(Path(args.workload))
    on_tick = _step_printer(console, args.step_delay) if args.step else None
    try:
        snapshot = simulate(args.discipline, processes, args.quantum, on_tick=on_tick)
    except KeyboardInterrupt:
        console.print("[yellow]Simulation interrupted.[/yellow]")
        return
    _print_result(snapshot, console)


def _run_compare(args, console: Console) -> None:
    processes = load_workload(Path(args.workload))

    summary_table = Table(title=f"Discipline comparison: {args.workload}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Discipline")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")

    for discipline in args.disciplines:
        snapshot = simulate(discipline, processes, args.quantum)
        summary = summarize_processes(snapshot.terminated)
        summary_table.add_row(
            snapshot.discipline,
            "" if snapshot.quantum is None else str(snapshot.quantum),
            f"{summary['avg_waiting']:.2f}",
            f"{summary['avg_turnaround']:.2f}",
            f"{summary['avg_response']:.2f}",
        )

    console.print(summary_table)


def _apply_request(allocator: Allocator, request: MemoryRequest) -> str:
    if request.op == "alloc":
        if allocator.allocate(request.pid, request.label, request.size):
            return f"[green]alloc[/green] pid {request.pid} ({request.label}) {request.size} KB"
        return f"[red]alloc failed[/red] pid {request.pid} ({request.label}) {request.size} KB: not enough memory"

    if not allocator.blocks_of(request.pid):
        return f"[yellow]free[/yellow] pid {request.pid}: nothing allocated"
    allocator.free(request.pid)
    return f"[green]free[/green] pid {request.pid}"


def _run_memory(args, console: Console) -> None:
    requests = load_memory_script(Path(args.script))
    allocator = Allocator(args.total, args.algorithm)

    console.print(f"[bold]Algorithm:[/bold] {allocator.algorithm.name}")
    for step, request in enumerate(requests, start=1):
        console.print(f"{step:3d}. {_apply_request(allocator, request)}")

    console.print()
    console.print(build_memory_map(allocator.blocks()))
    console.print(allocator.stats().summary())


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    commands = {
        "schedule": _run_schedule,
        "compare": _run_compare,
        "memory": _run_memory,
    }

    try:
        commands[args.command](args, console)
    except ValueError as exc:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {exc}[/red]")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

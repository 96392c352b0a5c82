from __future__ import annotations

from typing import Dict, List, Sequence

from rich import box
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import BlockKind, MemoryBlock, ScheduledSlice

COLORS = ["red", "green", "yellow", "blue", "magenta", "cyan"]

KIND_STYLES = {
    BlockKind.FREE: "green",
    BlockKind.ALLOCATED: "bold yellow",
    BlockKind.SYSTEM: "dim",
    BlockKind.FRAGMENTED: "red",
}


def slice_label(pid: int) -> str:
    return f"P{pid}"


def build_rich_gantt(slices: List[ScheduledSlice]) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and a string with time marks.
    """
    if not slices:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    slices = sorted(slices, key=lambda s: (s.start_time, s.end_time))

    pid_to_color: Dict[int, str] = {}

    def pid_color(pid: int) -> str:
        if pid not in pid_to_color:
            pid_to_color[pid] = COLORS[len(pid_to_color) % len(COLORS)]
        return pid_to_color[pid]

    timeline = Text()
    labels = Text()
    time_marks = "0"
    last_time = 0

    for sl in slices:
        idle_gap = sl.start_time - last_time
        if idle_gap > 0:
            gap_width = 3 * idle_gap
            timeline.append(" " * gap_width)
            labels.append(" " * gap_width)
            last_time = sl.start_time
            time_marks += f"{last_time:>{gap_width}}"

        # Three columns per tick; each mark is right-aligned to the end of its segment.
        width = 3 * (sl.end_time - sl.start_time)
        timeline.append(" " * width, style=f"on {pid_color(sl.pid)}")
        labels.append(slice_label(sl.pid)[:width].ljust(width), style="bold")

        last_time = sl.end_time
        time_marks += f"{last_time:>{width}}"

    table = Table.grid(padding=(0, 0))
    table.add_row(timeline)
    table.add_row(labels)

    panel = Panel.fit(table, title="Gantt Chart")
    return panel, time_marks


def build_memory_map(blocks: Sequence[MemoryBlock], title: str = "Memory map") -> Table:
    """
    One row per block, in list order.
    """
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("Block", justify="right")
    table.add_column("Size (KB)", justify="right")
    table.add_column("Kind", justify="center")
    table.add_column("Owner")

    for block in blocks:
        style = KIND_STYLES[block.kind]
        owner = block.owner_label
        if block.owner_pid is not None:
            owner = f"{owner} (pid {block.owner_pid})"
        table.add_row(
            str(block.block_id),
            str(block.size),
            Text(block.kind.value, style=style),
            owner,
        )
    return table

from __future__ import annotations

from typing import List, Sequence

from .models import Process, ScheduledSlice, SchedulerSnapshot, SystemMetrics


def compute_system_metrics(snapshot: SchedulerSnapshot) -> SystemMetrics:
    """
    Compute throughput and CPU utilization for the terminated processes of a
    scheduler snapshot, using its executed timeline for busy time.
    """
    finished = snapshot.terminated
    if not finished:
        return SystemMetrics(cpu_busy_time=0, makespan=0, throughput=0.0, cpu_utilization=0.0)

    makespan = max(p.completion_time for p in finished)
    cpu_busy_time = busy_time(snapshot.timeline)

    throughput = len(finished) / makespan if makespan > 0 else 0.0
    cpu_utilization = cpu_busy_time / makespan if makespan > 0 else 0.0

    # Processes whose waiting time is more than 2x the average waiting time.
    avg_wait = sum(p.wait_time for p in finished) / len(finished)
    starvation_count = sum(1 for p in finished if p.wait_time > 2 * avg_wait)

    return SystemMetrics(
        cpu_busy_time=cpu_busy_time,
        makespan=makespan,
        throughput=throughput,
        cpu_utilization=cpu_utilization,
        starvation_count=starvation_count,
    )


def busy_time(timeline: Sequence[ScheduledSlice]) -> int:
    return sum(slice_.end_time - slice_.start_time for slice_ in timeline)


def turnaround_time(process: Process) -> int:
    return process.completion_time - process.arrival


def summarize_processes(processes: List[Process]) -> dict:
    """
    Return averages of the key per-process metrics for quick comparison.
    """
    if not processes:
        return {"avg_waiting": 0.0, "avg_turnaround": 0.0, "avg_response": 0.0}

    n = len(processes)
    return {
        "avg_waiting": sum(p.wait_time for p in processes) / n,
        "avg_turnaround": sum(turnaround_time(p) for p in processes) / n,
        "avg_response": sum(p.response_time for p in processes) / n,
    }

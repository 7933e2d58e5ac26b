from __future__ import annotations

from typing import List

from .models import ProcessInfo, ProcessState, ScheduledSlice, SystemMetrics


def compute_system_metrics(
    timeline: List[ScheduledSlice],
    processes: List[ProcessInfo],
    makespan: int,
    context_switches: int = 0,
) -> SystemMetrics:
    """
    Compute CPU busy/idle time and utilization from the dispatch timeline
    of a replay that ended at ``makespan`` ticks.
    """
    cpu_busy_time = sum(slice_.end_time - slice_.start_time for slice_ in timeline)
    idle_time = max(0, makespan - cpu_busy_time)
    cpu_utilization = cpu_busy_time / makespan if makespan > 0 else 0.0
    exited = sum(1 for p in processes if p.state is ProcessState.TERMINATED)

    return SystemMetrics(
        cpu_busy_time=cpu_busy_time,
        idle_time=idle_time,
        makespan=makespan,
        cpu_utilization=cpu_utilization,
        context_switches=context_switches,
        exited=exited,
    )


def summarize_process_metrics(processes: List[ProcessInfo]) -> dict:
    """
    Return averages of the per-process timings for quick comparison.
    """
    if not processes:
        return {"avg_total": 0.0, "avg_running": 0.0, "avg_syscalls": 0.0, "avg_waiting": 0.0}

    n = len(processes)
    return {
        "avg_total": sum(p.total_time for p in processes) / n,
        "avg_running": sum(p.running_time for p in processes) / n,
        "avg_syscalls": sum(p.syscall_count for p in processes) / n,
        # time alive but off the CPU
        "avg_waiting": sum(p.total_time - p.running_time for p in processes) / n,
    }

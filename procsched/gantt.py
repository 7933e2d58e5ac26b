from __future__ import annotations

from typing import List, Optional, Tuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import Pid, ScheduledSlice

PALETTE = ("red", "green", "yellow", "blue", "magenta", "cyan")
IDLE_CELL = "·"
SWITCH_CELL = "│"

# (pid or None for idle, start, end)
Segment = Tuple[Optional[Pid], int, int]


def slice_label(pid: Pid) -> str:
    return f"P{pid}"


def pid_color(pid: Pid) -> str:
    """Stable color per pid, so the same process looks the same across charts."""
    return PALETTE[(pid - 1) % len(PALETTE)]


def timeline_segments(slices: List[ScheduledSlice], makespan: Optional[int] = None) -> List[Segment]:
    """
    Split a replay timeline into CPU runs and the idle gaps between them.

    ``makespan`` extends the chart with a trailing idle segment when the
    replay ended with the CPU asleep.
    """
    segments: List[Segment] = []
    clock = 0
    for sl in sorted(slices, key=lambda s: (s.start_time, s.end_time)):
        if sl.end_time <= sl.start_time:
            continue
        if sl.start_time > clock:
            segments.append((None, clock, sl.start_time))
        segments.append((sl.pid, sl.start_time, sl.end_time))
        clock = sl.end_time
    if makespan is not None and makespan > clock and segments:
        segments.append((None, clock, makespan))
    return segments


def gantt_rows(segments: List[Segment]) -> Tuple[Text, Text, str, int]:
    """
    Render segments one cell per tick.

    Returns the colored bar, the pid labels under it, a ruler with the tick
    at each segment boundary and the number of context switches drawn.
    A switch is a run handed straight to a different pid and is drawn as
    an extra separator column.
    """
    bar = Text()
    labels = Text()
    ruler = "0"
    switches = 0
    previous: Optional[Pid] = None

    for pid, start, end in segments:
        width = end - start
        if pid is not None and previous is not None and previous != pid:
            bar.append(SWITCH_CELL, style="bold")
            labels.append(SWITCH_CELL, style="bold")
            switches += 1

        if pid is None:
            bar.append(IDLE_CELL * width, style="dim")
            labels.append(" " * width)
        else:
            bar.append(" " * width, style=f"on {pid_color(pid)}")
            labels.append(slice_label(pid)[:width].ljust(width), style="bold")

        # marks that would touch the previous one are left out
        column = len(bar)
        if len(ruler) < column:
            ruler = ruler.ljust(column) + str(end)
        previous = pid

    return bar, labels, ruler, switches


def build_rich_gantt(slices: List[ScheduledSlice], makespan: Optional[int] = None) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing the Gantt chart of a replay and the ruler
    to print under it.
    """
    segments = timeline_segments(slices, makespan)
    if not segments:
        return Panel("No execution", title="Gantt Chart"), ""

    bar, labels, ruler, switches = gantt_rows(segments)

    table = Table.grid(padding=(0, 0))
    table.add_row(bar)
    table.add_row(labels)

    noun = "switch" if switches == 1 else "switches"
    panel = Panel.fit(table, title="Gantt Chart", subtitle=f"{switches} context {noun}")
    return panel, ruler

from procsched.gantt import build_rich_gantt, gantt_rows, pid_color, timeline_segments
from procsched.models import ScheduledSlice

SLICES = [
    ScheduledSlice(1, 0, 3),
    ScheduledSlice(2, 3, 6),
    ScheduledSlice(1, 8, 10),
]


def test_segments_include_idle_gaps():
    assert timeline_segments(SLICES) == [(1, 0, 3), (2, 3, 6), (None, 6, 8), (1, 8, 10)]


def test_trailing_idle_comes_from_makespan():
    segments = timeline_segments([ScheduledSlice(1, 0, 2)], makespan=5)
    assert segments == [(1, 0, 2), (None, 2, 5)]


def test_zero_length_slices_are_skipped():
    assert timeline_segments([ScheduledSlice(1, 0, 0), ScheduledSlice(2, 0, 2)]) == [(2, 0, 2)]


def test_rows_mark_switches_and_idle():
    bar, labels, ruler, switches = gantt_rows(timeline_segments(SLICES))

    assert bar.plain == "   │   ··  "
    assert labels.plain == "P1 │P2   P1"
    assert ruler == "0  3   6 8 10"
    # idle in between is not a switch
    assert switches == 1


def test_colors_are_stable_per_pid():
    assert pid_color(1) == pid_color(7)
    assert pid_color(1) != pid_color(2)


def test_empty_timeline():
    panel, ruler = build_rich_gantt([])
    assert panel.renderable == "No execution"
    assert ruler == ""


def test_panel_reports_switch_count():
    panel, ruler = build_rich_gantt(SLICES, makespan=14)
    assert panel.subtitle == "1 context switch"
    assert ruler.endswith("10  14")

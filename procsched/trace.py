"""
Trace replay harness.

A trace is a sequence of events, each one a call the harness makes on a
scheduler: register a process, ask for a decision, or report why the
running process stopped. Traces load from JSON, CSV or a plain line
format (``op arg remaining``), and ``run_trace`` replays them while
recording the dispatch timeline.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .errors import TraceError
from .metrics import compute_system_metrics
from .models import (
    Pid,
    ProcessInfo,
    ScheduledSlice,
    SchedulingDecision,
    StopReason,
    Syscall,
    SyscallResult,
    SystemMetrics,
)
from .policies import Scheduler

logger = logging.getLogger(__name__)

# op -> (needs arg, takes remaining)
OPS: Dict[str, Tuple[bool, bool]] = {
    "new": (False, False),
    "schedule": (False, False),
    "expire": (False, False),
    "fork": (False, True),
    "exit": (False, True),
    "sleep": (True, True),
    "wait": (True, True),
    "signal": (True, True),
    "kill": (True, False),
}

Outcome = Union[SchedulingDecision, SyscallResult, Pid]


@dataclass
class TraceEvent:
    op: str
    arg: Optional[int] = None
    remaining: int = 0

    def __post_init__(self) -> None:
        if self.op not in OPS:
            raise TraceError(f"Unknown trace op '{self.op}' (use {', '.join(OPS)})")
        needs_arg, _ = OPS[self.op]
        if needs_arg and self.arg is None:
            raise TraceError(f"Trace op '{self.op}' needs an argument")
        if self.remaining < 0:
            raise TraceError(f"Trace op '{self.op}' has negative remaining time")

    def __str__(self) -> str:
        parts = [self.op]
        if self.arg is not None:
            parts.append(str(self.arg))
        if OPS[self.op][1]:
            parts.append(f"r={self.remaining}")
        return " ".join(parts)


@dataclass
class Trace:
    events: List[TraceEvent] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TraceStep:
    index: int
    event: TraceEvent
    outcome: Outcome
    clock: int


@dataclass
class TraceReport:
    policy: str
    system: SystemMetrics
    steps: List[TraceStep] = field(default_factory=list)
    timeline: List[ScheduledSlice] = field(default_factory=list)
    processes: List[ProcessInfo] = field(default_factory=list)

    @property
    def decisions(self) -> List[SchedulingDecision]:
        return [s.outcome for s in self.steps if isinstance(s.outcome, SchedulingDecision)]


def load_trace(path: str | Path) -> Trace:
    """
    Load a trace from a JSON, CSV or line-format file.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)
    if suffix in {".txt", ".trace"}:
        with path.open("r", encoding="utf-8") as f:
            try:
                return Trace(events=parse_lines(f))
            except UnicodeDecodeError as exc:
                raise TraceError(f"Trace {path} is not valid UTF-8: {exc}") from exc

    raise TraceError(f"Unsupported trace format: {suffix} (use .json, .csv, .txt or .trace)")


def _load_json(path: Path) -> Trace:
    with path.open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise TraceError(f"Invalid JSON trace {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise TraceError(f"Trace {path} is not valid UTF-8: {exc}") from exc

    config: Dict[str, Any] = {}
    if isinstance(raw, dict):
        header = raw.get("config", {})
        if not isinstance(header, dict):
            raise TraceError(f"JSON trace 'config' must be an object, got {type(header).__name__}")
        config = dict(header)
        raw = raw.get("events", [])

    if not isinstance(raw, list):
        raise TraceError("JSON trace must be a list of events or an object with an 'events' list")

    return Trace(events=[event_from_mapping(entry) for entry in raw], config=config)


def _load_csv(path: Path) -> Trace:
    events: List[TraceEvent] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        try:
            for row in reader:
                events.append(event_from_mapping(row))
        except UnicodeDecodeError as exc:
            raise TraceError(f"Trace {path} is not valid UTF-8: {exc}") from exc
    return Trace(events=events)


def event_from_mapping(mapping: Any) -> TraceEvent:
    try:
        op = str(mapping["op"]).strip().lower()
        arg = _optional_int(mapping.get("arg"))
        remaining = _optional_int(mapping.get("remaining")) or 0
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise TraceError(f"Invalid trace entry: {mapping!r}") from exc
    return TraceEvent(op=op, arg=arg, remaining=remaining)


def parse_event_line(line: str) -> Optional[TraceEvent]:
    """
    Parse ``op [arg] [remaining]``. Blank lines and ``#`` comments give None.

    Ops that take no argument read a single number as the remaining time,
    so ``exit 2`` means "exit with 2 ticks left".
    """
    text = line.split("#", 1)[0].strip()
    if not text:
        return None
    op, *numbers = text.split()
    op = op.lower()
    if op not in OPS:
        raise TraceError(f"Unknown trace op '{op}' in line {line.strip()!r}")
    try:
        values = [int(n) for n in numbers]
    except ValueError as exc:
        raise TraceError(f"Invalid number in line {line.strip()!r}") from exc

    needs_arg, takes_remaining = OPS[op]
    limit = (1 if needs_arg or op in {"new", "fork"} else 0) + (1 if takes_remaining else 0)
    if len(values) > limit:
        raise TraceError(f"Too many values in line {line.strip()!r}")

    if op in {"new", "fork"} or needs_arg:
        arg = values[0] if values else None
        remaining = values[1] if len(values) > 1 else 0
    else:
        arg = None
        remaining = values[0] if values else 0
    return TraceEvent(op=op, arg=arg, remaining=remaining)


def parse_lines(lines: Iterable[str]) -> List[TraceEvent]:
    events: List[TraceEvent] = []
    for line in lines:
        event = parse_event_line(line)
        if event is not None:
            events.append(event)
    return events


def apply_event(scheduler: Scheduler, event: TraceEvent) -> Outcome:
    """
    Make the single scheduler call an event stands for.
    """
    if event.op == "new":
        return scheduler.new_process(event.arg)
    if event.op == "schedule":
        return scheduler.schedule()
    if event.op == "expire":
        return scheduler.stop(StopReason.expired())
    if event.op == "kill":
        return scheduler.kill(event.arg)

    if event.op == "fork":
        syscall = Syscall.fork(event.arg if event.arg is not None else 0)
    elif event.op == "exit":
        syscall = Syscall.exit()
    elif event.op == "sleep":
        syscall = Syscall.sleep(event.arg)
    elif event.op == "wait":
        syscall = Syscall.wait(event.arg)
    else:
        syscall = Syscall.signal(event.arg)
    return scheduler.stop(StopReason.from_syscall(syscall, event.remaining))


class TraceRecorder:
    """
    Feeds events to a scheduler one at a time and keeps the dispatch timeline.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self.steps: List[TraceStep] = []
        self.timeline: List[ScheduledSlice] = []
        self.context_switches = 0
        self._open: Optional[ScheduledSlice] = None
        self._last_dispatched: Optional[Pid] = None

    def feed(self, event: TraceEvent) -> TraceStep:
        was_running = self.scheduler.running
        outcome = apply_event(self.scheduler, event)
        clock = self.scheduler.clock
        running = self.scheduler.running

        if was_running is not None and self._open is not None:
            self._open.end_time = clock
            if running != was_running:
                self._open = None

        if was_running is None and running is not None:
            if self._last_dispatched is not None and self._last_dispatched != running:
                self.context_switches += 1
            self._last_dispatched = running
            last = self.timeline[-1] if self.timeline else None
            if last is not None and last.pid == running and last.end_time == clock:
                self._open = last
            else:
                self._open = ScheduledSlice(pid=running, start_time=clock, end_time=clock)
                self.timeline.append(self._open)

        step = TraceStep(index=len(self.steps), event=event, outcome=outcome, clock=clock)
        self.steps.append(step)
        logger.debug("step %d: %s -> %s (t=%d)", step.index, event, outcome, clock)
        return step

    def report(self) -> TraceReport:
        timeline = [
            ScheduledSlice(pid=s.pid, start_time=s.start_time, end_time=s.end_time)
            for s in self.timeline
            if s.end_time > s.start_time
        ]
        processes = self.scheduler.processes(include_terminated=True)
        system = compute_system_metrics(
            timeline, processes, self.scheduler.clock, context_switches=self.context_switches
        )
        return TraceReport(
            policy=self.scheduler.name,
            system=system,
            steps=list(self.steps),
            timeline=timeline,
            processes=processes,
        )


def run_trace(scheduler: Scheduler, events: Iterable[TraceEvent]) -> TraceReport:
    recorder = TraceRecorder(scheduler)
    for event in events:
        recorder.feed(event)
    return recorder.report()


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)

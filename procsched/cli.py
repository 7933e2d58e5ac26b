from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import POLICIES, SchedulerConfig
from .errors import SchedulerError
from .gantt import build_rich_gantt
from .logging import setup_logging
from .metrics import summarize_process_metrics
from .models import ProcessInfo
from .policies import create_scheduler
from .trace import TraceRecorder, TraceReport, load_trace, parse_event_line, run_trace

logger = logging.getLogger(__name__)

DEFAULT_QUANTUM = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procsched",
        description="Deterministic single-CPU scheduling simulator (Round Robin, Priority RR, CFS).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for scheduler internals (DEBUG shows every decision; default: WARNING).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Replay a trace file against one policy.")
    run_parser.add_argument("--trace", "-t", required=True, help="Path to a JSON, CSV or line-format trace.")
    _add_engine_arguments(run_parser)
    run_parser.add_argument(
        "--policy",
        "-p",
        default=None,
        help="Policy to use (rr, priority, cfs). Overrides the trace header.",
    )
    run_parser.add_argument(
        "--steps",
        action="store_true",
        help="Print every trace event with the engine's answer.",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Replay the same trace against several policies and compare the outcome.",
    )
    compare_parser.add_argument("--trace", "-t", required=True, help="Path to a JSON, CSV or line-format trace.")
    _add_engine_arguments(compare_parser)
    compare_parser.add_argument(
        "--policies",
        "-p",
        nargs="+",
        default=list(POLICIES),
        help="Policies to compare (default: rr priority cfs).",
    )

    interactive_parser = subparsers.add_parser(
        "interactive",
        help="Type trace events one per line and see each decision immediately.",
    )
    _add_engine_arguments(interactive_parser)
    interactive_parser.add_argument("--policy", "-p", default="rr", help="Policy to use (default: rr).")

    return parser


def _add_engine_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=None,
        help=f"Timeslice for rr/priority, cpu_time for cfs (default: trace header or {DEFAULT_QUANTUM}).",
    )
    parser.add_argument(
        "--min-remaining",
        "-m",
        type=int,
        default=None,
        help="minimum_remaining_timeslice: leftover ticks needed to keep the CPU after a syscall.",
    )
    parser.add_argument(
        "--strict-signals",
        action="store_true",
        help="Report NotWaiting when a signal wakes nobody.",
    )


def build_config(header: Dict[str, Any], args: argparse.Namespace, policy: Optional[str]) -> SchedulerConfig:
    """
    Merge a trace header with command-line overrides.
    """
    merged: Dict[str, Any] = dict(header)
    if policy is not None:
        merged["policy"] = policy
        if "quantum" not in merged:
            # a header quantum recorded for one policy carries over to the others
            own, other = ("cpu_time", "timeslice") if policy == "cfs" else ("timeslice", "cpu_time")
            for key in (own, other):
                if key in merged:
                    merged["quantum"] = merged[key]
                    break
        merged.pop("timeslice", None)
        merged.pop("cpu_time", None)
    if args.quantum is not None:
        merged.pop("timeslice", None)
        merged.pop("cpu_time", None)
        merged["quantum"] = args.quantum
    elif not any(key in merged for key in ("quantum", "timeslice", "cpu_time")):
        merged["quantum"] = DEFAULT_QUANTUM
    if args.min_remaining is not None:
        merged["minimum_remaining_timeslice"] = args.min_remaining
    if args.strict_signals:
        merged["strict_signals"] = True
    return SchedulerConfig.from_mapping(merged)


def _process_table(processes: List[ProcessInfo]) -> Table:
    headers = ["PID", "State", "Priority", "Total", "Syscalls", "Running", "Waiting on", "Extra"]

    proc_table = Table(title="Per-process timings", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "State", "Priority"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in processes:
        proc_table.add_row(
            str(p.pid),
            p.state.value,
            str(p.priority),
            str(p.total_time),
            str(p.syscall_count),
            str(p.running_time),
            "" if p.wait_reason is None else str(p.wait_reason),
            p.extra,
        )
    return proc_table


def _print_report(report: TraceReport, config: SchedulerConfig, console: Console, show_steps: bool = False) -> None:
    console.print(f"[bold]Policy:[/bold] {report.policy}")
    label = "CPU time" if config.policy == "cfs" else "Timeslice"
    console.print(f"[bold]{label}:[/bold] {config.quantum}")
    console.print(f"[bold]Minimum remaining timeslice:[/bold] {config.minimum_remaining_timeslice}")
    console.print()

    if show_steps:
        step_table = Table(title="Trace steps", box=box.SIMPLE_HEAVY)
        step_table.add_column("#", justify="right")
        step_table.add_column("Event")
        step_table.add_column("Outcome")
        step_table.add_column("Clock", justify="right")
        for step in report.steps:
            step_table.add_row(str(step.index), str(step.event), str(step.outcome), str(step.clock))
        console.print(step_table)
        console.print()

    panel, time_marks = build_rich_gantt(report.timeline, report.system.makespan)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()
    console.print(_process_table(report.processes))
    console.print()

    summary = summarize_process_metrics(report.processes)
    sys = report.system
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Makespan", str(sys.makespan))
    sys_table.add_row("CPU busy", str(sys.cpu_busy_time))
    sys_table.add_row("CPU idle", str(sys.idle_time))
    sys_table.add_row("CPU utilization", f"{sys.cpu_utilization*100:.1f}%")
    sys_table.add_row("Context switches", str(sys.context_switches))
    sys_table.add_row("Exited processes", str(sys.exited))
    sys_table.add_row("Avg running", f"{summary['avg_running']:.2f}")
    sys_table.add_row("Avg waiting", f"{summary['avg_waiting']:.2f}")

    console.print(sys_table)


def _run_compare(trace_path: Path, args: argparse.Namespace, console: Console) -> None:
    trace = load_trace(trace_path)

    summary_table = Table(title=f"Policy comparison: {trace_path}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Policy")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Makespan", justify="right")
    summary_table.add_column("Utilization", justify="right")
    summary_table.add_column("Switches", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Last decision")

    for policy in args.policies:
        policy = policy.lower()
        quantum = ""
        try:
            config = build_config(trace.config, args, policy)
            quantum = str(config.quantum)
            report = run_trace(create_scheduler(config), trace.events)
        except SchedulerError as exc:
            # remaining times in a trace only make sense for the quanta it was recorded with
            name = POLICIES.get(policy, policy)
            summary_table.add_row(escape(name), quantum, "", "", "", "", f"[red]{escape(str(exc))}[/red]")
            continue
        summary = summarize_process_metrics(report.processes)
        decisions = report.decisions
        sys = report.system
        summary_table.add_row(
            report.policy,
            quantum,
            str(sys.makespan),
            f"{sys.cpu_utilization*100:.1f}%",
            str(sys.context_switches),
            f"{summary['avg_waiting']:.2f}",
            str(decisions[-1]) if decisions else "",
        )

    console.print(summary_table)


def _interactive(config: SchedulerConfig, console: Console) -> None:
    recorder = TraceRecorder(create_scheduler(config))
    console.print(f"[bold cyan]procsched[/bold cyan] {recorder.scheduler.name} [dim](q to quit)[/dim]")
    console.print("[dim]Events: new [prio] | schedule | expire | fork <prio> <rem> | exit <rem> | "
                  "sleep <ticks> <rem> | wait <event> <rem> | signal <event> <rem> | kill <pid>[/dim]")
    console.print("[dim]Commands: ps | report | q[/dim]")

    while True:
        try:
            line = input(f"t={recorder.scheduler.clock}> ").strip()
        except EOFError:
            break
        if line.lower() in {"q", "quit"}:
            break
        if line.lower() == "ps":
            console.print(_process_table(recorder.scheduler.processes()))
            continue
        if line.lower() == "report":
            _print_report(recorder.report(), config, console, show_steps=True)
            continue

        try:
            event = parse_event_line(line)
            if event is None:
                continue
            step = recorder.feed(event)
        except SchedulerError as exc:
            console.print(f"[red]Error: {escape(str(exc))}[/red]")
            continue
        console.print(f"[green]{step.outcome}[/green]")

    _print_report(recorder.report(), config, console, show_steps=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    console = Console()
    try:
        setup_logging(args.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        if args.command == "run":
            trace_path = Path(args.trace)
            trace = load_trace(trace_path)
            config = build_config(trace.config, args, args.policy.lower() if args.policy else None)
            logger.info("replaying %d events from %s", len(trace.events), trace_path)
            report = run_trace(create_scheduler(config), trace.events)
            _print_report(report, config, console, show_steps=args.steps)
            return 0

        if args.command == "compare":
            _run_compare(Path(args.trace), args, console)
            return 0

        if args.command == "interactive":
            config = build_config({}, args, args.policy.lower())
            _interactive(config, console)
            return 0
    except (SchedulerError, OSError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

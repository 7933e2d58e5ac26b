from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type, Union

from .config import SchedulerConfig
from .errors import ProtocolError
from .models import (
    Pid,
    Process,
    ProcessInfo,
    ProcessState,
    SchedulingDecision,
    StopReason,
    Syscall,
    SyscallKind,
    SyscallResult,
)
from .queues import FifoReadyQueue, KeyedReadyQueue, ProcessTable, WaitingQueue

logger = logging.getLogger(__name__)

ReadyQueue = Union[FifoReadyQueue, KeyedReadyQueue]


class Scheduler(ABC):
    """
    Shared engine behind every policy.

    The harness drives it through ``new_process``, ``schedule`` and
    ``stop``. Subclasses only choose the ready-queue ordering, the quantum
    handed out at each dispatch and what a consumed tick costs.
    """

    name = ""

    def __init__(self, config: SchedulerConfig) -> None:
        self.config = config
        self._table = ProcessTable()
        self._ready: ReadyQueue = self._make_ready_queue()
        self._waiting = WaitingQueue()
        self._running: Optional[Pid] = None
        self._clock = 0

    @abstractmethod
    def _make_ready_queue(self) -> ReadyQueue:
        """Return an empty ready collection for this policy."""

    @abstractmethod
    def _timeslice(self) -> int:
        """Quantum for the next dispatch, computed before the ready queue is popped."""

    def _on_consumed(self, process: Process, ticks: int) -> None:
        process.running_time += ticks

    def _extra(self, process: Process) -> str:
        return ""

    @property
    def clock(self) -> int:
        return self._clock

    @property
    def running(self) -> Optional[Pid]:
        return self._running

    def new_process(self, priority: Optional[int] = None) -> Pid:
        process = self._table.create(priority if priority is not None else 0, self._clock)
        self._make_ready(process)
        logger.debug("%s: created pid %d (priority %d)", self.name, process.pid, process.priority)
        return process.pid

    def schedule(self) -> SchedulingDecision:
        problems = self.check_invariants()
        if problems:
            for problem in problems:
                logger.error("%s: invariant violated: %s", self.name, problem)
            return SchedulingDecision.panic()

        if self._running is not None:
            process = self._table[self._running]
            return SchedulingDecision.run(process.pid, process.remaining_timeslice)

        if len(self._ready):
            timeslice = self._timeslice()
            pid = self._ready.pop()
            process = self._table[pid]
            process.state = ProcessState.RUNNING
            process.remaining_timeslice = timeslice
            self._running = pid
            logger.debug("%s: t=%d run pid %d for %d", self.name, self._clock, pid, timeslice)
            return SchedulingDecision.run(pid, timeslice)

        if len(self._waiting):
            ticks = self._waiting.next_wake(self._table)
            if ticks is None:
                logger.debug("%s: t=%d all processes wait on events", self.name, self._clock)
                return SchedulingDecision.wait()
            logger.debug("%s: t=%d idle for %d", self.name, self._clock, ticks)
            self._advance(ticks)
            return SchedulingDecision.sleep(ticks)

        return SchedulingDecision.done()

    def stop(self, reason: StopReason) -> SyscallResult:
        if self._running is None:
            return SyscallResult.no_running_process()

        process = self._table[self._running]
        remaining = 0 if reason.is_expired else reason.remaining_timeslice
        if remaining < 0 or remaining > process.remaining_timeslice:
            raise ProtocolError(
                f"pid {process.pid} reported {remaining} ticks left of a "
                f"{process.remaining_timeslice} tick quantum"
            )

        consumed = process.remaining_timeslice - remaining
        self._running = None
        self._on_consumed(process, consumed)
        self._advance(consumed)

        if reason.syscall is None:
            logger.debug("%s: t=%d pid %d expired", self.name, self._clock, process.pid)
            self._make_ready(process)
            return SyscallResult.success()

        process.syscall_count += 1
        logger.debug("%s: t=%d pid %d called %s", self.name, self._clock, process.pid, reason.syscall)
        result = self._handle_syscall(process, reason.syscall)

        if not reason.syscall.blocks:
            self._continue_or_yield(process, remaining)
        return result

    def kill(self, pid: Pid) -> SyscallResult:
        process = self._table.get(pid)
        if process is None or process.state is ProcessState.TERMINATED:
            return SyscallResult.unknown_process()
        if self._running == pid:
            self._running = None
        else:
            self._ready.remove(pid)
            self._waiting.remove(pid)
        self._table.terminate(pid, self._clock)
        logger.debug("%s: t=%d pid %d killed", self.name, self._clock, pid)
        return SyscallResult.success()

    def processes(self, include_terminated: bool = False) -> List[ProcessInfo]:
        infos: List[ProcessInfo] = []
        for process in self._table:
            if process.state is ProcessState.TERMINATED and not include_terminated:
                continue
            infos.append(
                ProcessInfo(
                    pid=process.pid,
                    state=process.state,
                    priority=process.priority,
                    timings=(process.total_time(self._clock), process.syscall_count, process.running_time),
                    wait_reason=process.wait_reason,
                    extra=self._extra(process),
                )
            )
        return infos

    def check_invariants(self) -> List[str]:
        """
        Return a description of every disagreement between the registry and
        the queues. An empty list means the engine is consistent.
        """
        problems: List[str] = []
        running = [p.pid for p in self._table if p.state is ProcessState.RUNNING]
        expected = [] if self._running is None else [self._running]
        if running != expected:
            problems.append(f"running processes {running}, running slot {expected}")

        ready = self._ready.pids()
        waiting = self._waiting.pids()
        if len(set(ready)) != len(ready) or len(set(waiting)) != len(waiting):
            problems.append("a process is queued twice")
        overlap = set(ready) & set(waiting)
        if overlap:
            problems.append(f"pids {sorted(overlap)} are both ready and waiting")

        for process in self._table:
            if process.state is ProcessState.READY and process.pid not in ready:
                problems.append(f"ready pid {process.pid} is not in the ready queue")
            elif process.state is ProcessState.WAITING and process.pid not in waiting:
                problems.append(f"waiting pid {process.pid} is not in the waiting queue")
            elif process.state is ProcessState.TERMINATED and (process.pid in ready or process.pid in waiting):
                problems.append(f"terminated pid {process.pid} is still queued")

        for pid in ready:
            if self._table[pid].state is not ProcessState.READY:
                problems.append(f"queued pid {pid} is {self._table[pid].state.value}, not ready")
        for pid in waiting:
            if self._table[pid].state is not ProcessState.WAITING:
                problems.append(f"blocked pid {pid} is {self._table[pid].state.value}, not waiting")
        return problems

    def _handle_syscall(self, process: Process, syscall: Syscall) -> SyscallResult:
        if syscall.kind is SyscallKind.FORK:
            child = self.new_process(syscall.priority)
            return SyscallResult.new_pid(child)

        if syscall.kind is SyscallKind.EXIT:
            self._table.terminate(process.pid, self._clock)
            logger.debug("%s: t=%d pid %d exited", self.name, self._clock, process.pid)
            return SyscallResult.success()

        if syscall.kind is SyscallKind.SLEEP:
            ticks = syscall.ticks or 0
            if ticks <= 0:
                self._make_ready(process)
            else:
                self._block(process, sleep_ticks=ticks)
            return SyscallResult.success()

        if syscall.kind is SyscallKind.WAIT:
            self._block(process, event=syscall.event)
            return SyscallResult.success()

        released = self._waiting.release_event(syscall.event, self._table)
        for pid in released:
            self._make_ready(self._table[pid])
        if released:
            logger.debug("%s: event %s released pids %s", self.name, syscall.event, released)
        elif self.config.strict_signals:
            return SyscallResult.not_waiting()
        return SyscallResult.success()

    def _continue_or_yield(self, process: Process, remaining: int) -> None:
        if remaining >= self.config.minimum_remaining_timeslice:
            process.remaining_timeslice = remaining
            self._running = process.pid
        else:
            self._make_ready(process)

    def _make_ready(self, process: Process) -> None:
        process.state = ProcessState.READY
        process.remaining_timeslice = 0
        self._ready.push(process)

    def _block(self, process: Process, sleep_ticks: Optional[int] = None, event: Optional[int] = None) -> None:
        process.state = ProcessState.WAITING
        process.remaining_timeslice = 0
        process.sleep_ticks = sleep_ticks
        process.event = event
        self._waiting.add(process)

    def _advance(self, ticks: int) -> None:
        if ticks <= 0:
            return
        self._clock += ticks
        woken = self._waiting.advance(ticks, self._table)
        for pid in woken:
            self._make_ready(self._table[pid])
        if woken:
            logger.debug("%s: t=%d woke pids %s", self.name, self._clock, woken)


class RoundRobin(Scheduler):
    """Single FIFO ready queue, fixed quantum."""

    name = "Round Robin"

    def _make_ready_queue(self) -> ReadyQueue:
        return FifoReadyQueue()

    def _timeslice(self) -> int:
        return self.config.quantum


class PriorityRoundRobin(Scheduler):
    """
    Round Robin inside each priority class, highest class first.

    Lower classes starve while a higher one has ready work.
    """

    name = "Priority Round Robin"

    def _make_ready_queue(self) -> ReadyQueue:
        return KeyedReadyQueue(key=lambda process: -process.priority)

    def _timeslice(self) -> int:
        return self.config.quantum


class CompletelyFair(Scheduler):
    """
    Simplified CFS: the ready process with the least vruntime runs next,
    for ``cpu_time`` divided among the processes that are ready right now.
    """

    name = "CFS"

    def _make_ready_queue(self) -> ReadyQueue:
        return KeyedReadyQueue(key=lambda process: process.vruntime)

    def _timeslice(self) -> int:
        return max(1, self.config.quantum // max(1, len(self._ready)))

    def _on_consumed(self, process: Process, ticks: int) -> None:
        super()._on_consumed(process, ticks)
        process.vruntime += ticks

    def _extra(self, process: Process) -> str:
        return f"vruntime={process.vruntime}"


ENGINES: Dict[str, Type[Scheduler]] = {
    "rr": RoundRobin,
    "priority": PriorityRoundRobin,
    "cfs": CompletelyFair,
}


def create_scheduler(config: SchedulerConfig) -> Scheduler:
    return ENGINES[config.policy](config)


def round_robin(timeslice: int, minimum_remaining_timeslice: int = 0) -> Scheduler:
    """
    Round Robin engine.

    A process that makes a non-blocking syscall keeps the CPU when at least
    ``minimum_remaining_timeslice`` ticks of its quantum are left.
    """
    return RoundRobin(
        SchedulerConfig(policy="rr", timeslice=timeslice, minimum_remaining_timeslice=minimum_remaining_timeslice)
    )


def priority_queue(timeslice: int, minimum_remaining_timeslice: int = 0) -> Scheduler:
    """Priority Round Robin engine; higher priority values run first."""
    return PriorityRoundRobin(
        SchedulerConfig(
            policy="priority", timeslice=timeslice, minimum_remaining_timeslice=minimum_remaining_timeslice
        )
    )


def cfs(cpu_time: int, minimum_remaining_timeslice: int = 0) -> Scheduler:
    """Simplified CFS engine sharing ``cpu_time`` ticks per decision."""
    return CompletelyFair(
        SchedulerConfig(policy="cfs", cpu_time=cpu_time, minimum_remaining_timeslice=minimum_remaining_timeslice)
    )

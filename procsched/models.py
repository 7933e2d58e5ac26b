from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Pid = int


class ProcessState(Enum):
    READY = "ready"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class WaitReason:
    """
    Why a process is blocked: a sleep countdown or an event id.
    """

    sleep_ticks: Optional[int] = None
    event: Optional[int] = None

    def __str__(self) -> str:
        if self.event is not None:
            return f"event {self.event}"
        return f"sleep {self.sleep_ticks}"


@dataclass
class Process:
    """
    Arena record for one process. Queues only ever hold the pid.
    """

    pid: Pid
    priority: int = 0
    state: ProcessState = ProcessState.READY
    remaining_timeslice: int = 0
    sleep_ticks: Optional[int] = None
    event: Optional[int] = None
    vruntime: int = 0
    created_at: int = 0
    exited_at: Optional[int] = None
    syscall_count: int = 0
    running_time: int = 0

    @property
    def wait_reason(self) -> Optional[WaitReason]:
        if self.state is not ProcessState.WAITING:
            return None
        return WaitReason(sleep_ticks=self.sleep_ticks, event=self.event)

    def total_time(self, clock: int) -> int:
        end = self.exited_at if self.exited_at is not None else clock
        return end - self.created_at


@dataclass(frozen=True)
class ProcessInfo:
    pid: Pid
    state: ProcessState
    priority: int
    timings: Tuple[int, int, int]
    wait_reason: Optional[WaitReason] = None
    extra: str = ""

    @property
    def total_time(self) -> int:
        return self.timings[0]

    @property
    def syscall_count(self) -> int:
        return self.timings[1]

    @property
    def running_time(self) -> int:
        return self.timings[2]


class DecisionKind(Enum):
    RUN = "run"
    SLEEP = "sleep"
    WAIT = "wait"
    DONE = "done"
    PANIC = "panic"


@dataclass(frozen=True)
class SchedulingDecision:
    """
    Answer to "what runs next". Build instances with the classmethods.
    """

    kind: DecisionKind
    pid: Optional[Pid] = None
    timeslice: Optional[int] = None
    ticks: Optional[int] = None

    @classmethod
    def run(cls, pid: Pid, timeslice: int) -> "SchedulingDecision":
        return cls(DecisionKind.RUN, pid=pid, timeslice=timeslice)

    @classmethod
    def sleep(cls, ticks: int) -> "SchedulingDecision":
        return cls(DecisionKind.SLEEP, ticks=ticks)

    @classmethod
    def wait(cls) -> "SchedulingDecision":
        return cls(DecisionKind.WAIT)

    @classmethod
    def done(cls) -> "SchedulingDecision":
        return cls(DecisionKind.DONE)

    @classmethod
    def panic(cls) -> "SchedulingDecision":
        return cls(DecisionKind.PANIC)

    def __str__(self) -> str:
        if self.kind is DecisionKind.RUN:
            return f"Run(pid={self.pid}, timeslice={self.timeslice})"
        if self.kind is DecisionKind.SLEEP:
            return f"Sleep({self.ticks})"
        return self.kind.name.capitalize()


class SyscallKind(Enum):
    FORK = "fork"
    EXIT = "exit"
    SLEEP = "sleep"
    WAIT = "wait"
    SIGNAL = "signal"


@dataclass(frozen=True)
class Syscall:
    kind: SyscallKind
    priority: Optional[int] = None
    ticks: Optional[int] = None
    event: Optional[int] = None

    @classmethod
    def fork(cls, priority: int = 0) -> "Syscall":
        return cls(SyscallKind.FORK, priority=priority)

    @classmethod
    def exit(cls) -> "Syscall":
        return cls(SyscallKind.EXIT)

    @classmethod
    def sleep(cls, ticks: int) -> "Syscall":
        return cls(SyscallKind.SLEEP, ticks=ticks)

    @classmethod
    def wait(cls, event: int) -> "Syscall":
        return cls(SyscallKind.WAIT, event=event)

    @classmethod
    def signal(cls, event: int) -> "Syscall":
        return cls(SyscallKind.SIGNAL, event=event)

    @property
    def blocks(self) -> bool:
        """
        True when the caller cannot keep the CPU after this call.
        """
        return self.kind in (SyscallKind.EXIT, SyscallKind.SLEEP, SyscallKind.WAIT)

    def __str__(self) -> str:
        if self.kind is SyscallKind.FORK:
            return f"Fork({self.priority})"
        if self.kind is SyscallKind.SLEEP:
            return f"Sleep({self.ticks})"
        if self.kind in (SyscallKind.WAIT, SyscallKind.SIGNAL):
            return f"{self.kind.name.capitalize()}({self.event})"
        return "Exit"


@dataclass(frozen=True)
class StopReason:
    """
    Why the running process left the CPU. ``syscall`` is None for expiry.
    """

    syscall: Optional[Syscall] = None
    remaining_timeslice: int = 0

    @classmethod
    def expired(cls) -> "StopReason":
        return cls()

    @classmethod
    def from_syscall(cls, syscall: Syscall, remaining_timeslice: int) -> "StopReason":
        return cls(syscall=syscall, remaining_timeslice=remaining_timeslice)

    @property
    def is_expired(self) -> bool:
        return self.syscall is None

    def __str__(self) -> str:
        if self.syscall is None:
            return "Expired"
        return f"Syscall({self.syscall}, remaining={self.remaining_timeslice})"


class ResultKind(Enum):
    SUCCESS = "success"
    NEW_PID = "new_pid"
    NO_RUNNING_PROCESS = "no_running_process"
    UNKNOWN_PROCESS = "unknown_process"
    NOT_WAITING = "not_waiting"


@dataclass(frozen=True)
class SyscallResult:
    kind: ResultKind
    pid: Optional[Pid] = None

    @classmethod
    def success(cls) -> "SyscallResult":
        return cls(ResultKind.SUCCESS)

    @classmethod
    def new_pid(cls, pid: Pid) -> "SyscallResult":
        return cls(ResultKind.NEW_PID, pid=pid)

    @classmethod
    def no_running_process(cls) -> "SyscallResult":
        return cls(ResultKind.NO_RUNNING_PROCESS)

    @classmethod
    def unknown_process(cls) -> "SyscallResult":
        return cls(ResultKind.UNKNOWN_PROCESS)

    @classmethod
    def not_waiting(cls) -> "SyscallResult":
        return cls(ResultKind.NOT_WAITING)

    def __str__(self) -> str:
        if self.kind is ResultKind.NEW_PID:
            return f"NewPid({self.pid})"
        return "".join(part.capitalize() for part in self.kind.value.split("_"))


@dataclass
class ScheduledSlice:
    """
    One contiguous stretch of CPU time given to a process during a replay.
    """

    pid: Pid
    start_time: int
    end_time: int


@dataclass
class SystemMetrics:
    cpu_busy_time: int
    idle_time: int
    makespan: int
    cpu_utilization: float
    context_switches: int = 0
    exited: int = 0

"""
procsched package.

A deterministic single-CPU process scheduling engine with Round Robin,
Priority Round Robin and simplified CFS policies, plus a trace replay
harness and command-line interface.
"""

from .config import POLICIES, SchedulerConfig
from .errors import ConfigurationError, ProtocolError, SchedulerError, TraceError
from .models import (
    DecisionKind,
    Pid,
    ProcessInfo,
    ProcessState,
    ResultKind,
    SchedulingDecision,
    StopReason,
    Syscall,
    SyscallKind,
    SyscallResult,
    WaitReason,
)
from .policies import (
    CompletelyFair,
    PriorityRoundRobin,
    RoundRobin,
    Scheduler,
    cfs,
    create_scheduler,
    priority_queue,
    round_robin,
)

__all__ = [
    "POLICIES",
    "SchedulerConfig",
    "ConfigurationError",
    "ProtocolError",
    "SchedulerError",
    "TraceError",
    "DecisionKind",
    "Pid",
    "ProcessInfo",
    "ProcessState",
    "ResultKind",
    "SchedulingDecision",
    "StopReason",
    "Syscall",
    "SyscallKind",
    "SyscallResult",
    "WaitReason",
    "CompletelyFair",
    "PriorityRoundRobin",
    "RoundRobin",
    "Scheduler",
    "cfs",
    "create_scheduler",
    "priority_queue",
    "round_robin",
    "cli",
]

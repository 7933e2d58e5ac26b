from __future__ import annotations

import heapq
from collections import deque
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

from .models import Pid, Process, ProcessState


class ProcessTable:
    """
    Registry of every process the engine has created, keyed by pid.

    Pids start at 1 and are handed out in strictly increasing order.
    Terminated processes stay in the table for the final timing report.
    """

    def __init__(self) -> None:
        self._processes: Dict[Pid, Process] = {}
        self._next_pid: Pid = 1

    def create(self, priority: int, clock: int) -> Process:
        process = Process(pid=self._next_pid, priority=priority, created_at=clock)
        self._processes[process.pid] = process
        self._next_pid += 1
        return process

    def get(self, pid: Pid) -> Optional[Process]:
        return self._processes.get(pid)

    def __getitem__(self, pid: Pid) -> Process:
        return self._processes[pid]

    def __iter__(self) -> Iterator[Process]:
        # dict order is creation order, which is pid order
        return iter(self._processes.values())

    def terminate(self, pid: Pid, clock: int) -> None:
        process = self._processes[pid]
        process.state = ProcessState.TERMINATED
        process.exited_at = clock
        process.sleep_ticks = None
        process.event = None
        process.remaining_timeslice = 0


class FifoReadyQueue:
    """
    Plain first-in-first-out ready queue used by Round Robin.
    """

    def __init__(self) -> None:
        self._queue: Deque[Pid] = deque()

    def push(self, process: Process) -> None:
        self._queue.append(process.pid)

    def pop(self) -> Pid:
        return self._queue.popleft()

    def remove(self, pid: Pid) -> bool:
        try:
            self._queue.remove(pid)
        except ValueError:
            return False
        return True

    def pids(self) -> List[Pid]:
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)


class KeyedReadyQueue:
    """
    Ready queue ordered by ``key(process)`` and then by arrival sequence.

    The arrival sequence grows on every push, so equal keys are served
    first-in-first-out and a re-queued process lands behind its peers.
    The key is captured at push time; it must not change while queued.
    """

    def __init__(self, key: Callable[[Process], int]) -> None:
        self._key = key
        self._heap: List[Tuple[int, int, Pid]] = []
        self._seq = 0

    def push(self, process: Process) -> None:
        heapq.heappush(self._heap, (self._key(process), self._seq, process.pid))
        self._seq += 1

    def pop(self) -> Pid:
        return heapq.heappop(self._heap)[2]

    def remove(self, pid: Pid) -> bool:
        kept = [entry for entry in self._heap if entry[2] != pid]
        if len(kept) == len(self._heap):
            return False
        heapq.heapify(kept)
        self._heap = kept
        return True

    def pids(self) -> List[Pid]:
        """Pids in the order they would be selected."""
        return [entry[2] for entry in sorted(self._heap)]

    def __len__(self) -> int:
        return len(self._heap)


class WaitingQueue:
    """
    Blocked processes in the order they started waiting.
    """

    def __init__(self) -> None:
        self._pids: List[Pid] = []

    def add(self, process: Process) -> None:
        self._pids.append(process.pid)

    def remove(self, pid: Pid) -> bool:
        try:
            self._pids.remove(pid)
        except ValueError:
            return False
        return True

    def pids(self) -> List[Pid]:
        return list(self._pids)

    def __len__(self) -> int:
        return len(self._pids)

    def next_wake(self, table: ProcessTable) -> Optional[int]:
        """Smallest sleep countdown, or None when only event waiters remain."""
        countdowns = [table[pid].sleep_ticks for pid in self._pids if table[pid].sleep_ticks is not None]
        if not countdowns:
            return None
        return min(countdowns)

    def release_event(self, event: int, table: ProcessTable) -> List[Pid]:
        """Remove and return every process waiting on ``event``, in waiting order."""
        released = [pid for pid in self._pids if table[pid].event == event]
        for pid in released:
            self._pids.remove(pid)
            table[pid].event = None
        return released

    def advance(self, ticks: int, table: ProcessTable) -> List[Pid]:
        """
        Count every sleeper down by ``ticks`` and remove the ones that wake.

        Woken pids come back earliest wake first, waiting order on ties.
        """
        if ticks <= 0:
            return []
        woken: List[Tuple[int, int, Pid]] = []
        for order, pid in enumerate(self._pids):
            process = table[pid]
            if process.sleep_ticks is None:
                continue
            if process.sleep_ticks <= ticks:
                woken.append((process.sleep_ticks, order, pid))
            else:
                process.sleep_ticks -= ticks
        woken.sort()
        for _, _, pid in woken:
            self._pids.remove(pid)
            table[pid].sleep_ticks = None
        return [pid for _, _, pid in woken]

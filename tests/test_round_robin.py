from procsched import (
    ProcessState,
    SchedulingDecision,
    StopReason,
    Syscall,
    SyscallResult,
    round_robin,
)


def _expire(sched):
    return sched.stop(StopReason.expired())


def _syscall(sched, call, remaining):
    return sched.stop(StopReason.from_syscall(call, remaining))


def test_first_process_runs_for_full_quantum():
    sched = round_robin(3)
    assert sched.new_process() == 1
    assert sched.schedule() == SchedulingDecision.run(1, 3)


def test_expired_process_goes_to_back():
    sched = round_robin(2)
    sched.new_process()
    sched.new_process()

    assert sched.schedule() == SchedulingDecision.run(1, 2)
    assert _expire(sched) == SyscallResult.success()
    assert sched._ready.pids() == [2, 1]
    assert sched.schedule() == SchedulingDecision.run(2, 2)


def test_round_robin_cycles_in_creation_order():
    sched = round_robin(2)
    for _ in range(3):
        sched.new_process()

    order = []
    for _ in range(6):
        order.append(sched.schedule().pid)
        _expire(sched)

    assert order == [1, 2, 3, 1, 2, 3]
    assert sched.clock == 12


def test_sleep_with_nothing_ready_idles():
    sched = round_robin(3)
    sched.new_process()
    sched.schedule()

    assert _syscall(sched, Syscall.sleep(5), 1) == SyscallResult.success()
    assert sched.processes()[0].state is ProcessState.WAITING
    assert sched.schedule() == SchedulingDecision.sleep(5)
    assert sched.clock == 7
    assert sched.schedule() == SchedulingDecision.run(1, 3)


def test_sleepers_wake_before_expired_process_is_requeued():
    sched = round_robin(4)
    for _ in range(3):
        sched.new_process()

    assert sched.schedule() == SchedulingDecision.run(1, 4)
    _syscall(sched, Syscall.sleep(6), 3)
    assert sched.schedule() == SchedulingDecision.run(2, 4)
    _syscall(sched, Syscall.sleep(2), 4)
    assert sched.schedule() == SchedulingDecision.run(3, 4)
    _expire(sched)

    # p2 slept 2 of the 4 ticks p3 used; p1 still has 2 to go
    assert sched._ready.pids() == [2, 3]
    assert sched.processes()[0].wait_reason.sleep_ticks == 2
    assert sched.schedule() == SchedulingDecision.run(2, 4)


def test_event_waiters_only_means_wait():
    sched = round_robin(2)
    sched.new_process()
    sched.schedule()
    assert _syscall(sched, Syscall.wait(7), 1) == SyscallResult.success()

    assert sched.schedule() == SchedulingDecision.wait()

    assert sched.new_process() == 2
    assert sched.schedule() == SchedulingDecision.run(2, 2)
    assert _syscall(sched, Syscall.signal(7), 1) == SyscallResult.success()
    # signal is not blocking, so p2 keeps its last tick
    assert sched.schedule() == SchedulingDecision.run(2, 1)
    _expire(sched)
    assert sched.schedule() == SchedulingDecision.run(1, 2)


def test_signal_wakes_every_waiter_in_order():
    sched = round_robin(5)
    for _ in range(4):
        sched.new_process()
    for _ in range(3):
        sched.schedule()
        _syscall(sched, Syscall.wait(1), 5)

    assert sched.schedule() == SchedulingDecision.run(4, 5)
    _syscall(sched, Syscall.signal(1), 0)
    assert sched._ready.pids() == [1, 2, 3]
    # a zero leftover still meets a zero minimum
    assert sched.schedule() == SchedulingDecision.run(4, 0)
    _expire(sched)
    assert sched._ready.pids() == [1, 2, 3, 4]


def test_minimum_remaining_timeslice_is_inclusive():
    sched = round_robin(4, minimum_remaining_timeslice=2)
    sched.new_process()
    sched.schedule()

    assert _syscall(sched, Syscall.fork(0), 2) == SyscallResult.new_pid(2)
    assert sched.schedule() == SchedulingDecision.run(1, 2)


def test_below_minimum_remaining_switches():
    sched = round_robin(4, minimum_remaining_timeslice=2)
    sched.new_process()
    sched.schedule()

    assert _syscall(sched, Syscall.fork(0), 1) == SyscallResult.new_pid(2)
    assert sched.running is None
    assert sched.schedule() == SchedulingDecision.run(2, 4)


def test_done_when_everything_exited():
    sched = round_robin(2)
    assert sched.schedule() == SchedulingDecision.done()

    sched.new_process()
    sched.schedule()
    _syscall(sched, Syscall.exit(), 1)
    assert sched.schedule() == SchedulingDecision.done()
    assert sched.processes() == []
    assert sched.processes(include_terminated=True)[0].state is ProcessState.TERMINATED


def test_sleep_zero_yields():
    sched = round_robin(3)
    sched.new_process()
    sched.new_process()
    sched.schedule()

    _syscall(sched, Syscall.sleep(0), 2)
    assert sched.schedule() == SchedulingDecision.run(2, 3)
    assert sched.processes()[0].state is ProcessState.READY

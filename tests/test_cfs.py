from procsched import SchedulingDecision, StopReason, Syscall, cfs


def _vruntimes(sched):
    return {p.pid: int(p.extra.split("=")[1]) for p in sched.processes()}


def test_single_process_gets_whole_cpu_time():
    sched = cfs(10)
    sched.new_process()
    assert sched.schedule() == SchedulingDecision.run(1, 10)


def test_timeslice_is_shared_among_ready_processes():
    sched = cfs(12)
    for _ in range(3):
        sched.new_process()

    assert sched.schedule() == SchedulingDecision.run(1, 4)
    sched.stop(StopReason.expired())
    assert sched.schedule() == SchedulingDecision.run(2, 4)
    sched.stop(StopReason.expired())
    assert sched.schedule() == SchedulingDecision.run(3, 4)
    sched.stop(StopReason.expired())
    assert _vruntimes(sched) == {1: 4, 2: 4, 3: 4}
    assert sched.schedule() == SchedulingDecision.run(1, 4)


def test_timeslice_never_drops_below_one():
    sched = cfs(2)
    for _ in range(3):
        sched.new_process()
    assert sched.schedule() == SchedulingDecision.run(1, 1)


def test_smallest_vruntime_runs_next():
    sched = cfs(10)
    sched.new_process()
    sched.schedule()
    sched.stop(StopReason.from_syscall(Syscall.sleep(1), 8))
    sched.new_process()

    assert sched.schedule() == SchedulingDecision.run(2, 10)
    sched.stop(StopReason.expired())
    assert _vruntimes(sched) == {1: 2, 2: 10}
    assert sched.schedule() == SchedulingDecision.run(1, 5)


def test_continuing_syscall_charges_consumed_ticks():
    sched = cfs(10, minimum_remaining_timeslice=1)
    sched.new_process()
    sched.schedule()

    sched.stop(StopReason.from_syscall(Syscall.fork(0), 6))
    assert _vruntimes(sched) == {1: 4, 2: 0}
    assert sched.schedule() == SchedulingDecision.run(1, 6)
    sched.stop(StopReason.expired())
    assert _vruntimes(sched)[1] == 10
    assert sched.schedule().pid == 2


def test_vruntime_spread_stays_within_one_quantum():
    sched = cfs(6)
    for _ in range(3):
        sched.new_process()

    for _ in range(30):
        decision = sched.schedule()
        assert decision.timeslice == 2
        sched.stop(StopReason.expired())
        values = _vruntimes(sched).values()
        assert max(values) - min(values) <= 2

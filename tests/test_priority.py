import random

from procsched import (
    DecisionKind,
    ProcessState,
    SchedulingDecision,
    StopReason,
    Syscall,
    SyscallResult,
    priority_queue,
)


def _stop(sched, call=None, remaining=0):
    if call is None:
        return sched.stop(StopReason.expired())
    return sched.stop(StopReason.from_syscall(call, remaining))


def test_highest_priority_runs_first_and_starves_others():
    sched = priority_queue(2)
    assert sched.new_process(1) == 1
    assert sched.new_process(5) == 2
    assert sched.new_process(3) == 3

    assert sched.schedule() == SchedulingDecision.run(2, 2)
    _stop(sched)
    assert sched.schedule() == SchedulingDecision.run(2, 2)
    _stop(sched, Syscall.exit(), 1)
    assert sched.schedule() == SchedulingDecision.run(3, 2)
    _stop(sched, Syscall.exit(), 0)
    assert sched.schedule() == SchedulingDecision.run(1, 2)


def test_fifo_within_a_priority_class():
    sched = priority_queue(2)
    for _ in range(3):
        sched.new_process(2)

    order = []
    for _ in range(4):
        order.append(sched.schedule().pid)
        _stop(sched)
    assert order == [1, 2, 3, 1]


def test_requeue_goes_to_back_of_own_class():
    sched = priority_queue(2)
    sched.new_process(3)
    sched.new_process(3)
    sched.new_process(1)

    assert sched.schedule().pid == 1
    _stop(sched)
    assert sched._ready.pids() == [2, 1, 3]


def test_forked_child_takes_given_priority():
    sched = priority_queue(3)
    sched.new_process(1)
    sched.schedule()

    assert _stop(sched, Syscall.fork(4), 1) == SyscallResult.new_pid(2)
    # parent keeps its leftover tick even though a higher class is ready
    assert sched.schedule() == SchedulingDecision.run(1, 1)
    _stop(sched)
    assert sched.schedule() == SchedulingDecision.run(2, 3)
    assert [p.priority for p in sched.processes()] == [1, 4]


def test_priority_defaults_to_zero():
    sched = priority_queue(2)
    sched.new_process()
    sched.new_process(-1)
    assert [p.priority for p in sched.processes()] == [0, -1]
    assert sched.schedule().pid == 1


def test_woken_process_rejoins_its_class():
    sched = priority_queue(2)
    sched.new_process(5)
    sched.new_process(1)

    assert sched.schedule().pid == 1
    _stop(sched, Syscall.sleep(1), 2)
    assert sched.schedule().pid == 2
    _stop(sched)
    assert sched.schedule() == SchedulingDecision.run(1, 2)


def test_every_dispatch_picks_highest_ready_priority():
    for seed in range(5):
        rng = random.Random(seed)
        sched = priority_queue(3, minimum_remaining_timeslice=1)
        for _ in range(400):
            if sched.running is not None:
                decision = sched.schedule()
                remaining = rng.randint(0, decision.timeslice)
                call = rng.choice([None, Syscall.fork(rng.randint(0, 4)), Syscall.exit(), Syscall.sleep(rng.randint(1, 4))])
                _stop(sched, call, remaining)
            elif rng.random() < 0.3:
                sched.new_process(rng.randint(0, 4))
            else:
                ready = [p.priority for p in sched.processes() if p.state is ProcessState.READY]
                decision = sched.schedule()
                if decision.kind is DecisionKind.RUN:
                    chosen = {p.pid: p.priority for p in sched.processes()}[decision.pid]
                    assert chosen == max(ready)

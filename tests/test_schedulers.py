import pytest

from schedsim.algorithms import (
    run_algorithm,
    schedule_fcfs,
    schedule_fcfs_clocked,
    schedule_priority,
    schedule_rr,
    schedule_sjf,
)
from schedsim.config import SimulationConfig
from schedsim.metrics import ScheduleRecorder
from schedsim.models import CS, IDLE, ConfigurationError, TaskDefinition


def _task(task_id, name, arrival, cost, **kwargs):
    return TaskDefinition(id=task_id, name=name, arrival_time=arrival, execution_cost=cost, **kwargs)


def _tasks():
    return [
        _task(1, "P1", 0, 5, priority=2),
        _task(2, "P2", 1, 3, priority=1),
        _task(3, "P3", 2, 8, priority=3),
    ]


def _spans(result):
    return [(iv.label, iv.start, iv.end) for iv in result.timeline]


def test_fcfs_order():
    res = schedule_fcfs(_tasks())
    assert [iv.label for iv in res.timeline] == ["P1", "P2", "P3"]
    assert res.task("P1").waiting_time == 0
    assert res.task("P2").waiting_time == 4
    assert res.task("P3").waiting_time == 6


def test_fcfs_idles_until_arrival_and_keeps_input_order_on_ties():
    tasks = [_task(1, "B", 3, 1), _task(2, "A", 3, 2)]
    res = schedule_fcfs(tasks)
    assert _spans(res) == [(IDLE, 0, 3), ("B", 3, 4), ("A", 4, 6)]
    assert res.metrics.total_clock_time == 6
    assert res.metrics.total_busy_time == 3


def test_sjf_order():
    res = schedule_sjf(_tasks())
    assert [iv.label for iv in res.timeline] == ["P1", "P2", "P3"]


def test_sjf_does_not_preempt_running_task():
    # B is shorter but arrives after A started; A still runs to completion.
    res = schedule_sjf([_task(1, "A", 0, 5), _task(2, "B", 1, 2)])
    assert _spans(res) == [("A", 0, 5), ("B", 5, 7)]
    assert res.task("A").completion_time == 5
    assert res.task("B").waiting_time == 4


def test_sjf_ties_go_to_first_in_input_order():
    res = schedule_sjf([_task(7, "X", 0, 2), _task(1, "Y", 0, 2)])
    assert [iv.label for iv in res.timeline] == ["X", "Y"]


def test_sjf_idles_one_tick_at_a_time():
    res = schedule_sjf([_task(1, "A", 2, 1)])
    assert _spans(res) == [(IDLE, 0, 2), ("A", 2, 3)]


def test_priority_static():
    res = schedule_priority(_tasks())
    # P1 is alone at 0; P2 has the best priority once P1 finishes.
    assert [iv.label for iv in res.timeline] == ["P1", "P2", "P3"]

    res = schedule_priority([_task(1, "low", 0, 2, priority=5), _task(2, "high", 0, 2, priority=1)])
    assert [iv.label for iv in res.timeline] == ["high", "low"]


def test_priority_missing_value_is_served_last():
    res = schedule_priority([_task(1, "none", 0, 1), _task(2, "some", 0, 1, priority=9)])
    assert [iv.label for iv in res.timeline] == ["some", "none"]


def test_fcfs_clocked_inserts_context_switch():
    res = schedule_fcfs_clocked([_task(1, "A", 0, 3), _task(2, "B", 1, 2)])
    assert _spans(res) == [("A", 0, 3), (CS, 3, 4), ("B", 4, 6)]
    assert res.task("A").completion_time == 3
    assert res.task("A").waiting_time == 0
    assert res.task("B").completion_time == 6
    assert res.task("B").waiting_time == 3
    assert res.metrics.context_switches == 1
    assert res.metrics.total_busy_time == 5
    assert res.metrics.total_clock_time == 6


def test_fcfs_clocked_flags_hard_deadline_violation():
    tasks = [_task(1, "A", 0, 3, hard_deadline=10), _task(2, "B", 0, 2, hard_deadline=4)]
    res = schedule_fcfs_clocked(tasks, SimulationConfig(cs_penalty=1))
    assert res.task("A").deadline_missed is False
    assert res.task("B").deadline_missed is True
    assert res.metrics.deadline_misses == 1


def test_rr_flags_deadline_mid_slice_and_counts_it_once():
    tasks = [_task(1, "A", 0, 5, hard_deadline=3), _task(2, "B", 0, 2)]
    res = schedule_rr(tasks, SimulationConfig(quantum=2, cs_penalty=0))
    # A passes its deadline at clock 5, inside its second slice, then is requeued.
    assert _spans(res) == [("A", 0, 2), ("B", 2, 4), ("A", 4, 6), ("A", 6, 7)]
    assert res.task("A").deadline_missed is True
    assert res.task("A").completion_time == 7
    assert res.task("B").deadline_missed is False
    assert res.metrics.deadline_misses == 1


def test_rr_quantum_2_without_switch_cost():
    tasks = [_task(1, "A", 0, 4), _task(2, "B", 0, 2)]
    res = schedule_rr(tasks, SimulationConfig(quantum=2, cs_penalty=0))
    assert _spans(res) == [("A", 0, 2), ("B", 2, 4), ("A", 4, 6)]
    assert res.task("A").completion_time == 6
    assert res.task("B").completion_time == 4
    assert res.metrics.context_switches == 2


def test_rr_new_arrivals_queue_ahead_of_preempted_task():
    tasks = [_task(1, "A", 0, 4), _task(2, "B", 1, 2)]
    res = schedule_rr(tasks, SimulationConfig(quantum=2, cs_penalty=1))
    assert _spans(res) == [("A", 0, 2), (CS, 2, 3), ("B", 3, 5), (CS, 5, 6), ("A", 6, 8)]
    assert res.task("A").start_time == 0
    assert res.task("B").start_time == 3


def test_rr_idles_before_first_arrival():
    res = schedule_rr([_task(1, "A", 3, 2)], SimulationConfig(quantum=4))
    assert _spans(res) == [(IDLE, 0, 3), ("A", 3, 5)]
    assert res.metrics.context_switches == 0


def test_rr_requires_positive_quantum():
    with pytest.raises(ConfigurationError):
        schedule_rr(_tasks(), SimulationConfig(quantum=0))
    with pytest.raises(ConfigurationError):
        schedule_rr(_tasks())


@pytest.mark.parametrize("name", ["fcfs", "fcfs-clocked", "sjf", "priority", "rr"])
def test_busy_time_matches_total_work(name):
    res = run_algorithm(name, _tasks(), SimulationConfig(quantum=2))
    busy = sum(iv.length for iv in res.timeline if iv.label not in (IDLE, CS))
    assert busy == sum(t.execution_cost for t in _tasks())
    assert res.metrics.total_busy_time == busy
    assert res.metrics.total_clock_time == res.timeline[-1].end
    for prev, nxt in zip(res.timeline, res.timeline[1:]):
        assert prev.end == nxt.start


@pytest.mark.parametrize("name", ["fcfs", "fcfs-clocked", "sjf", "priority"])
def test_non_preemptive_metrics_are_consistent(name):
    res = run_algorithm(name, _tasks())
    for t in res.tasks:
        assert t.waiting_time >= 0
        assert t.turnaround_time >= t.execution_cost


@pytest.mark.parametrize("name", ["fcfs", "fcfs-clocked", "sjf", "priority", "rr"])
def test_rerun_is_identical(name):
    config = SimulationConfig(quantum=3)
    first = run_algorithm(name, _tasks(), config)
    second = run_algorithm(name, _tasks(), config)
    assert first == second


@pytest.mark.parametrize("name", ["fcfs", "fcfs-clocked", "sjf", "priority", "rr"])
def test_empty_task_set_is_a_zero_length_run(name):
    res = run_algorithm(name, [], SimulationConfig(quantum=1))
    assert res.timeline == []
    assert res.tasks == []
    assert res.metrics.total_clock_time == 0
    assert res.metrics.cpu_utilization == 0.0


def test_engine_appends_to_caller_recorder():
    recorder = ScheduleRecorder()
    res = schedule_fcfs(_tasks(), recorder=recorder)
    assert res.timeline is recorder.timeline
    assert recorder.metrics.total_busy_time == 16


def test_unknown_algorithm_is_rejected():
    with pytest.raises(ConfigurationError):
        run_algorithm("lottery", _tasks())


def test_invalid_execution_cost_is_rejected():
    with pytest.raises(ConfigurationError):
        schedule_fcfs([_task(1, "A", 0, 0)])

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from .config import SimulationConfig, validate_tasks
from .metrics import ScheduleRecorder
from .models import ConfigurationError, JobInstance, ScheduleResult, TaskDefinition, TaskMetrics
from .periodic import schedule_edf, schedule_rate_monotonic

logger = logging.getLogger(__name__)


def _task_metrics(job: JobInstance) -> TaskMetrics:
    t = job.task
    metrics = TaskMetrics(
        task_id=t.id,
        name=t.name,
        arrival_time=t.arrival_time,
        execution_cost=t.execution_cost,
        start_time=job.start_time,
        completion_time=job.completion_time,
        deadline_missed=job.deadline_missed,
        priority=t.priority,
        hard_deadline=t.hard_deadline,
    )
    if job.completion_time is not None:
        metrics.turnaround_time = job.completion_time - t.arrival_time
        metrics.waiting_time = metrics.turnaround_time - t.execution_cost
    return metrics


def _prepare(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig],
    recorder: Optional[ScheduleRecorder],
    needs_quantum: bool = False,
):
    config = (config or SimulationConfig()).validate(needs_quantum=needs_quantum)
    validate_tasks(tasks)
    jobs = [JobInstance(task=t, remaining_time=t.execution_cost) for t in tasks]
    return config, jobs, recorder or ScheduleRecorder()


def _run_whole(job: JobInstance, clock: int, recorder: ScheduleRecorder) -> int:
    """
    Run a job to completion without tick-level checks. Returns the new clock.
    """
    job.start_time = clock
    end = clock + job.remaining_time
    job.remaining_time = 0
    job.completion_time = end
    recorder.record_run(job.task.name, clock, end)
    logger.debug("%s ran [%d, %d)", job.task.name, clock, end)
    return end


def _run_ticks(job: JobInstance, ticks: int, clock: int) -> int:
    """
    Advance ``job`` one tick at a time, checking its hard deadline after each tick.
    """
    deadline = job.task.hard_deadline
    for _ in range(ticks):
        clock += 1
        job.run_tick()
        if deadline is not None and clock > deadline and job.mark_deadline_missed():
            logger.info("Deadline violation: %s at clock=%d (deadline %d)", job.task.name, clock, deadline)
    return clock


def _complete(job: JobInstance, clock: int, recorder: ScheduleRecorder) -> None:
    job.completion_time = clock
    if job.deadline_missed:
        recorder.record_miss()
    logger.debug(
        "%s done: completion=%d missed=%s",
        job.task.name,
        clock,
        job.deadline_missed,
    )


def schedule_fcfs(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    First-Come First-Serve (non-preemptive).

    Tasks run in arrival order, ties kept in input order. The processor
    idles until the next arrival when nothing is waiting.
    """
    config, jobs, recorder = _prepare(tasks, config, recorder)

    time = 0
    for job in sorted(jobs, key=lambda j: j.task.arrival_time):
        if time < job.task.arrival_time:
            recorder.record_idle(time, job.task.arrival_time)
            time = job.task.arrival_time
        time = _run_whole(job, time, recorder)

    return recorder.build("FCFS", [_task_metrics(j) for j in jobs])


def _schedule_by_key(
    algorithm: str,
    key: Callable[[TaskDefinition], float],
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig],
    recorder: Optional[ScheduleRecorder],
) -> ScheduleResult:
    config, jobs, recorder = _prepare(tasks, config, recorder)

    time = 0
    completed = 0
    while completed < len(jobs):
        # First minimum in input order wins ties.
        chosen: Optional[JobInstance] = None
        for job in jobs:
            if job.is_complete or job.task.arrival_time > time:
                continue
            if chosen is None or key(job.task) < key(chosen.task):
                chosen = job

        if chosen is None:
            recorder.record_idle(time, time + 1)
            time += 1
            continue

        time = _run_whole(chosen, time, recorder)
        completed += 1

    return recorder.build(algorithm, [_task_metrics(j) for j in jobs])


def schedule_sjf(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Shortest Job First (non-preemptive).

    At each decision point, among tasks that have arrived and are not yet
    completed, choose the one with the smallest execution cost. A shorter
    task arriving while another runs waits for it to finish.
    """
    return _schedule_by_key("SJF (non-preemptive)", lambda t: t.execution_cost, tasks, config, recorder)


def schedule_priority(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Static Priority scheduling (non-preemptive).

    Lower numeric priority value means higher priority; tasks without a
    priority are served last.
    """

    def priority_key(t: TaskDefinition) -> float:
        return t.priority if t.priority is not None else float("inf")

    return _schedule_by_key("Priority (static)", priority_key, tasks, config, recorder)


def schedule_fcfs_clocked(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    FCFS executed tick by tick, with context-switch penalties and hard
    deadline checks.
    """
    config, jobs, recorder = _prepare(tasks, config, recorder)

    clock = 0
    prev_task_id: Optional[int] = None

    for job in sorted(jobs, key=lambda j: j.task.arrival_time):
        t = job.task
        if clock < t.arrival_time:
            recorder.record_idle(clock, t.arrival_time)
            clock = t.arrival_time

        if prev_task_id is not None and prev_task_id != t.id:
            clock = recorder.record_switch(clock, config.cs_penalty)

        job.start_time = clock
        exec_start = clock
        clock = _run_ticks(job, t.execution_cost, clock)
        recorder.record_run(t.name, exec_start, clock)

        _complete(job, clock, recorder)
        prev_task_id = t.id

    return recorder.build(
        "FCFS (clocked)",
        [_task_metrics(j) for j in jobs],
        cs_penalty=config.cs_penalty,
    )


def schedule_rr(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Round Robin scheduling with a fixed time quantum.

    Tasks that arrive during a slice are queued before the preempted task
    is put back at the tail.
    """
    config, jobs, recorder = _prepare(tasks, config, recorder, needs_quantum=True)
    quantum = config.quantum

    by_arrival = sorted(jobs, key=lambda j: j.task.arrival_time)
    n = len(by_arrival)
    ready: Deque[JobInstance] = deque()

    clock = 0
    next_arrival = 0
    completed = 0
    prev_task_id: Optional[int] = None

    def enqueue_new_arrivals() -> None:
        nonlocal next_arrival
        while next_arrival < n and by_arrival[next_arrival].task.arrival_time <= clock:
            job = by_arrival[next_arrival]
            ready.append(job)
            logger.debug("%s arrived at tick %d", job.task.name, job.task.arrival_time)
            next_arrival += 1

    enqueue_new_arrivals()

    while completed < n:
        if not ready:
            idle_end = by_arrival[next_arrival].task.arrival_time
            recorder.record_idle(clock, idle_end)
            clock = idle_end
            enqueue_new_arrivals()
            continue

        job = ready.popleft()
        t = job.task

        if prev_task_id is not None and prev_task_id != t.id:
            clock = recorder.record_switch(clock, config.cs_penalty)

        if job.start_time is None:
            job.start_time = clock

        slice_ = min(quantum, job.remaining_time)
        slice_start = clock
        clock = _run_ticks(job, slice_, clock)
        recorder.record_run(t.name, slice_start, clock)
        prev_task_id = t.id

        enqueue_new_arrivals()

        if job.is_complete:
            _complete(job, clock, recorder)
            completed += 1
        else:
            ready.append(job)
            logger.debug("%s preempted, remaining=%d", t.name, job.remaining_time)

    return recorder.build(
        "Round Robin",
        [_task_metrics(j) for j in jobs],
        quantum=quantum,
        cs_penalty=config.cs_penalty,
    )


ALGORITHMS = {
    "fcfs": schedule_fcfs,
    "fcfs-clocked": schedule_fcfs_clocked,
    "sjf": schedule_sjf,
    "priority": schedule_priority,
    "rr": schedule_rr,
    "rm": schedule_rate_monotonic,
    "edf": schedule_edf,
}

PERIODIC_ALGORITHMS = {"rm", "edf"}


def run_algorithm(
    name: str,
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Dispatch to the requested algorithm.
    """
    name = name.lower()
    if name not in ALGORITHMS:
        raise ConfigurationError(f"Unknown algorithm '{name}' (choose from {', '.join(ALGORITHMS)})")

    func = ALGORITHMS[name]
    return func(tasks, config=config, recorder=recorder)

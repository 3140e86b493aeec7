"""
Periodic real-time policies driven one tick at a time over a fixed horizon.

Both engines release a fresh job for every task whose period divides the
current tick. When two jobs tie on the policy's priority metric, the job
that ran in the previous tick keeps the processor; otherwise the earlier
release wins, then the lower task id.
"""

from __future__ import annotations

import heapq
import logging
from typing import Dict, List, Optional, Tuple

from .config import SimulationConfig, hyperperiod, validate_tasks
from .metrics import ScheduleRecorder
from .models import JobInstance, JobRecord, ScheduleResult, TaskDefinition, TaskMetrics

logger = logging.getLogger(__name__)

QueueEntry = Tuple[int, int, int, int, JobInstance]


def _prepare(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig],
    recorder: Optional[ScheduleRecorder],
):
    config = (config or SimulationConfig()).validate()
    validate_tasks(tasks, periodic=True)
    if not tasks:
        horizon = 0
    elif config.horizon is not None:
        horizon = config.horizon
    else:
        horizon = hyperperiod(tasks)
    return horizon, recorder or ScheduleRecorder()


def _released(tasks: List[TaskDefinition], tick: int) -> List[TaskDefinition]:
    return [t for t in tasks if tick >= t.arrival_time and tick % t.period == 0]


def _flag_miss(job: JobInstance, tick: int, recorder: ScheduleRecorder) -> None:
    if job.mark_deadline_missed():
        recorder.record_miss()
        logger.info(
            "Deadline missed: %s#%d at tick %d (deadline %d, remaining %d)",
            job.task.name,
            job.job_number,
            tick,
            job.absolute_deadline,
            job.remaining_time,
        )


def _run_one_tick(job: JobInstance, tick: int, recorder: ScheduleRecorder) -> None:
    if job.start_time is None:
        job.start_time = tick
    job.run_tick()
    recorder.record_tick(job.task.name, tick)
    if job.is_complete:
        job.completion_time = tick + 1
        logger.debug("%s#%d completed at %d", job.task.name, job.job_number, tick + 1)


def _job_records(jobs: List[JobInstance]) -> List[JobRecord]:
    return [
        JobRecord(
            task_id=j.task.id,
            name=j.task.name,
            job_number=j.job_number,
            release_time=j.release_time,
            absolute_deadline=j.absolute_deadline,
            completion_time=j.completion_time,
            deadline_missed=j.deadline_missed,
        )
        for j in jobs
    ]


def _task_summaries(tasks: List[TaskDefinition], jobs: List[JobInstance]) -> List[TaskMetrics]:
    summaries = []
    for t in tasks:
        own = [j for j in jobs if j.task.id == t.id]
        summaries.append(
            TaskMetrics(
                task_id=t.id,
                name=t.name,
                arrival_time=t.arrival_time,
                execution_cost=t.execution_cost,
                start_time=min((j.start_time for j in own if j.start_time is not None), default=None),
                deadline_missed=any(j.deadline_missed for j in own),
                priority=t.priority,
                hard_deadline=t.hard_deadline,
            )
        )
    return summaries


def schedule_rate_monotonic(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Rate-Monotonic: the released job with the shortest period runs each tick.

    Each task holds at most one live job. A new release resets the task's
    work; a job still unfinished at that point is abandoned and counted as
    missed. ``result.execution_order`` holds one entry per tick, ``None``
    for idle.
    """
    horizon, recorder = _prepare(tasks, config, recorder)

    current: Dict[int, JobInstance] = {}
    all_jobs: List[JobInstance] = []
    running: Optional[JobInstance] = None

    for tick in range(horizon):
        for job in current.values():
            if not job.is_complete and tick >= job.absolute_deadline:
                _flag_miss(job, tick, recorder)

        for t in _released(tasks, tick):
            old = current.get(t.id)
            if old is not None and not old.is_complete:
                _flag_miss(old, tick, recorder)
            job = JobInstance.release(t, tick)
            current[t.id] = job
            all_jobs.append(job)
            logger.debug("%s#%d released at %d (deadline %d)", t.name, job.job_number, tick, job.absolute_deadline)

        ready = [j for j in current.values() if j.remaining_time > 0]
        if not ready:
            recorder.record_tick(None, tick)
            running = None
            continue

        job = min(ready, key=lambda j: (j.task.period, j is not running, j.release_time, j.task.id))
        _run_one_tick(job, tick, recorder)
        running = job

    for job in current.values():
        if not job.is_complete and horizon >= job.absolute_deadline:
            _flag_miss(job, horizon, recorder)

    return recorder.build(
        "Rate-Monotonic",
        _task_summaries(tasks, all_jobs),
        jobs=_job_records(all_jobs),
        horizon=horizon,
    )


def _edf_entry(job: JobInstance) -> QueueEntry:
    return (job.absolute_deadline, job.release_time, job.task.id, job.job_number, job)


def _sweep_misses(queue: List[QueueEntry], tick: int, recorder: ScheduleRecorder) -> List[QueueEntry]:
    """
    Drop every queued job that reached its deadline with work left.
    """
    kept = []
    for entry in queue:
        job = entry[-1]
        if tick >= job.absolute_deadline and job.remaining_time > 0:
            _flag_miss(job, tick, recorder)
        else:
            kept.append(entry)
    if len(kept) != len(queue):
        heapq.heapify(kept)
        return kept
    return queue


def _pop_next(queue: List[QueueEntry], running: Optional[JobInstance]) -> JobInstance:
    head = queue[0][-1]
    if running is not None and running is not head and running.absolute_deadline == head.absolute_deadline:
        for i, entry in enumerate(queue):
            if entry[-1] is running:
                queue.pop(i)
                heapq.heapify(queue)
                return running
    return heapq.heappop(queue)[-1]


def schedule_edf(
    tasks: List[TaskDefinition],
    config: Optional[SimulationConfig] = None,
    recorder: Optional[ScheduleRecorder] = None,
) -> ScheduleResult:
    """
    Earliest-Deadline-First over a fixed horizon (default: the hyperperiod).

    Every tick, after releases, jobs at or past their absolute deadline with
    work left are counted as missed and abandoned. The job with the nearest
    deadline then runs for one tick.
    Jobs still unfinished at the horizon are checked once more at
    ``tick == horizon``, so misses landing exactly on the horizon count too.
    """
    horizon, recorder = _prepare(tasks, config, recorder)

    queue: List[QueueEntry] = []
    all_jobs: List[JobInstance] = []
    running: Optional[JobInstance] = None

    for tick in range(horizon):
        for t in _released(tasks, tick):
            job = JobInstance.release(t, tick)
            heapq.heappush(queue, _edf_entry(job))
            all_jobs.append(job)
            logger.debug("%s#%d released at %d (deadline %d)", t.name, job.job_number, tick, job.absolute_deadline)

        queue = _sweep_misses(queue, tick, recorder)

        if not queue:
            recorder.record_tick(None, tick)
            running = None
            continue

        job = _pop_next(queue, running)
        _run_one_tick(job, tick, recorder)
        if job.remaining_time > 0:
            heapq.heappush(queue, _edf_entry(job))
        running = job

    queue = _sweep_misses(queue, horizon, recorder)

    return recorder.build(
        "EDF",
        _task_summaries(tasks, all_jobs),
        jobs=_job_records(all_jobs),
        horizon=horizon,
    )

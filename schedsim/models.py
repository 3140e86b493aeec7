from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

IDLE = "IDLE"
CS = "CS"


class ConfigurationError(ValueError):
    """
    Raised before a simulation starts when tasks or settings cannot be run.
    """


@dataclass(frozen=True)
class TaskDefinition:
    """
    Immutable description of a task.

    ``priority`` follows the usual convention: lower value = more urgent.
    ``hard_deadline`` is an absolute tick; ``relative_deadline`` is counted
    from each job's release and only matters to periodic policies, which
    fall back to ``period`` when it is not given.
    """

    id: int
    name: str
    arrival_time: int
    execution_cost: int
    priority: Optional[int] = None
    period: Optional[int] = None
    relative_deadline: Optional[int] = None
    hard_deadline: Optional[int] = None

    @property
    def effective_deadline(self) -> Optional[int]:
        if self.relative_deadline is not None:
            return self.relative_deadline
        return self.period


@dataclass
class JobInstance:
    task: TaskDefinition
    remaining_time: int
    release_time: int = 0
    absolute_deadline: Optional[int] = None
    job_number: int = 0
    start_time: Optional[int] = None
    completion_time: Optional[int] = None
    deadline_missed: bool = False

    @classmethod
    def release(cls, task: TaskDefinition, tick: int) -> "JobInstance":
        """
        Fresh job of a periodic task released at ``tick``.
        """
        return cls(
            task=task,
            remaining_time=task.execution_cost,
            release_time=tick,
            absolute_deadline=tick + task.effective_deadline,
            job_number=tick // task.period,
        )

    @property
    def is_complete(self) -> bool:
        return self.remaining_time == 0

    def run_tick(self) -> None:
        if self.remaining_time <= 0:
            raise RuntimeError(f"Job {self.task.name}#{self.job_number} has no work left")
        self.remaining_time -= 1

    def mark_deadline_missed(self) -> bool:
        """
        Set the sticky miss flag. Returns True only the first time.
        """
        if self.deadline_missed:
            return False
        self.deadline_missed = True
        return True


@dataclass
class ExecutionInterval:
    """
    One contiguous Gantt entry: a task name, ``IDLE`` or ``CS``, over [start, end).
    """

    label: str
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class TaskMetrics:
    task_id: int
    name: str
    arrival_time: int
    execution_cost: int
    start_time: Optional[int] = None
    completion_time: Optional[int] = None
    turnaround_time: Optional[int] = None
    waiting_time: Optional[int] = None
    deadline_missed: bool = False
    priority: Optional[int] = None
    hard_deadline: Optional[int] = None


@dataclass
class JobRecord:
    task_id: int
    name: str
    job_number: int
    release_time: int
    absolute_deadline: int
    completion_time: Optional[int] = None
    deadline_missed: bool = False

    @property
    def response_time(self) -> Optional[int]:
        if self.completion_time is None:
            return None
        return self.completion_time - self.release_time


@dataclass
class RunMetrics:
    total_clock_time: int = 0
    total_busy_time: int = 0
    context_switches: int = 0
    deadline_misses: int = 0

    @property
    def cpu_utilization(self) -> float:
        """
        Busy percentage of the simulated clock (0 for a zero-length run).
        """
        if self.total_clock_time <= 0:
            return 0.0
        return 100.0 * self.total_busy_time / self.total_clock_time


@dataclass
class ScheduleResult:
    algorithm: str
    quantum: Optional[int] = None
    cs_penalty: Optional[int] = None
    horizon: Optional[int] = None
    tasks: List[TaskMetrics] = field(default_factory=list)
    jobs: List[JobRecord] = field(default_factory=list)
    timeline: List[ExecutionInterval] = field(default_factory=list)
    execution_order: Optional[List[Optional[str]]] = None
    metrics: RunMetrics = field(default_factory=RunMetrics)

    def task(self, name: str) -> TaskMetrics:
        for t in self.tasks:
            if t.name == name:
                return t
        raise KeyError(name)

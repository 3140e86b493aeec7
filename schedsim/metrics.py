from __future__ import annotations

from typing import List, Optional

from .models import (
    CS,
    IDLE,
    ExecutionInterval,
    JobRecord,
    RunMetrics,
    ScheduleResult,
    TaskMetrics,
)


class ScheduleRecorder:
    """
    Append-only timeline and counters filled in by a scheduling engine.

    The caller may hand a recorder to an engine and keep it afterwards; the
    engine only ever appends to it.
    """

    def __init__(self) -> None:
        self.timeline: List[ExecutionInterval] = []
        self.metrics = RunMetrics()
        self.execution_order: Optional[List[Optional[str]]] = None
        self._last_task: Optional[str] = None

    def record_run(self, label: str, start: int, end: int) -> None:
        if end <= start:
            return
        self.timeline.append(ExecutionInterval(label=label, start=start, end=end))
        self.metrics.total_busy_time += end - start
        self.metrics.total_clock_time = end
        self._last_task = label

    def record_idle(self, start: int, end: int) -> None:
        if end <= start:
            return
        last = self.timeline[-1] if self.timeline else None
        if last is not None and last.label == IDLE and last.end == start:
            last.end = end
        else:
            self.timeline.append(ExecutionInterval(label=IDLE, start=start, end=end))
        self.metrics.total_clock_time = end

    def record_switch(self, start: int, penalty: int) -> int:
        """
        Count one task-to-task switch and emit its CS interval. Returns the new clock.
        """
        self.metrics.context_switches += 1
        if penalty <= 0:
            return start
        end = start + penalty
        self.timeline.append(ExecutionInterval(label=CS, start=start, end=end))
        self.metrics.total_clock_time = end
        return end

    def record_tick(self, label: Optional[str], tick: int) -> None:
        """
        One tick of a tick-driven engine: ``label`` ran, or ``None`` for idle.

        Switches are counted between different tasks only; idle ticks do not
        reset the last task.
        """
        if self.execution_order is None:
            self.execution_order = []
        self.execution_order.append(label)

        if label is None:
            self.record_idle(tick, tick + 1)
            return

        if self._last_task is not None and self._last_task != label:
            self.metrics.context_switches += 1

        last = self.timeline[-1] if self.timeline else None
        if last is not None and last.label == label and last.end == tick:
            last.end = tick + 1
            self.metrics.total_busy_time += 1
            self.metrics.total_clock_time = tick + 1
            self._last_task = label
        else:
            self.record_run(label, tick, tick + 1)

    def record_miss(self) -> None:
        self.metrics.deadline_misses += 1

    def advance_clock(self, clock: int) -> None:
        if clock > self.metrics.total_clock_time:
            self.metrics.total_clock_time = clock

    def build(
        self,
        algorithm: str,
        tasks: List[TaskMetrics],
        jobs: Optional[List[JobRecord]] = None,
        quantum: Optional[int] = None,
        cs_penalty: Optional[int] = None,
        horizon: Optional[int] = None,
    ) -> ScheduleResult:
        return ScheduleResult(
            algorithm=algorithm,
            quantum=quantum,
            cs_penalty=cs_penalty,
            horizon=horizon,
            tasks=tasks,
            jobs=list(jobs or []),
            timeline=self.timeline,
            execution_order=self.execution_order,
            metrics=self.metrics,
        )


def summarize_task_metrics(tasks: List[TaskMetrics]) -> dict:
    """
    Return averages of the key per-task metrics for quick comparison.
    """
    finished = [t for t in tasks if t.completion_time is not None]
    if not finished:
        return {"avg_waiting": 0.0, "avg_turnaround": 0.0}

    n = len(finished)
    return {
        "avg_waiting": sum(t.waiting_time for t in finished) / n,
        "avg_turnaround": sum(t.turnaround_time for t in finished) / n,
    }

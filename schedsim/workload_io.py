from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, List, Optional

from .models import TaskDefinition


def load_workload(path: str | Path) -> List[TaskDefinition]:
    """
    Load a task set from a JSON or CSV file into a list of TaskDefinition objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def _load_json(path: Path) -> List[TaskDefinition]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, Iterable) or isinstance(raw, (str, dict)):
        raise ValueError("JSON workload must be a list of task objects")

    return _tasks_from_rows(raw)


def _load_csv(path: Path) -> List[TaskDefinition]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return _tasks_from_rows(reader)


def _optional_int(mapping, key: str) -> Optional[int]:
    value = mapping.get(key)
    if value in (None, ""):
        return None
    return int(value)


def _row_id(mapping) -> Optional[int]:
    try:
        return _optional_int(mapping, "id")
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid task entry: {mapping!r}") from exc


def _tasks_from_rows(rows) -> List[TaskDefinition]:
    """
    Build tasks, numbering rows without an id from 1 while skipping ids
    other rows already claim.
    """
    rows = list(rows)
    used = {task_id for task_id in map(_row_id, rows) if task_id is not None}

    next_free = 1
    tasks: List[TaskDefinition] = []
    for row in rows:
        task_id = _row_id(row)
        if task_id is None:
            while next_free in used:
                next_free += 1
            task_id = next_free
            used.add(task_id)
        tasks.append(_task_from_mapping(row, task_id))
    return tasks


def _task_from_mapping(mapping, task_id: int) -> TaskDefinition:
    try:
        name = str(mapping["name"])
        # "burst_time" is accepted for older workload files.
        cost = mapping.get("execution_cost", mapping.get("burst_time"))
        if cost in (None, ""):
            raise KeyError("execution_cost")
        return TaskDefinition(
            id=task_id,
            name=name,
            arrival_time=_optional_int(mapping, "arrival_time") or 0,
            execution_cost=int(cost),
            priority=_optional_int(mapping, "priority"),
            period=_optional_int(mapping, "period"),
            relative_deadline=_optional_int(mapping, "relative_deadline"),
            hard_deadline=_optional_int(mapping, "hard_deadline"),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid task entry: {mapping!r}") from exc

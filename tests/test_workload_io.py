from pathlib import Path

import pytest

from schedsim.models import TaskDefinition
from schedsim.workload_io import load_workload


def test_load_json(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"id":1,"name":"A","arrival_time":0,"execution_cost":3,"priority":1},'
                 '{"name":"B","arrival_time":1,"burst_time":2,"period":4}]')
    tasks = load_workload(p)
    assert isinstance(tasks[0], TaskDefinition)
    assert tasks[1].priority is None
    assert tasks[1].arrival_time == 1
    assert tasks[1].execution_cost == 2
    assert tasks[1].period == 4
    # Rows without an id take the lowest id no other row uses.
    assert tasks[1].id == 2


def test_load_csv(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text(
        "name,arrival_time,execution_cost,priority,hard_deadline,relative_deadline\n"
        "A,0,3,1,5,\n"
        "B,,2,,,3\n"
    )
    tasks = load_workload(p)
    assert tasks[0].name == "A"
    assert tasks[0].hard_deadline == 5
    assert tasks[1].priority is None
    assert tasks[1].arrival_time == 0
    assert tasks[1].relative_deadline == 3


def test_invalid_entry_is_reported(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"name":"A","arrival_time":0}]')
    with pytest.raises(ValueError, match="Invalid task entry"):
        load_workload(p)


def test_unsupported_format(tmp_path: Path):
    p = tmp_path / "w.yaml"
    p.write_text("- name: A\n")
    with pytest.raises(ValueError, match="Unsupported workload format"):
        load_workload(p)


def test_default_ids_skip_ids_claimed_by_other_rows(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text("id,name,execution_cost\n,A,1\n1,B,2\n,C,3\n")
    tasks = load_workload(p)
    assert [t.id for t in tasks] == [2, 1, 3]

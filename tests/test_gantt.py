from schedsim.gantt import build_rich_gantt, render_gantt
from schedsim.models import CS, IDLE, ExecutionInterval


def test_render_gantt_marks_idle_and_switches():
    text = render_gantt(
        [
            ExecutionInterval(IDLE, 0, 2),
            ExecutionInterval("A", 2, 5),
            ExecutionInterval(CS, 5, 6),
            ExecutionInterval("B", 6, 8),
        ]
    )
    lines = text.splitlines()
    assert lines[0] == "Gantt Chart:"
    assert lines[1] == "|..===x==|"
    assert lines[2].startswith("IDA  CB")


def test_empty_timeline():
    assert render_gantt([]) == "(no execution)"
    _, marks = build_rich_gantt([])
    assert marks == ""


def test_rich_gantt_time_marks():
    _, marks = build_rich_gantt([ExecutionInterval("A", 0, 3), ExecutionInterval("B", 3, 4)])
    assert marks == "0  3  4"

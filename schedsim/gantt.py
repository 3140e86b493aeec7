from __future__ import annotations

from typing import Dict, List

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import CS, IDLE, ExecutionInterval

SENTINEL_STYLES = {IDLE: "on grey23", CS: "on white"}


def render_gantt(intervals: List[ExecutionInterval]) -> str:
    """
    Plain-text Gantt chart: ``=`` for task execution, ``.`` for idle, ``x`` for
    context switches.
    """
    if not intervals:
        return "(no execution)"

    line = "|"
    labels = ""
    time_marks = str(intervals[0].start)

    for iv in intervals:
        width = max(1, iv.length)
        fill = "." if iv.label == IDLE else "x" if iv.label == CS else "="
        line += fill * width
        labels += iv.label[:width].ljust(width)
        time_marks += f"{iv.end:>3}"

    line += "|"

    return "\n".join(
        [
            "Gantt Chart:",
            line,
            labels,
            time_marks,
        ]
    )


def build_rich_gantt(intervals: List[ExecutionInterval]) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and a string with time marks.
    """
    if not intervals:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    colors = ["red", "green", "yellow", "blue", "magenta", "cyan"]
    label_to_color: Dict[str, str] = {}

    def style_for(label: str) -> str:
        if label in SENTINEL_STYLES:
            return SENTINEL_STYLES[label]
        if label not in label_to_color:
            idx = len(label_to_color) % len(colors)
            label_to_color[label] = colors[idx]
        return f"on {label_to_color[label]}"

    timeline = Text()
    labels = Text()
    time_marks = str(intervals[0].start)

    for iv in intervals:
        width = max(1, iv.length)
        timeline.append(" " * width, style=style_for(iv.label))
        labels.append(iv.label[:width].ljust(width), style="dim" if iv.label in SENTINEL_STYLES else "bold")
        time_marks += f"{iv.end:>3}"

    table = Table.grid(padding=(0, 0))
    table.add_row(timeline)
    table.add_row(labels)

    panel = Panel.fit(table, title="Gantt Chart")
    return panel, time_marks

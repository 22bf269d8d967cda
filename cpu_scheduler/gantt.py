from __future__ import annotations

from typing import Dict, List, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import TimelineEntry


def _label(entry: TimelineEntry) -> str:
    return "CS" if entry.is_context_switch else f"P{entry.pid}"


def _cells(length: float) -> int:
    return max(1, round(length))


def _mark(value: float) -> str:
    return f"{value:g}"


def render_gantt(entries: Sequence[TimelineEntry]) -> str:
    """
    Plain-text Gantt chart. Idle time is dotted, switch blocks are '#'.
    """
    if not entries:
        return "(no execution)"

    entries = sorted(entries, key=lambda e: (e.start_time, e.end_time))

    line = "|"
    labels = ""
    time_marks = "0"
    last_time = 0.0

    for entry in entries:
        if entry.duration <= 0:
            continue
        idle_gap = entry.start_time - last_time
        if idle_gap > 0:
            line += "." * _cells(idle_gap)
            labels += " " * _cells(idle_gap)
            time_marks += f"{_mark(entry.start_time):>4}"

        width = _cells(entry.duration)
        line += ("#" if entry.is_context_switch else "=") * width
        labels += _label(entry)[:width].ljust(width)
        last_time = entry.end_time
        time_marks += f"{_mark(last_time):>4}"

    line += "|"

    return "\n".join(["Gantt Chart:", line, labels, time_marks])


def build_rich_gantt(entries: Sequence[TimelineEntry]) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and a string with time marks.
    """
    visible = [e for e in entries if e.duration > 0]
    if not visible:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    visible.sort(key=lambda e: (e.start_time, e.end_time))

    colors = ["red", "green", "yellow", "blue", "magenta", "cyan"]
    pid_to_color: Dict[int, str] = {}

    def pid_color(pid: int) -> str:
        if pid not in pid_to_color:
            idx = len(pid_to_color) % len(colors)
            pid_to_color[pid] = colors[idx]
        return pid_to_color[pid]

    timeline = Text()
    labels = Text()
    marks: List[str] = ["0"]
    last_time = 0.0

    for entry in visible:
        idle_gap = entry.start_time - last_time
        if idle_gap > 0:
            timeline.append(" " * _cells(idle_gap))
            labels.append(" " * _cells(idle_gap))
            marks.append(f"{_mark(entry.start_time):>3}")

        width = _cells(entry.duration)
        if entry.is_context_switch:
            timeline.append("/" * width, style="dim")
        else:
            timeline.append(" " * width, style=f"on {pid_color(entry.pid)}")
        labels.append(_label(entry)[:width].ljust(width), style="bold")

        last_time = entry.end_time
        marks.append(f"{_mark(last_time):>3}")

    table = Table.grid(padding=(0, 0))
    table.add_row(timeline)
    table.add_row(labels)

    panel = Panel.fit(table, title="Gantt Chart")
    return panel, "".join(marks)

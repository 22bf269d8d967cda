from __future__ import annotations

from typing import List, Sequence

from .models import CONTEXT_SWITCH_PID, TimelineEntry


def inject_context_switch_cost(timeline: List[TimelineEntry], cost: float) -> List[TimelineEntry]:
    """
    Turn zero-length context-switch markers into blocks of length `cost`.

    Every entry after a marker is shifted right by the accumulated cost while
    keeping its own duration, so per-process busy time is unchanged and only
    switch/idle time grows. A non-positive cost returns the input list as is.
    """
    if cost <= 0:
        return timeline

    result: List[TimelineEntry] = []
    shift = 0.0

    for entry in timeline:
        start = entry.start_time + shift
        if entry.is_context_switch:
            result.append(
                TimelineEntry(pid=CONTEXT_SWITCH_PID, start_time=start, end_time=start + cost, is_context_switch=True)
            )
            shift += cost
        else:
            result.append(TimelineEntry(pid=entry.pid, start_time=start, end_time=start + entry.duration))

    return result


def strip_context_switches(timeline: Sequence[TimelineEntry]) -> List[TimelineEntry]:
    return [entry for entry in timeline if not entry.is_context_switch]


def busy_time(timeline: Sequence[TimelineEntry]) -> float:
    """Total time spent running real processes."""
    return sum(entry.duration for entry in timeline if not entry.is_context_switch)


def count_context_switches(timeline: Sequence[TimelineEntry]) -> int:
    return sum(1 for entry in timeline if entry.is_context_switch)

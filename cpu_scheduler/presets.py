"""
Built-in demonstration workloads and a random workload generator.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .models import ProcessDescriptor


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    build: Callable[[], List[ProcessDescriptor]]


def _uniform(*rows: Tuple[int, float, float, int]) -> List[ProcessDescriptor]:
    return [ProcessDescriptor(pid=pid, arrival_time=a, burst_time=b, priority=prio) for pid, a, b, prio in rows]


PRESETS: List[Preset] = [
    Preset(
        "Convoy effect",
        "One long job first, then short ones",
        lambda: _uniform((1, 0, 8, 1), (2, 1, 1, 1), (3, 2, 1, 1), (4, 3, 1, 1)),
    ),
    Preset(
        "RR heavy",
        "Similar bursts, many context switches",
        lambda: _uniform((1, 0, 4, 1), (2, 0, 4, 1), (3, 0, 4, 1), (4, 0, 4, 1)),
    ),
    Preset(
        "SJF friendly",
        "Short jobs arrive first",
        lambda: _uniform((1, 0, 1, 1), (2, 1, 2, 1), (3, 2, 4, 1), (4, 3, 8, 1)),
    ),
    Preset(
        "Priority demo",
        "Different priorities",
        lambda: _uniform((1, 0, 4, 2), (2, 0, 2, 1), (3, 0, 3, 3), (4, 1, 1, 1)),
    ),
    Preset(
        "I/O bound",
        "Alternating CPU and I/O phases (use fcfs_io)",
        lambda: [
            ProcessDescriptor(pid=1, arrival_time=0, burst_time=5, bursts=(2, 3, 3)),
            ProcessDescriptor(pid=2, arrival_time=0, burst_time=3, bursts=(1, 2, 1, 2, 1)),
            ProcessDescriptor(pid=3, arrival_time=1, burst_time=4, bursts=(4,)),
        ],
    ),
    Preset(
        "Proportional share",
        "Tickets and strides in a 3:2:1 ratio (use lottery or stride)",
        lambda: [
            ProcessDescriptor(pid=1, arrival_time=0, burst_time=6, tickets=3, stride=200),
            ProcessDescriptor(pid=2, arrival_time=0, burst_time=6, tickets=2, stride=300),
            ProcessDescriptor(pid=3, arrival_time=0, burst_time=6, tickets=1, stride=600),
        ],
    ),
]


def find_preset(name: str) -> Preset:
    key = name.strip().lower()
    for preset in PRESETS:
        if preset.name.lower() == key or preset.name.lower().replace(" ", "-") == key:
            return preset
    raise ValueError(f"Unknown preset '{name}'")


def random_workload(
    count: int,
    arrival_range: Tuple[int, int] = (0, 10),
    burst_range: Tuple[int, int] = (1, 10),
    priority_range: Optional[Tuple[int, int]] = None,
    rng: Optional[random.Random] = None,
) -> List[ProcessDescriptor]:
    """
    Generate `count` processes (clamped to 1..50) with integer times drawn
    uniformly from the given inclusive ranges. Bursts are at least 1.
    """
    rng = rng or random.Random()
    n = max(1, min(50, count))
    a_lo, a_hi = min(arrival_range), max(arrival_range)
    b_lo, b_hi = min(burst_range), max(burst_range)

    processes: List[ProcessDescriptor] = []
    for pid in range(1, n + 1):
        priority = None
        if priority_range is not None:
            priority = rng.randint(min(priority_range), max(priority_range))
        processes.append(
            ProcessDescriptor(
                pid=pid,
                arrival_time=rng.randint(max(0, a_lo), max(0, a_hi)),
                burst_time=max(1, rng.randint(b_lo, b_hi)),
                priority=priority,
            )
        )
    return processes

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

# Pid carried by context-switch markers and injected switch blocks.
CONTEXT_SWITCH_PID = -1


class Policy(str, Enum):
    FCFS = "fcfs"
    SRTF = "srtf"
    SJF = "sjf"
    LJF = "ljf"
    LRTF = "lrtf"
    ROUND_ROBIN = "round_robin"
    PRIORITY = "priority"
    PRIORITY_PREEMPTIVE = "priority_preemptive"
    HRRN = "hrrn"
    LOTTERY = "lottery"
    STRIDE = "stride"
    FCFS_IO = "fcfs_io"
    MLQ = "mlq"
    MLFQ = "mlfq"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, name) -> "Policy":
        """
        Case-insensitive lookup. Unknown or empty names fall back to FCFS.
        """
        if isinstance(name, Policy):
            return name
        key = str(name or "").strip().lower()
        key = _POLICY_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.FCFS


_POLICY_ALIASES = {
    "rr": "round_robin",
    "sjf_nonpreemptive": "sjf",
}


@dataclass(frozen=True)
class ProcessDescriptor:
    pid: int
    arrival_time: float
    burst_time: float
    priority: Optional[int] = None
    tickets: int = 1
    stride: Optional[int] = None
    # Alternating CPU / I/O phase lengths, CPU first.
    bursts: Optional[Tuple[float, ...]] = None

    @property
    def total_burst(self) -> float:
        """Total CPU demand: the even-indexed phases when bursts are set."""
        if not self.bursts:
            return self.burst_time
        return sum(self.bursts[0::2])

    def segments(self) -> List[Tuple[float, float]]:
        """Return (cpu, io) pairs. Without bursts this is one phase with no I/O."""
        if not self.bursts:
            return [(self.burst_time, 0)]
        pairs: List[Tuple[float, float]] = []
        for i in range(0, len(self.bursts), 2):
            io = self.bursts[i + 1] if i + 1 < len(self.bursts) else 0
            pairs.append((self.bursts[i], io))
        return pairs


@dataclass(frozen=True)
class TimelineEntry:
    """
    One contiguous CPU occupancy record in the Gantt sequence.
    """

    pid: int
    start_time: float
    end_time: float
    is_context_switch: bool = False

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass
class RuntimeState:
    """
    Mutable per-simulation scheduling state for one process.

    Built fresh for every call so the caller's descriptors are never touched.
    """

    descriptor: ProcessDescriptor
    remaining: float
    level: int = 0
    pass_value: float = 0
    tickets: int = 1
    stride: int = 1000
    segment_index: int = 0
    blocked_until: float = 0
    ready_since: float = 0

    @property
    def pid(self) -> int:
        return self.descriptor.pid

    @property
    def arrival_time(self) -> float:
        return self.descriptor.arrival_time

    @property
    def priority(self) -> int:
        return self.descriptor.priority if self.descriptor.priority is not None else 0

    @property
    def finished(self) -> bool:
        return self.remaining <= 0


@dataclass(frozen=True)
class ReadyProcess:
    pid: int
    remaining_burst: float
    arrival_time: float
    burst_time: float
    priority: Optional[int] = None


@dataclass(frozen=True)
class DecisionState:
    """
    Snapshot handed to a custom decision function at each decision point.
    """

    time: float
    ready: Tuple[ReadyProcess, ...]


@dataclass
class ProcessResult:
    pid: int
    arrival_time: float
    burst_time: float
    completion_time: float
    turnaround_time: float
    waiting_time: float
    response_time: float
    priority: Optional[int] = None


@dataclass
class Metrics:
    avg_waiting_time: float
    avg_turnaround_time: float
    avg_response_time: float
    context_switches: int
    throughput: float
    total_time: float = 0
    cpu_utilization: float = 0.0


@dataclass
class ScheduleResult:
    policy: Policy
    quantum: Optional[float]
    timeline: List[TimelineEntry] = field(default_factory=list)
    processes: List[ProcessResult] = field(default_factory=list)
    metrics: Optional[Metrics] = None


@dataclass
class SimulationResult:
    requested_policy: Policy
    used_policy: Policy
    switch_reason: Optional[str]
    timeline: List[TimelineEntry]
    metrics: Metrics
    processes: List[ProcessResult]
    context_switches: int
    quantum: Optional[float] = None
    context_switch_cost: float = 0


@dataclass
class SimulationRejection:
    """
    Structured refusal returned instead of a result when the workload is unusable.
    """

    error: str
    details: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return False

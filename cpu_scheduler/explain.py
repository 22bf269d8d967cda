"""
Human-readable descriptions of the policies and of individual timeline steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .models import Policy, ProcessResult, SimulationResult, TimelineEntry


@dataclass(frozen=True)
class AlgorithmInfo:
    policy: Policy
    name: str
    short_name: str
    description: str
    rule: str
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)


ALGORITHM_INFO: Dict[Policy, AlgorithmInfo] = {
    info.policy: info
    for info in [
        AlgorithmInfo(
            Policy.FCFS,
            "First Come First Serve",
            "FCFS",
            "Processes run in the order they arrive in the ready queue.",
            "Non-preemptive: once a process starts, it runs to completion.",
            ["Simple to implement", "No starvation"],
            ["Convoy effect", "High average waiting time"],
        ),
        AlgorithmInfo(
            Policy.SRTF,
            "Shortest Remaining Time First",
            "SRTF",
            "The ready process with the smallest remaining burst runs.",
            "Preemptive: a shorter arrival takes the CPU; ties keep the running process.",
            ["Minimum average waiting time"],
            ["Needs burst estimates", "Long jobs can starve"],
        ),
        AlgorithmInfo(
            Policy.SJF,
            "Shortest Job First",
            "SJF",
            "The ready process with the smallest burst runs to completion.",
            "Non-preemptive.",
            ["Low average waiting time when bursts are known"],
            ["Long jobs can starve"],
        ),
        AlgorithmInfo(
            Policy.LJF,
            "Longest Job First",
            "LJF",
            "The ready process with the largest burst runs to completion.",
            "Non-preemptive.",
            ["Favors long-running jobs"],
            ["Short jobs can starve", "Poor for interactive work"],
        ),
        AlgorithmInfo(
            Policy.LRTF,
            "Longest Remaining Time First",
            "LRTF",
            "The ready process with the largest remaining burst runs.",
            "Preemptive: a longer arrival takes the CPU.",
            ["Keeps long jobs progressing"],
            ["Very high average waiting time", "Many switches near the end"],
        ),
        AlgorithmInfo(
            Policy.ROUND_ROBIN,
            "Round Robin",
            "RR",
            "Ready processes take turns, each running for at most one quantum.",
            "Preempted on quantum expiry and re-queued at the tail.",
            ["Fair", "Bounded waiting", "Good response time"],
            ["Context-switch overhead", "Sensitive to quantum size"],
        ),
        AlgorithmInfo(
            Policy.PRIORITY,
            "Priority (non-preemptive)",
            "Priority",
            "The ready process with the lowest priority number runs to completion.",
            "Non-preemptive.",
            ["Expresses urgency directly"],
            ["Low-priority processes can starve"],
        ),
        AlgorithmInfo(
            Policy.PRIORITY_PREEMPTIVE,
            "Priority (preemptive)",
            "Priority-P",
            "The ready process with the lowest priority number runs.",
            "Preemptive: a more urgent arrival takes the CPU.",
            ["Urgent work starts immediately"],
            ["Low-priority processes can starve"],
        ),
        AlgorithmInfo(
            Policy.HRRN,
            "Highest Response Ratio Next",
            "HRRN",
            "The ready process with the highest (waiting + burst) / burst runs to completion.",
            "Non-preemptive; the ratio is recomputed at every decision.",
            ["Favors short jobs", "Waiting jobs age, so nobody starves"],
            ["Needs burst estimates"],
        ),
        AlgorithmInfo(
            Policy.LOTTERY,
            "Lottery",
            "Lottery",
            "Each quantum a ticket is drawn; its holder runs.",
            "Preempted every quantum.",
            ["Proportional share on average", "Simple to weight"],
            ["Non-deterministic", "Short-term unfairness"],
        ),
        AlgorithmInfo(
            Policy.STRIDE,
            "Stride",
            "Stride",
            "The process with the smallest pass runs; its pass then grows by its stride.",
            "Preempted every quantum.",
            ["Deterministic proportional share"],
            ["New arrivals start with pass 0"],
        ),
        AlgorithmInfo(
            Policy.FCFS_IO,
            "FCFS with I/O",
            "FCFS+I/O",
            "FCFS over alternating CPU and I/O phases; blocked processes are skipped.",
            "A process leaves the CPU only when its CPU phase ends.",
            ["Models I/O overlap"],
            ["Convoy effect on CPU phases"],
        ),
        AlgorithmInfo(
            Policy.MLQ,
            "Multilevel Queue",
            "MLQ",
            "Each process stays in the queue named by its priority; Round Robin inside a queue.",
            "Lowest non-empty queue first; no promotion or demotion.",
            ["Separates process classes"],
            ["Lower queues can starve"],
        ),
        AlgorithmInfo(
            Policy.MLFQ,
            "Multilevel Feedback Queue",
            "MLFQ",
            "Processes start in the top queue and drop a level whenever they use a full quantum.",
            "Round Robin inside a queue; lowest non-empty queue first.",
            ["Adapts to behavior", "Favors interactive jobs"],
            ["CPU-bound jobs sink", "Many tuning knobs"],
        ),
        AlgorithmInfo(
            Policy.CUSTOM,
            "Custom",
            "Custom",
            "A user-supplied decision function picks the pid to run each quantum.",
            "Preempted every quantum.",
            ["Experiment freely"],
            ["Bad decisions fall back to the first ready process"],
        ),
    ]
}


def _remaining_at(pid: int, t: float, timeline: Sequence[TimelineEntry], processes: Sequence[ProcessResult]) -> float:
    proc = next((p for p in processes if p.pid == pid), None)
    if proc is None:
        return 0
    executed = sum(e.duration for e in timeline if e.pid == pid and not e.is_context_switch and e.end_time <= t)
    return max(0, proc.burst_time - executed)


def _fmt(value: float) -> str:
    return f"{value:g}"


def step_reason(policy: Policy, entry: TimelineEntry, result: SimulationResult) -> str:
    """
    One line explaining why `entry`'s process was on the CPU.
    """
    if entry.is_context_switch or entry.pid <= 0:
        return "Context switch."

    pid = entry.pid
    t = entry.start_time
    proc: Optional[ProcessResult] = next((p for p in result.processes if p.pid == pid), None)
    policy = Policy.parse(policy)

    if policy is Policy.FCFS:
        return f"P{pid}: first in ready queue (FCFS)."
    if policy is Policy.SRTF:
        remaining = _remaining_at(pid, t, result.timeline, result.processes)
        return f"P{pid}: shortest remaining burst ({_fmt(remaining)}) among ready."
    if policy is Policy.LRTF:
        remaining = _remaining_at(pid, t, result.timeline, result.processes)
        return f"P{pid}: longest remaining burst ({_fmt(remaining)}) among ready."
    if policy is Policy.SJF and proc:
        return f"P{pid}: shortest burst ({_fmt(proc.burst_time)}) among ready; run to completion."
    if policy is Policy.LJF and proc:
        return f"P{pid}: longest burst ({_fmt(proc.burst_time)}) among ready; run to completion."
    if policy is Policy.HRRN and proc:
        ratio = (t - proc.arrival_time + proc.burst_time) / proc.burst_time if proc.burst_time > 0 else 0
        return f"P{pid}: highest response ratio ({ratio:.2f}) among ready."
    if policy in (Policy.PRIORITY, Policy.PRIORITY_PREEMPTIVE):
        prio = proc.priority if proc and proc.priority is not None else 0
        return f"P{pid}: highest priority ({prio}) among ready."
    if policy is Policy.ROUND_ROBIN:
        return f"P{pid}: next in round-robin queue."
    if policy is Policy.LOTTERY:
        return f"P{pid}: won the lottery (random ticket among ready)."
    if policy is Policy.STRIDE:
        return f"P{pid}: smallest pass value among ready (stride scheduling)."
    if policy is Policy.FCFS_IO:
        return f"P{pid}: first ready (FCFS); not blocked in I/O."
    if policy is Policy.MLQ:
        return f"P{pid}: selected from highest-priority non-empty queue (MLQ)."
    if policy is Policy.MLFQ:
        return f"P{pid}: selected from current queue; may be demoted after this slice (MLFQ)."
    if policy is Policy.CUSTOM:
        return f"P{pid}: selected by custom strategy."
    return f"P{pid}: selected by scheduler."


def step_narration(policy: Policy, entry: TimelineEntry, result: SimulationResult) -> str:
    """
    Full sentence, e.g. "At time 3, process P2 is selected because ..."
    """
    if entry.is_context_switch or entry.pid <= 0:
        return f"At time {_fmt(entry.start_time)}, context switch."
    reason = step_reason(policy, entry, result)
    clean = reason.split(": ", 1)[-1].rstrip(".")
    return f"At time {_fmt(entry.start_time)}, process P{entry.pid} is selected because {clean}."

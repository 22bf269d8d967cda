"""
Auto-switch: decide whether the requested policy should really be used.

Two families of policies are watched:

- convoy-prone (FCFS, LJF): with widely varying burst times, short jobs
  queue behind a long one that got the CPU first. Kept only if Round Robin
  does not cut the average waiting time by a clear margin.
- starvation-prone (SJF, SRTF, LRTF, both Priority variants): some process
  may not get the CPU for far longer than a typical job runs. Kept only if
  Round Robin does not get every process started sooner.

Round Robin is the substitute in both cases because it bounds how long any
ready process waits for its next slice. Everything is a pure function of the
inputs, so the same workload always gets the same answer.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

from .algorithms import run_algorithm
from .config import DEFAULT_CONFIG, SelectorConfig, SimulatorConfig
from .models import Policy, ProcessDescriptor, ScheduleResult

logger = logging.getLogger(__name__)

CONVOY_PRONE = frozenset({Policy.FCFS, Policy.LJF})
STARVATION_PRONE = frozenset(
    {Policy.SJF, Policy.SRTF, Policy.LRTF, Policy.PRIORITY, Policy.PRIORITY_PREEMPTIVE}
)
PRIORITY_KEYED = frozenset({Policy.PRIORITY, Policy.PRIORITY_PREEMPTIVE})
SUBSTITUTE = Policy.ROUND_ROBIN

_SHORT_NAMES = {
    Policy.FCFS: "FCFS",
    Policy.LJF: "LJF",
    Policy.SJF: "SJF",
    Policy.SRTF: "SRTF",
    Policy.LRTF: "LRTF",
    Policy.PRIORITY: "Priority",
    Policy.PRIORITY_PREEMPTIVE: "Preemptive Priority",
}


@dataclass
class SwitchDecision:
    requested_policy: Policy
    used_policy: Policy
    result: ScheduleResult
    reason: Optional[str] = None

    @property
    def switched(self) -> bool:
        return self.used_policy is not self.requested_policy


def burst_variation(processes: Sequence[ProcessDescriptor]) -> float:
    """Coefficient of variation (population std / mean) of total bursts."""
    bursts = [p.total_burst for p in processes]
    if len(bursts) < 2:
        return 0.0
    mean = statistics.fmean(bursts)
    if mean <= 0:
        return 0.0
    return statistics.pstdev(bursts) / mean


def _has_spread(policy: Policy, processes: Sequence[ProcessDescriptor], thresholds: SelectorConfig) -> bool:
    """
    Whether the policy's ordering key varies enough for it to pass anyone over.

    With equal priorities or near-equal bursts these policies degenerate to
    arrival order, which is not starvation.
    """
    if policy in PRIORITY_KEYED:
        return len({p.priority if p.priority is not None else 0 for p in processes}) > 1
    return burst_variation(processes) >= thresholds.starvation_burst_cv


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def evaluate_and_switch(
    policy,
    processes: Sequence[ProcessDescriptor],
    quantum: Optional[float],
    *,
    force_no_switch: bool = False,
    config: Optional[SimulatorConfig] = None,
) -> SwitchDecision:
    """
    Run `policy` and, unless forced, Round Robin as well when the workload
    looks pathological for it. Returns the run that should be reported.
    """
    config = config or DEFAULT_CONFIG
    thresholds = config.selector
    requested = Policy.parse(policy)
    result = run_algorithm(requested, processes, quantum, config=config)
    decision = SwitchDecision(requested_policy=requested, used_policy=requested, result=result)

    if force_no_switch or len(processes) < 2:
        return decision
    if requested not in CONVOY_PRONE and requested not in STARVATION_PRONE:
        return decision

    name = _SHORT_NAMES[requested]
    rr_quantum = quantum if quantum and quantum > 0 else config.default_quantum

    if requested in CONVOY_PRONE:
        cv = burst_variation(processes)
        if cv < thresholds.convoy_burst_cv:
            return decision

        candidate = run_algorithm(SUBSTITUTE, processes, rr_quantum, config=config)
        before = result.metrics.avg_waiting_time
        after = candidate.metrics.avg_waiting_time
        if after >= before * (1 - thresholds.min_improvement):
            logger.debug("%s convoy check: Round Robin waiting %s vs %s, keeping %s", name, after, before, name)
            return decision

        reason = (
            f"{name} risks a convoy effect (burst-time variation {_fmt(cv)} >= "
            f"{_fmt(thresholds.convoy_burst_cv)}); switched to Round Robin, average waiting time "
            f"{_fmt(before)} -> {_fmt(after)}."
        )
    else:
        if not _has_spread(requested, processes, thresholds):
            return decision

        mean_burst = statistics.fmean(p.total_burst for p in processes)
        worst = max(result.processes, key=lambda r: r.response_time)
        if worst.response_time < thresholds.starvation_factor * mean_burst:
            return decision

        candidate = run_algorithm(SUBSTITUTE, processes, rr_quantum, config=config)
        candidate_worst = max(r.response_time for r in candidate.processes)
        if candidate_worst >= worst.response_time:
            logger.debug("%s starvation check: Round Robin does not start P%s sooner", name, worst.pid)
            return decision

        reason = (
            f"{name} starves P{worst.pid} (first ran after {_fmt(worst.response_time)}, at least "
            f"{_fmt(thresholds.starvation_factor)}x the mean burst {_fmt(mean_burst)}); "
            f"switched to Round Robin, worst response time {_fmt(worst.response_time)} -> "
            f"{_fmt(candidate_worst)}."
        )

    logger.info(reason)
    return SwitchDecision(requested, SUBSTITUTE, candidate, reason)

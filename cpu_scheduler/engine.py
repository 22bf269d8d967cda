"""
Single entry point used by the CLI (or any other front end).

`simulate()` normalizes a loosely typed workload, picks the policy to run
(directly, through the auto-switch selector, or through the custom runner),
applies context-switch cost and returns a `SimulationResult`. Problems with
the workload come back as a `SimulationRejection` instead of an exception.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any, List, Optional, Tuple, Union

from .config import DEFAULT_CONFIG, SimulatorConfig
from .context_switch import count_context_switches, inject_context_switch_cost, strip_context_switches
from .custom import DecisionFunction, run_custom
from .metrics import compute_metrics
from .models import (
    Policy,
    ProcessDescriptor,
    SimulationRejection,
    SimulationResult,
)
from .selector import evaluate_and_switch

logger = logging.getLogger(__name__)


class WorkloadError(ValueError):
    """
    The workload violates the caller contract (empty, duplicate pids, ...).
    """

    def __init__(self, message: str, details: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.details = details or []


_FIELD_ALIASES = {
    "arrival_time": ("arrival_time", "arrivalTime", "arrival"),
    "burst_time": ("burst_time", "burstTime", "burst"),
}


def _number(value: Any) -> Optional[float]:
    """Return a finite float for numeric-looking input, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number) if number.is_integer() else number


def _lookup(mapping: Mapping[str, Any], field: str) -> Any:
    for key in _FIELD_ALIASES.get(field, (field,)):
        if key in mapping:
            return mapping[key]
    return None


def _coerce_bursts(raw: Any) -> Optional[Tuple[float, ...]]:
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    phases = []
    for i, value in enumerate(raw):
        number = _number(value)
        if i % 2 == 0:
            phases.append(number if number is not None and number > 0 else 1)
        else:
            phases.append(number if number is not None and number > 0 else 0)
    return tuple(phases)


def _descriptor_from_mapping(mapping: Mapping[str, Any], position: int) -> ProcessDescriptor:
    pid = _number(mapping.get("pid"))
    if pid is None or not float(pid).is_integer():
        pid = position
    pid = int(pid)

    arrival = _number(_lookup(mapping, "arrival_time"))
    if arrival is None:
        arrival = 0
    elif arrival < 0:
        logger.warning("P%s: negative arrival time %s coerced to 0", pid, arrival)
        arrival = 0

    burst = _number(_lookup(mapping, "burst_time"))
    if burst is None or burst == 0:
        burst = 1
    elif burst < 0:
        logger.warning("P%s: negative burst time %s coerced to 1", pid, burst)
        burst = 1

    priority = _number(mapping.get("priority"))
    tickets = _number(mapping.get("tickets"))
    stride = _number(mapping.get("stride"))

    return ProcessDescriptor(
        pid=pid,
        arrival_time=arrival,
        burst_time=burst,
        priority=int(priority) if priority is not None else None,
        tickets=int(tickets) if tickets is not None and tickets >= 1 else 1,
        stride=int(stride) if stride is not None and stride >= 1 else None,
        bursts=_coerce_bursts(mapping.get("bursts")),
    )


def normalize_processes(raw: Any) -> List[ProcessDescriptor]:
    """
    Turn descriptors or loosely typed mappings into validated descriptors.

    Descriptors and mappings go through the same coercion: malformed or
    negative numbers become safe defaults (arrival 0, burst 1, CPU phase 1).
    Contract violations (empty workload, entries that are not processes,
    duplicate or non-positive pids) raise `WorkloadError`.
    """
    if not isinstance(raw, Iterable) or isinstance(raw, (str, bytes, Mapping)):
        raise WorkloadError("At least one process is required.", ["processes must be a list"])

    problems: List[str] = []
    processes: List[ProcessDescriptor] = []
    for position, item in enumerate(raw, start=1):
        if isinstance(item, ProcessDescriptor):
            item = dataclasses.asdict(item)
        if isinstance(item, Mapping):
            processes.append(_descriptor_from_mapping(item, position))
        else:
            problems.append(f"entry {position}: expected a process object, got {type(item).__name__}")

    if not processes and not problems:
        raise WorkloadError("At least one process is required.")

    seen = set()
    for p in processes:
        if p.pid <= 0:
            problems.append(f"P{p.pid}: pid must be a positive integer")
        if p.pid in seen:
            problems.append(f"P{p.pid}: duplicate pid")
        seen.add(p.pid)

    if problems:
        raise WorkloadError("Invalid workload.", problems)
    return processes


def _coerce_quantum(quantum: Any, config: SimulatorConfig) -> float:
    q = _number(quantum)
    return q if q is not None and q > 0 else config.default_quantum


def _coerce_cost(cost: Any) -> float:
    c = _number(cost)
    return c if c is not None and c > 0 else 0


def simulate(
    policy: Union[str, Policy],
    processes: Any,
    quantum: Any = None,
    context_switch_cost: Any = 0,
    force_no_switch: bool = False,
    *,
    decision_fn: Optional[DecisionFunction] = None,
    config: Optional[SimulatorConfig] = None,
) -> Union[SimulationResult, SimulationRejection]:
    """
    Simulate `policy` over `processes`.

    Unknown policy names run FCFS. The timeline keeps context-switch blocks
    only when a positive cost was applied; the switch count is reported
    either way.
    """
    config = config or DEFAULT_CONFIG
    requested = Policy.parse(policy)

    try:
        workload = normalize_processes(processes)
    except WorkloadError as exc:
        logger.warning("Rejected workload: %s %s", exc, "; ".join(exc.details))
        return SimulationRejection(error=str(exc), details=exc.details)

    q = _coerce_quantum(quantum, config)
    cost = _coerce_cost(context_switch_cost)
    logger.info(
        "Simulating %s over %d processes (quantum=%s, switch cost=%s)", requested.value, len(workload), q, cost
    )

    if requested is Policy.CUSTOM:
        run = run_custom(workload, decision_fn, q, cost, config=config)
        return SimulationResult(
            requested_policy=requested,
            used_policy=Policy.CUSTOM,
            switch_reason=None,
            timeline=run.timeline,
            metrics=run.metrics,
            processes=run.processes,
            context_switches=run.metrics.context_switches,
            quantum=q,
            context_switch_cost=cost,
        )

    decision = evaluate_and_switch(requested, workload, q, force_no_switch=force_no_switch, config=config)
    run = decision.result
    context_switches = count_context_switches(run.timeline)
    results, metrics = run.processes, run.metrics

    if cost > 0:
        timeline = inject_context_switch_cost(run.timeline, cost)
        results, metrics, _ = compute_metrics(timeline, workload)
    else:
        timeline = strip_context_switches(run.timeline)

    return SimulationResult(
        requested_policy=requested,
        used_policy=decision.used_policy,
        switch_reason=decision.reason,
        timeline=timeline,
        metrics=metrics,
        processes=results,
        context_switches=context_switches,
        quantum=run.quantum,
        context_switch_cost=cost,
    )

"""
Run a caller-supplied scheduling decision function under the quantum loop.

The decision function only ever sees a frozen `DecisionState` snapshot.
Whatever it does wrong (not callable, raising, answering with a pid that is
not ready) is absorbed: the first ready process runs instead and the
simulation carries on.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable, List, Optional, Sequence

from .algorithms import run_sliced, runtime_states
from .config import DEFAULT_CONFIG, SimulatorConfig
from .context_switch import count_context_switches, inject_context_switch_cost, strip_context_switches
from .metrics import compute_metrics
from .models import (
    DecisionState,
    Policy,
    ProcessDescriptor,
    ReadyProcess,
    RuntimeState,
    ScheduleResult,
)

logger = logging.getLogger(__name__)

DecisionFunction = Callable[[DecisionState], int]


def decision_state(ready: Sequence[RuntimeState], time: float) -> DecisionState:
    return DecisionState(
        time=time,
        ready=tuple(
            ReadyProcess(
                pid=s.pid,
                remaining_burst=s.remaining,
                arrival_time=s.arrival_time,
                burst_time=s.descriptor.total_burst,
                priority=s.descriptor.priority,
            )
            for s in ready
        ),
    )


def run_custom(
    processes: Sequence[ProcessDescriptor],
    decision_fn: Optional[DecisionFunction],
    quantum: float,
    cost: float = 0,
    *,
    config: Optional[SimulatorConfig] = None,
) -> ScheduleResult:
    """
    Simulate with `decision_fn` picking a pid for every quantum.

    After `config.custom_step_limit` decisions the function is no longer
    consulted and the remaining work finishes in fallback order.
    """
    if quantum is None or quantum <= 0:
        raise ValueError("Custom policy requires a positive quantum")

    config = config or DEFAULT_CONFIG
    states = runtime_states(processes, config)
    usable = callable(decision_fn)
    if not usable:
        logger.warning("Custom decision function is not callable; using first-ready fallback")

    steps = 0

    def choose(ready: List[RuntimeState], time: float) -> RuntimeState:
        nonlocal steps, usable
        fallback = ready[0]
        if not usable:
            return fallback

        steps += 1
        if steps > config.custom_step_limit:
            logger.warning("Custom decision function exceeded %s steps; finishing with fallback", config.custom_step_limit)
            usable = False
            return fallback

        try:
            pid = decision_fn(decision_state(ready, time))
        except Exception as exc:
            logger.warning("t=%s custom decision function raised %r; running P%s", time, exc, fallback.pid)
            return fallback

        if isinstance(pid, int) and not isinstance(pid, bool):
            for s in ready:
                if s.pid == pid:
                    return s
        logger.warning("t=%s custom decision returned %r, not a ready pid; running P%s", time, pid, fallback.pid)
        return fallback

    timeline = run_sliced(states, quantum, choose)
    context_switches = count_context_switches(timeline)

    if cost > 0:
        timeline = inject_context_switch_cost(timeline, cost)
    else:
        timeline = strip_context_switches(timeline)

    results, metrics, _ = compute_metrics(timeline, processes)
    metrics.context_switches = context_switches
    return ScheduleResult(policy=Policy.CUSTOM, quantum=quantum, timeline=timeline, processes=results, metrics=metrics)


def load_decision_function(path: str) -> DecisionFunction:
    """
    Resolve "package.module:attribute" to a callable.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Decision function must be given as module:attribute, got {path!r}")

    module = importlib.import_module(module_name)
    try:
        fn = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attr!r}") from exc

    if not callable(fn):
        raise ValueError(f"{path} is not callable")
    return fn

"""
Tunable knobs for the simulator and the auto-switch heuristic.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorConfig:
    # Coefficient of variation of burst times at which FCFS/LJF count as convoy-prone.
    convoy_burst_cv: float = 0.75
    # Worst response time, in multiples of the mean burst, treated as starvation.
    starvation_factor: float = 3.0
    # SJF/SRTF/LRTF only reorder work when bursts differ at least this much.
    starvation_burst_cv: float = 0.5
    # Minimum relative drop in average waiting time that justifies a convoy switch.
    min_improvement: float = 0.1


@dataclass(frozen=True)
class SimulatorConfig:
    default_quantum: float = 2
    mlfq_levels: int = 3
    default_stride: int = 1000
    lottery_seed: Optional[int] = None
    custom_step_limit: int = 100_000
    selector: SelectorConfig = field(default_factory=SelectorConfig)


DEFAULT_CONFIG = SimulatorConfig()

_ENV_FIELDS = {
    "CPU_SCHED_QUANTUM": ("default_quantum", float),
    "CPU_SCHED_MLFQ_LEVELS": ("mlfq_levels", int),
    "CPU_SCHED_LOTTERY_SEED": ("lottery_seed", int),
    "CPU_SCHED_STEP_LIMIT": ("custom_step_limit", int),
}


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> SimulatorConfig:
    """
    Build a config from CPU_SCHED_* environment variables, ignoring malformed ones.
    """
    env = os.environ if environ is None else environ
    overrides = {}
    for var, (attr, cast) in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: not a valid %s", var, raw, cast.__name__)
            continue
        if attr != "lottery_seed" and value <= 0:
            logger.warning("Ignoring %s=%r: must be positive", var, raw)
            continue
        overrides[attr] = value
    return replace(DEFAULT_CONFIG, **overrides)

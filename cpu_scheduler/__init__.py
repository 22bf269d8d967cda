"""
CPU scheduling simulator.

Simulates classic and proportional-share scheduling policies over a static
workload, derives waiting/turnaround/response metrics, models context-switch
cost, and can substitute a safer policy when the requested one would convoy
or starve. A command-line interface lives in `cpu_scheduler.cli`.
"""

from .engine import WorkloadError, simulate
from .models import Policy, ProcessDescriptor, SimulationRejection, SimulationResult

__all__ = [
    "Policy",
    "ProcessDescriptor",
    "SimulationRejection",
    "SimulationResult",
    "WorkloadError",
    "simulate",
]

from __future__ import annotations

import argparse
import logging
import os
import random
from dataclasses import replace
from typing import List

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import run_algorithm
from .config import SimulatorConfig, config_from_env
from .context_switch import inject_context_switch_cost
from .custom import load_decision_function
from .engine import WorkloadError, simulate
from .explain import ALGORITHM_INFO, step_narration
from .gantt import build_rich_gantt, render_gantt
from .metrics import compute_metrics
from .models import Policy, ProcessDescriptor, SimulationResult
from .presets import PRESETS, find_preset, random_workload
from .workload_io import load_workload

POLICY_NAMES = [p.value for p in Policy]
LOG_LEVELS = ["debug", "info", "warning", "error"]

logger = logging.getLogger(__name__)


def _default_log_level() -> str:
    level = os.environ.get("LOG_LEVEL", "").lower()
    return level if level in LOG_LEVELS else "warning"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpu-scheduler",
        description="CPU scheduling simulator (FCFS, SJF, SRTF, RR, Priority, HRRN, Lottery, Stride, MLQ, MLFQ, ...).",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=_default_log_level(),
        help="Logging verbosity (default: $LOG_LEVEL or warning).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scheduling policy on a workload.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Policy to use ({', '.join(POLICY_NAMES)}). Unknown names fall back to fcfs.",
    )
    _add_workload_args(run_parser)
    run_parser.add_argument(
        "--quantum",
        "-q",
        type=float,
        default=None,
        help="Time quantum for round_robin / lottery / stride / mlq / mlfq / custom (default: 2).",
    )
    run_parser.add_argument(
        "--cost",
        type=float,
        default=0,
        help="Context-switch cost in time units (default: 0).",
    )
    run_parser.add_argument(
        "--no-switch",
        action="store_true",
        help="Never substitute a safer policy; run exactly the requested one.",
    )
    run_parser.add_argument(
        "--strategy",
        default=None,
        help="Decision function for the custom policy, as module:function.",
    )
    run_parser.add_argument(
        "--explain",
        action="store_true",
        help="Print one line per timeline step explaining the choice.",
    )
    run_parser.add_argument(
        "--plain",
        action="store_true",
        help="Draw the Gantt chart as plain text instead of colored blocks.",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple policies on the same workload and compare average metrics.",
    )
    _add_workload_args(compare_parser)
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=["fcfs", "sjf", "srtf", "round_robin", "priority", "hrrn", "mlfq"],
        help="Policies to compare (default: fcfs sjf srtf round_robin priority hrrn mlfq).",
    )
    compare_parser.add_argument(
        "--quantum",
        "-q",
        type=float,
        default=2,
        help="Time quantum used by the quantum-based policies (default: 2).",
    )
    compare_parser.add_argument(
        "--cost",
        type=float,
        default=0,
        help="Context-switch cost in time units (default: 0).",
    )

    subparsers.add_parser("presets", help="List the built-in workloads.")

    return parser


def _add_workload_args(sub: argparse.ArgumentParser) -> None:
    source = sub.add_mutually_exclusive_group(required=True)
    source.add_argument("--workload", "-w", help="Path to JSON or CSV workload file.")
    source.add_argument("--preset", "-p", help="Name of a built-in workload (see the presets command).")
    source.add_argument(
        "--random",
        "-r",
        type=int,
        metavar="N",
        help="Generate N random processes (1..50) with priorities 0..4.",
    )
    sub.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for lottery scheduling and --random workloads.",
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False, show_path=False)],
    )


def _workload(args: argparse.Namespace) -> List[ProcessDescriptor]:
    if args.preset:
        return find_preset(args.preset).build()
    if args.random is not None:
        return random_workload(args.random, priority_range=(0, 4), rng=random.Random(args.seed))
    return load_workload(args.workload)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _print_result(result: SimulationResult, console: Console, explain: bool = False, plain: bool = False) -> None:
    requested = ALGORITHM_INFO[result.requested_policy].name
    used = ALGORITHM_INFO[result.used_policy].name
    if result.used_policy is result.requested_policy:
        console.print(f"[bold]Algorithm:[/bold] {used}")
    else:
        console.print(f"[bold]Algorithm:[/bold] {requested} [yellow]->[/yellow] {used}")
        console.print(f"[yellow]{result.switch_reason}[/yellow]")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {_fmt(result.quantum)}")
    if result.context_switch_cost:
        console.print(f"[bold]Context-switch cost:[/bold] {_fmt(result.context_switch_cost)}")

    console.print()

    if plain:
        console.print(render_gantt(result.timeline), markup=False, highlight=False)
    else:
        panel, time_marks = build_rich_gantt(result.timeline)
        console.print(panel)
        if time_marks:
            console.print(time_marks)

    console.print()

    if explain:
        for entry in result.timeline:
            console.print(step_narration(result.used_policy, entry, result))
        console.print()

    headers = ["PID", "Arrive", "Burst", "Complete", "Wait", "Turnaround", "Response", "Priority"]

    proc_table = Table(title="Per-process metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "Priority"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in result.processes:
        proc_table.add_row(
            f"P{p.pid}",
            _fmt(p.arrival_time),
            _fmt(p.burst_time),
            _fmt(p.completion_time),
            _fmt(p.waiting_time),
            _fmt(p.turnaround_time),
            _fmt(p.response_time),
            "" if p.priority is None else str(p.priority),
        )

    console.print(proc_table)
    console.print()

    m = result.metrics
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", f"{m.avg_waiting_time:.2f}")
    sys_table.add_row("Avg turnaround", f"{m.avg_turnaround_time:.2f}")
    sys_table.add_row("Avg response", f"{m.avg_response_time:.2f}")
    sys_table.add_row("Throughput (proc/time)", f"{m.throughput:.2f}")
    sys_table.add_row("Context switches", str(result.context_switches))
    sys_table.add_row("Total time", _fmt(m.total_time))
    sys_table.add_row("CPU utilization", f"{m.cpu_utilization * 100:.1f}%")

    console.print(sys_table)


def _run(args: argparse.Namespace, config: SimulatorConfig, console: Console) -> int:
    processes = _workload(args)
    if args.seed is not None:
        config = replace(config, lottery_seed=args.seed)
    decision_fn = load_decision_function(args.strategy) if args.strategy else None

    result = simulate(
        args.algorithm,
        processes,
        quantum=args.quantum,
        context_switch_cost=args.cost,
        force_no_switch=args.no_switch,
        decision_fn=decision_fn,
        config=config,
    )
    if not result:
        console.print(f"[red]{result.error}[/red]")
        for detail in result.details:
            console.print(f"[red]  - {detail}[/red]")
        return 2

    _print_result(result, console, explain=args.explain, plain=args.plain)
    return 0


def _compare(args: argparse.Namespace, config: SimulatorConfig, console: Console) -> int:
    processes = _workload(args)
    if args.seed is not None:
        config = replace(config, lottery_seed=args.seed)

    summary_table = Table(title="Algorithm comparison", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")
    summary_table.add_column("Switches", justify="right")

    for name in args.algorithms:
        policy = Policy.parse(name)
        if policy is Policy.CUSTOM:
            logger.warning("Skipping custom policy in compare; use run --strategy instead")
            continue
        run = run_algorithm(policy, processes, quantum=args.quantum, rng=random.Random(config.lottery_seed), config=config)
        metrics = run.metrics
        if args.cost > 0:
            _, metrics, _ = compute_metrics(inject_context_switch_cost(run.timeline, args.cost), processes)
        summary_table.add_row(
            ALGORITHM_INFO[policy].name,
            "" if run.quantum is None else _fmt(run.quantum),
            f"{metrics.avg_waiting_time:.2f}",
            f"{metrics.avg_turnaround_time:.2f}",
            f"{metrics.avg_response_time:.2f}",
            str(metrics.context_switches),
        )

    console.print(summary_table)
    return 0


def _presets(console: Console) -> int:
    table = Table(title="Built-in workloads", box=box.SIMPLE_HEAVY)
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Processes", justify="right")
    for preset in PRESETS:
        table.add_row(preset.name, preset.description, str(len(preset.build())))
    console.print(table)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    config = config_from_env()
    console = Console()

    try:
        if args.command == "run":
            return _run(args, config, console)
        if args.command == "compare":
            return _compare(args, config, console)
        if args.command == "presets":
            return _presets(console)
    except WorkloadError as exc:
        console.print(f"[red]{exc}[/red]")
        for detail in exc.details:
            console.print(f"[red]  - {detail}[/red]")
        return 2
    except (OSError, ValueError, ImportError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

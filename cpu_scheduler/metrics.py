from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .models import Metrics, ProcessDescriptor, ProcessResult, TimelineEntry


def compute_metrics(
    timeline: Sequence[TimelineEntry],
    processes: Sequence[ProcessDescriptor],
) -> Tuple[List[ProcessResult], Metrics, int]:
    """
    Derive per-process results and aggregate metrics from a timeline.

    Completion time is the latest end of any real slice for the pid and
    response time is its earliest start minus arrival. A pid that never ran
    gets completion 0, which signals an upstream bug rather than a valid
    schedule. Waiting time is floored at zero. Aggregates are plain means
    rounded to two decimals.
    """
    completion: Dict[int, float] = {}
    first_start: Dict[int, float] = {}
    busy = 0.0
    total_time = 0.0
    context_switches = 0

    for entry in timeline:
        total_time = max(total_time, entry.end_time)
        if entry.is_context_switch:
            context_switches += 1
            continue
        busy += entry.end_time - entry.start_time
        completion[entry.pid] = max(completion.get(entry.pid, 0), entry.end_time)
        if entry.pid not in first_start or entry.start_time < first_start[entry.pid]:
            first_start[entry.pid] = entry.start_time

    results: List[ProcessResult] = []
    for p in processes:
        completion_time = completion.get(p.pid, 0)
        turnaround_time = completion_time - p.arrival_time
        waiting_time = max(0, turnaround_time - p.total_burst)
        response_time = first_start[p.pid] - p.arrival_time if p.pid in first_start else 0
        results.append(
            ProcessResult(
                pid=p.pid,
                arrival_time=p.arrival_time,
                burst_time=p.total_burst,
                completion_time=completion_time,
                turnaround_time=turnaround_time,
                waiting_time=waiting_time,
                response_time=response_time,
                priority=p.priority,
            )
        )

    n = len(results)
    max_completion = max((r.completion_time for r in results), default=0)
    summary = summarize_process_metrics(results)

    metrics = Metrics(
        avg_waiting_time=round(summary["avg_waiting"], 2),
        avg_turnaround_time=round(summary["avg_turnaround"], 2),
        avg_response_time=round(summary["avg_response"], 2),
        context_switches=context_switches,
        throughput=round(n / max_completion, 2) if max_completion > 0 else 0.0,
        total_time=round(total_time, 2),
        cpu_utilization=round(busy / total_time, 2) if total_time > 0 else 0.0,
    )
    return results, metrics, context_switches


def summarize_process_metrics(processes: List[ProcessResult]) -> dict:
    """
    Return unrounded averages of the key per-process metrics for quick comparison.
    """
    if not processes:
        return {"avg_waiting": 0.0, "avg_turnaround": 0.0, "avg_response": 0.0}

    n = len(processes)
    return {
        "avg_waiting": sum(p.waiting_time for p in processes) / n,
        "avg_turnaround": sum(p.turnaround_time for p in processes) / n,
        "avg_response": sum(p.response_time for p in processes) / n,
    }

from cpu_scheduler.metrics import compute_metrics, summarize_process_metrics
from cpu_scheduler.models import CONTEXT_SWITCH_PID, ProcessDescriptor, TimelineEntry


def _procs():
    return [
        ProcessDescriptor(1, arrival_time=0, burst_time=4),
        ProcessDescriptor(2, arrival_time=1, burst_time=3),
        ProcessDescriptor(3, arrival_time=2, burst_time=1),
    ]


def _fcfs_timeline():
    return [TimelineEntry(1, 0, 4), TimelineEntry(2, 4, 7), TimelineEntry(3, 7, 8)]


def test_fcfs_metrics():
    results, metrics, switches = compute_metrics(_fcfs_timeline(), _procs())
    assert [r.completion_time for r in results] == [4, 7, 8]
    assert [r.turnaround_time for r in results] == [4, 6, 6]
    assert [r.waiting_time for r in results] == [0, 3, 5]
    assert [r.response_time for r in results] == [0, 3, 5]
    assert metrics.avg_waiting_time == 2.67
    assert metrics.avg_turnaround_time == round(16 / 3, 2)
    assert metrics.throughput == round(3 / 8, 2)
    assert metrics.total_time == 8
    assert metrics.cpu_utilization == 1.0
    assert switches == 0


def test_split_slices_use_last_end_and_first_start():
    timeline = [
        TimelineEntry(1, 0, 1),
        TimelineEntry(CONTEXT_SWITCH_PID, 1, 1, is_context_switch=True),
        TimelineEntry(2, 1, 4),
        TimelineEntry(1, 4, 7),
    ]
    procs = [ProcessDescriptor(1, 0, 4), ProcessDescriptor(2, 1, 3)]
    results, metrics, switches = compute_metrics(timeline, procs)
    assert results[0].completion_time == 7
    assert results[0].response_time == 0
    assert results[0].waiting_time == 3
    assert results[1].response_time == 0
    assert switches == 1
    assert metrics.context_switches == 1


def test_switch_blocks_lower_utilization():
    timeline = [
        TimelineEntry(1, 0, 2),
        TimelineEntry(CONTEXT_SWITCH_PID, 2, 3, is_context_switch=True),
        TimelineEntry(2, 3, 5),
    ]
    procs = [ProcessDescriptor(1, 0, 2), ProcessDescriptor(2, 0, 2)]
    _, metrics, _ = compute_metrics(timeline, procs)
    assert metrics.total_time == 5
    assert metrics.cpu_utilization == 0.8


def test_waiting_time_never_negative():
    # A pid missing from the timeline gets completion 0.
    results, _, _ = compute_metrics([], [ProcessDescriptor(1, 3, 2)])
    assert results[0].completion_time == 0
    assert results[0].waiting_time == 0


def test_empty_workload():
    results, metrics, switches = compute_metrics([], [])
    assert results == []
    assert metrics.avg_waiting_time == 0
    assert metrics.throughput == 0
    assert metrics.cpu_utilization == 0
    assert switches == 0


def test_io_bursts_count_cpu_phases_only():
    timeline = [TimelineEntry(1, 0, 2), TimelineEntry(1, 5, 8)]
    results, _, _ = compute_metrics(timeline, [ProcessDescriptor(1, 0, 5, bursts=(2, 3, 3))])
    assert results[0].burst_time == 5
    assert results[0].waiting_time == 3


def test_summarize_process_metrics_unrounded():
    results, _, _ = compute_metrics(_fcfs_timeline(), _procs())
    summary = summarize_process_metrics(results)
    assert summary["avg_turnaround"] == 16 / 3
    assert summary["avg_waiting"] == 8 / 3
    assert summarize_process_metrics([])["avg_response"] == 0.0


def test_total_time_rounded():
    timeline = [TimelineEntry(1, 0, 1 / 3), TimelineEntry(2, 1 / 3, 1 / 3 + 0.5)]
    _, metrics, _ = compute_metrics(timeline, [ProcessDescriptor(1, 0, 1 / 3), ProcessDescriptor(2, 0, 0.5)])
    assert metrics.total_time == 0.83
    assert metrics.cpu_utilization == 1.0

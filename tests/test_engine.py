import pytest

from cpu_scheduler import Policy, ProcessDescriptor, SimulationRejection, SimulationResult, WorkloadError, simulate
from cpu_scheduler.engine import normalize_processes


def _rr_heavy():
    return [{"pid": pid, "arrivalTime": 0, "burstTime": 4} for pid in range(1, 5)]


@pytest.mark.parametrize("processes", [[], None, "P1", {"pid": 1}])
def test_empty_or_malformed_workload_is_rejected(processes):
    result = simulate("fcfs", processes)
    assert isinstance(result, SimulationRejection)
    assert not result
    assert result.error == "At least one process is required."


def test_contract_violations_are_listed():
    result = simulate(
        "fcfs",
        [
            {"pid": 1, "arrival_time": 0, "burst_time": 2},
            {"pid": 2, "arrival_time": 0, "burst_time": 3},
            {"pid": 2, "arrival_time": 0, "burst_time": 1},
            {"pid": -4, "arrival_time": 0, "burst_time": 1},
            "junk",
        ],
    )
    assert not result
    assert result.error == "Invalid workload."
    text = "\n".join(result.details)
    assert "P2: duplicate pid" in text
    assert "P-4: pid must be a positive integer" in text
    assert "entry 5" in text
    assert "P1" not in text


def test_negative_times_are_coerced():
    result = simulate("fcfs", [
        {"pid": 1, "arrivalTime": -3, "burstTime": 2},
        {"pid": 2, "arrivalTime": 0, "burstTime": -5},
    ])
    assert result
    assert [(p.pid, p.arrival_time, p.burst_time) for p in result.processes] == [(1, 0, 2), (2, 0, 1)]
    assert [(e.pid, e.start_time, e.end_time) for e in result.timeline if not e.is_context_switch] == [
        (1, 0, 2),
        (2, 2, 3),
    ]


def test_malformed_numbers_are_coerced():
    procs = normalize_processes(
        [
            {"pid": 1, "arrivalTime": "abc", "burstTime": None},
            {"pid": 2, "arrival": "3", "burst": "0", "priority": "x", "tickets": 0, "stride": -5},
            {"arrival_time": 1, "burst_time": True},
        ]
    )
    assert procs[0] == ProcessDescriptor(1, arrival_time=0, burst_time=1)
    assert procs[1] == ProcessDescriptor(2, arrival_time=3, burst_time=1)
    assert procs[2].pid == 3
    assert procs[2].burst_time == 1


def test_nan_and_infinity_are_malformed():
    (proc,) = normalize_processes([{"pid": 1, "arrival_time": float("nan"), "burst_time": float("inf")}])
    assert proc.arrival_time == 0
    assert proc.burst_time == 1


def test_bursts_are_coerced():
    (proc,) = normalize_processes([{"pid": 1, "burst_time": 4, "bursts": [2, "x", 0, -1, 3]}])
    assert proc.bursts == (2, 0, 1, 0, 3)
    assert proc.total_burst == 6


def test_descriptors_are_coerced_like_mappings():
    procs = normalize_processes([
        ProcessDescriptor(1, arrival_time=None, burst_time=2),
        ProcessDescriptor(2, arrival_time=-1, burst_time=0, tickets=0),
        ProcessDescriptor(3, arrival_time=0, burst_time=3, bursts=(0, 2, 3)),
    ])
    assert procs[0] == ProcessDescriptor(1, arrival_time=0, burst_time=2)
    assert procs[1] == ProcessDescriptor(2, arrival_time=0, burst_time=1)
    assert procs[2].bursts == (1, 2, 3)


def test_descriptor_with_missing_arrival_simulates():
    result = simulate("fcfs", [ProcessDescriptor(1, arrival_time=None, burst_time=2)])
    assert isinstance(result, SimulationResult)
    assert result.processes[0].arrival_time == 0
    assert result.processes[0].completion_time == 2


def test_descriptor_bursts_with_empty_cpu_phase_still_run():
    procs = [ProcessDescriptor(1, 0, 3, bursts=(0, 2, 3)), ProcessDescriptor(2, 0, 2)]
    result = simulate("fcfs_io", procs)
    assert result
    assert [(e.pid, e.start_time, e.end_time) for e in result.timeline if not e.is_context_switch] == [
        (1, 0, 1),
        (2, 1, 3),
        (1, 3, 6),
    ]
    by_pid = {p.pid: p for p in result.processes}
    assert by_pid[1].burst_time == 4
    assert by_pid[1].completion_time == 6
    assert sum(p.waiting_time for p in result.processes) + 4 + 2 == sum(p.turnaround_time for p in result.processes)


def test_normalize_raises_workload_error():
    with pytest.raises(WorkloadError) as excinfo:
        normalize_processes([ProcessDescriptor(1, 0, 2), ProcessDescriptor(1, 1, 3)])
    assert excinfo.value.details == ["P1: duplicate pid"]


def test_fcfs_scenario():
    result = simulate("FCFS", [
        {"pid": 1, "arrival_time": 0, "burst_time": 4},
        {"pid": 2, "arrival_time": 1, "burst_time": 3},
        {"pid": 3, "arrival_time": 2, "burst_time": 1},
    ])
    assert isinstance(result, SimulationResult)
    assert result.requested_policy is Policy.FCFS
    assert result.used_policy is Policy.FCFS
    assert result.switch_reason is None
    assert [(e.pid, e.start_time, e.end_time) for e in result.timeline] == [(1, 0, 4), (2, 4, 7), (3, 7, 8)]
    assert result.metrics.avg_waiting_time == 2.67


@pytest.mark.parametrize("name", ["bogus", "", None])
def test_unknown_policy_runs_fcfs(name):
    result = simulate(name, _rr_heavy())
    assert result.requested_policy is Policy.FCFS
    assert result.used_policy is Policy.FCFS


def test_policy_aliases():
    assert simulate("RR", _rr_heavy()).used_policy is Policy.ROUND_ROBIN
    assert simulate("Round_Robin", _rr_heavy()).used_policy is Policy.ROUND_ROBIN


def test_markers_stripped_without_cost():
    result = simulate("round_robin", _rr_heavy(), quantum=2)
    assert not any(e.is_context_switch for e in result.timeline)
    assert result.context_switches == 4
    assert result.metrics.avg_waiting_time == 9.0
    assert result.quantum == 2


def test_cost_inflates_completion():
    result = simulate("round_robin", _rr_heavy(), quantum=2, context_switch_cost=1)
    blocks = [e for e in result.timeline if e.is_context_switch]
    assert len(blocks) == result.context_switches == 4
    assert all(b.duration == 1 for b in blocks)
    assert [p.completion_time for p in result.processes] == [14, 16, 18, 20]
    assert result.metrics.avg_waiting_time == 13.0
    assert result.context_switch_cost == 1


@pytest.mark.parametrize("cost", [-2, "abc", None])
def test_bad_cost_means_no_cost(cost):
    result = simulate("round_robin", _rr_heavy(), quantum=2, context_switch_cost=cost)
    assert result.context_switch_cost == 0
    assert not any(e.is_context_switch for e in result.timeline)


@pytest.mark.parametrize("quantum", [None, 0, -1, "abc"])
def test_bad_quantum_uses_default(quantum):
    result = simulate("round_robin", _rr_heavy(), quantum=quantum)
    assert result.quantum == 2


def test_quantum_ignored_by_non_quantum_policy():
    result = simulate("sjf", _rr_heavy(), quantum=3, force_no_switch=True)
    assert result.quantum is None


def test_auto_switch_reported():
    convoy = [
        {"pid": 1, "arrival_time": 0, "burst_time": 8},
        {"pid": 2, "arrival_time": 1, "burst_time": 1},
        {"pid": 3, "arrival_time": 2, "burst_time": 1},
        {"pid": 4, "arrival_time": 3, "burst_time": 1},
    ]
    result = simulate("fcfs", convoy, quantum=2)
    assert result.requested_policy is Policy.FCFS
    assert result.used_policy is Policy.ROUND_ROBIN
    assert "convoy" in result.switch_reason

    forced = simulate("fcfs", convoy, quantum=2, force_no_switch=True)
    assert forced.used_policy is Policy.FCFS
    assert forced.switch_reason is None


def test_custom_policy():
    def newest_first(state):
        return max(state.ready, key=lambda p: p.pid).pid

    result = simulate("custom", _rr_heavy(), quantum=4, decision_fn=newest_first)
    assert result.used_policy is Policy.CUSTOM
    assert [e.pid for e in result.timeline] == [4, 3, 2, 1]
    assert result.context_switches == 0


def test_custom_without_function_still_completes():
    result = simulate("custom", _rr_heavy(), quantum=2)
    assert {p.pid for p in result.processes} == {1, 2, 3, 4}
    assert all(p.completion_time > 0 for p in result.processes)


def test_caller_input_not_mutated():
    raw = _rr_heavy()
    snapshot = [dict(p) for p in raw]
    simulate("mlfq", raw, quantum=2)
    assert raw == snapshot

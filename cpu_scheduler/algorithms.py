from __future__ import annotations

import logging
import math
import random
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, SimulatorConfig
from .metrics import compute_metrics
from .models import (
    CONTEXT_SWITCH_PID,
    Policy,
    ProcessDescriptor,
    RuntimeState,
    ScheduleResult,
    TimelineEntry,
)

logger = logging.getLogger(__name__)

Chooser = Callable[[List[RuntimeState], float], RuntimeState]


def runtime_states(
    processes: Sequence[ProcessDescriptor], config: Optional[SimulatorConfig] = None
) -> List[RuntimeState]:
    """
    Fresh mutable scheduling state for each descriptor, in input order.
    """
    config = config or DEFAULT_CONFIG
    return [
        RuntimeState(
            descriptor=p,
            remaining=p.total_burst,
            tickets=max(1, p.tickets or 1),
            stride=p.stride if p.stride and p.stride >= 1 else config.default_stride,
            ready_since=p.arrival_time,
        )
        for p in processes
    ]


def _ready(states: Sequence[RuntimeState], time: float) -> List[RuntimeState]:
    return [s for s in states if s.arrival_time <= time and not s.finished]


def _next_arrival_after(states: Sequence[RuntimeState], t: float) -> Optional[float]:
    future = [s.arrival_time for s in states if s.arrival_time > t and not s.finished]
    return min(future) if future else None


def _require_quantum(quantum: Optional[float], name: str) -> float:
    if quantum is None or quantum <= 0:
        raise ValueError(f"{name} requires a positive quantum")
    return quantum


def _switch_marker(timeline: List[TimelineEntry], last_pid: Optional[int], pid: int, time: float) -> None:
    # Only a preempted (still unfinished) previous process costs a switch.
    if last_pid is not None and last_pid != pid:
        timeline.append(TimelineEntry(pid=CONTEXT_SWITCH_PID, start_time=time, end_time=time, is_context_switch=True))


def _run_to_completion(states: List[RuntimeState], choose: Chooser) -> List[TimelineEntry]:
    """
    Non-preemptive driver: whoever `choose` picks runs until it finishes.
    """
    time: float = 0
    timeline: List[TimelineEntry] = []

    while True:
        ready = _ready(states, time)
        if not ready:
            nxt = _next_arrival_after(states, time)
            if nxt is None:
                break
            time = nxt
            continue

        chosen = choose(ready, time)
        start = time
        time += chosen.remaining
        chosen.remaining = 0
        timeline.append(TimelineEntry(pid=chosen.pid, start_time=start, end_time=time))
        logger.debug("t=%s run P%s to completion at %s", start, chosen.pid, time)

    return timeline


def _pick(
    ready: List[RuntimeState],
    key: Callable[[RuntimeState], float],
    incumbent: Optional[int],
    highest: bool = False,
) -> RuntimeState:
    best = max(ready, key=key) if highest else min(ready, key=key)
    if incumbent is not None:
        for s in ready:
            if s.pid == incumbent and key(s) == key(best):
                return s
    return best


def _run_preemptive(
    states: List[RuntimeState],
    key: Callable[[RuntimeState], float],
    highest: bool = False,
) -> List[TimelineEntry]:
    """
    Preemptive driver: re-decide at every arrival, ties keep the incumbent.
    """
    time: float = 0
    timeline: List[TimelineEntry] = []
    last_pid: Optional[int] = None

    while True:
        ready = _ready(states, time)
        if not ready:
            nxt = _next_arrival_after(states, time)
            if nxt is None:
                break
            time = nxt
            continue

        chosen = _pick(ready, key, last_pid, highest=highest)
        nxt = _next_arrival_after(states, time)
        duration = chosen.remaining if nxt is None else min(chosen.remaining, nxt - time)

        if duration <= 0:
            time = nxt if nxt is not None else time + chosen.remaining
            continue

        _switch_marker(timeline, last_pid, chosen.pid, time)
        start = time
        chosen.remaining -= duration
        time += duration
        timeline.append(TimelineEntry(pid=chosen.pid, start_time=start, end_time=time))
        logger.debug("t=%s run P%s for %s (remaining %s)", start, chosen.pid, duration, chosen.remaining)

        last_pid = None if chosen.finished else chosen.pid

    return timeline


def run_sliced(states: List[RuntimeState], quantum: float, choose: Chooser) -> List[TimelineEntry]:
    """
    Quantum-driven driver: at each decision point `choose` picks one ready
    process, which runs for at most one quantum.
    """
    time: float = 0
    timeline: List[TimelineEntry] = []
    last_pid: Optional[int] = None

    while True:
        ready = _ready(states, time)
        if not ready:
            nxt = _next_arrival_after(states, time)
            if nxt is None:
                break
            time = nxt
            continue

        chosen = choose(ready, time)
        duration = min(quantum, chosen.remaining)

        _switch_marker(timeline, last_pid, chosen.pid, time)
        start = time
        chosen.remaining -= duration
        time += duration
        timeline.append(TimelineEntry(pid=chosen.pid, start_time=start, end_time=time))
        logger.debug("t=%s slice P%s for %s (remaining %s)", start, chosen.pid, duration, chosen.remaining)

        last_pid = None if chosen.finished else chosen.pid

    return timeline


def _run_queued(
    states: List[RuntimeState],
    quantum: float,
    levels: List[int],
    requeue: Callable[[RuntimeState, bool], int],
) -> List[TimelineEntry]:
    """
    Multi-queue round-robin driver.

    Arrivals join the tail of queue `state.level`; the lowest non-empty level
    is always served first. After a slice, `requeue(state, used_full_quantum)`
    returns the level an unfinished process goes back to. New arrivals are
    enqueued before the preempted process.
    """
    queues: Dict[int, Deque[RuntimeState]] = {level: deque() for level in levels}
    pending = deque(sorted(states, key=lambda s: s.arrival_time))

    def admit(now: float) -> None:
        while pending and pending[0].arrival_time <= now:
            s = pending.popleft()
            queues[s.level].append(s)

    time: float = 0
    timeline: List[TimelineEntry] = []
    last_pid: Optional[int] = None

    admit(time)
    while True:
        level = next((lvl for lvl in levels if queues[lvl]), None)
        if level is None:
            if not pending:
                break
            time = max(time, pending[0].arrival_time)
            admit(time)
            continue

        s = queues[level].popleft()
        duration = min(quantum, s.remaining)

        _switch_marker(timeline, last_pid, s.pid, time)
        start = time
        s.remaining -= duration
        time += duration
        timeline.append(TimelineEntry(pid=s.pid, start_time=start, end_time=time))
        logger.debug("t=%s queue %s: P%s for %s (remaining %s)", start, level, s.pid, duration, s.remaining)

        admit(time)

        if s.finished:
            last_pid = None
        else:
            s.level = requeue(s, duration >= quantum)
            queues[s.level].append(s)
            last_pid = s.pid

    return timeline


def schedule_fcfs(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    First-Come First-Serve (non-preemptive) scheduling.
    """
    states = runtime_states(processes, config)
    return _run_to_completion(states, lambda ready, _t: min(ready, key=lambda s: s.arrival_time))


def schedule_sjf(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Shortest Job First (non-preemptive): smallest total burst among ready.
    """
    states = runtime_states(processes, config)
    return _run_to_completion(states, lambda ready, _t: min(ready, key=lambda s: s.descriptor.total_burst))


def schedule_ljf(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Longest Job First (non-preemptive): largest total burst among ready.
    """
    states = runtime_states(processes, config)
    return _run_to_completion(states, lambda ready, _t: max(ready, key=lambda s: s.descriptor.total_burst))


def schedule_priority(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Static Priority scheduling (non-preemptive).

    Lower numeric priority value means higher priority; a missing priority
    counts as 0.
    """
    states = runtime_states(processes, config)
    return _run_to_completion(states, lambda ready, _t: min(ready, key=lambda s: s.priority))


def schedule_hrrn(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Highest Response Ratio Next (non-preemptive).

    Response ratio = (waiting + burst) / burst, recomputed at every decision
    point. The chosen process runs to completion.
    """
    states = runtime_states(processes, config)

    def choose(ready: List[RuntimeState], time: float) -> RuntimeState:
        def ratio(s: RuntimeState) -> float:
            if s.remaining <= 0:
                return -math.inf
            return (time - s.arrival_time + s.remaining) / s.remaining

        return max(ready, key=ratio)

    return _run_to_completion(states, choose)


def schedule_srtf(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Shortest Remaining Time First (preemptive SJF).
    """
    return _run_preemptive(runtime_states(processes, config), key=lambda s: s.remaining)


def schedule_lrtf(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Longest Remaining Time First: preempted when a longer job arrives.
    """
    return _run_preemptive(runtime_states(processes, config), key=lambda s: s.remaining, highest=True)


def schedule_priority_preemptive(
    processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None
) -> List[TimelineEntry]:
    """
    Preemptive Priority: a more urgent (lower number) arrival takes the CPU.
    """
    return _run_preemptive(runtime_states(processes, config), key=lambda s: s.priority)


def schedule_round_robin(
    processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None
) -> List[TimelineEntry]:
    """
    Round Robin scheduling with a fixed time quantum.
    """
    q = _require_quantum(quantum, "Round Robin")
    states = runtime_states(processes, config)
    return _run_queued(states, q, levels=[0], requeue=lambda s, _full: 0)


def schedule_lottery(
    processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None
) -> List[TimelineEntry]:
    """
    Lottery scheduling: every quantum a ticket is drawn among the ready
    processes and its holder runs.
    """
    q = _require_quantum(quantum, "Lottery")
    config = config or DEFAULT_CONFIG
    rng = rng or random.Random(config.lottery_seed)
    states = runtime_states(processes, config)

    def draw(ready: List[RuntimeState], _t: float) -> RuntimeState:
        total = sum(s.tickets for s in ready)
        r = rng.random() * total
        for s in ready:
            r -= s.tickets
            if r <= 0:
                return s
        return ready[-1]

    return run_sliced(states, q, draw)


def schedule_stride(
    processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None
) -> List[TimelineEntry]:
    """
    Stride scheduling: deterministic proportional share. The smallest pass
    runs next and its pass grows by its stride after each slice.
    """
    q = _require_quantum(quantum, "Stride")
    states = runtime_states(processes, config)

    def lowest_pass(ready: List[RuntimeState], _t: float) -> RuntimeState:
        chosen = min(ready, key=lambda s: s.pass_value)
        chosen.pass_value += chosen.stride
        return chosen

    return run_sliced(states, q, lowest_pass)


def _enter_phase(state: RuntimeState, segs: List[Tuple[float, float]], now: float) -> None:
    """
    Load the next CPU phase with positive length, ready from `now`.

    Empty CPU phases are skipped; their I/O still delays the process.
    """
    while state.segment_index < len(segs):
        cpu, io = segs[state.segment_index]
        if cpu > 0:
            state.remaining = cpu
            state.blocked_until = now
            state.ready_since = now
            return
        now += io
        state.segment_index += 1
    state.remaining = 0


def schedule_fcfs_io(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    FCFS over alternating CPU / I/O phases.

    A process blocked in I/O is not ready. After each CPU phase it waits for
    its I/O to finish and then queues (by the time it became ready) for the
    next CPU phase.
    """
    states = runtime_states(processes, config)
    segments = {id(s): s.descriptor.segments() for s in states}
    for s in states:
        _enter_phase(s, segments[id(s)], s.arrival_time)

    time: float = 0
    timeline: List[TimelineEntry] = []

    while True:
        ready = [s for s in states if s.arrival_time <= time and s.remaining > 0 and s.blocked_until <= time]
        if not ready:
            pending = [s for s in states if s.remaining > 0]
            if not pending:
                break
            events = [s.blocked_until for s in pending if s.blocked_until > time]
            events += [s.arrival_time for s in pending if s.arrival_time > time]
            time = min(events)
            continue

        chosen = min(ready, key=lambda s: s.ready_since)
        start = time
        time += chosen.remaining
        chosen.remaining = 0
        timeline.append(TimelineEntry(pid=chosen.pid, start_time=start, end_time=time))

        segs = segments[id(chosen)]
        io = segs[chosen.segment_index][1]
        chosen.segment_index += 1
        _enter_phase(chosen, segs, time + io)
        if not chosen.finished:
            logger.debug("t=%s P%s blocked on I/O until %s", time, chosen.pid, chosen.blocked_until)

    return timeline


def schedule_mlq(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Multilevel Queue: a process lives in the queue named by its priority for
    its whole life. Lowest non-empty queue first, Round Robin inside it.
    """
    q = _require_quantum(quantum, "MLQ")
    states = runtime_states(processes, config)
    for s in states:
        s.level = s.priority
    levels = sorted({s.level for s in states})
    return _run_queued(states, q, levels=levels, requeue=lambda s, _full: s.level)


def schedule_mlfq(processes: List[ProcessDescriptor], quantum: Optional[float] = None, *, rng=None, config=None) -> List[TimelineEntry]:
    """
    Multi-Level Feedback Queue.

    - New arrivals enter the highest-priority queue (Q0).
    - Each queue uses round-robin with the same quantum.
    - A process that uses its entire quantum and is not finished is demoted
      one level, down to the lowest queue.
    """
    q = _require_quantum(quantum, "MLFQ")
    config = config or DEFAULT_CONFIG
    lowest = max(1, config.mlfq_levels) - 1
    states = runtime_states(processes, config)

    def demote(s: RuntimeState, used_full: bool) -> int:
        return min(s.level + 1, lowest) if used_full else s.level

    return _run_queued(states, q, levels=list(range(lowest + 1)), requeue=demote)


ALGORITHMS: Dict[Policy, Callable[..., List[TimelineEntry]]] = {
    Policy.FCFS: schedule_fcfs,
    Policy.SRTF: schedule_srtf,
    Policy.SJF: schedule_sjf,
    Policy.LJF: schedule_ljf,
    Policy.LRTF: schedule_lrtf,
    Policy.ROUND_ROBIN: schedule_round_robin,
    Policy.PRIORITY: schedule_priority,
    Policy.PRIORITY_PREEMPTIVE: schedule_priority_preemptive,
    Policy.HRRN: schedule_hrrn,
    Policy.LOTTERY: schedule_lottery,
    Policy.STRIDE: schedule_stride,
    Policy.FCFS_IO: schedule_fcfs_io,
    Policy.MLQ: schedule_mlq,
    Policy.MLFQ: schedule_mlfq,
}

QUANTUM_POLICIES = frozenset(
    {Policy.ROUND_ROBIN, Policy.LOTTERY, Policy.STRIDE, Policy.MLQ, Policy.MLFQ}
)


def run_algorithm(
    policy,
    processes: Sequence[ProcessDescriptor],
    quantum: Optional[float] = None,
    *,
    rng: Optional[random.Random] = None,
    config: Optional[SimulatorConfig] = None,
) -> ScheduleResult:
    """
    Run one policy and derive its metrics. Quantum is only passed on to the
    quantum-based policies.
    """
    policy = Policy.parse(policy)
    if policy is Policy.CUSTOM:
        raise ValueError("Custom policies run through cpu_scheduler.custom.run_custom")

    func = ALGORITHMS[policy]
    q = quantum if policy in QUANTUM_POLICIES else None
    timeline = func(list(processes), quantum=q, rng=rng, config=config)
    results, metrics, _ = compute_metrics(timeline, processes)
    return ScheduleResult(policy=policy, quantum=q, timeline=timeline, processes=results, metrics=metrics)

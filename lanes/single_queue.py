"""
Process and thread lanes: N workers draining one shared FIFO queue.

Both lanes block a worker for the whole IO wait. They differ only in the
memory charged per task intake and in the thread lane's lock contention,
which may freeze one worker for a tick.
"""

from __future__ import annotations

from collections import deque
from dataclasses import replace

from .constants import (
    CONTENTION_BUSY_THRESHOLD,
    LOCK_CONTENTION_PROBABILITY,
    MEMORY_MAX,
    MEMORY_MIN,
    PROCESS_MEMORY_PER_TASK,
    THREAD_MEMORY_PER_TASK,
)
from .contention import ContentionSource
from .lane import LaneKind, LaneState, Worker
from .progress import IoWaitPolicy, advance_task


def update_process_lane(lane: LaneState) -> LaneState:
    """Advance the multi-process lane by one tick."""
    _require_kind(lane, LaneKind.PROCESS)
    return _update_single_queue(lane, PROCESS_MEMORY_PER_TASK, blocked_id=None)


def update_thread_lane(lane: LaneState, contention: ContentionSource) -> LaneState:
    """Advance the multi-thread lane by one tick.

    Lock contention is rolled before any progress: with more than
    CONTENTION_BUSY_THRESHOLD busy workers, one uniformly chosen worker may be
    held off the lock for this tick. The choice spans all workers, so landing
    on an idle one has no visible effect.
    """
    _require_kind(lane, LaneKind.THREAD)
    blocked_id = roll_contention(lane, contention)
    return _update_single_queue(lane, THREAD_MEMORY_PER_TASK, blocked_id=blocked_id)


def roll_contention(lane: LaneState, contention: ContentionSource) -> int | None:
    """Return the id of the worker blocked this tick, or None."""
    if lane.busy_workers <= CONTENTION_BUSY_THRESHOLD:
        return None
    if not contention.chance(LOCK_CONTENTION_PROBABILITY):
        return None
    return lane.workers[contention.pick(len(lane.workers))].worker_id


def _update_single_queue(
    lane: LaneState,
    memory_per_task: int,
    *,
    blocked_id: int | None,
) -> LaneState:
    assert lane.shared_queue is not None and lane.memory_usage is not None

    queue = deque(lane.shared_queue)
    completed = lane.completed_count
    memory = lane.memory_usage
    workers: list[Worker] = []

    for worker in lane.workers:
        if worker.worker_id == blocked_id:
            workers.append(replace(worker, blocked=True))
            continue

        task = worker.current_task
        if task is not None:
            task = advance_task(task, IoWaitPolicy.BLOCKING)
            if task.is_done:
                task = None
                completed += 1

        if task is None and queue:
            task = queue.popleft().start()
            memory += memory_per_task

        workers.append(Worker(worker_id=worker.worker_id, current_task=task))

    return replace(
        lane,
        workers=tuple(workers),
        shared_queue=tuple(queue),
        completed_count=completed,
        memory_usage=max(MEMORY_MIN, min(memory, MEMORY_MAX)),
    )


def _require_kind(lane: LaneState, kind: LaneKind) -> None:
    if lane.kind is not kind:
        raise ValueError(f"Expected a {kind.value} lane, got {lane.kind.value}")

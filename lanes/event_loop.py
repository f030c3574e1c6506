"""
Coroutine lane: a single-threaded event loop.

IO tasks only occupy the loop for their short setup phase, then park in the
waiting pool while the loop immediately picks up the next queued task. CPU
tasks never yield, so one of them stalls every queued start until it is done.
Pool aging does not depend on the worker, so parked IO keeps completing.
"""

from __future__ import annotations

from collections import deque
from dataclasses import replace

from .lane import LaneKind, LaneState, Worker
from .progress import IoWaitPolicy, advance_task, age_waiting_task
from .task import Task


def update_event_loop_lane(lane: LaneState) -> LaneState:
    """Advance the event-loop lane by one tick."""
    if lane.kind is not LaneKind.EVENT_LOOP:
        raise ValueError(f"Expected an event_loop lane, got {lane.kind.value}")
    assert lane.shared_queue is not None and lane.waiting_pool is not None

    completed = lane.completed_count

    # Step 1: age the waiting pool.
    pool: list[Task] = []
    for task in lane.waiting_pool:
        aged = age_waiting_task(task)
        if aged.is_done:
            completed += 1
        else:
            pool.append(aged)

    # Step 2: advance the loop's current task.
    (worker,) = lane.workers
    task = worker.current_task
    if task is not None:
        task = advance_task(task, IoWaitPolicy.HANDOFF)
        if task.is_done:
            completed += 1
            task = None
        elif task.is_waiting:
            pool.append(task)
            task = None

    # Step 3: an idle loop picks the next task in the same tick.
    queue = deque(lane.shared_queue)
    if task is None and queue:
        task = queue.popleft().start()

    return replace(
        lane,
        workers=(Worker(worker_id=worker.worker_id, current_task=task),),
        shared_queue=tuple(queue),
        waiting_pool=tuple(pool),
        completed_count=completed,
    )

"""
Goroutine lane: M:N scheduling with per-worker queues and work stealing.

Every worker owns a private FIFO queue and both task kinds progress without
a blocking wait. After the per-worker pass, idle workers with nothing queued
rebalance by taking the oldest half of the first overloaded peer's queue.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace

from .constants import STEAL_THRESHOLD
from .lane import LaneKind, LaneState, Worker
from .progress import IoWaitPolicy, advance_task
from .task import Task


@dataclass(frozen=True, slots=True)
class Steal:
    """One rebalancing move: `count` tasks from `donor` to `thief`."""

    thief: int
    donor: int
    count: int


def update_work_stealing_lane(lane: LaneState) -> LaneState:
    """Advance the work-stealing lane by one tick."""
    if lane.kind is not LaneKind.WORK_STEALING:
        raise ValueError(f"Expected a work_stealing lane, got {lane.kind.value}")
    assert lane.local_queues is not None

    queues = [deque(q) for q in lane.local_queues]
    completed = lane.completed_count
    workers: list[Worker] = []

    # Steps 1-2: progress, then local FIFO dequeue.
    for worker in lane.workers:
        task = worker.current_task
        if task is not None:
            task = advance_task(task, IoWaitPolicy.NON_BLOCKING)
            if task.is_done:
                task = None
                completed += 1

        local = queues[worker.worker_id]
        if task is None and local:
            task = local.popleft().start()

        workers.append(Worker(worker_id=worker.worker_id, current_task=task))

    # Step 3: stealing, once per tick.
    queues, moves = steal_work(queues, workers)

    return replace(
        lane,
        workers=tuple(workers),
        local_queues=tuple(tuple(q) for q in queues),
        completed_count=completed,
        steal_count=lane.steal_count + len(moves),
    )


def steal_work(
    queues: list[deque[Task]],
    workers: list[Worker] | tuple[Worker, ...],
) -> tuple[list[deque[Task]], list[Steal]]:
    """Run the stealing pass; return the rebalanced queues and the moves made.

    Thieves are visited in worker index order and each scans donors in
    ascending index order, so later thieves see the queues left by earlier
    steals. A thief takes from at most one donor per tick.
    """
    result = [deque(q) for q in queues]
    moves: list[Steal] = []
    for worker in workers:
        thief = worker.worker_id
        if worker.current_task is not None or result[thief]:
            continue
        for donor in range(len(result)):
            if donor == thief or len(result[donor]) <= STEAL_THRESHOLD:
                continue
            count = len(result[donor]) // 2
            result[thief].extend(result[donor].popleft() for _ in range(count))
            moves.append(Steal(thief=thief, donor=donor, count=count))
            break
    return result, moves

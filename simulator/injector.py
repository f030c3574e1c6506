"""
Task injection into each lane's queue shape.

Shared-queue lanes (process, thread, event loop) receive tasks at the tail of
their single queue. The work-stealing lane spreads IO batches round-robin
across its private queues and always parks CPU tasks on worker 0's queue.
"""

from __future__ import annotations

from dataclasses import replace
from itertools import count
from typing import Iterable, Mapping

from lanes.constants import CPU_INJECTION_QUEUE, DEFAULT_IO_BATCH
from lanes.lane import LaneKind, LaneState
from lanes.task import Task, TaskKind


class TaskInjector:
    """Creates QUEUED tasks with unique, stable ids and enqueues them."""

    __slots__ = ("_ids", "_prefix")

    def __init__(self, id_prefix: str = "") -> None:
        self._ids = count()
        self._prefix = id_prefix

    def new_task(self, kind: TaskKind) -> Task:
        return Task(task_id=f"{self._prefix}{kind.value.lower()}-{next(self._ids)}", kind=kind)

    def spawn_io_batch(
        self,
        lanes: Mapping[LaneKind, LaneState],
        count: int = DEFAULT_IO_BATCH,
        targets: Iterable[LaneKind] | None = None,
    ) -> dict[LaneKind, LaneState]:
        """Enqueue `count` fresh IO tasks into every target lane."""
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        tasks = [self.new_task(TaskKind.IO) for _ in range(count)]
        return self._distribute(lanes, tasks, targets, round_robin=True)

    def inject_cpu_task(
        self,
        lanes: Mapping[LaneKind, LaneState],
        targets: Iterable[LaneKind] | None = None,
    ) -> dict[LaneKind, LaneState]:
        """Enqueue one fresh CPU ("poison") task into every target lane."""
        task = self.new_task(TaskKind.CPU)
        return self._distribute(lanes, [task], targets, round_robin=False)

    def _distribute(
        self,
        lanes: Mapping[LaneKind, LaneState],
        tasks: list[Task],
        targets: Iterable[LaneKind] | None,
        *,
        round_robin: bool,
    ) -> dict[LaneKind, LaneState]:
        selected = set(lanes) if targets is None else {LaneKind.from_value(t) for t in targets}
        unknown = selected - set(lanes)
        if unknown:
            names = ", ".join(sorted(kind.value for kind in unknown))
            raise ValueError(f"Unknown target lane(s): {names}")

        updated = dict(lanes)
        for kind in selected:
            updated[kind] = enqueue(lanes[kind], tasks, round_robin=round_robin)
        return updated


def enqueue(lane: LaneState, tasks: list[Task], *, round_robin: bool = True) -> LaneState:
    """Return `lane` with `tasks` appended to its queue shape."""
    if lane.shared_queue is not None:
        return replace(lane, shared_queue=lane.shared_queue + tuple(tasks))

    assert lane.local_queues is not None
    queues = [list(q) for q in lane.local_queues]
    for index, task in enumerate(tasks):
        target = index % len(queues) if round_robin else CPU_INJECTION_QUEUE
        queues[target].append(task)
    return replace(lane, local_queues=tuple(tuple(q) for q in queues))

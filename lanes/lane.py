"""
Worker slots and per-model lane state.

A LaneState is one concurrency model's full state at an instant. Update
functions never mutate it; they build and return the next LaneState.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from .constants import (
    DEFAULT_WORKER_COUNT,
    EVENT_LOOP_WORKER_COUNT,
    MEMORY_MAX,
    MEMORY_MIN,
)
from .task import Task, TaskStatus


class LaneKind(str, Enum):
    """The four simulated concurrency models."""

    PROCESS = "process"
    THREAD = "thread"
    EVENT_LOOP = "event_loop"
    WORK_STEALING = "work_stealing"

    @property
    def label(self) -> str:
        return {
            LaneKind.PROCESS: "1. Multi-Process",
            LaneKind.THREAD: "2. Multi-Thread",
            LaneKind.EVENT_LOOP: "3. Coroutine (Event Loop)",
            LaneKind.WORK_STEALING: "4. Goroutine (M:N + Work Stealing)",
        }[self]

    @property
    def description(self) -> str:
        return {
            LaneKind.PROCESS: (
                "4 workers, shared queue. I/O blocks the worker completely. "
                "Large memory footprint."
            ),
            LaneKind.THREAD: (
                "4 workers, shared queue. I/O blocks the worker. "
                "Lock contention may pause a worker for a tick."
            ),
            LaneKind.EVENT_LOOP: (
                "1 worker, event loop. I/O is non-blocking, "
                "but a CPU task freezes everything."
            ),
            LaneKind.WORK_STEALING: (
                "4 workers, local queues. Work stealing keeps throughput high "
                "even with CPU tasks."
            ),
        }[self]

    @property
    def default_worker_count(self) -> int:
        if self is LaneKind.EVENT_LOOP:
            return EVENT_LOOP_WORKER_COUNT
        return DEFAULT_WORKER_COUNT

    @property
    def has_shared_queue(self) -> bool:
        return self is not LaneKind.WORK_STEALING

    @property
    def has_memory_gauge(self) -> bool:
        return self in (LaneKind.PROCESS, LaneKind.THREAD)

    @classmethod
    def from_value(cls, value: "LaneKind | str") -> "LaneKind":
        if isinstance(value, LaneKind):
            return value

        normalized = value.strip().lower().replace("-", "_")
        aliases = {
            "processes": cls.PROCESS,
            "threads": cls.THREAD,
            "coroutine": cls.EVENT_LOOP,
            "async": cls.EVENT_LOOP,
            "goroutine": cls.WORK_STEALING,
            "mn": cls.WORK_STEALING,
        }
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)


@dataclass(frozen=True, slots=True)
class Worker:
    """A simulated execution slot holding at most one RUNNING task."""

    worker_id: int
    current_task: Task | None = None
    blocked: bool = False  # thread lane only; fresh every tick

    @property
    def is_idle(self) -> bool:
        return self.current_task is None

    def __repr__(self) -> str:
        task_str = self.current_task.task_id if self.current_task else "idle"
        locked = ", LOCKED" if self.blocked else ""
        return f"Worker{self.worker_id}({task_str}{locked})"


@dataclass(frozen=True, slots=True)
class LaneState:
    """Immutable snapshot of one lane: workers, containers and counters."""

    kind: LaneKind
    workers: tuple[Worker, ...]
    shared_queue: tuple[Task, ...] | None = None
    local_queues: tuple[tuple[Task, ...], ...] | None = None
    waiting_pool: tuple[Task, ...] | None = None
    memory_usage: int | None = None
    completed_count: int = 0
    steal_count: int = 0  # work-stealing lane only
    _owners: dict[str, str] = field(default_factory=dict, init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        for index, worker in enumerate(self.workers):
            if worker.worker_id != index:
                raise ValueError(
                    f"{self.kind.value}: worker at position {index} has id {worker.worker_id}"
                )
        if self.memory_usage is not None and not MEMORY_MIN <= self.memory_usage <= MEMORY_MAX:
            raise ValueError(f"{self.kind.value}: memory usage {self.memory_usage} out of range")
        if self.completed_count < 0:
            raise ValueError(f"{self.kind.value}: negative completed count")
        if self.local_queues is not None and len(self.local_queues) != len(self.workers):
            raise ValueError(f"{self.kind.value}: one local queue per worker required")

        for owner, task in self._iter_owned():
            if task.is_done:
                raise ValueError(f"{self.kind.value}: DONE task {task.task_id} still owned by {owner}")
            previous = self._owners.get(task.task_id)
            if previous is not None:
                raise ValueError(
                    f"{self.kind.value}: task {task.task_id} owned by both {previous} and {owner}"
                )
            self._owners[task.task_id] = owner

    def _iter_owned(self) -> Iterator[tuple[str, Task]]:
        for worker in self.workers:
            if worker.current_task is not None:
                if worker.current_task.status not in (TaskStatus.RUNNING, TaskStatus.WAITING_IO):
                    raise ValueError(
                        f"{self.kind.value}: worker{worker.worker_id} holds a "
                        f"{worker.current_task.status.value} task"
                    )
                yield f"worker{worker.worker_id}", worker.current_task
        for task in self.shared_queue or ():
            if task.status is not TaskStatus.QUEUED:
                raise ValueError(f"{self.kind.value}: queued task {task.task_id} is {task.status.value}")
            yield "shared_queue", task
        for index, queue in enumerate(self.local_queues or ()):
            for task in queue:
                if task.status is not TaskStatus.QUEUED:
                    raise ValueError(
                        f"{self.kind.value}: queued task {task.task_id} is {task.status.value}"
                    )
                yield f"local_queue{index}", task
        for task in self.waiting_pool or ():
            if task.status is not TaskStatus.WAITING_IO:
                raise ValueError(f"{self.kind.value}: pooled task {task.task_id} is {task.status.value}")
            yield "waiting_pool", task

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    def all_tasks(self) -> Iterator[Task]:
        """Every task currently owned by this lane, in container order."""
        for _, task in self._iter_owned():
            yield task

    def owner_of(self, task_id: str) -> str | None:
        return self._owners.get(task_id)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self.workers if w.current_task is not None)

    @property
    def blocked_workers(self) -> int:
        return sum(1 for w in self.workers if w.blocked)

    @property
    def queued_count(self) -> int:
        if self.shared_queue is not None:
            return len(self.shared_queue)
        return sum(len(q) for q in self.local_queues or ())

    @property
    def waiting_count(self) -> int:
        return len(self.waiting_pool or ())

    @property
    def in_flight_count(self) -> int:
        return len(self._owners)

    @property
    def is_drained(self) -> bool:
        return not self._owners

    def __repr__(self) -> str:
        return (
            f"Lane({self.kind.value}, busy={self.busy_workers}/{len(self.workers)}, "
            f"queued={self.queued_count}, waiting={self.waiting_count}, "
            f"done={self.completed_count})"
        )


def create_lane(kind: LaneKind | str, worker_count: int | None = None) -> LaneState:
    """Build an empty lane with zeroed counters."""
    kind = LaneKind.from_value(kind)
    if worker_count is None:
        worker_count = kind.default_worker_count
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if kind is LaneKind.EVENT_LOOP and worker_count != EVENT_LOOP_WORKER_COUNT:
        raise ValueError("The event-loop lane has exactly one worker")

    workers = tuple(Worker(worker_id=i) for i in range(worker_count))
    return LaneState(
        kind=kind,
        workers=workers,
        shared_queue=() if kind.has_shared_queue else None,
        local_queues=(
            tuple(() for _ in range(worker_count))
            if kind is LaneKind.WORK_STEALING
            else None
        ),
        waiting_pool=() if kind is LaneKind.EVENT_LOOP else None,
        memory_usage=MEMORY_MIN if kind.has_memory_gauge else None,
        completed_count=0,
    )

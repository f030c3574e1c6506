"""
Task entity and its lifecycle states.

Tasks are immutable values: every transition returns a new Task, so a lane
state built on one tick is never mutated by the next.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .constants import PROGRESS_MAX, PROGRESS_MIN


class TaskKind(str, Enum):
    """Workload class; fixed for the task's lifetime."""

    IO = "IO"
    CPU = "CPU"

    @property
    def glyph(self) -> str:
        return "I" if self is TaskKind.IO else "C"


class TaskStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    WAITING_IO = "WAITING_IO"  # IO tasks only
    DONE = "DONE"


@dataclass(frozen=True, slots=True)
class Task:
    """A unit of work owned by exactly one queue, worker slot or waiting pool."""

    task_id: str
    kind: TaskKind
    progress: int = PROGRESS_MIN
    status: TaskStatus = TaskStatus.QUEUED
    io_wait_delay: int | None = None

    def __post_init__(self) -> None:
        if not PROGRESS_MIN <= self.progress <= PROGRESS_MAX:
            raise ValueError(
                f"Task {self.task_id}: progress {self.progress} outside "
                f"[{PROGRESS_MIN}, {PROGRESS_MAX}]"
            )
        if self.status is TaskStatus.DONE and self.progress != PROGRESS_MAX:
            raise ValueError(f"Task {self.task_id}: DONE with progress {self.progress}")
        if self.kind is TaskKind.CPU and self.status is TaskStatus.WAITING_IO:
            raise ValueError(f"Task {self.task_id}: CPU task cannot wait on IO")
        if self.io_wait_delay is not None:
            if self.status is not TaskStatus.WAITING_IO:
                raise ValueError(
                    f"Task {self.task_id}: io_wait_delay set while {self.status.value}"
                )
            if self.io_wait_delay < 0:
                raise ValueError(f"Task {self.task_id}: negative io_wait_delay")

    @property
    def is_io(self) -> bool:
        return self.kind is TaskKind.IO

    @property
    def is_cpu(self) -> bool:
        return self.kind is TaskKind.CPU

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE

    @property
    def is_waiting(self) -> bool:
        return self.status is TaskStatus.WAITING_IO

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> Task:
        """QUEUED -> RUNNING, on assignment to a worker slot."""
        return replace(self, status=TaskStatus.RUNNING)

    def advance(self, step: int) -> Task:
        return replace(self, progress=min(self.progress + step, PROGRESS_MAX))

    def begin_io_wait(self, delay: int) -> Task:
        return replace(self, status=TaskStatus.WAITING_IO, io_wait_delay=delay)

    def tick_io_wait(self) -> Task:
        assert self.io_wait_delay is not None
        return replace(self, io_wait_delay=self.io_wait_delay - 1)

    def finish(self) -> Task:
        return replace(
            self,
            progress=PROGRESS_MAX,
            status=TaskStatus.DONE,
            io_wait_delay=None,
        )

    def __repr__(self) -> str:
        wait = f", wait={self.io_wait_delay}" if self.io_wait_delay is not None else ""
        return f"Task({self.task_id}, {self.kind.value}, {self.progress}%, {self.status.value}{wait})"

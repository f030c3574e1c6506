"""
Single "advance one task" rule shared by every lane.

Each lane decides what to do with the returned task (keep it in the worker,
move it to a waiting pool, or count it as done); the per-tick progress
accounting itself lives only here.
"""

from __future__ import annotations

from enum import Enum

from .constants import CPU_STEP, IO_SETUP_THRESHOLD, IO_STEP, IO_WAIT_TICKS, PROGRESS_MAX
from .task import Task, TaskKind, TaskStatus


class IoWaitPolicy(str, Enum):
    """How an IO task behaves once its setup phase is over."""

    BLOCKING = "blocking"  # waits inside the worker slot (process / thread)
    HANDOFF = "handoff"  # leaves the worker for a waiting pool (event loop)
    NON_BLOCKING = "non_blocking"  # keeps progressing every tick (work stealing)


def advance_task(task: Task, policy: IoWaitPolicy) -> Task:
    """Advance a task held by a worker by one tick.

    The returned task is DONE when it completed this tick, WAITING_IO when it
    is (still) waiting on IO, and RUNNING otherwise.
    """
    if task.kind is TaskKind.CPU:
        return _advance_cpu(task)
    if task.kind is TaskKind.IO:
        if policy is IoWaitPolicy.BLOCKING:
            return _advance_io_blocking(task)
        if policy is IoWaitPolicy.HANDOFF:
            return _advance_io_handoff(task)
        if policy is IoWaitPolicy.NON_BLOCKING:
            return _advance_io_non_blocking(task)
        raise ValueError(f"Unknown IO wait policy: {policy!r}")
    raise ValueError(f"Unknown task kind: {task.kind!r}")


def age_waiting_task(task: Task) -> Task:
    """Count down a pooled WAITING_IO task; finish it when the delay hits 0."""
    if task.status is not TaskStatus.WAITING_IO or task.io_wait_delay is None:
        raise ValueError(f"{task!r} is not waiting on IO")
    if task.io_wait_delay == 0:
        return task.finish()

    aged = task.tick_io_wait()
    if aged.io_wait_delay == 0:
        return aged.finish()
    return aged


def _advance_cpu(task: Task) -> Task:
    advanced = task.advance(CPU_STEP)
    if advanced.progress >= PROGRESS_MAX:
        return advanced.finish()
    return advanced


def _advance_io_blocking(task: Task) -> Task:
    # One transition per tick: setup, enter wait, count down, complete.
    if task.progress < IO_SETUP_THRESHOLD:
        return task.advance(IO_STEP)
    if task.io_wait_delay is None:
        return task.begin_io_wait(IO_WAIT_TICKS)
    if task.io_wait_delay > 0:
        return task.tick_io_wait()
    return task.finish()


def _advance_io_handoff(task: Task) -> Task:
    if task.progress < IO_SETUP_THRESHOLD:
        return task.advance(IO_STEP)
    return task.begin_io_wait(IO_WAIT_TICKS)


def _advance_io_non_blocking(task: Task) -> Task:
    advanced = task.advance(IO_STEP)
    if advanced.progress >= PROGRESS_MAX:
        return advanced.finish()
    return advanced

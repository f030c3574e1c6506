"""Plain-text rendering of lane snapshots for the terminal adapter."""

from __future__ import annotations

from typing import Iterable, Mapping

from lanes.lane import LaneKind, LaneState, Worker
from lanes.task import Task, TaskStatus

SHARED_QUEUE_PREVIEW = 20
LOCAL_QUEUE_PREVIEW = 3
WAITING_POOL_PREVIEW = 10
BAR_WIDTH = 20


def task_glyph(task: Task) -> str:
    """`I` IO, `C` CPU, `w` waiting on IO."""
    if task.status is TaskStatus.WAITING_IO:
        return "w"
    return task.kind.glyph


def bar(percent: int, width: int = BAR_WIDTH) -> str:
    filled = max(0, min(width, round(percent * width / 100)))
    return "[" + "#" * filled + "." * (width - filled) + f"] {percent:>3}%"


def _preview(tasks: Iterable[Task], limit: int, more_suffix: str = " more") -> str:
    items = list(tasks)
    glyphs = "".join(task_glyph(task) for task in items[:limit])
    if len(items) > limit:
        glyphs += f" +{len(items) - limit}{more_suffix}"
    return glyphs or "-"


def render_worker(worker: Worker) -> str:
    label = f"Worker {worker.worker_id}"
    if worker.blocked:
        label += " (LOCKED)"
    task = worker.current_task
    if task is None:
        return f"    {label:<18} Idle"

    kind = f"{task.kind.value} Task"
    if task.status is TaskStatus.WAITING_IO:
        kind += " (Waiting)"
    return f"    {label:<18} {kind:<16} {bar(task.progress)}"


def render_lane(state: LaneState) -> str:
    """Render one lane: header, gauges, containers, then workers."""
    lines = [
        state.kind.label,
        f"  {state.kind.description}",
        f"  Completed: {state.completed_count}",
    ]

    if state.memory_usage is not None:
        lines.append(f"  Memory Usage {bar(state.memory_usage)}")

    if state.shared_queue:
        lines.append(
            f"  Global Queue ({len(state.shared_queue)}): "
            f"{_preview(state.shared_queue, SHARED_QUEUE_PREVIEW)}"
        )

    if state.local_queues is not None:
        queues = "  ".join(
            f"Q{index}:{_preview(queue, LOCAL_QUEUE_PREVIEW, more_suffix='')}"
            for index, queue in enumerate(state.local_queues)
        )
        lines.append(f"  Local Queues  {queues}")
        if state.steal_count:
            lines.append(f"  Steals: {state.steal_count}")

    if state.waiting_pool:
        lines.append(
            f"  Waiting I/O ({len(state.waiting_pool)}): "
            f"{_preview(state.waiting_pool, WAITING_POOL_PREVIEW)}"
        )

    lines.append(f"  Workers ({len(state.workers)})")
    lines.extend(render_worker(worker) for worker in state.workers)
    return "\n".join(lines)


def render_arena(snapshot: Mapping[LaneKind, LaneState], tick: int, running: bool = False) -> str:
    status = "running" if running else "paused"
    header = f"=== Concurrency Arena | tick {tick} | {status} ==="
    body = "\n\n".join(render_lane(snapshot[kind]) for kind in LaneKind if kind in snapshot)
    legend = "Legend: I = I/O task, C = CPU task, w = waiting on I/O"
    return f"{header}\n{body}\n\n{legend}"

"""
Tick engine for the concurrency arena.

Holds the current state of the four lanes and replaces each of them
wholesale once per tick. Lanes share no data, so their updates run in a
fixed order purely for reproducible traces.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from lanes.constants import DEFAULT_IO_BATCH
from lanes.contention import ContentionSource, RandomContention
from lanes.event_loop import update_event_loop_lane
from lanes.lane import LaneKind, LaneState, create_lane
from lanes.single_queue import update_process_lane, update_thread_lane
from lanes.work_stealing import update_work_stealing_lane

from .injector import TaskInjector
from .stats import StatsCollector

TRACE_LIMIT = 2000

LANE_ORDER: tuple[LaneKind, ...] = (
    LaneKind.PROCESS,
    LaneKind.THREAD,
    LaneKind.EVENT_LOOP,
    LaneKind.WORK_STEALING,
)


def create_lanes() -> dict[LaneKind, LaneState]:
    """Fresh, empty lanes with 4/4/1/4 workers."""
    return {kind: create_lane(kind) for kind in LANE_ORDER}


class SimulationEngine:
    """Discrete tick engine driving all four lanes.

    Lane states are process-wide values owned by the engine; callers get
    read-only snapshots and never mutate them.
    """

    __slots__ = (
        "tick_count",
        "contention",
        "injector",
        "stats",
        "trace",
        "trace_log",
        "_lanes",
    )

    def __init__(
        self,
        contention: ContentionSource | None = None,
        trace: bool = False,
        injector: TaskInjector | None = None,
    ) -> None:
        self.tick_count: int = 0
        self.contention: ContentionSource = contention or RandomContention()
        self.injector = injector or TaskInjector()
        self.stats = StatsCollector()
        self.trace = trace
        self.trace_log: list[str] = []
        self._lanes: dict[LaneKind, LaneState] = create_lanes()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    def snapshot(self) -> Mapping[LaneKind, LaneState]:
        return MappingProxyType(dict(self._lanes))

    def lane(self, kind: LaneKind | str) -> LaneState:
        return self._lanes[LaneKind.from_value(kind)]

    def completed(self, kind: LaneKind | str) -> int:
        return self.lane(kind).completed_count

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------
    def update_lane(self, lane: LaneState) -> LaneState:
        """Apply the lane's own update function once."""
        if lane.kind is LaneKind.PROCESS:
            return update_process_lane(lane)
        if lane.kind is LaneKind.THREAD:
            return update_thread_lane(lane, self.contention)
        if lane.kind is LaneKind.EVENT_LOOP:
            return update_event_loop_lane(lane)
        if lane.kind is LaneKind.WORK_STEALING:
            return update_work_stealing_lane(lane)
        raise ValueError(f"Unknown lane kind: {lane.kind!r}")

    def tick(self) -> int:
        """Advance every lane by one tick and return the new tick number."""
        before = self._lanes
        after = {kind: self.update_lane(before[kind]) for kind in LANE_ORDER}
        for kind in LANE_ORDER:
            check_transition(before[kind], after[kind])

        self._lanes = after
        self.tick_count += 1
        self.stats.record_tick(before, after)
        if self.trace:
            self._trace_tick(before, after)
        return self.tick_count

    def run(self, ticks: int) -> None:
        for _ in range(ticks):
            self.tick()

    def run_until(
        self,
        predicate: Callable[["SimulationEngine"], bool],
        max_ticks: int = 10_000,
    ) -> int:
        """Tick until `predicate(engine)` holds; return ticks taken.

        Raises RuntimeError if the predicate still fails after `max_ticks`.
        """
        start = self.tick_count
        while not predicate(self):
            if self.tick_count - start >= max_ticks:
                raise RuntimeError(f"Condition not reached within {max_ticks} ticks")
            self.tick()
        return self.tick_count - start

    def run_until_drained(self, kind: LaneKind | str | None = None, max_ticks: int = 10_000) -> int:
        """Tick until one lane (or every lane) holds no tasks."""
        if kind is None:
            return self.run_until(
                lambda engine: all(lane.is_drained for lane in engine._lanes.values()),
                max_ticks,
            )
        kind = LaneKind.from_value(kind)
        return self.run_until(lambda engine: engine._lanes[kind].is_drained, max_ticks)

    # ------------------------------------------------------------------
    # Task injection / reset
    # ------------------------------------------------------------------
    def spawn_io_batch(
        self,
        count: int = DEFAULT_IO_BATCH,
        lanes: Iterable[LaneKind | str] | None = None,
    ) -> None:
        targets = None if lanes is None else [LaneKind.from_value(k) for k in lanes]
        self._lanes = self.injector.spawn_io_batch(self._lanes, count, targets)
        self._log(f"spawned {count} IO task(s)")

    def inject_cpu_task(self, lanes: Iterable[LaneKind | str] | None = None) -> None:
        targets = None if lanes is None else [LaneKind.from_value(k) for k in lanes]
        self._lanes = self.injector.inject_cpu_task(self._lanes, targets)
        self._log("injected 1 CPU task")

    def reset(self) -> None:
        """Discard every lane and rebuild them empty."""
        self._lanes = create_lanes()
        self.tick_count = 0
        self.stats.reset()
        self.trace_log.clear()

    # ------------------------------------------------------------------
    # Tracing
    # ------------------------------------------------------------------
    def _log(self, line: str) -> None:
        if not self.trace:
            return
        self.trace_log.append(f"[{self.tick_count:>5}] {line}")
        if len(self.trace_log) > TRACE_LIMIT:
            del self.trace_log[: len(self.trace_log) - TRACE_LIMIT]

    def _trace_tick(self, before: Mapping[LaneKind, LaneState], after: Mapping[LaneKind, LaneState]) -> None:
        for kind in LANE_ORDER:
            prior, lane = before[kind], after[kind]
            done = lane.completed_count - prior.completed_count
            if done:
                self._log(f"{kind.value}: {done} task(s) done (total {lane.completed_count})")
            for worker in lane.workers:
                if worker.blocked:
                    self._log(f"{kind.value}: worker{worker.worker_id} held off the lock")
            handed_off = lane.waiting_count - prior.waiting_count
            if kind is LaneKind.EVENT_LOOP and handed_off > 0:
                self._log(f"{kind.value}: {handed_off} IO task(s) parked in the waiting pool")
            stolen = lane.steal_count - prior.steal_count
            if stolen:
                self._log(f"{kind.value}: {stolen} steal(s) rebalanced local queues")


def check_transition(before: LaneState, after: LaneState) -> None:
    """Raise ValueError if a tick broke a cross-tick invariant.

    Counters never decrease, every completion removes exactly one task, and
    no surviving task loses progress.
    """
    if after.kind is not before.kind:
        raise ValueError(f"Lane kind changed from {before.kind.value} to {after.kind.value}")
    if len(after.workers) != len(before.workers):
        raise ValueError(f"{after.kind.value}: worker count changed")

    done = after.completed_count - before.completed_count
    if done < 0:
        raise ValueError(f"{after.kind.value}: completed count decreased")

    prior = {task.task_id: task for task in before.all_tasks()}
    current = {task.task_id: task for task in after.all_tasks()}
    new_ids = current.keys() - prior.keys()
    if new_ids:
        raise ValueError(f"{after.kind.value}: tasks appeared during a tick: {sorted(new_ids)}")
    if len(prior) - len(current) != done:
        raise ValueError(
            f"{after.kind.value}: {len(prior) - len(current)} task(s) left the lane "
            f"but {done} completion(s) were counted"
        )
    for task_id, task in current.items():
        if task.progress < prior[task_id].progress:
            raise ValueError(f"{after.kind.value}: task {task_id} lost progress")

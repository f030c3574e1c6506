"""
Statistics collection and reporting for the arena.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from lanes.lane import LaneKind, LaneState


@dataclass
class LaneStats:
    """Per-lane statistics sampled after every tick."""

    kind: LaneKind
    worker_count: int = 0
    completed: int = 0
    completions_per_tick: list[int] = field(default_factory=list)
    drained_at_tick: int | None = None
    peak_queue_depth: int = 0
    peak_waiting: int = 0
    busy_worker_ticks: int = 0
    blocked_worker_ticks: int = 0
    steals: int = 0
    memory_usage: int | None = None

    @property
    def ticks_sampled(self) -> int:
        return len(self.completions_per_tick)

    @property
    def utilization(self) -> float:
        capacity = self.ticks_sampled * self.worker_count
        if not capacity:
            return 0.0
        return self.busy_worker_ticks / capacity

    @property
    def throughput(self) -> float:
        """Average completions per tick."""
        if not self.ticks_sampled:
            return 0.0
        return self.completed / self.ticks_sampled


class StatsCollector:
    """Collects and reports per-lane statistics."""

    __slots__ = ("lane_stats", "tick_count", "_had_work")

    def __init__(self) -> None:
        self.lane_stats: dict[LaneKind, LaneStats] = {}
        self.tick_count: int = 0
        self._had_work: dict[LaneKind, bool] = {}

    def reset(self) -> None:
        self.lane_stats.clear()
        self._had_work.clear()
        self.tick_count = 0

    def record_tick(
        self,
        before: Mapping[LaneKind, LaneState],
        after: Mapping[LaneKind, LaneState],
    ) -> None:
        self.tick_count += 1
        for kind, lane in after.items():
            stats = self.lane_stats.get(kind)
            if stats is None:
                stats = self.lane_stats[kind] = LaneStats(kind=kind, worker_count=len(lane.workers))

            prior = before[kind]
            done_now = lane.completed_count - prior.completed_count
            stats.completions_per_tick.append(done_now)
            stats.completed += done_now
            stats.peak_queue_depth = max(stats.peak_queue_depth, lane.queued_count)
            stats.peak_waiting = max(stats.peak_waiting, lane.waiting_count)
            stats.busy_worker_ticks += lane.busy_workers
            stats.blocked_worker_ticks += lane.blocked_workers
            stats.steals = lane.steal_count
            stats.memory_usage = lane.memory_usage

            # Drain time is measured from the last time work was present.
            if not prior.is_drained:
                self._had_work[kind] = True
                stats.drained_at_tick = None
            if self._had_work.get(kind) and lane.is_drained and stats.drained_at_tick is None:
                stats.drained_at_tick = self.tick_count

    def print_summary(self) -> None:
        """Print a formatted summary of per-lane results."""
        print("\n" + "=" * 80)
        print("Concurrency Arena Results")
        print("=" * 80)
        print(f"Ticks: {self.tick_count} | Lanes: {len(self.lane_stats)}")
        print()
        print(
            f"  {'Lane':<14} {'Workers':>7} {'Done':>6} {'Drained@':>9} {'Util%':>6} "
            f"{'PeakQ':>6} {'PeakWait':>8} {'Blocked':>7} {'Steals':>6} {'Mem%':>5}"
        )
        print("  " + "-" * 78)
        for kind in LaneKind:
            stats = self.lane_stats.get(kind)
            if stats is None:
                continue
            drained = str(stats.drained_at_tick) if stats.drained_at_tick is not None else "-"
            memory = str(stats.memory_usage) if stats.memory_usage is not None else "-"
            print(
                f"  {kind.value:<14} {stats.worker_count:>7} {stats.completed:>6} "
                f"{drained:>9} {stats.utilization * 100:>5.1f}% "
                f"{stats.peak_queue_depth:>6} {stats.peak_waiting:>8} "
                f"{stats.blocked_worker_ticks:>7} {stats.steals:>6} {memory:>5}"
            )
        print("=" * 80)

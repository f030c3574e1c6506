"""
Workload recipes for arena scenarios.

Each scenario is a list of injections applied at given ticks: batches of IO
tasks, CPU "poison" tasks, or both, optionally aimed at a subset of lanes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from lanes.constants import DEFAULT_IO_BATCH
from lanes.lane import LaneKind
from lanes.task import TaskKind

from .engine import SimulationEngine


@dataclass(frozen=True)
class Injection:
    """One task injection applied before the given tick runs."""

    at_tick: int
    kind: TaskKind
    count: int = 1
    lanes: tuple[LaneKind, ...] | None = None

    def apply(self, engine: SimulationEngine) -> None:
        if self.kind is TaskKind.IO:
            engine.spawn_io_batch(self.count, self.lanes)
        else:
            for _ in range(self.count):
                engine.inject_cpu_task(self.lanes)


@dataclass
class Workload:
    """A named sequence of injections."""

    name: str
    description: str
    injections: list[Injection] = field(default_factory=list)

    def due(self, tick: int) -> list[Injection]:
        return [item for item in self.injections if item.at_tick == tick]

    @property
    def last_injection_tick(self) -> int:
        return max((item.at_tick for item in self.injections), default=0)


def run_workload(
    engine: SimulationEngine,
    workload: Workload,
    ticks: int | None = None,
    max_ticks: int = 100_000,
) -> int:
    """Run `workload` on `engine`; return the number of ticks executed.

    With `ticks=None` the run stops once every injection has been applied and
    every lane has drained, or raises RuntimeError after `max_ticks`.
    """
    executed = 0
    while True:
        for injection in workload.due(engine.tick_count):
            injection.apply(engine)

        if ticks is not None:
            if executed >= ticks:
                return executed
        elif engine.tick_count >= workload.last_injection_tick and all(
            lane.is_drained for lane in engine.snapshot().values()
        ):
            return executed
        elif executed >= max_ticks:
            raise RuntimeError(f"Workload {workload.name!r} did not drain within {max_ticks} ticks")

        engine.tick()
        executed += 1


# ---------------------------------------------------------------------------
# Built-in scenarios
# ---------------------------------------------------------------------------

def io_burst_workload() -> Workload:
    """A single burst of IO tasks: blocking vs. non-blocking IO."""
    return Workload(
        name="io_burst",
        description=f"{DEFAULT_IO_BATCH} IO tasks at once.",
        injections=[Injection(0, TaskKind.IO, DEFAULT_IO_BATCH)],
    )


def poison_workload() -> Workload:
    """One CPU task alone."""
    return Workload(
        name="poison",
        description="A single CPU-bound task.",
        injections=[Injection(0, TaskKind.CPU)],
    )


def io_then_poison_workload() -> Workload:
    """IO burst followed by a CPU task that stalls the event loop."""
    return Workload(
        name="io_then_poison",
        description=f"{DEFAULT_IO_BATCH} IO tasks, then one CPU task.",
        injections=[
            Injection(0, TaskKind.IO, DEFAULT_IO_BATCH),
            Injection(0, TaskKind.CPU),
        ],
    )


def poison_first_workload() -> Workload:
    """CPU task queued ahead of an IO burst: the event loop starves."""
    return Workload(
        name="poison_first",
        description=f"One CPU task, then {DEFAULT_IO_BATCH} IO tasks.",
        injections=[
            Injection(0, TaskKind.CPU),
            Injection(0, TaskKind.IO, DEFAULT_IO_BATCH),
        ],
    )


def mixed_workload() -> Workload:
    """Two IO waves with a CPU task between them."""
    return Workload(
        name="mixed",
        description="IO burst, a CPU task, and a second IO burst at tick 30.",
        injections=[
            Injection(0, TaskKind.IO, DEFAULT_IO_BATCH),
            Injection(0, TaskKind.CPU),
            Injection(30, TaskKind.IO, DEFAULT_IO_BATCH),
        ],
    )


def steal_demo_workload() -> Workload:
    """CPU tasks piled on worker 0's queue so idle peers must steal."""
    return Workload(
        name="steal_demo",
        description="Eight CPU tasks plus a short IO batch; watch the steals.",
        injections=[
            Injection(0, TaskKind.CPU, 8),
            Injection(0, TaskKind.IO, 4),
        ],
    )


SCENARIOS: dict[str, Callable[[], Workload]] = {
    "io_burst": io_burst_workload,
    "poison": poison_workload,
    "io_then_poison": io_then_poison_workload,
    "poison_first": poison_first_workload,
    "mixed": mixed_workload,
    "steal_demo": steal_demo_workload,
}

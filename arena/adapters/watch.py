"""Watch adapter: spawn a workload, tick automatically, print frames."""

from __future__ import annotations

from threading import Event

from arena.contract import ArenaAdapterMetadata
from arena.driver import TickDriver
from arena.render import render_arena
from simulator.engine import SimulationEngine


class WatchArenaAdapter:
    """Non-interactive adapter that renders every Nth tick until drained."""

    metadata = ArenaAdapterMetadata(
        name="watch",
        version="1.0.0",
        capabilities=("lifecycle", "render"),
    )

    __slots__ = ("_driver", "_io_batch_size", "_render_every", "_done")

    def __init__(self, driver: TickDriver, io_batch_size: int = 20, render_every: int = 1) -> None:
        self._driver = driver
        self._io_batch_size = io_batch_size
        self._render_every = max(1, render_every)
        self._done = Event()

    def start(self) -> None:
        self._done.clear()
        self._driver.on_tick = self._on_tick
        self._driver.spawn_io_batch(self._io_batch_size)
        self._driver.inject_cpu_task()
        self._driver.start()
        try:
            while not self._done.wait(timeout=0.5):
                if not self._driver.is_running:
                    # Driver stopped on a failed tick; surface the error.
                    self._driver.step()
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def stop(self) -> None:
        self._driver.stop()
        self._driver.on_tick = None
        self._done.set()

    def _on_tick(self, engine: SimulationEngine) -> None:
        lanes = engine.snapshot()
        drained = all(lane.is_drained for lane in lanes.values())
        if drained or engine.tick_count % self._render_every == 0:
            print(render_arena(lanes, engine.tick_count, running=not drained))
            print()
        if drained:
            self._done.set()

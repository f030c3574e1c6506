"""Periodic tick driver: issues one engine tick per interval while running."""

from __future__ import annotations

from threading import RLock, Timer
from typing import Callable

from lanes.constants import TICK_INTERVAL_MS
from simulator.engine import SimulationEngine


class TickDriver:
    """Start/stop wrapper around a self-rearming daemon timer.

    Every tick, reset and injection runs under one lock, so each tick is
    atomic with respect to the caller's commands.
    """

    __slots__ = (
        "engine",
        "interval_ms",
        "on_tick",
        "_timer",
        "_running",
        "_generation",
        "_error",
        "_lock",
    )

    def __init__(
        self,
        engine: SimulationEngine,
        interval_ms: int = TICK_INTERVAL_MS,
        on_tick: Callable[[SimulationEngine], None] | None = None,
    ) -> None:
        if interval_ms < 1:
            raise ValueError("interval_ms must be >= 1")
        self.engine = engine
        self.interval_ms = interval_ms
        self.on_tick = on_tick
        self._timer: Timer | None = None
        self._running = False
        self._generation = 0
        self._error: BaseException | None = None
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> None:
        with self._lock:
            self._raise_pending_error()
            if self._running:
                return
            self._running = True
            self._generation += 1
            self._arm_timer()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._generation += 1
            self._cancel_timer()

    def toggle(self) -> bool:
        with self._lock:
            if self._running:
                self.stop()
            else:
                self.start()
            return self._running

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def step(self, ticks: int = 1) -> int:
        """Run `ticks` manual ticks; return the engine's tick number."""
        with self._lock:
            self._raise_pending_error()
            for _ in range(ticks):
                self._tick_unlocked()
            return self.engine.tick_count

    def reset(self) -> None:
        """Stop ticking and rebuild every lane empty; safe while running."""
        with self._lock:
            self.stop()
            self.engine.reset()
            self._error = None

    def spawn_io_batch(self, count: int) -> None:
        with self._lock:
            self.engine.spawn_io_batch(count)

    def inject_cpu_task(self) -> None:
        with self._lock:
            self.engine.inject_cpu_task()

    def run_locked(self, fn: Callable[[SimulationEngine], object]) -> object:
        """Run `fn(engine)` while no tick can interleave."""
        with self._lock:
            return fn(self.engine)

    # ------------------------------------------------------------------
    # Timer plumbing
    # ------------------------------------------------------------------
    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer = Timer(self.interval_ms / 1000.0, self._on_timer, args=(self._generation,))
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            # A stop/start since arming makes this callback stale.
            if not self._running or generation != self._generation:
                return
            try:
                self._tick_unlocked()
            except Exception as exc:
                self._error = exc
                self._running = False
                self._timer = None
                return
            self._arm_timer()

    def _tick_unlocked(self) -> None:
        self.engine.tick()
        if self.on_tick is not None:
            self.on_tick(self.engine)

    def _raise_pending_error(self) -> None:
        if self._error is not None:
            error, self._error = self._error, None
            raise RuntimeError("Tick driver stopped after a failed tick") from error

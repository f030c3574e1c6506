"""Arena host runtime that wires the engine to one selected adapter."""

from __future__ import annotations

from arena.adapters import create_adapter
from arena.config import ArenaConfig
from arena.driver import TickDriver
from lanes.contention import RandomContention
from simulator.engine import SimulationEngine


class ArenaHost:
    """Bootstraps the engine, tick driver, and one arena adapter."""

    __slots__ = (
        "config",
        "engine",
        "driver",
        "adapter",
    )

    def __init__(self, config: ArenaConfig) -> None:
        self.config = config
        self.engine = SimulationEngine(contention=RandomContention(config.seed))
        self.driver = TickDriver(self.engine, interval_ms=config.tick_interval_ms)
        self.adapter = create_adapter(
            config.adapter_name,
            driver=self.driver,
            config=config,
        )

    def start(self) -> None:
        if self.config.autostart:
            self.driver.start()
        self.adapter.start()

    def stop(self) -> None:
        try:
            self.adapter.stop()
        finally:
            self.driver.stop()

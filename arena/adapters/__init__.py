"""Adapter registry for arena host runtime selection."""

from __future__ import annotations

from arena.config import ArenaConfig
from arena.driver import TickDriver

from .terminal import TerminalArenaAdapter
from .watch import WatchArenaAdapter


def available_adapters() -> tuple[str, ...]:
    return ("terminal", "watch")


def create_adapter(name: str, *, driver: TickDriver, config: ArenaConfig):
    normalized = name.strip().lower()

    if normalized == "terminal":
        return TerminalArenaAdapter(driver=driver, io_batch_size=config.io_batch_size)
    if normalized == "watch":
        return WatchArenaAdapter(
            driver=driver,
            io_batch_size=config.io_batch_size,
            render_every=config.render_every,
        )

    options = ", ".join(available_adapters())
    raise ValueError(f"Unknown ARENA_ADAPTER={name!r}. Supported adapters: {options}")

"""Interactive shell around the concurrency arena engine."""

from arena.config import ArenaConfig, load_arena_config
from arena.driver import TickDriver
from arena.host import ArenaHost

__all__ = [
    "ArenaConfig",
    "ArenaHost",
    "TickDriver",
    "load_arena_config",
]

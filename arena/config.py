"""Configuration loading for the interactive arena host."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from lanes.constants import DEFAULT_IO_BATCH, TICK_INTERVAL_MS


_TRUE_VALUES = {"1", "true", "yes", "on", "y"}
_FALSE_VALUES = {"0", "false", "no", "off", "n"}


@dataclass(frozen=True, slots=True)
class ArenaConfig:
    """Runtime configuration for the tick driver and the terminal adapter."""

    tick_interval_ms: int = TICK_INTERVAL_MS
    io_batch_size: int = DEFAULT_IO_BATCH
    seed: int | None = None
    adapter_name: str = "terminal"
    render_every: int = 1
    autostart: bool = False
    env_file: str = ".env"

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0


def load_arena_config(env_file: str = ".env") -> ArenaConfig:
    """Load arena config from env file with safe parsing defaults."""

    env = parse_env_file(env_file)

    adapter_name = env.get("ARENA_ADAPTER", "terminal").strip() or "terminal"

    return ArenaConfig(
        tick_interval_ms=env_int(env, "ARENA_TICK_MS", default=TICK_INTERVAL_MS, minimum=1),
        io_batch_size=env_int(env, "ARENA_IO_BATCH", default=DEFAULT_IO_BATCH, minimum=1),
        seed=env_opt_int(env, "ARENA_SEED", default=None),
        adapter_name=adapter_name,
        render_every=env_int(env, "ARENA_RENDER_EVERY", default=1, minimum=1),
        autostart=env_bool(env, "ARENA_AUTOSTART", default=False),
        env_file=env_file,
    )


def parse_env_file(path: str) -> dict[str, str]:
    """Parse simple KEY=VALUE lines; a missing file yields no settings."""
    env_path = Path(path)
    if not env_path.exists():
        return {}

    env: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        if text.startswith("export "):
            text = text[7:].strip()
        if "=" not in text:
            continue

        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key:
            env[key] = value

    return env


def env_int(env: dict[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def env_opt_int(env: dict[str, str], key: str, default: int | None) -> int | None:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_bool(env: dict[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default

    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default

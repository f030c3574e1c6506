"""Terminal adapter for interactive operation."""

from __future__ import annotations

from arena.contract import ArenaAdapterMetadata
from arena.driver import TickDriver
from arena.render import render_arena
from lanes.lane import LaneKind

HELP_TEXT = (
    "start | pause | step [n] | spawn [n] | cpu | reset | show | stats | help | quit"
)


class TerminalArenaAdapter:
    """Line-oriented command loop over the tick driver."""

    metadata = ArenaAdapterMetadata(
        name="terminal",
        version="1.0.0",
        capabilities=(
            "commands",
            "lifecycle",
        ),
    )

    __slots__ = ("_driver", "_io_batch_size", "_running")

    def __init__(self, driver: TickDriver, io_batch_size: int = 20) -> None:
        self._driver = driver
        self._io_batch_size = io_batch_size
        self._running = False

    def start(self) -> None:
        self._running = True
        print("Concurrency arena started.")
        print(f"Commands: {HELP_TEXT}")

        while self._running:
            try:
                raw = input("arena> ").strip()
            except EOFError:
                break
            except KeyboardInterrupt:
                break

            if not raw:
                continue
            if raw in {"quit", "exit"}:
                break

            try:
                output = self.execute(raw)
            except (ValueError, RuntimeError) as exc:
                print(f"Error: {exc}")
                continue
            if output:
                print(output)

        self.stop()

    def stop(self) -> None:
        self._running = False
        self._driver.stop()

    def execute(self, raw: str) -> str:
        """Run one command line and return the text to show."""
        command, _, argument = raw.strip().partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command == "help":
            return HELP_TEXT
        if command == "start":
            self._driver.start()
            return f"Running every {self._driver.interval_ms}ms."
        if command == "pause":
            self._driver.stop()
            return f"Paused at tick {self._driver.engine.tick_count}."
        if command == "step":
            self._driver.step(_parse_count(argument, default=1))
            return self._frame()
        if command == "spawn":
            count = _parse_count(argument, default=self._io_batch_size)
            self._driver.spawn_io_batch(count)
            return f"Spawned {count} I/O task(s) into every lane."
        if command == "cpu":
            self._driver.inject_cpu_task()
            return "Injected 1 CPU task into every lane."
        if command == "reset":
            self._driver.reset()
            return "All lanes reset."
        if command == "show":
            return self._frame()
        if command == "stats":
            return self._stats_line()
        return "Unknown command. Type 'help'."

    def _frame(self) -> str:
        return str(
            self._driver.run_locked(
                lambda engine: render_arena(
                    engine.snapshot(),
                    engine.tick_count,
                    running=self._driver.is_running,
                )
            )
        )

    def _stats_line(self) -> str:
        def _collect(engine) -> str:
            parts = [
                f"{kind.value}={engine.completed(kind)}"
                for kind in LaneKind
            ]
            return f"tick {engine.tick_count}: completed " + " ".join(parts)

        return str(self._driver.run_locked(_collect))


def _parse_count(argument: str, *, default: int) -> int:
    if not argument:
        return default
    try:
        value = int(argument)
    except ValueError as exc:
        raise ValueError(f"Expected a positive integer, got {argument!r}") from exc
    if value < 1:
        raise ValueError(f"Expected a positive integer, got {argument!r}")
    return value

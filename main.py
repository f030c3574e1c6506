#!/usr/bin/env python3
"""
Concurrency Arena - headless tick simulation

Simulates, at a fixed logical time step, how four concurrency models drain
the same workload of I/O-bound and CPU-bound tasks:

  process        - 4 workers, shared queue, blocking I/O, heavy memory
  thread         - 4 workers, shared queue, blocking I/O, lock contention
  event_loop     - 1 worker, non-blocking I/O hand-off, CPU blocks the loop
  work_stealing  - 4 workers, private queues, idle workers steal

Usage:
  python main.py [scenario] [options]

Scenarios:
  io_burst        - 20 I/O tasks at once
  poison          - A single CPU task
  io_then_poison  - 20 I/O tasks, then one CPU task (default)
  poison_first    - One CPU task ahead of 20 I/O tasks
  mixed           - Two I/O waves with a CPU task between them
  steal_demo      - CPU tasks piled on one local queue

Options:
  --env-file PATH  Path to env defaults file (default: .env)
  --ticks N        Run exactly N ticks (default: until every lane drains)
  --trace / --no-trace
                   Print per-tick trace
  --stats / --no-stats
                   Print summary statistics
  --frame / --no-frame
                   Print the final lane snapshot
  --seed N         Random seed for lock contention

Env keys in .env:
  SCENARIO, TICKS, TRACE, STATS, FRAME, SEED
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from arena.render import render_arena
from lanes.contention import RandomContention
from simulator.engine import SimulationEngine
from simulator.workload import SCENARIOS, run_workload

DEFAULT_ENV_FILE = ".env"
DEFAULT_SCENARIO = "io_then_poison"
TRUE_VALUES = {"1", "true", "yes", "on", "y"}
FALSE_VALUES = {"0", "false", "no", "off", "n"}


def _warn_env(msg: str) -> None:
    print(f"Warning: {msg}", file=sys.stderr)


def _load_env_file(path: str) -> dict[str, str]:
    """Load simple KEY=VALUE settings from an env file."""
    env_path = Path(path)
    if not env_path.exists():
        return {}

    env: dict[str, str] = {}
    for lineno, line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        if text.startswith("export "):
            text = text[7:].strip()
        if "=" not in text:
            _warn_env(f"Ignoring invalid env line {lineno} in {path!r}: {line!r}")
            continue
        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            _warn_env(f"Ignoring empty key on env line {lineno} in {path!r}")
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        env[key] = value
    return env


def _env_opt_int(env: dict[str, str], key: str, default: int | None, minimum: int | None = None) -> int | None:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        _warn_env(f"{key} must be an integer, got {raw!r}. Using {default}.")
        return default
    if minimum is not None and value < minimum:
        _warn_env(f"{key} must be >= {minimum}, got {value}. Using {default}.")
        return default
    return value


def _env_bool(env: dict[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    _warn_env(
        f"{key} must be one of {sorted(TRUE_VALUES | FALSE_VALUES)}, got {raw!r}. "
        f"Using {default}."
    )
    return default


def _defaults_from_env(env: dict[str, str]) -> dict[str, object]:
    scenario = env.get("SCENARIO", DEFAULT_SCENARIO)
    if scenario not in SCENARIOS:
        _warn_env(f"SCENARIO={scenario!r} is unknown. Using {DEFAULT_SCENARIO!r}.")
        scenario = DEFAULT_SCENARIO

    return {
        "scenario": scenario,
        "ticks": _env_opt_int(env, "TICKS", default=None, minimum=1),
        "trace": _env_bool(env, "TRACE", default=False),
        "stats": _env_bool(env, "STATS", default=True),
        "frame": _env_bool(env, "FRAME", default=False),
        "seed": _env_opt_int(env, "SEED", default=None),
    }


def run_scenario(
    scenario_name: str,
    ticks: int | None = None,
    trace: bool = False,
    seed: int | None = None,
) -> SimulationEngine:
    """Set up and run an arena scenario."""
    if scenario_name not in SCENARIOS:
        print(f"Unknown scenario: {scenario_name}")
        print(f"Available: {', '.join(SCENARIOS.keys())}")
        sys.exit(1)

    engine = SimulationEngine(contention=RandomContention(seed), trace=trace)
    workload = SCENARIOS[scenario_name]()

    limit = f"{ticks} ticks" if ticks is not None else "until drained"
    print(f"Running '{scenario_name}' scenario ({workload.description}) {limit}")
    run_workload(engine, workload, ticks=ticks)

    return engine


def main() -> None:
    argv = sys.argv[1:]

    # Parse env-file first so we can use it for argument defaults.
    env_parser = argparse.ArgumentParser(add_help=False)
    env_parser.add_argument("--env-file", default=DEFAULT_ENV_FILE)
    env_args, _ = env_parser.parse_known_args(argv)
    env = _load_env_file(env_args.env_file)
    defaults = _defaults_from_env(env)

    parser = argparse.ArgumentParser(
        description="Concurrency Arena Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--env-file",
        default=env_args.env_file,
        help=f"Path to env defaults file (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument(
        "scenario",
        nargs="?",
        default=defaults["scenario"],
        choices=list(SCENARIOS.keys()),
        help=f"Simulation scenario (default: {defaults['scenario']})",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=defaults["ticks"],
        help="Number of ticks to run (default: until every lane drains)",
    )
    parser.add_argument(
        "--trace",
        action=argparse.BooleanOptionalAction,
        default=defaults["trace"],
        help=f"Print per-tick trace (default: {'on' if defaults['trace'] else 'off'})",
    )
    parser.add_argument(
        "--stats",
        action=argparse.BooleanOptionalAction,
        default=defaults["stats"],
        help=f"Print summary statistics (default: {'on' if defaults['stats'] else 'off'})",
    )
    parser.add_argument(
        "--frame",
        action=argparse.BooleanOptionalAction,
        default=defaults["frame"],
        help=f"Print the final lane snapshot (default: {'on' if defaults['frame'] else 'off'})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=defaults["seed"],
        help=f"Random seed for reproducibility (default: {defaults['seed']})",
    )

    args = parser.parse_args(argv)
    if args.ticks is not None and args.ticks < 1:
        parser.error("--ticks must be >= 1")

    engine = run_scenario(
        scenario_name=args.scenario,
        ticks=args.ticks,
        trace=args.trace,
        seed=args.seed,
    )

    if args.trace:
        print("\n--- Tick Trace ---")
        for line in engine.trace_log[-200:]:
            print(line)
        if len(engine.trace_log) > 200:
            print(f"... ({len(engine.trace_log) - 200} earlier events)")

    if args.frame:
        print()
        print(render_arena(engine.snapshot(), engine.tick_count))

    if args.stats:
        engine.stats.print_summary()


if __name__ == "__main__":
    main()

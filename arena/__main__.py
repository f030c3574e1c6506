"""CLI entrypoint for the interactive arena."""

from __future__ import annotations

import argparse
from dataclasses import replace

from arena.config import load_arena_config
from arena.host import ArenaHost


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the concurrency arena")
    parser.add_argument("--env-file", default=".env", help="Path to env file")
    parser.add_argument("--adapter", help="Adapter name (terminal or watch)")
    parser.add_argument("--tick-ms", type=int, help="Milliseconds between ticks (default: 100)")
    parser.add_argument("--io-batch", type=int, help="I/O tasks per spawn (default: 20)")
    parser.add_argument("--seed", type=int, help="Seed for thread-lane lock contention")
    parser.add_argument("--render-every", type=int, help="Watch adapter: render every N ticks")
    parser.add_argument(
        "--autostart",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Start ticking immediately",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_arena_config(args.env_file)

    if args.adapter:
        config = replace(config, adapter_name=args.adapter)
    if args.tick_ms:
        config = replace(config, tick_interval_ms=args.tick_ms)
    if args.io_batch:
        config = replace(config, io_batch_size=args.io_batch)
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.render_every:
        config = replace(config, render_every=args.render_every)
    if args.autostart is not None:
        config = replace(config, autostart=args.autostart)

    try:
        host = ArenaHost(config)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    try:
        host.start()
    except KeyboardInterrupt:
        pass
    finally:
        host.stop()


if __name__ == "__main__":
    main()

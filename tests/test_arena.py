from __future__ import annotations

import contextlib
import io
import os
import sys
import tempfile
import threading
import time
import unittest
from dataclasses import replace
from unittest import mock

import main as arena_cli
from arena.adapters import available_adapters, create_adapter
from arena.adapters.terminal import TerminalArenaAdapter
from arena.adapters.watch import WatchArenaAdapter
from arena.config import ArenaConfig, load_arena_config
from arena.driver import TickDriver
from arena.host import ArenaHost
from arena.render import bar, render_arena, render_lane
from lanes.contention import FixedContention
from lanes.lane import LaneKind, Worker, create_lane
from lanes.task import Task, TaskKind, TaskStatus
from simulator.engine import SimulationEngine


class FailingEngine(SimulationEngine):
    def tick(self) -> int:
        raise RuntimeError("boom")


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class ArenaConfigTests(unittest.TestCase):
    def test_load_from_env_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = os.path.join(tmpdir, ".env")
            with open(env_path, "w", encoding="utf-8") as handle:
                handle.write(
                    "# arena settings\n"
                    "ARENA_TICK_MS=50\n"
                    "ARENA_IO_BATCH=lots\n"
                    "ARENA_SEED=7\n"
                    "ARENA_ADAPTER=watch\n"
                    "export ARENA_RENDER_EVERY=\"5\"\n"
                    "ARENA_AUTOSTART=yes\n"
                    "not a setting\n"
                )

            config = load_arena_config(env_path)

        self.assertEqual(config.tick_interval_ms, 50)
        self.assertEqual(config.tick_interval_seconds, 0.05)
        self.assertEqual(config.io_batch_size, 20)
        self.assertEqual(config.seed, 7)
        self.assertEqual(config.adapter_name, "watch")
        self.assertEqual(config.render_every, 5)
        self.assertTrue(config.autostart)

    def test_missing_env_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_arena_config(os.path.join(tmpdir, "missing.env"))
        self.assertEqual(replace(config, env_file=".env"), ArenaConfig())

    def test_non_positive_interval_falls_back(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = os.path.join(tmpdir, ".env")
            with open(env_path, "w", encoding="utf-8") as handle:
                handle.write("ARENA_TICK_MS=0\nARENA_AUTOSTART=maybe\n")
            config = load_arena_config(env_path)
        self.assertEqual(config.tick_interval_ms, 100)
        self.assertFalse(config.autostart)


class TickDriverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = SimulationEngine(contention=FixedContention(False))
        self.driver = TickDriver(self.engine, interval_ms=1)

    def tearDown(self) -> None:
        self.driver.stop()

    def test_manual_step(self) -> None:
        self.driver.spawn_io_batch(4)
        self.assertEqual(self.driver.step(3), 3)
        self.assertFalse(self.driver.is_running)

    def test_timer_ticks_until_stopped(self) -> None:
        reached = threading.Event()

        def on_tick(engine: SimulationEngine) -> None:
            if engine.tick_count >= 3:
                reached.set()

        self.driver.on_tick = on_tick
        self.driver.start()
        self.assertTrue(self.driver.is_running)
        self.assertTrue(reached.wait(timeout=5))

        self.driver.stop()
        stopped_at = self.engine.tick_count
        time.sleep(0.05)
        self.assertFalse(self.driver.is_running)
        self.assertEqual(self.engine.tick_count, stopped_at)

    def test_toggle(self) -> None:
        self.assertTrue(self.driver.toggle())
        self.assertFalse(self.driver.toggle())

    def test_reset_stops_and_clears(self) -> None:
        self.driver.spawn_io_batch(20)
        self.driver.inject_cpu_task()
        self.driver.start()
        self.assertTrue(wait_for(lambda: self.engine.tick_count >= 2))

        self.driver.reset()

        self.assertFalse(self.driver.is_running)
        self.assertEqual(self.engine.tick_count, 0)
        for lane in self.engine.snapshot().values():
            self.assertTrue(lane.is_drained)
            self.assertEqual(lane.completed_count, 0)

    def test_failed_tick_stops_driver_and_surfaces(self) -> None:
        driver = TickDriver(FailingEngine(contention=FixedContention(False)), interval_ms=1)
        driver.start()
        self.assertTrue(wait_for(lambda: not driver.is_running))

        with self.assertRaises(RuntimeError) as ctx:
            driver.start()
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertFalse(driver.is_running)

    def test_interval_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            TickDriver(self.engine, interval_ms=0)


class RenderTests(unittest.TestCase):
    def test_bar(self) -> None:
        self.assertEqual(bar(50, width=10), "[#####.....]  50%")
        self.assertEqual(bar(0, width=4), "[....]   0%")

    def test_thread_lane_shows_lock_and_queue_overflow(self) -> None:
        lane = create_lane(LaneKind.THREAD)
        task = Task(task_id="c1", kind=TaskKind.CPU, progress=40, status=TaskStatus.RUNNING)
        lane = replace(
            lane,
            workers=(Worker(0, task, blocked=True),) + lane.workers[1:],
            shared_queue=tuple(Task(task_id=f"io-{n}", kind=TaskKind.IO) for n in range(25)),
        )

        text = render_lane(lane)

        self.assertIn("2. Multi-Thread", text)
        self.assertIn("Worker 0 (LOCKED)", text)
        self.assertIn("CPU Task", text)
        self.assertIn("Global Queue (25): " + "I" * 20 + " +5 more", text)
        self.assertIn("Memory Usage", text)
        self.assertIn("Idle", text)

    def test_event_loop_lane_shows_waiting_pool(self) -> None:
        lane = create_lane(LaneKind.EVENT_LOOP)
        waiting = Task(
            task_id="io-1",
            kind=TaskKind.IO,
            progress=40,
            status=TaskStatus.WAITING_IO,
            io_wait_delay=4,
        )
        lane = replace(lane, waiting_pool=(waiting,))

        text = render_lane(lane)

        self.assertIn("Waiting I/O (1): w", text)
        self.assertNotIn("Memory Usage", text)

    def test_arena_frame_lists_every_lane(self) -> None:
        engine = SimulationEngine(contention=FixedContention(False))
        engine.spawn_io_batch(5)
        engine.run(1)

        text = render_arena(engine.snapshot(), engine.tick_count, running=True)

        self.assertTrue(text.startswith("=== Concurrency Arena | tick 1 | running ==="))
        for kind in LaneKind:
            self.assertIn(kind.label, text)
        self.assertIn("Q0:", text)
        self.assertIn("Legend:", text)


class TerminalAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = SimulationEngine(contention=FixedContention(False))
        self.driver = TickDriver(self.engine, interval_ms=1)
        self.adapter = TerminalArenaAdapter(self.driver, io_batch_size=5)

    def tearDown(self) -> None:
        self.adapter.stop()

    def test_spawn_step_and_stats(self) -> None:
        self.assertIn("Spawned 5", self.adapter.execute("spawn"))
        self.assertIn("Spawned 2", self.adapter.execute("spawn 2"))
        self.assertEqual(self.engine.lane(LaneKind.PROCESS).queued_count, 7)

        frame = self.adapter.execute("step 2")
        self.assertIn("tick 2 | paused", frame)

        stats = self.adapter.execute("stats")
        self.assertTrue(stats.startswith("tick 2: completed"))
        self.assertIn("event_loop=0", stats)

    def test_cpu_and_reset(self) -> None:
        self.adapter.execute("cpu")
        self.assertEqual(self.engine.lane(LaneKind.WORK_STEALING).local_queues[0][0].kind, TaskKind.CPU)

        self.assertEqual(self.adapter.execute("reset"), "All lanes reset.")
        self.assertTrue(all(lane.is_drained for lane in self.engine.snapshot().values()))

    def test_start_and_pause(self) -> None:
        self.assertIn("Running every 1ms", self.adapter.execute("start"))
        self.assertTrue(self.driver.is_running)
        self.assertIn("Paused at tick", self.adapter.execute("PAUSE"))
        self.assertFalse(self.driver.is_running)

    def test_bad_input(self) -> None:
        self.assertEqual(self.adapter.execute("jump"), "Unknown command. Type 'help'.")
        with self.assertRaises(ValueError):
            self.adapter.execute("step -1")
        with self.assertRaises(ValueError):
            self.adapter.execute("spawn many")

    def test_command_loop_reads_until_quit(self) -> None:
        out = io.StringIO()
        with mock.patch("builtins.input", side_effect=["spawn 1", "", "step", "quit"]):
            with contextlib.redirect_stdout(out):
                self.adapter.start()
        self.assertIn("Spawned 1", out.getvalue())
        self.assertIn("tick 1", out.getvalue())
        self.assertEqual(self.engine.tick_count, 1)


class AdapterRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.driver = TickDriver(SimulationEngine(contention=FixedContention(False)))

    def test_unknown_adapter_fails_fast(self) -> None:
        with self.assertRaises(ValueError):
            create_adapter("gui", driver=self.driver, config=ArenaConfig())

    def test_known_adapters(self) -> None:
        self.assertEqual(available_adapters(), ("terminal", "watch"))
        adapter = create_adapter(" Watch ", driver=self.driver, config=ArenaConfig(render_every=3))
        self.assertIsInstance(adapter, WatchArenaAdapter)
        self.assertEqual(adapter.metadata.name, "watch")

    def test_host_wires_configured_adapter(self) -> None:
        host = ArenaHost(ArenaConfig(adapter_name="terminal", seed=5, tick_interval_ms=20))
        try:
            self.assertIsInstance(host.adapter, TerminalArenaAdapter)
            self.assertEqual(host.driver.interval_ms, 20)
            self.assertEqual(host.engine.contention.seed, 5)
        finally:
            host.stop()

    def test_watch_adapter_runs_until_drained(self) -> None:
        engine = SimulationEngine(contention=FixedContention(False))
        driver = TickDriver(engine, interval_ms=1)
        adapter = WatchArenaAdapter(driver, io_batch_size=2, render_every=1000)

        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            adapter.start()

        self.assertFalse(driver.is_running)
        self.assertTrue(all(lane.is_drained for lane in engine.snapshot().values()))
        self.assertIn("paused", out.getvalue())
        for kind in LaneKind:
            self.assertEqual(engine.completed(kind), 3)


class HeadlessCliTests(unittest.TestCase):
    def test_run_scenario(self) -> None:
        with contextlib.redirect_stdout(io.StringIO()):
            engine = arena_cli.run_scenario("poison", seed=1)
        for kind in LaneKind:
            self.assertEqual(engine.completed(kind), 1)

    def test_main_prints_frame_and_stats(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = os.path.join(tmpdir, ".env")
            with open(env_path, "w", encoding="utf-8") as handle:
                handle.write("SCENARIO=io_burst\nSEED=2\nFRAME=on\n")

            argv = ["main.py", "--env-file", env_path, "--ticks", "3"]
            out = io.StringIO()
            with mock.patch.object(sys, "argv", argv), contextlib.redirect_stdout(out):
                arena_cli.main()

        text = out.getvalue()
        self.assertIn("Running 'io_burst'", text)
        self.assertIn("=== Concurrency Arena | tick 3 | paused ===", text)
        self.assertIn("Concurrency Arena Results", text)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import contextlib
import io
import unittest
from dataclasses import replace

from lanes.contention import FixedContention, RandomContention
from lanes.lane import LaneKind, Worker, create_lane
from lanes.task import Task, TaskKind, TaskStatus
from simulator.engine import LANE_ORDER, SimulationEngine, check_transition
from simulator.injector import TaskInjector, enqueue
from simulator.workload import SCENARIOS, Injection, Workload, run_workload


def quiet_engine(**kwargs) -> SimulationEngine:
    kwargs.setdefault("contention", FixedContention(False))
    return SimulationEngine(**kwargs)


class InjectorTests(unittest.TestCase):
    def test_ids_are_unique_and_prefixed(self) -> None:
        injector = TaskInjector(id_prefix="t")
        ids = {injector.new_task(TaskKind.IO).task_id for _ in range(10)}
        ids.add(injector.new_task(TaskKind.CPU).task_id)
        self.assertEqual(len(ids), 11)
        self.assertIn("tcpu-10", ids)

    def test_io_batch_is_round_robin_for_local_queues(self) -> None:
        engine = quiet_engine()
        engine.spawn_io_batch(5)

        stealing = engine.lane(LaneKind.WORK_STEALING)
        self.assertEqual([len(q) for q in stealing.local_queues], [2, 1, 1, 1])
        self.assertEqual(
            [t.task_id for t in stealing.local_queues[0]],
            ["io-0", "io-4"],
        )
        for kind in (LaneKind.PROCESS, LaneKind.THREAD, LaneKind.EVENT_LOOP):
            self.assertEqual(
                [t.task_id for t in engine.lane(kind).shared_queue],
                [f"io-{n}" for n in range(5)],
            )

    def test_cpu_task_lands_on_queue_zero(self) -> None:
        engine = quiet_engine()
        engine.spawn_io_batch(4)
        engine.inject_cpu_task()

        queues = engine.lane(LaneKind.WORK_STEALING).local_queues
        self.assertEqual([len(q) for q in queues], [2, 1, 1, 1])
        self.assertEqual(queues[0][-1].kind, TaskKind.CPU)
        self.assertEqual(engine.lane(LaneKind.EVENT_LOOP).shared_queue[-1].kind, TaskKind.CPU)

    def test_injection_can_target_lanes(self) -> None:
        engine = quiet_engine()
        engine.spawn_io_batch(3, lanes=["event_loop"])
        self.assertEqual(engine.lane(LaneKind.EVENT_LOOP).queued_count, 3)
        self.assertEqual(engine.lane(LaneKind.PROCESS).queued_count, 0)

    def test_invalid_batch_is_rejected(self) -> None:
        engine = quiet_engine()
        with self.assertRaises(ValueError):
            engine.spawn_io_batch(0)

    def test_unknown_target_is_rejected(self) -> None:
        injector = TaskInjector()
        lanes = {LaneKind.PROCESS: create_lane(LaneKind.PROCESS)}
        with self.assertRaises(ValueError):
            injector.spawn_io_batch(lanes, 1, [LaneKind.THREAD])

    def test_enqueue_without_round_robin_targets_queue_zero(self) -> None:
        lane = create_lane(LaneKind.WORK_STEALING)
        tasks = [Task(task_id=f"c{n}", kind=TaskKind.CPU) for n in range(3)]
        lane = enqueue(lane, tasks, round_robin=False)
        self.assertEqual([len(q) for q in lane.local_queues], [3, 0, 0, 0])


class EngineScenarioTests(unittest.TestCase):
    def test_io_burst_drains_fastest_with_work_stealing(self) -> None:
        engine = quiet_engine()
        engine.spawn_io_batch(20)

        stealing_ticks = engine.run_until(lambda e: e.completed(LaneKind.WORK_STEALING) == 20)
        self.assertEqual(stealing_ticks, 26)
        self.assertLess(engine.completed(LaneKind.PROCESS), 20)

        engine.run_until(lambda e: e.completed(LaneKind.PROCESS) == 20)
        self.assertEqual(engine.tick_count, 71)

    def test_lone_cpu_task_on_event_loop(self) -> None:
        engine = quiet_engine()
        engine.inject_cpu_task(lanes=[LaneKind.EVENT_LOOP])

        engine.tick()
        task = engine.lane(LaneKind.EVENT_LOOP).workers[0].current_task
        self.assertEqual((task.status, task.progress), (TaskStatus.RUNNING, 0))

        engine.tick()
        task = engine.lane(LaneKind.EVENT_LOOP).workers[0].current_task
        self.assertEqual((task.status, task.progress), (TaskStatus.RUNNING, 2))

    def test_cpu_after_io_burst_finishes_last_on_event_loop(self) -> None:
        engine = quiet_engine()
        engine.spawn_io_batch(20)
        engine.inject_cpu_task()

        engine.run_until(lambda e: e.completed(LaneKind.EVENT_LOOP) == 20)
        loop = engine.lane(LaneKind.EVENT_LOOP)
        self.assertEqual(loop.workers[0].current_task.kind, TaskKind.CPU)
        self.assertFalse(loop.is_drained)

        engine.run_until_drained(LaneKind.EVENT_LOOP)
        self.assertEqual(engine.completed(LaneKind.EVENT_LOOP), 21)
        self.assertEqual(engine.tick_count, 111)

    def test_reset_clears_everything(self) -> None:
        engine = quiet_engine(trace=True)
        engine.spawn_io_batch(20)
        engine.inject_cpu_task()
        engine.run(5)

        engine.reset()

        self.assertEqual(engine.tick_count, 0)
        self.assertEqual(engine.trace_log, [])
        self.assertEqual(engine.stats.lane_stats, {})
        for kind, lane in engine.snapshot().items():
            self.assertTrue(lane.is_drained, kind)
            self.assertEqual(lane.completed_count, 0)
            if lane.memory_usage is not None:
                self.assertEqual(lane.memory_usage, 0)
            self.assertTrue(all(w.is_idle and not w.blocked for w in lane.workers))

    def test_completed_counts_never_decrease_under_contention(self) -> None:
        engine = SimulationEngine(contention=RandomContention(seed=3))
        run_workload(engine, SCENARIOS["mixed"]())
        for kind in LANE_ORDER:
            per_tick = engine.stats.lane_stats[kind].completions_per_tick
            self.assertTrue(all(done >= 0 for done in per_tick))
            self.assertEqual(sum(per_tick), engine.completed(kind))
            self.assertEqual(engine.completed(kind), 41)

    def test_snapshot_is_read_only(self) -> None:
        engine = quiet_engine()
        snapshot = engine.snapshot()
        with self.assertRaises(TypeError):
            snapshot[LaneKind.PROCESS] = create_lane(LaneKind.PROCESS)  # type: ignore[index]

    def test_run_until_gives_up(self) -> None:
        engine = quiet_engine()
        with self.assertRaises(RuntimeError):
            engine.run_until(lambda e: False, max_ticks=5)
        self.assertEqual(engine.tick_count, 5)

    def test_trace_records_handoffs_and_completions(self) -> None:
        engine = quiet_engine(trace=True)
        engine.spawn_io_batch(2)
        engine.run_until_drained()

        joined = "\n".join(engine.trace_log)
        self.assertIn("spawned 2 IO task(s)", joined)
        self.assertIn("event_loop: 1 IO task(s) parked in the waiting pool", joined)
        self.assertIn("work_stealing: 2 task(s) done", joined)

    def test_contention_is_traced(self) -> None:
        engine = SimulationEngine(contention=FixedContention(True, index=1), trace=True)
        engine.spawn_io_batch(4, lanes=[LaneKind.THREAD])
        engine.run(2)
        self.assertTrue(any("worker1 held off the lock" in line for line in engine.trace_log))
        self.assertEqual(engine.stats.lane_stats[LaneKind.THREAD].blocked_worker_ticks, 1)


class TransitionCheckTests(unittest.TestCase):
    def setUp(self) -> None:
        self.task = Task(task_id="io-1", kind=TaskKind.IO, progress=20, status=TaskStatus.RUNNING)
        lane = create_lane(LaneKind.PROCESS)
        self.before = replace(lane, workers=(Worker(0, self.task),) + lane.workers[1:])

    def test_lost_progress_is_rejected(self) -> None:
        after = replace(
            self.before,
            workers=(Worker(0, replace(self.task, progress=0)),) + self.before.workers[1:],
        )
        with self.assertRaises(ValueError):
            check_transition(self.before, after)

    def test_vanished_task_must_be_counted(self) -> None:
        after = create_lane(LaneKind.PROCESS)
        with self.assertRaises(ValueError):
            check_transition(self.before, after)

        check_transition(self.before, replace(after, completed_count=1))

    def test_new_task_during_tick_is_rejected(self) -> None:
        after = replace(self.before, shared_queue=(Task(task_id="io-2", kind=TaskKind.IO),))
        with self.assertRaises(ValueError):
            check_transition(self.before, after)


class StatsTests(unittest.TestCase):
    def test_drain_ticks_per_lane(self) -> None:
        engine = quiet_engine()
        run_workload(engine, SCENARIOS["io_burst"]())

        stats = engine.stats.lane_stats
        self.assertEqual(stats[LaneKind.WORK_STEALING].drained_at_tick, 26)
        self.assertEqual(stats[LaneKind.PROCESS].drained_at_tick, 71)
        self.assertEqual(stats[LaneKind.THREAD].drained_at_tick, 71)
        self.assertEqual(stats[LaneKind.EVENT_LOOP].drained_at_tick, 71)
        self.assertEqual(stats[LaneKind.EVENT_LOOP].peak_waiting, 4)
        self.assertEqual(stats[LaneKind.PROCESS].memory_usage, 100)
        self.assertEqual(stats[LaneKind.THREAD].memory_usage, 60)

    def test_summary_prints_every_lane(self) -> None:
        engine = quiet_engine()
        run_workload(engine, SCENARIOS["poison"]())

        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            engine.stats.print_summary()
        text = out.getvalue()
        self.assertIn("Concurrency Arena Results", text)
        for kind in LaneKind:
            self.assertIn(kind.value, text)


class WorkloadTests(unittest.TestCase):
    def test_every_scenario_drains(self) -> None:
        for name, factory in SCENARIOS.items():
            with self.subTest(scenario=name):
                engine = SimulationEngine(contention=RandomContention(seed=1))
                workload = factory()
                run_workload(engine, workload)
                self.assertTrue(all(lane.is_drained for lane in engine.snapshot().values()))

    def test_fixed_tick_count(self) -> None:
        engine = quiet_engine()
        executed = run_workload(engine, SCENARIOS["io_burst"](), ticks=10)
        self.assertEqual(executed, 10)
        self.assertEqual(engine.tick_count, 10)

    def test_late_injection_waits_for_its_tick(self) -> None:
        engine = quiet_engine()
        workload = Workload(
            name="late",
            description="one CPU task at tick 5",
            injections=[Injection(5, TaskKind.CPU, lanes=(LaneKind.EVENT_LOOP,))],
        )
        executed = run_workload(engine, workload)
        self.assertEqual(executed, 5 + 51)
        self.assertEqual(engine.completed(LaneKind.EVENT_LOOP), 1)
        self.assertEqual(engine.completed(LaneKind.PROCESS), 0)

    def test_steal_demo_rebalances(self) -> None:
        engine = quiet_engine()
        run_workload(engine, SCENARIOS["steal_demo"]())
        self.assertGreater(engine.lane(LaneKind.WORK_STEALING).steal_count, 0)
        self.assertEqual(engine.completed(LaneKind.WORK_STEALING), 12)


if __name__ == "__main__":
    unittest.main()

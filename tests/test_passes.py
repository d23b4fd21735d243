import random
import unittest

from aoa_cpm.builder import build_graph
from aoa_cpm.exceptions import (
    CycleDetected,
    ForwardPassNotRun,
    GraphMutatedDuringPass,
    InconsistentSchedule,
    InvalidDuration,
    NegativeFloat,
)
from aoa_cpm.floats import FloatCalculator, critical_activities, critical_paths
from aoa_cpm.graph import ActivityGraph
from aoa_cpm.passes import BackwardPass, ForwardPass

SCENARIO = [("A", 3, []), ("B", 2, ["A"]), ("C", 4, ["A"]), ("D", 1, ["B", "C"])]


def _scheduled(records=SCENARIO, project_finish=None):
    graph = build_graph(records)
    ForwardPass(graph).run()
    BackwardPass(graph, project_finish).run()
    return graph


def _values(graph):
    return {
        act.id: (act.es.value, act.ef.value, act.ls.value, act.lf.value, act.tf, act.ff)
        for act in graph
    }


def _random_records(rng, size):
    records = []
    for i in range(size):
        k = min(i, rng.randint(0, 3))
        records.append((i, rng.randint(0, 9), rng.sample(range(i), k)))
    return records


class TestForwardPass(unittest.TestCase):
    def test_scenario(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph).run()
        got = {act.id: (act.es.value, act.ef.value) for act in graph}
        self.assertEqual(got, {"A": (0, 3), "B": (3, 5), "C": (3, 7), "D": (7, 8)})
        self.assertFalse(graph.get("D").lf.is_known)

    def test_project_start_offset(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph, project_start=10).run()
        self.assertEqual(graph.get("A").es.value, 10)
        self.assertEqual(graph.get("D").ef.value, 18)

    def test_unknown_duration(self):
        graph = ActivityGraph()
        graph.add_activity("A")
        with self.assertRaises(InvalidDuration):
            ForwardPass(graph).run()

    def test_negative_project_start(self):
        with self.assertRaises(ValueError):
            ForwardPass(ActivityGraph(), project_start=-1)

    def test_mutation_during_pass(self):
        graph = build_graph(SCENARIO)
        mutated = []

        def trace(message):
            if not mutated:
                mutated.append(message)
                graph.add_activity("E", 1)

        with self.assertRaises(GraphMutatedDuringPass):
            ForwardPass(graph, trace=trace).run()
        self.assertIn("E", graph)
        self.assertTrue(all(not act.es.is_known for act in graph))
        self.assertIsNone(graph.forward_version)

    def test_cycle_recheck(self):
        graph = build_graph(SCENARIO)
        # Bypass ``link`` to plant a cycle D -> A.
        graph.get("D").successors.append(graph.get("A").index)
        graph.get("A").predecessors.append(graph.get("D").index)
        with self.assertRaises(CycleDetected):
            ForwardPass(graph).run()


class TestBackwardPass(unittest.TestCase):
    def test_scenario(self):
        graph = _scheduled()
        self.assertEqual(graph.project_finish, 8)
        got = {act.id: (act.lf.value, act.ls.value, act.tf) for act in graph}
        self.assertEqual(
            got, {"D": (8, 7, 0), "C": (7, 3, 0), "B": (7, 5, 2), "A": (3, 0, 0)}
        )
        self.assertEqual(critical_activities(graph), ["A", "C", "D"])
        self.assertEqual(critical_paths(graph), [["A", "C", "D"]])

    def test_free_float(self):
        graph = _scheduled()
        self.assertEqual({act.id: act.ff for act in graph}, {"A": 0, "B": 2, "C": 0, "D": 0})

    def test_requires_forward_pass(self):
        graph = build_graph(SCENARIO)
        with self.assertRaises(ForwardPassNotRun) as ctx:
            BackwardPass(graph).run()
        self.assertEqual(ctx.exception.activity_id, "A")

    def test_stale_forward_pass(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph).run()
        graph.add_activity("E", 2)
        with self.assertRaises(ForwardPassNotRun):
            BackwardPass(graph).run()

    def test_empty_graph(self):
        graph = ActivityGraph()
        ForwardPass(graph).run()
        self.assertEqual(BackwardPass(graph).run(), 0)

    def test_infeasible_finish(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph).run()
        with self.assertRaises(NegativeFloat) as ctx:
            BackwardPass(graph, project_finish=6).run()
        self.assertEqual(ctx.exception.activity_id, "D")
        for act in graph:
            self.assertTrue(act.es.is_known)
            self.assertFalse(act.lf.is_known)
            self.assertIsNone(act.tf)
        self.assertIsNone(graph.project_finish)

    def test_imposed_later_finish(self):
        graph = _scheduled(project_finish=10)
        got = {act.id: (act.ls.value, act.lf.value, act.tf, act.ff) for act in graph}
        self.assertEqual(
            got,
            {"A": (2, 5, 2, 0), "B": (7, 9, 4, 2), "C": (5, 9, 2, 0), "D": (9, 10, 2, 2)},
        )
        self.assertEqual(critical_activities(graph), [])
        self.assertEqual(critical_paths(graph), [])

    def test_rerun_is_idempotent(self):
        graph = _scheduled()
        first = _values(graph)
        BackwardPass(graph, project_finish=8).run()
        self.assertEqual(_values(graph), first)

    def test_mutation_during_pass(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph).run()
        mutated = []

        def trace(message):
            if not mutated:
                mutated.append(message)
                graph.link("B", "C")

        with self.assertRaises(GraphMutatedDuringPass):
            BackwardPass(graph, trace=trace).run()

    def test_rejects_non_integer_finish(self):
        with self.assertRaises(TypeError):
            BackwardPass(ActivityGraph(), project_finish=8.5)


class TestFloatCalculator(unittest.TestCase):
    def test_compute_matches_stored(self):
        graph = _scheduled()
        calc = FloatCalculator(graph, 8)
        for act in graph:
            self.assertEqual(calc.compute(act), (act.tf, act.ff))

    def test_negative_free_float_is_inconsistent(self):
        graph = _scheduled()
        graph.get("D").set_es(5)
        with self.assertRaises(InconsistentSchedule) as ctx:
            FloatCalculator(graph, 8).compute(graph.get("C"))
        self.assertEqual(ctx.exception.activity_id, "C")

    def test_missing_backward_results(self):
        graph = build_graph(SCENARIO)
        ForwardPass(graph).run()
        with self.assertRaises(InconsistentSchedule):
            FloatCalculator(graph, 8).compute(graph.get("A"))

    def test_missing_forward_results(self):
        graph = build_graph(SCENARIO)
        with self.assertRaises(ForwardPassNotRun):
            FloatCalculator(graph, 8).compute(graph.get("A"))

    def test_multiple_critical_paths(self):
        graph = _scheduled(
            [("A", 2), ("B", 2), ("C", 2, ["A"]), ("D", 2, ["B"]), ("E", 2, ["C", "D"])]
        )
        self.assertEqual(critical_paths(graph), [["A", "C", "E"], ["B", "D", "E"]])
        self.assertEqual(critical_activities(graph), ["A", "B", "C", "D", "E"])


class TestScheduleProperties(unittest.TestCase):
    def test_random_networks(self):
        rng = random.Random(1234)
        for _ in range(50):
            graph = _scheduled(_random_records(rng, rng.randint(1, 25)))

            for act in graph:
                duration = act.duration.unwrap()
                self.assertEqual(act.ef.value - act.es.value, duration)
                self.assertEqual(act.lf.value - act.ls.value, duration)
                self.assertGreaterEqual(act.tf, act.ff)
                self.assertGreaterEqual(act.ff, 0)
                self.assertEqual(act.lf.value, act.ls.value + duration)

            paths = critical_paths(graph)
            self.assertTrue(paths)
            for path in paths:
                self.assertTrue(graph.get(path[0]).is_source)
                self.assertTrue(graph.get(path[-1]).is_sink)

    def test_single_sink_is_critical(self):
        rng = random.Random(99)
        for _ in range(20):
            records = _random_records(rng, rng.randint(1, 20))
            sinks = set(r[0] for r in records) - {p for r in records for p in r[2]}
            records.append(("END", rng.randint(0, 5), sorted(sinks)))
            graph = _scheduled(records)
            self.assertEqual(graph.get("END").tf, 0)

    def test_values_independent_of_insertion_order(self):
        rng = random.Random(7)
        for _ in range(20):
            records = _random_records(rng, rng.randint(2, 20))
            shuffled = list(records)
            rng.shuffle(shuffled)
            self.assertEqual(_values(_scheduled(records)), _values(_scheduled(shuffled)))


if __name__ == "__main__":
    unittest.main()

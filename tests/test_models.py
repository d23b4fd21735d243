import unittest

from aoa_cpm.models import Activity, ActivityRecord, Cost, Moment


class TestMomentAndCost(unittest.TestCase):
    def test_unknown_is_not_zero(self):
        self.assertNotEqual(Moment.unknown(), Moment(0))
        self.assertFalse(Moment.unknown().is_known)
        self.assertTrue(Moment(0).is_known)
        self.assertFalse(Cost.unknown().is_known)

    def test_unwrap_unknown_raises(self):
        with self.assertRaises(ValueError):
            Moment.unknown().unwrap()
        with self.assertRaises(ValueError):
            Cost.unknown().unwrap()

    def test_arithmetic_with_cost(self):
        self.assertEqual(Moment(3) + Cost(4), Moment(7))
        self.assertEqual(Moment(7) - Cost(4), Moment(3))
        self.assertEqual(Moment.unknown() + Cost(4), Moment.unknown())
        self.assertEqual(Moment(3) + Cost.unknown(), Moment.unknown())

    def test_rejects_negative_and_non_integer(self):
        with self.assertRaises(ValueError):
            Moment(-1)
        with self.assertRaises(ValueError):
            Cost(-2)
        with self.assertRaises(TypeError):
            Cost(1.5)
        with self.assertRaises(TypeError):
            Moment(True)

    def test_str(self):
        self.assertEqual(str(Moment.unknown()), "-")
        self.assertEqual(str(Moment(5)), "5")
        self.assertEqual(str(Cost(2)), "2")


class TestActivity(unittest.TestCase):
    def test_derived_fields(self):
        act = Activity(id="A", index=0, duration=Cost(3))
        self.assertFalse(act.ef.is_known)
        act.set_es(2)
        self.assertEqual(act.ef, Moment(5))
        act.set_lf(10)
        self.assertEqual(act.ls, Moment(7))

    def test_late_finish_shorter_than_duration(self):
        act = Activity(id="A", index=0, duration=Cost(3))
        with self.assertRaises(ValueError):
            act.set_lf(2)

    def test_reset_calculations(self):
        act = Activity(id="A", index=0, duration=Cost(1))
        act.set_es(0)
        act.set_lf(1)
        act.total_float = 0
        act.free_float = 0
        self.assertTrue(act.is_critical)

        act.reset_calculations()
        self.assertFalse(act.es.is_known)
        self.assertFalse(act.lf.is_known)
        self.assertIsNone(act.tf)
        self.assertFalse(act.is_critical)

    def test_record_normalises_predecessors(self):
        record = ActivityRecord("B", 2, ["A"])
        self.assertEqual(record.predecessor_ids, ("A",))


if __name__ == "__main__":
    unittest.main()

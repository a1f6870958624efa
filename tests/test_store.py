from __future__ import annotations

import importlib
import os
import tempfile
import unittest
from datetime import date, datetime, timezone


class StoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "test_store.db")
        self._old_db_path = os.environ.get("DB_PATH")
        os.environ["DB_PATH"] = self.db_path

        import habitstats.db as db_mod
        importlib.reload(db_mod)
        import habitstats.store as store_mod
        importlib.reload(store_mod)

        db_mod.init_db()
        self.db_mod = db_mod
        self.store = store_mod

    def tearDown(self) -> None:
        if self._old_db_path is None:
            os.environ.pop("DB_PATH", None)
        else:
            os.environ["DB_PATH"] = self._old_db_path
        self._tmp.cleanup()

    def test_create_and_get_habit(self) -> None:
        row = self.store.create_habit(
            name="Water",
            polarity="good",
            tracking_mode="counter",
            daily_goal=8,
            created_on="2024-01-01",
        )
        self.assertEqual(row["name"], "Water")
        d = self.store.get_habit(row["id"])
        self.assertIsNotNone(d)
        self.assertEqual(d.polarity.value, "good")
        self.assertEqual(d.tracking_mode.value, "counter")
        self.assertEqual(d.daily_goal, 8)
        self.assertEqual(d.created_on, date(2024, 1, 1))

    def test_goal_dropped_for_binary_habit(self) -> None:
        row = self.store.create_habit(name="Read", polarity="good", daily_goal=3)
        self.assertIsNone(row["daily_goal"])

    def test_invalid_habit_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.store.create_habit(name="x", polarity="neutral")
        with self.assertRaises(ValueError):
            self.store.create_habit(name="  ", polarity="good")
        with self.assertRaises(ValueError):
            self.store.create_habit(name="x", polarity="good", tracking_mode="counter", daily_goal=0)

    def test_missing_habit_is_none(self) -> None:
        self.assertIsNone(self.store.get_habit("nope"))

    def test_archive_hides_habit(self) -> None:
        row = self.store.create_habit(name="Old", polarity="bad")
        self.assertTrue(self.store.archive_habit(row["id"]))
        self.assertFalse(self.store.archive_habit(row["id"]))
        self.assertEqual(self.store.list_habits(), [])
        self.assertEqual(len(self.store.list_habits(include_archived=True)), 1)

    def test_completion_is_unique_per_day(self) -> None:
        row = self.store.create_habit(name="Read", polarity="good")
        self.store.log_completion(row["id"], completed_date="2024-01-02")
        self.store.log_completion(row["id"], completed_date="2024-01-02", quantity=2)
        records = self.store.fetch_completions(row["id"])
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].date, "2024-01-02")
        self.assertEqual(records[0].quantity, 2)

    def test_occurrence_backfill_uses_event_date(self) -> None:
        row = self.store.create_habit(name="Snack", polarity="bad", tracking_mode="counter")
        out = self.store.log_occurrence(row["id"], event_date="2024-01-05")
        self.assertEqual(out["event_date"], "2024-01-05")
        self.assertIn("T12:00:00", out["occurred_at"])

        records = self.store.fetch_occurrences(row["id"])
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].date, "2024-01-05")
        self.assertEqual(records[0].timestamp, out["occurred_at"])

    def test_occurrence_with_explicit_time_keeps_it(self) -> None:
        row = self.store.create_habit(name="Snack", polarity="bad")
        at = datetime(2024, 1, 5, 8, 30, tzinfo=timezone.utc)
        out = self.store.log_occurrence(row["id"], occurred_at=at, event_date="2024-01-05", quantity=2)
        self.assertEqual(out["quantity"], 2)
        self.assertEqual(datetime.fromisoformat(out["occurred_at"]), at)

    def test_invalid_quantity_is_rejected(self) -> None:
        row = self.store.create_habit(name="Read", polarity="good")
        with self.assertRaises(ValueError):
            self.store.log_completion(row["id"], completed_date="2024-01-02", quantity=0)
        with self.assertRaises(ValueError):
            self.store.log_completion(row["id"], completed_date="yesterday")

    def test_since_date_filters(self) -> None:
        row = self.store.create_habit(name="Snack", polarity="bad")
        for d in ("2024-01-01", "2024-01-05", "2024-01-09"):
            self.store.log_occurrence(row["id"], event_date=d)
        recent = self.store.fetch_occurrences(row["id"], since_date="2024-01-05")
        self.assertEqual([r.date for r in recent], ["2024-01-09", "2024-01-05"])
        self.assertEqual(len(self.store.fetch_all_occurrences(since_date=date(2024, 1, 9))), 1)
        with self.assertRaises(ValueError):
            self.store.fetch_occurrences(row["id"], since_date="last week")

    def test_log_action_routes_by_kind(self) -> None:
        good = self.store.get_habit(self.store.create_habit(name="Read", polarity="good")["id"])
        counter = self.store.get_habit(
            self.store.create_habit(name="Water", polarity="good", tracking_mode="counter")["id"]
        )
        bad = self.store.get_habit(self.store.create_habit(name="Snack", polarity="bad")["id"])

        source, _ = self.store.log_action(good, day="2024-01-02")
        self.assertEqual(source.value, "completions")
        source, _ = self.store.log_action(counter, day="2024-01-02", quantity=3)
        self.assertEqual(source.value, "occurrences")
        source, _ = self.store.log_action(bad, day="2024-01-02")
        self.assertEqual(source.value, "occurrences")

        self.assertEqual(len(self.store.fetch_all_completions()), 1)
        self.assertEqual(len(self.store.fetch_all_occurrences()), 2)
        completions, occurrences = self.store.fetch_records(counter)
        self.assertEqual(completions, [])
        self.assertEqual(occurrences[0].quantity, 3)

    def test_delete_is_scoped_to_habit(self) -> None:
        a = self.store.create_habit(name="A", polarity="bad")
        b = self.store.create_habit(name="B", polarity="bad")
        rec = self.store.log_occurrence(a["id"], event_date="2024-01-01")
        self.assertFalse(self.store.delete_occurrence(b["id"], rec["id"]))
        self.assertTrue(self.store.delete_occurrence(a["id"], rec["id"]))
        self.assertEqual(self.store.fetch_occurrences(a["id"]), [])

    def test_history_uses_the_kind_source_newest_first(self) -> None:
        bad = self.store.get_habit(self.store.create_habit(name="Snack", polarity="bad")["id"])
        for d in ("2024-01-01", "2024-01-09", "2024-01-05"):
            self.store.log_occurrence(bad.id, event_date=d)
        self.store.log_completion(bad.id, completed_date="2024-01-10")

        history = self.store.fetch_history(bad)
        self.assertEqual([h["date"] for h in history], ["2024-01-09", "2024-01-05", "2024-01-01"])
        self.assertEqual({h["source"] for h in history}, {"occurrences"})
        self.assertEqual(history[0]["quantity"], 1)
        self.assertEqual(len(self.store.fetch_history(bad, limit=2)), 2)
        with self.assertRaises(ValueError):
            self.store.fetch_history(bad, limit=0)

        good = self.store.get_habit(self.store.create_habit(name="Read", polarity="good")["id"])
        row = self.store.log_completion(good.id, completed_date="2024-01-02", quantity=2)
        history = self.store.fetch_history(good)
        self.assertEqual(history[0]["id"], row["id"])
        self.assertEqual(history[0]["source"], "completions")
        self.assertEqual(history[0]["quantity"], 2)

    def test_record_counts(self) -> None:
        row = self.store.create_habit(name="Read", polarity="good")
        self.store.log_completion(row["id"], completed_date="2024-01-02")
        self.assertEqual(self.store.record_counts(), {"habits": 1, "completions": 1, "occurrences": 0})


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import tempfile
import unittest
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from flowstate.ledger import LOGS_KEY, SETTINGS_KEY, Ledger
from flowstate.models import DEFAULT_CATEGORIES, AppSettings, LogEntry
from flowstate.slots import SLOT_MS, to_millis
from flowstate.storage import MemoryKeyValueStore, SQLiteKeyValueStore, StorageError

NOW = datetime(2026, 1, 7, 9, 20)


def _ts(day: int, hour: int, minute: int = 0) -> int:
    return to_millis(datetime(2026, 1, day, hour, minute))


def _entry(entry_id: str, timestamp: int, description: str = "Work", category: str | None = None) -> LogEntry:
    return LogEntry(id=entry_id, timestamp=timestamp, description=description, category=category)


class FailingStorage:
    def get(self, key: str) -> Any | None:
        raise StorageError("disk unavailable")

    def set(self, key: str, value: Any) -> None:
        raise StorageError("disk full")

    def delete(self, key: str) -> None:
        raise StorageError("disk full")

    def clear(self) -> None:
        raise StorageError("disk full")


class EntryStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryKeyValueStore()
        self.ledger = Ledger(self.store, clock=lambda: NOW)

    def test_upsert_new_timestamp_grows_store(self) -> None:
        self.ledger.upsert(_entry("a", _ts(7, 9)))
        entries = self.ledger.upsert(_entry("b", _ts(7, 9, 15)))
        self.assertEqual(len(entries), 2)
        self.assertEqual(len(self.ledger.logs()), 2)

    def test_upsert_existing_timestamp_replaces(self) -> None:
        self.ledger.upsert(_entry("a", _ts(7, 9), "Email"))
        self.ledger.upsert(_entry("b", _ts(7, 9), "Coding"))
        entries = self.ledger.logs()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].id, "b")
        self.assertEqual(entries[0].description, "Coding")

    def test_store_stays_sorted(self) -> None:
        for entry_id, ts in [("c", _ts(7, 11)), ("a", _ts(6, 9)), ("b", _ts(7, 9, 45)), ("d", _ts(5, 23))]:
            self.ledger.upsert(_entry(entry_id, ts))
        stored = self.ledger.logs()
        self.assertEqual([entry.id for entry in stored], ["d", "a", "b", "c"])
        raw = self.store.get(LOGS_KEY)
        self.assertEqual([item["timestamp"] for item in raw], sorted(item["timestamp"] for item in raw))

    def test_upsert_rejects_unaligned_timestamp(self) -> None:
        with self.assertRaises(ValueError):
            self.ledger.upsert(_entry("a", _ts(7, 9, 7)))
        self.assertEqual(self.ledger.logs(), [])

    def test_delete(self) -> None:
        self.ledger.upsert(_entry("a", _ts(7, 9)))
        self.ledger.upsert(_entry("b", _ts(7, 10)))
        self.assertEqual([e.id for e in self.ledger.delete("a")], ["b"])
        self.assertEqual([e.id for e in self.ledger.delete("missing")], ["b"])

    def test_query_range_is_inclusive(self) -> None:
        for index, hour in enumerate([8, 9, 10, 11]):
            self.ledger.upsert(_entry(str(index), _ts(7, hour)))
        found = self.ledger.query_range(_ts(7, 9), _ts(7, 11))
        self.assertEqual([e.id for e in found], ["1", "2", "3"])
        self.assertEqual(self.ledger.query_range(_ts(7, 12), _ts(7, 13)), [])

    def test_activity_dates_are_deduplicated_by_day(self) -> None:
        self.ledger.upsert(_entry("a", _ts(5, 9)))
        self.ledger.upsert(_entry("b", _ts(5, 17, 30)))
        self.ledger.upsert(_entry("c", _ts(7, 0)))
        self.assertEqual(
            self.ledger.activity_dates(),
            [to_millis(datetime(2026, 1, 5)), to_millis(datetime(2026, 1, 7))],
        )

    def test_entry_at(self) -> None:
        self.ledger.upsert(_entry("a", _ts(7, 9)))
        self.assertEqual(self.ledger.entry_at(_ts(7, 9)).id, "a")
        self.assertIsNone(self.ledger.entry_at(_ts(7, 9, 15)))


class DayViewTests(unittest.TestCase):
    def test_view_follows_configured_grid(self) -> None:
        ledger = Ledger(MemoryKeyValueStore(), clock=lambda: NOW)
        ledger.save_settings(AppSettings(start_hour=9, end_hour=10))
        ledger.upsert(_entry("in", _ts(7, 9, 15), "Standup"))
        ledger.upsert(_entry("out", _ts(7, 8), "Breakfast"))

        view = ledger.day_view(date(2026, 1, 7))
        self.assertEqual([slot.time_label for slot in view], ["09:00", "09:15", "09:30", "09:45"])
        self.assertEqual(view[1].log.id, "in")
        self.assertIsNone(view[0].log)
        self.assertTrue(view[0].is_past)
        self.assertTrue(view[1].is_current)
        self.assertFalse(view[2].is_past)
        self.assertEqual(len(ledger.logs()), 2)


class SubmissionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = Ledger(MemoryKeyValueStore(), clock=lambda: NOW)

    def test_single_line_defaults_category_and_advances(self) -> None:
        next_slot = self.ledger.submit("Standup", _ts(7, 9))
        self.assertEqual(next_slot, _ts(7, 9, 15))
        entry = self.ledger.entry_at(_ts(7, 9))
        self.assertEqual(entry.category, "Standup")
        self.assertIn("Standup", self.ledger.tags())

    def test_single_line_reuses_slot_id(self) -> None:
        self.ledger.submit("Email", _ts(7, 9), category="Work")
        original_id = self.ledger.entry_at(_ts(7, 9)).id
        self.ledger.submit("Coding", _ts(7, 9), category="Deep Work")
        entry = self.ledger.entry_at(_ts(7, 9))
        self.assertEqual(entry.id, original_id)
        self.assertEqual(entry.description, "Coding")
        self.assertEqual(len(self.ledger.logs()), 1)

    def test_multi_line_fills_consecutive_slots_with_same_category(self) -> None:
        next_slot = self.ledger.submit("Email\n\n  Review PR \nLunch", _ts(7, 11), category="Work")
        self.assertEqual(next_slot, _ts(7, 11, 45))
        entries = self.ledger.logs()
        self.assertEqual([e.description for e in entries], ["Email", "Review PR", "Lunch"])
        self.assertEqual([e.timestamp for e in entries], [_ts(7, 11) + i * SLOT_MS for i in range(3)])
        self.assertEqual({e.category for e in entries}, {"Work"})

    def test_blank_submission_raises(self) -> None:
        with self.assertRaises(ValueError):
            self.ledger.submit("   ", _ts(7, 9))

    def test_import_text_skips_malformed_lines(self) -> None:
        text = "09:00 Email #work\nnot a log line\n09:17 Coding\n25:00 Never\n"
        imported = self.ledger.import_text(text, date(2026, 1, 7))
        self.assertEqual(imported, 2)
        entries = self.ledger.logs()
        self.assertEqual(entries[0].category, "work")
        self.assertEqual(entries[1].timestamp, _ts(7, 9, 15))
        self.assertIsNone(entries[1].category)

    def test_clipboard_text(self) -> None:
        self.ledger.submit("Coding", _ts(7, 10))
        self.ledger.submit("Email", _ts(7, 9, 30))
        self.assertEqual(self.ledger.clipboard_text(date(2026, 1, 7)), "09:30 Email\n10:00 Coding")
        self.assertEqual(self.ledger.clipboard_text(date(2026, 1, 8)), "No logs for this day.")


class SmartLookupTests(unittest.TestCase):
    def test_infer_category_and_suggestions(self) -> None:
        ledger = Ledger(MemoryKeyValueStore(), clock=lambda: NOW)
        ledger.upsert(_entry("a", _ts(2, 9), "standup", "Meetings"))
        ledger.upsert(_entry("b", _ts(7, 8), "Email", "Work"))
        ledger.upsert(_entry("c", _ts(7, 8, 15), "Email", "Work"))
        self.assertEqual(ledger.infer_category("  Standup "), "Meetings")
        self.assertEqual(ledger.suggestions(), ["Email", "standup"])
        self.assertEqual(ledger.autocomplete("STAND"), ["standup"])


class SettingsAndTagsTests(unittest.TestCase):
    def test_defaults_when_nothing_stored(self) -> None:
        settings = Ledger(MemoryKeyValueStore()).settings()
        self.assertEqual(settings, AppSettings())
        self.assertEqual(settings.categories, DEFAULT_CATEGORIES)

    def test_stored_settings_merge_over_defaults(self) -> None:
        store = MemoryKeyValueStore({SETTINGS_KEY: {"startHour": 22, "categories": [], "theme": "dark"}})
        settings = Ledger(store).settings()
        self.assertEqual(settings.start_hour, 22)
        self.assertEqual(settings.end_hour, 18)
        self.assertEqual(settings.categories, DEFAULT_CATEGORIES)
        self.assertEqual(settings.to_document()["theme"], "dark")

    def test_hour_bounds_are_validated(self) -> None:
        with self.assertRaises(ValueError):
            AppSettings(start_hour=24)
        with self.assertRaises(ValueError):
            AppSettings(end_hour=25)
        self.assertEqual(AppSettings(start_hour=0, end_hour=24).end_hour, 24)

    def test_out_of_range_stored_hours_fall_back_to_defaults(self) -> None:
        ledger = Ledger(MemoryKeyValueStore({SETTINGS_KEY: {"startHour": 30, "endHour": 4}}), clock=lambda: NOW)
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            self.assertEqual(ledger.settings(), AppSettings())
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            self.assertEqual(len(ledger.day_view(date(2026, 1, 7))), 36)

    def test_effective_colors_prefer_categories(self) -> None:
        settings = AppSettings(category_colors={"Work": "#000000", "Legacy": "#111111"})
        colors = settings.effective_colors()
        self.assertEqual(colors["Work"], "#3B82F6")
        self.assertEqual(colors["Legacy"], "#111111")

    def test_tag_history(self) -> None:
        ledger = Ledger(MemoryKeyValueStore())
        ledger.add_tag("Fix bug #backend")
        ledger.add_tag("Short note")
        ledger.add_tag("A description that is far too long to remember")
        ledger.add_tag("Short note")
        self.assertEqual(ledger.tags(), ["#backend", "Short note"])

    def test_tag_history_keeps_most_recent_hundred(self) -> None:
        ledger = Ledger(MemoryKeyValueStore())
        for index in range(105):
            ledger.add_tag(f"task {index}")
        tags = ledger.tags()
        self.assertEqual(len(tags), 100)
        self.assertEqual(tags[0], "task 5")
        self.assertEqual(tags[-1], "task 104")


class DailyNoteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = Ledger(MemoryKeyValueStore(), clock=lambda: NOW)

    def test_note_upsert_by_date(self) -> None:
        self.ledger.save_daily_note(date(2026, 1, 7), "first")
        note = self.ledger.save_daily_note(date(2026, 1, 7), "second")
        self.assertEqual(note.date, "2026-01-07")
        self.assertEqual(note.updated_at, to_millis(NOW))
        self.assertEqual(self.ledger.get_daily_note(date(2026, 1, 7)).content, "second")
        self.assertIsNone(self.ledger.get_daily_note(date(2026, 1, 6)))

    def test_blank_note_deletes(self) -> None:
        self.ledger.save_daily_note(date(2026, 1, 7), "something")
        self.assertIsNone(self.ledger.save_daily_note(date(2026, 1, 7), "   "))
        self.assertIsNone(self.ledger.get_daily_note(date(2026, 1, 7)))

    def test_note_length_is_bounded(self) -> None:
        with self.assertRaises(ValueError):
            self.ledger.save_daily_note(date(2026, 1, 7), "x" * 5001)


class StorageFailureTests(unittest.TestCase):
    def test_read_failures_fall_back_to_defaults(self) -> None:
        ledger = Ledger(FailingStorage(), clock=lambda: NOW)
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            self.assertEqual(ledger.logs(), [])
            self.assertEqual(ledger.settings(), AppSettings())
            self.assertEqual(ledger.tags(), [])

    def test_write_failures_are_logged_not_raised(self) -> None:
        ledger = Ledger(FailingStorage(), clock=lambda: NOW)
        with self.assertLogs("flowstate.ledger", level="ERROR") as captured:
            entries = ledger.upsert(_entry("a", _ts(7, 9)))
            self.assertFalse(ledger.save_settings(AppSettings()))
            self.assertFalse(ledger.wipe())
        self.assertEqual(len(entries), 1)
        self.assertTrue(any("Error writing" in line for line in captured.output))

    def test_malformed_stored_item_does_not_erase_history(self) -> None:
        good = [_entry(str(hour), _ts(6, hour)).to_document() for hour in range(9, 14)]
        store = MemoryKeyValueStore({LOGS_KEY: good[:2] + [{"id": "bad"}] + good[2:]})
        ledger = Ledger(store, clock=lambda: NOW)
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            self.assertEqual(len(ledger.logs()), 5)
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            ledger.upsert(_entry("new", _ts(7, 9)))
        self.assertEqual([e.id for e in ledger.logs()], ["9", "10", "11", "12", "13", "new"])

    def test_malformed_stored_logs_are_ignored(self) -> None:
        ledger = Ledger(MemoryKeyValueStore({LOGS_KEY: {"not": "a list"}}))
        with self.assertLogs("flowstate.ledger", level="ERROR"):
            self.assertEqual(ledger.logs(), [])


class PersistenceTests(unittest.TestCase):
    def test_state_survives_reopen_and_wipe_clears_it(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            db_file = Path(tmp_dir) / "flowstate.sqlite3"
            ledger = Ledger(SQLiteKeyValueStore(db_file), clock=lambda: NOW)
            ledger.submit("Planning", _ts(7, 9), category="Work")
            ledger.save_daily_note(date(2026, 1, 7), "Good start")

            reopened = Ledger(SQLiteKeyValueStore(db_file), clock=lambda: NOW + timedelta(days=1))
            self.assertEqual(reopened.logs()[0].description, "Planning")
            self.assertEqual(reopened.get_daily_note(date(2026, 1, 7)).content, "Good start")

            self.assertTrue(reopened.wipe())
            self.assertEqual(reopened.logs(), [])
            self.assertEqual(reopened.tags(), [])
            self.assertIsNone(reopened.get_daily_note(date(2026, 1, 7)))


class LedgerStatsTests(unittest.TestCase):
    def test_stats_use_configured_categories(self) -> None:
        ledger = Ledger(MemoryKeyValueStore(), clock=lambda: NOW)
        ledger.submit("Email", _ts(7, 9), category="Work")
        ledger.submit("Sync", _ts(7, 9, 15), category="Meetings")
        ledger.submit("Old team sync", _ts(6, 9), category="Team")

        day = ledger.stats("day", date(2026, 1, 7))
        self.assertEqual(day.total_minutes, 30)
        self.assertEqual(day.bucket("Work").color, "#3B82F6")

        week = ledger.stats("week", date(2026, 1, 7))
        self.assertEqual(week.total_minutes, 45)
        self.assertEqual(week.bucket("Uncategorized").minutes, 15)

        comparison = ledger.compare(date(2026, 1, 7), date(2026, 1, 6))
        self.assertEqual(comparison.target.buckets[0].name, "Uncategorized")


if __name__ == "__main__":
    unittest.main()

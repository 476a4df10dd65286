from __future__ import annotations

import bisect
import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Iterable

from .logs import setup_logger
from .models import MAX_NOTE_LENGTH, AppSettings, DailyNote, LogEntry, RangeStats, StatsComparison, TimeSlot
from .paths import database_path, ensure_directories, log_path
from .slots import (
    SLOT_MS,
    as_date,
    current_slot_timestamp,
    day_slots,
    format_time,
    is_slot_aligned,
    start_of_day,
    to_millis,
)
from .stats import compare_days, range_stats
from .storage import KeyValueStorage, SQLiteKeyValueStore, StorageError
from .suggestions import DEFAULT_SUGGESTION_LIMIT, filter_suggestions, infer_category, rank_suggestions
from .textio import clipboard_text, extract_hashtag, parse_import_text

logger = logging.getLogger(__name__)

LOGS_KEY = "flowstate_logs"
SETTINGS_KEY = "flowstate_settings"
TAGS_KEY = "flowstate_tags"
NOTES_KEY = "flowstate_notes"

MAX_TAGS = 100
MAX_TAG_LENGTH = 30


def new_entry_id() -> str:
    return str(uuid.uuid4())


class Ledger:
    """Slot-keyed activity log persisted through a key-value store.

    Nothing is cached between calls: every read goes to storage and every
    mutation rewrites the whole document it touches. Storage failures never
    reach the caller; reads fall back to defaults and writes report False.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], datetime] | None = None,
    ):
        self._storage = storage
        self._clock = clock or datetime.now

    @classmethod
    def open_default(cls) -> Ledger:
        ensure_directories()
        setup_logger(log_file=log_path(), console=False)
        return cls(SQLiteKeyValueStore(database_path()))

    def now(self) -> int:
        return to_millis(self._clock())

    # Storage seam

    def _read(self, key: str, default: Any) -> Any:
        try:
            value = self._storage.get(key)
        except StorageError as exc:
            logger.error("Error reading %s: %s", key, exc)
            return default
        return default if value is None else value

    def _write(self, key: str, value: Any) -> bool:
        try:
            self._storage.set(key, value)
        except StorageError as exc:
            logger.error("Error writing %s: %s", key, exc)
            return False
        return True

    # Entries

    def logs(self) -> list[LogEntry]:
        """All entries, ascending by timestamp as stored."""
        raw = self._read(LOGS_KEY, [])
        if not isinstance(raw, list):
            logger.error("Stored logs are not a list, ignoring %s", type(raw).__name__)
            return []
        entries: list[LogEntry] = []
        for index, item in enumerate(raw):
            try:
                entries.append(LogEntry.from_document(item))
            except (TypeError, ValueError) as exc:
                logger.error("Skipping malformed stored log %d: %s", index, exc)
        return entries

    def _save_logs(self, entries: list[LogEntry]) -> bool:
        return self._write(LOGS_KEY, [entry.to_document() for entry in entries])

    def upsert(self, entry: LogEntry) -> list[LogEntry]:
        """Insert ``entry`` or replace the one already in its slot."""
        if not is_slot_aligned(entry.timestamp):
            raise ValueError(f"Timestamp {entry.timestamp} is not the start of a slot")

        entries = self.logs()
        timestamps = [item.timestamp for item in entries]
        index = bisect.bisect_left(timestamps, entry.timestamp)
        if index < len(entries) and entries[index].timestamp == entry.timestamp:
            entries[index] = entry
        else:
            entries.insert(index, entry)

        self._save_logs(entries)
        self.add_tag(entry.description)
        return entries

    def delete(self, entry_id: str) -> list[LogEntry]:
        entries = self.logs()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) != len(entries):
            self._save_logs(remaining)
        return remaining

    def replace_logs(self, entries: Iterable[LogEntry]) -> bool:
        """Store ``entries`` wholesale, one per timestamp, last one winning."""
        by_timestamp = {entry.timestamp: entry for entry in entries}
        return self._save_logs([by_timestamp[ts] for ts in sorted(by_timestamp)])

    def entry_at(self, timestamp: int) -> LogEntry | None:
        entries = self.logs()
        timestamps = [entry.timestamp for entry in entries]
        index = bisect.bisect_left(timestamps, timestamp)
        if index < len(entries) and entries[index].timestamp == timestamp:
            return entries[index]
        return None

    def query_range(self, start: int, end: int) -> list[LogEntry]:
        entries = self.logs()
        timestamps = [entry.timestamp for entry in entries]
        low = bisect.bisect_left(timestamps, start)
        high = bisect.bisect_right(timestamps, end)
        return entries[low:high]

    def activity_dates(self) -> list[int]:
        """Local-midnight timestamps of every day holding at least one entry."""
        return sorted({start_of_day(entry.timestamp) for entry in self.logs()})

    # Settings

    def settings(self) -> AppSettings:
        try:
            return AppSettings.from_document(self._read(SETTINGS_KEY, {}))
        except (TypeError, ValueError) as exc:
            logger.error("Stored settings are malformed, using defaults: %s", exc)
            return AppSettings()

    def save_settings(self, settings: AppSettings) -> bool:
        return self._write(SETTINGS_KEY, settings.to_document())

    # Tag history

    def tags(self) -> list[str]:
        raw = self._read(TAGS_KEY, [])
        if not isinstance(raw, list):
            logger.error("Stored tags are not a list, ignoring %s", type(raw).__name__)
            return []
        return [str(tag) for tag in raw]

    def save_tags(self, tags: Iterable[str]) -> bool:
        return self._write(TAGS_KEY, list(tags))

    def add_tag(self, description: str) -> None:
        """Remember a hashtag, or a short description, for autocomplete."""
        if not description:
            return
        hashtag = extract_hashtag(description)
        if hashtag:
            tag = f"#{hashtag}"
        elif len(description) < MAX_TAG_LENGTH:
            tag = description
        else:
            return

        tags = dict.fromkeys(self.tags())
        tags[tag] = None
        self.save_tags(list(tags)[-MAX_TAGS:])

    # Suggestions

    def suggestions(self, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[str]:
        return rank_suggestions(self.logs(), self.now(), limit)

    def autocomplete(self, query: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[str]:
        entries = self.logs()
        ranked = rank_suggestions(entries, self.now(), limit=len(entries))
        return filter_suggestions(ranked, query, limit)

    def infer_category(self, text: str) -> str | None:
        return infer_category(text, self.logs(), self.now())

    # Day view and submission

    def day_slots(self, day: date | datetime) -> list[int]:
        settings = self.settings()
        return day_slots(day, settings.start_hour, settings.end_hour)

    def day_view(self, day: date | datetime) -> list[TimeSlot]:
        """One slot per grid position; entries outside the grid are not shown."""
        grid = self.day_slots(day)
        if not grid:
            return []
        by_timestamp = {entry.timestamp: entry for entry in self.query_range(grid[0], grid[-1])}
        current = current_slot_timestamp(self._clock())
        return [
            TimeSlot(
                timestamp=ts,
                time_label=format_time(ts),
                log=by_timestamp.get(ts),
                is_current=ts == current,
                is_past=ts < current,
            )
            for ts in grid
        ]

    def submit(self, text: str, slot_timestamp: int, category: str | None = None) -> int:
        """Log ``text`` at ``slot_timestamp`` and return the next slot to fill.

        Multi-line text fills consecutive slots, one line each, all with
        the given ``category``. A single line reuses the id of the entry it
        replaces and defaults its category to the text itself.
        """
        if not text or not text.strip():
            raise ValueError("Nothing to log.")

        if "\n" in text:
            lines = [line.strip() for line in text.splitlines() if line.strip()]
            timestamp = slot_timestamp
            for line in lines:
                self.upsert(
                    LogEntry(
                        id=new_entry_id(),
                        timestamp=timestamp,
                        description=line,
                        category=category,
                    )
                )
                timestamp += SLOT_MS
            logger.info("Logged %d lines starting at %s", len(lines), format_time(slot_timestamp))
            return timestamp

        description = text.strip()
        final_category = category or description
        existing = self.entry_at(slot_timestamp)
        self.upsert(
            LogEntry(
                id=existing.id if existing else new_entry_id(),
                timestamp=slot_timestamp,
                description=description,
                category=final_category,
            )
        )
        self.add_tag(final_category)
        return slot_timestamp + SLOT_MS

    def import_text(self, text: str, day: date | datetime) -> int:
        imported = parse_import_text(text, day)
        for line in imported:
            self.upsert(
                LogEntry(
                    id=new_entry_id(),
                    timestamp=line.timestamp,
                    description=line.description,
                    category=line.category,
                )
            )
        logger.info("Imported %d entries for %s", len(imported), as_date(day).isoformat())
        return len(imported)

    def clipboard_text(self, day: date | datetime) -> str:
        return clipboard_text(self.logs(), day)

    # Statistics

    def stats(self, mode: str, day: date | datetime) -> RangeStats:
        settings = self.settings()
        return range_stats(mode, self.logs(), day, settings.categories, settings.effective_colors())

    def compare(self, base_day: date | datetime, target_day: date | datetime) -> StatsComparison:
        settings = self.settings()
        return compare_days(
            self.logs(),
            base_day,
            target_day,
            settings.categories,
            settings.effective_colors(),
        )

    # Daily notes

    def _notes(self) -> dict[str, Any]:
        raw = self._read(NOTES_KEY, {})
        if not isinstance(raw, dict):
            logger.error("Stored notes are not an object, ignoring %s", type(raw).__name__)
            return {}
        return raw

    def get_daily_note(self, day: date | datetime) -> DailyNote | None:
        raw = self._notes().get(as_date(day).isoformat())
        if not raw:
            return None
        try:
            return DailyNote.from_document(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Stored note for %s is malformed: %s", as_date(day).isoformat(), exc)
            return None

    def save_daily_note(self, day: date | datetime, content: str) -> DailyNote | None:
        """Upsert the note for ``day``; blank content deletes it instead."""
        if len(content) > MAX_NOTE_LENGTH:
            raise ValueError(f"Daily note exceeds {MAX_NOTE_LENGTH} characters.")
        if not content.strip():
            self.delete_daily_note(day)
            return None

        note = DailyNote(date=as_date(day).isoformat(), content=content, updated_at=self.now())
        notes = self._notes()
        notes[note.date] = note.to_document()
        self._write(NOTES_KEY, notes)
        return note

    def delete_daily_note(self, day: date | datetime) -> None:
        notes = self._notes()
        if notes.pop(as_date(day).isoformat(), None) is not None:
            self._write(NOTES_KEY, notes)

    # Reset

    def wipe(self) -> bool:
        try:
            self._storage.clear()
        except StorageError as exc:
            logger.error("Factory reset failed: %s", exc)
            return False
        logger.info("All persisted state cleared")
        return True

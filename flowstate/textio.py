from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from typing import Sequence

from .models import ImportedLine, LogEntry
from .slots import as_date, end_of_day, format_time, slot_start, start_of_day, to_millis

logger = logging.getLogger(__name__)

EMPTY_DAY_PLACEHOLDER = "No logs for this day."

_IMPORT_LINE = re.compile(r"^(\d{1,2}):(\d{2})\s+(.+)$")
_HASHTAG = re.compile(r"#(\w+)")


def extract_hashtag(text: str) -> str | None:
    match = _HASHTAG.search(text or "")
    return match.group(1) if match else None


def parse_import_text(text: str, day: date | datetime | int) -> list[ImportedLine]:
    """Parse ``HH:mm description`` lines into entries on ``day``.

    Times are snapped to the start of their slot. The first ``#word`` in a
    description becomes its category. Lines that do not parse are skipped.
    """
    base = as_date(day)
    results: list[ImportedLine] = []
    for line_number, line in enumerate((text or "").splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        match = _IMPORT_LINE.match(trimmed)
        if not match:
            logger.debug("Skipping import line %d: %r", line_number, trimmed)
            continue
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            logger.debug("Skipping import line %d with invalid time %02d:%02d", line_number, hours, minutes)
            continue
        description = match.group(3).strip()
        timestamp = to_millis(datetime.combine(base, time(hour=hours, minute=minutes)))
        results.append(
            ImportedLine(
                timestamp=slot_start(timestamp),
                description=description,
                category=extract_hashtag(description),
            )
        )
    return results


def clipboard_text(entries: Sequence[LogEntry], day: date | datetime | int) -> str:
    day_start = start_of_day(day)
    day_end = end_of_day(day)
    day_entries = sorted(
        (entry for entry in entries if day_start <= entry.timestamp <= day_end),
        key=lambda entry: entry.timestamp,
    )
    if not day_entries:
        return EMPTY_DAY_PLACEHOLDER
    return "\n".join(f"{format_time(entry.timestamp)} {entry.description}" for entry in day_entries)

from __future__ import annotations

from datetime import date, datetime, time
from typing import Sequence

from dateutil.relativedelta import MO, relativedelta

from .models import Category, CategoryStats, LogEntry, RangeStats, StatsComparison, TaskBreakdown
from .slots import SLOT_MINUTES, as_date, end_of_day, start_of_day, to_millis

UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_COLOR = "#9CA3AF"
NO_DESCRIPTION = "(No description)"
FALLBACK_COLORS = (
    "#4F46E5",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#EC4899",
    "#8B5CF6",
    "#6366F1",
    "#14B8A6",
)


def day_range(day: date | datetime | int) -> tuple[int, int]:
    return start_of_day(day), end_of_day(day)


def week_range(day: date | datetime | int) -> tuple[int, int]:
    """Monday 00:00 through Sunday 23:59:59.999 of the week holding ``day``."""
    monday = as_date(day) + relativedelta(weekday=MO(-1))
    sunday = monday + relativedelta(days=6)
    return to_millis(datetime.combine(monday, time.min)), end_of_day(sunday)


def aggregate(
    entries: Sequence[LogEntry],
    range_start: int,
    range_end: int,
    categories: Sequence[Category],
    category_colors: dict[str, str] | None = None,
) -> RangeStats:
    """Roll entries in ``[range_start, range_end]`` into per-category buckets.

    Every entry is one slot of time. Entries whose category is not a
    configured category name land in ``Uncategorized``. Empty buckets are
    dropped and the rest are ordered by minutes, largest first.
    """
    category_colors = category_colors or {}
    groups: dict[str, dict[str, object]] = {}
    for category in categories:
        groups[category.name] = {"minutes": 0, "tasks": {}, "color": category.color}
    groups[UNCATEGORIZED] = {"minutes": 0, "tasks": {}, "color": UNCATEGORIZED_COLOR}

    total_minutes = 0
    for entry in entries:
        if not range_start <= entry.timestamp <= range_end:
            continue
        name = entry.category if entry.category and entry.category in groups else UNCATEGORIZED
        group = groups[name]
        group["minutes"] = int(group["minutes"]) + SLOT_MINUTES
        tasks = group["tasks"]
        description = entry.description or NO_DESCRIPTION
        tasks[description] = tasks.get(description, 0) + SLOT_MINUTES
        total_minutes += SLOT_MINUTES

    filled = [(name, group) for name, group in groups.items() if int(group["minutes"]) > 0]
    filled.sort(key=lambda item: int(item[1]["minutes"]), reverse=True)

    buckets: list[CategoryStats] = []
    for index, (name, group) in enumerate(filled):
        minutes = int(group["minutes"])
        tasks = sorted(
            (TaskBreakdown(description=desc, minutes=mins) for desc, mins in group["tasks"].items()),
            key=lambda task: task.minutes,
            reverse=True,
        )
        color = str(group["color"] or category_colors.get(name) or "")
        buckets.append(
            CategoryStats(
                name=name,
                minutes=minutes,
                percentage=(minutes / total_minutes) * 100 if total_minutes > 0 else 0.0,
                tasks=tasks,
                color=color or FALLBACK_COLORS[index % len(FALLBACK_COLORS)],
            )
        )

    return RangeStats(start=range_start, end=range_end, buckets=buckets, total_minutes=total_minutes)


def day_stats(
    entries: Sequence[LogEntry],
    day: date | datetime | int,
    categories: Sequence[Category],
    category_colors: dict[str, str] | None = None,
) -> RangeStats:
    start, end = day_range(day)
    return aggregate(entries, start, end, categories, category_colors)


def week_stats(
    entries: Sequence[LogEntry],
    day: date | datetime | int,
    categories: Sequence[Category],
    category_colors: dict[str, str] | None = None,
) -> RangeStats:
    start, end = week_range(day)
    return aggregate(entries, start, end, categories, category_colors)


def compare_days(
    entries: Sequence[LogEntry],
    base_day: date | datetime | int,
    target_day: date | datetime | int,
    categories: Sequence[Category],
    category_colors: dict[str, str] | None = None,
) -> StatsComparison:
    return StatsComparison(
        base=day_stats(entries, base_day, categories, category_colors),
        target=day_stats(entries, target_day, categories, category_colors),
    )


def range_stats(
    mode: str,
    entries: Sequence[LogEntry],
    day: date | datetime | int,
    categories: Sequence[Category],
    category_colors: dict[str, str] | None = None,
) -> RangeStats:
    if mode == "day":
        return day_stats(entries, day, categories, category_colors)
    if mode == "week":
        return week_stats(entries, day, categories, category_colors)
    raise ValueError(f"Unsupported stats mode: {mode}")


def format_minutes(total_minutes: int) -> str:
    minutes = max(0, int(total_minutes))
    hours, remainder = divmod(minutes, 60)
    if hours:
        return f"{hours}h {remainder}m"
    return f"{remainder}m"

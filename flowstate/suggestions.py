from __future__ import annotations

from typing import Sequence

from .models import LogEntry

DEFAULT_SUGGESTION_LIMIT = 8
HOUR_MS = 60 * 60 * 1000
CATEGORY_LOOKBACK_MS = 30 * 24 * HOUR_MS

# (upper bound in hours, multiplier); ages past the last bound score zero.
RECENCY_WEIGHTS: tuple[tuple[float, float], ...] = (
    (48, 1.0),
    (72, 0.8),
    (168, 0.2),
    (336, 0.1),
    (4320, 0.1),
)


def recency_multiplier(age_hours: float) -> float:
    for upper_bound, multiplier in RECENCY_WEIGHTS:
        if age_hours <= upper_bound:
            return multiplier
    return 0.0


def suggestion_scores(entries: Sequence[LogEntry], now: int) -> dict[str, float]:
    scores: dict[str, float] = {}
    for entry in entries:
        if not entry.has_description:
            continue
        description = entry.description.strip()
        age_hours = (now - entry.timestamp) / HOUR_MS
        scores[description] = scores.get(description, 0.0) + 1 * recency_multiplier(age_hours)
    return scores


def rank_suggestions(
    entries: Sequence[LogEntry],
    now: int,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> list[str]:
    """Distinct descriptions ordered by recency-weighted use.

    Ties keep first-seen order. Descriptions whose every use is older
    than six months score zero and are left out.
    """
    scores = suggestion_scores(entries, now)
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [description for description, score in ranked if score > 0][: max(0, limit)]


def filter_suggestions(
    ranked: Sequence[str],
    query: str,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> list[str]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(ranked[:limit])
    return [text for text in ranked if needle in text.lower()][:limit]


def infer_category(text: str, entries: Sequence[LogEntry], now: int) -> str | None:
    """Category last used with the same description in the past 30 days.

    ``entries`` must be in ascending timestamp order; the scan walks back
    from the newest and stops at the first entry older than the window.
    """
    needle = (text or "").strip().lower()
    if not needle:
        return None

    for entry in reversed(entries):
        if now - entry.timestamp > CATEGORY_LOOKBACK_MS:
            break
        if entry.category and entry.description.strip().lower() == needle:
            return entry.category
    return None

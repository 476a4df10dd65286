from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

MAX_NOTE_LENGTH = 5000


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: int
    description: str = ""
    category: str | None = None

    @property
    def has_description(self) -> bool:
        return bool(self.description and self.description.strip())

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
        }
        if self.category is not None:
            document["category"] = self.category
        return document

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> LogEntry:
        if not isinstance(data, Mapping):
            raise ValueError(f"Log entry must be an object, got {type(data).__name__}")
        if "id" not in data or "timestamp" not in data:
            raise ValueError("Log entry requires 'id' and 'timestamp'")
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError(f"Invalid timestamp: {timestamp!r}")
        category = data.get("category")
        return cls(
            id=str(data["id"]),
            timestamp=int(timestamp),
            description=str(data.get("description") or ""),
            category=str(category) if category else None,
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str

    def to_document(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Category:
        if not isinstance(data, Mapping):
            raise ValueError(f"Category must be an object, got {type(data).__name__}")
        name = str(data.get("name", "")).strip()
        if not name:
            raise ValueError("Category requires a name")
        return cls(
            id=str(data.get("id") or name.lower().replace(" ", "-")),
            name=name,
            color=str(data.get("color", "")),
        )


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="work", name="Work", color="#3B82F6"),
    Category(id="deep-work", name="Deep Work", color="#8B5CF6"),
    Category(id="meetings", name="Meetings", color="#EF4444"),
    Category(id="errands", name="Errands", color="#10B981"),
    Category(id="misc", name="Misc", color="#6B7280"),
)

# Stored key -> dataclass attribute for the scalar preference fields.
_SETTINGS_FIELDS = {
    "startHour": "start_hour",
    "endHour": "end_hour",
    "notificationsEnabled": "notifications_enabled",
    "visualFlashEnabled": "visual_flash_enabled",
    "soundId": "sound_id",
    "muteUntil": "mute_until",
    "timerStyle": "timer_style",
    "showCurrentTime": "show_current_time",
    "muteSound": "mute_sound",
    "dailyNotesEnabled": "daily_notes_enabled",
}


@dataclass(frozen=True)
class AppSettings:
    start_hour: int = 9
    end_hour: int = 18
    notifications_enabled: bool = True
    visual_flash_enabled: bool = True
    sound_id: str = "/alarm.mp3"
    mute_until: int | None = None
    category_colors: dict[str, str] = field(default_factory=dict)
    categories: tuple[Category, ...] = DEFAULT_CATEGORIES
    timer_style: str = "countdown"
    show_current_time: bool = True
    mute_sound: bool = False
    daily_notes_enabled: bool = True
    custom_colors: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour <= 23:
            raise ValueError(f"startHour must be within 0..23, got {self.start_hour}")
        if not 0 <= self.end_hour <= 24:
            raise ValueError(f"endHour must be within 0..24, got {self.end_hour}")

    def category_names(self) -> set[str]:
        return {category.name for category in self.categories}

    def effective_colors(self) -> dict[str, str]:
        colors = dict(self.category_colors)
        for category in self.categories:
            colors[category.name] = category.color
        return colors

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = dict(self.extra)
        for key, attribute in _SETTINGS_FIELDS.items():
            document[key] = getattr(self, attribute)
        document["categoryColors"] = dict(self.category_colors)
        document["categories"] = [category.to_document() for category in self.categories]
        document["customColors"] = list(self.custom_colors)
        return document

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> AppSettings:
        """Merge a stored settings document over the defaults.

        Missing or null fields keep their default; an empty category list
        falls back to the bootstrap categories. Keys this class does not
        know about are carried in ``extra`` so they survive a save.
        """
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError(f"Settings must be an object, got {type(data).__name__}")

        values: dict[str, Any] = {}
        for key, attribute in _SETTINGS_FIELDS.items():
            if data.get(key) is not None:
                values[attribute] = data[key]

        for hour_field in ("start_hour", "end_hour"):
            if hour_field in values:
                values[hour_field] = int(values[hour_field])
        if "mute_until" in values:
            values["mute_until"] = int(values["mute_until"])

        raw_colors = data.get("categoryColors") or {}
        values["category_colors"] = {str(k): str(v) for k, v in dict(raw_colors).items()}

        raw_categories = data.get("categories") or []
        categories = tuple(Category.from_document(item) for item in raw_categories)
        if categories:
            values["categories"] = categories

        values["custom_colors"] = tuple(str(color) for color in data.get("customColors") or [])

        known = set(_SETTINGS_FIELDS) | {"categoryColors", "categories", "customColors"}
        values["extra"] = {key: value for key, value in data.items() if key not in known}
        return cls(**values)


@dataclass(frozen=True)
class DailyNote:
    date: str
    content: str
    updated_at: int

    def to_document(self) -> dict[str, Any]:
        return {"date": self.date, "content": self.content, "updatedAt": self.updated_at}

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> DailyNote:
        return cls(
            date=str(data["date"]),
            content=str(data.get("content", "")),
            updated_at=int(data.get("updatedAt", 0)),
        )


@dataclass(frozen=True)
class TimeSlot:
    timestamp: int
    time_label: str
    log: LogEntry | None
    is_current: bool
    is_past: bool


@dataclass(frozen=True)
class ImportedLine:
    timestamp: int
    description: str
    category: str | None


@dataclass(frozen=True)
class TaskBreakdown:
    description: str
    minutes: int


@dataclass(frozen=True)
class CategoryStats:
    name: str
    minutes: int
    percentage: float
    tasks: list[TaskBreakdown]
    color: str


@dataclass(frozen=True)
class RangeStats:
    start: int
    end: int
    buckets: list[CategoryStats]
    total_minutes: int

    def bucket(self, name: str) -> CategoryStats | None:
        for item in self.buckets:
            if item.name == name:
                return item
        return None


@dataclass(frozen=True)
class StatsComparison:
    base: RangeStats
    target: RangeStats

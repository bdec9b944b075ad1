# src/task_hud/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

WEEKDAYS_TAG = "weekdays"
CUSTOM_DAYS_TAG = "custom_days"

# Sunday=0 .. Saturday=6
MON_FRI: frozenset[int] = frozenset({1, 2, 3, 4, 5})


class RepeatRule(StrEnum):
    """How a task repeats. Stored as its string value."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    EVERY_OTHER_DAY = "every_other_day"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, raw: str | None) -> RepeatRule:
        if not raw:
            return cls.NONE
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.NONE


@dataclass(frozen=True, slots=True)
class WeekdayRepeatSettings:
    days: frozenset[int] = MON_FRI
    type: str = field(default=WEEKDAYS_TAG, init=False)


@dataclass(frozen=True, slots=True)
class CustomRepeatSettings:
    interval: int
    type: str = field(default=CUSTOM_DAYS_TAG, init=False)


RepeatSettings = WeekdayRepeatSettings | CustomRepeatSettings


@dataclass(frozen=True, slots=True)
class Task:
    """
    A scheduled task.

    Records are never mutated; use dataclasses.replace() to derive an updated copy.
    """

    id: str
    title: str
    start: datetime
    end: datetime
    completed: bool = False
    repeat: RepeatRule = RepeatRule.NONE
    repeat_settings: RepeatSettings | None = None
    expired_at: datetime | None = None
    archived: bool = False
    description: str | None = None

    @property
    def is_recurring(self) -> bool:
        return self.repeat != RepeatRule.NONE


@dataclass(frozen=True, slots=True)
class Occurrence:
    start: datetime
    end: datetime

    def contains(self, now: datetime) -> bool:
        return self.start <= now < self.end


@dataclass(frozen=True, slots=True)
class TaskList:
    id: str
    name: str


# ---- ingestion boundary ----


def parse_timestamp(raw: Any) -> datetime:
    """
    Parse a wall-clock timestamp.

    Accepts datetime objects and ISO-like strings ("2024-01-01T09:00", "2024-01-01 09:00:30").
    Aware values are converted to local time and made naive.
    """
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            value = datetime.fromisoformat(raw.strip())
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {raw!r}") from e
    else:
        raise ValueError(f"Invalid timestamp: {raw!r}")

    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def normalise_end(start: datetime, end: datetime) -> datetime:
    """An end at or before the start means the same wall-clock time on the next day."""
    if end <= start:
        return end + timedelta(days=1)
    return end


def _parse_expired_at(raw: Any) -> datetime | None:
    if raw is None or raw == "" or raw == 0:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        # epoch milliseconds
        return datetime.fromtimestamp(float(raw) / 1000.0)
    try:
        return parse_timestamp(raw)
    except ValueError:
        return None


def parse_repeat_settings(raw: Any) -> RepeatSettings | None:
    """Decode a repeatSettings payload. Malformed payloads yield None."""
    if isinstance(raw, (WeekdayRepeatSettings, CustomRepeatSettings)):
        return raw
    if not isinstance(raw, dict):
        return None

    tag = str(raw.get("type") or "").strip().lower()

    if tag == WEEKDAYS_TAG:
        days_raw = raw.get("days")
        if not isinstance(days_raw, (list, tuple, set, frozenset)):
            return None
        days: set[int] = set()
        for d in days_raw:
            try:
                n = int(d)
            except (TypeError, ValueError):
                continue
            if 0 <= n <= 6:
                days.add(n)
        return WeekdayRepeatSettings(days=frozenset(days))

    if tag in (CUSTOM_DAYS_TAG, "custom"):
        try:
            interval = int(raw.get("interval"))
        except (TypeError, ValueError):
            return None
        return CustomRepeatSettings(interval=interval)

    return None


def repeat_settings_to_dict(settings: RepeatSettings | None) -> dict[str, Any] | None:
    if isinstance(settings, WeekdayRepeatSettings):
        return {"type": settings.type, "days": sorted(settings.days)}
    if isinstance(settings, CustomRepeatSettings):
        return {"type": settings.type, "interval": settings.interval}
    return None


def task_from_dict(data: dict[str, Any]) -> Task:
    """Build a Task from its persisted (camelCase) form. Raises ValueError on bad timestamps."""
    return Task(
        id=str(data.get("id") or ""),
        title=str(data.get("title") or ""),
        start=parse_timestamp(data.get("start")),
        end=parse_timestamp(data.get("end")),
        completed=bool(data.get("completed", False)),
        repeat=RepeatRule.parse(data.get("repeat")),
        repeat_settings=parse_repeat_settings(data.get("repeatSettings")),
        expired_at=_parse_expired_at(data.get("expiredAt")),
        archived=bool(data.get("archived", False)),
        description=data.get("description"),
    )


def task_to_dict(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "start": task.start.isoformat(),
        "end": task.end.isoformat(),
        "completed": task.completed,
        "repeat": task.repeat.value,
    }
    if task.description is not None:
        out["description"] = task.description
    settings = repeat_settings_to_dict(task.repeat_settings)
    if settings is not None:
        out["repeatSettings"] = settings
    if task.expired_at is not None:
        out["expiredAt"] = task.expired_at.isoformat()
    if task.archived:
        out["archived"] = True
    return out

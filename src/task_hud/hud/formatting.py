# src/task_hud/hud/formatting.py

from __future__ import annotations

from datetime import datetime, timedelta

from ..tasks.task_models import (
    MON_FRI,
    CustomRepeatSettings,
    Occurrence,
    RepeatRule,
    Task,
    WeekdayRepeatSettings,
)

DAY_ABBREVIATIONS = ("S", "M", "T", "W", "T", "F", "S")


def _total_seconds(td: timedelta | None) -> int:
    if td is None:
        return 0
    return max(0, int(td.total_seconds()))


def format_countdown(td: timedelta | None) -> str:
    """HH:MM:SS when an hour or more is left, MM:SS otherwise. Nothing left -> 00:00."""
    total = _total_seconds(td)
    if total <= 0:
        return "00:00"
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_percentage(occurrence: Occurrence | None, now: datetime) -> str:
    """Share of the occurrence already elapsed, e.g. "42%"."""
    if occurrence is None:
        return "0%"
    span = (occurrence.end - occurrence.start).total_seconds()
    if span <= 0:
        return "100%"
    done = (now - occurrence.start).total_seconds() / span
    return f"{round(min(1.0, max(0.0, done)) * 100)}%"


def format_clock(now: datetime) -> str:
    return now.strftime("%H:%M:%S")


def repeat_label(task: Task) -> str:
    """Short human label for a task's repeat rule ("" for one-off tasks)."""
    repeat = task.repeat
    settings = task.repeat_settings

    if repeat == RepeatRule.NONE:
        return ""
    if repeat == RepeatRule.DAILY:
        return "Every day"
    if repeat == RepeatRule.WEEKLY:
        return "Weekly"
    if repeat == RepeatRule.WEEKDAYS:
        if isinstance(settings, WeekdayRepeatSettings) and settings.days != MON_FRI:
            return "".join(DAY_ABBREVIATIONS[d] for d in sorted(settings.days))
        return "M-F"
    if repeat == RepeatRule.WEEKENDS:
        return "Sa-Su"
    if repeat == RepeatRule.EVERY_OTHER_DAY:
        return "Every 2 days"
    if repeat == RepeatRule.CUSTOM:
        if isinstance(settings, CustomRepeatSettings):
            return f"Every {settings.interval} days"
        return "Custom"
    return repeat.value.capitalize()

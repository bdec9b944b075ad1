# src/task_hud/tasks/occurrences.py

from __future__ import annotations

"""
Occurrence resolver.

Turns a task and its repeat rule into concrete (start, end) intervals around a
reference instant, then picks:
- the active task: the containing occurrence that ends first,
- the upcoming task: the future occurrence that starts first.

Both answers are always computed. Whether the HUD hides "next" while something
is running is a display policy (see hud.hud_loop.build_frame).

All arithmetic is local wall-clock on naive datetimes.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .task_models import (
    MON_FRI,
    CustomRepeatSettings,
    Occurrence,
    RepeatRule,
    Task,
    WeekdayRepeatSettings,
    normalise_end,
)

ONE_DAY = timedelta(days=1)

SATURDAY = 6
SUNDAY = 0


@dataclass(frozen=True, slots=True)
class Resolution:
    active_task: Task | None = None
    active_time_remaining: timedelta | None = None
    upcoming_task: Task | None = None
    upcoming_time_until_start: timedelta | None = None

    active_occurrence: Occurrence | None = None
    upcoming_occurrence: Occurrence | None = None


def weekday_index(d: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return d.isoweekday() % 7


def _occurrence_on(day: date, task: Task) -> Occurrence:
    start = datetime.combine(day, task.start.time().replace(microsecond=0))
    end = datetime.combine(day, task.end.time().replace(microsecond=0))
    return Occurrence(start=start, end=normalise_end(start, end))


def _shift(occ: Occurrence, days: int) -> Occurrence:
    delta = timedelta(days=days)
    return Occurrence(start=occ.start + delta, end=occ.end + delta)


def _interval_occurrence(task: Task, now: datetime, interval: int) -> Occurrence:
    days_since_start = (now - task.start) // ONE_DAY
    steps = -(-(days_since_start + 1) // interval)  # ceil
    return _occurrence_on(task.start.date() + timedelta(days=steps * interval), task)


def occurrences_for(task: Task, now: datetime) -> list[Occurrence]:
    """Candidate occurrences of `task` near `now`. Never raises for well-formed tasks."""
    repeat = task.repeat
    today = now.date()

    if repeat == RepeatRule.NONE:
        return [Occurrence(start=task.start, end=normalise_end(task.start, task.end))]

    if repeat == RepeatRule.DAILY:
        occ = _occurrence_on(today, task)
        out = [occ]
        if occ.end <= now:
            out.append(_shift(occ, 1))
        return out

    if repeat == RepeatRule.WEEKLY:
        diff = (weekday_index(task.start.date()) - weekday_index(today)) % 7
        occ = _occurrence_on(today + timedelta(days=diff), task)
        out = [occ]
        if occ.end <= now:
            out.append(_shift(occ, 7))
        return out

    if repeat == RepeatRule.WEEKDAYS:
        settings = task.repeat_settings
        days = settings.days if isinstance(settings, WeekdayRepeatSettings) else MON_FRI
        out = []
        for offset in range(7):
            day = today + timedelta(days=offset)
            if weekday_index(day) in days:
                out.append(_occurrence_on(day, task))
        return out

    if repeat == RepeatRule.WEEKENDS:
        wd = weekday_index(today)
        offset = 0 if wd in (SATURDAY, SUNDAY) else SATURDAY - wd
        return [_occurrence_on(today + timedelta(days=offset), task)]

    if repeat == RepeatRule.EVERY_OTHER_DAY:
        return [_interval_occurrence(task, now, 2)]

    if repeat == RepeatRule.CUSTOM:
        settings = task.repeat_settings
        if not isinstance(settings, CustomRepeatSettings) or settings.interval < 1:
            return []
        return [_interval_occurrence(task, now, settings.interval)]

    return []


def resolve(tasks: Iterable[Task], now: datetime) -> Resolution:
    """
    Pick the active and upcoming task among `tasks` at `now`.

    Ties resolve to the first task in input order.
    """
    active: tuple[Task, Occurrence] | None = None
    upcoming: tuple[Task, Occurrence, timedelta] | None = None

    for task in tasks:
        for occ in occurrences_for(task, now):
            if occ.contains(now):
                if active is None or occ.end < active[1].end:
                    active = (task, occ)
            elif occ.start > now:
                until = occ.start - now
                if upcoming is None or until < upcoming[2]:
                    upcoming = (task, occ, until)

    return Resolution(
        active_task=active[0] if active else None,
        active_time_remaining=(active[1].end - now) if active else None,
        upcoming_task=upcoming[0] if upcoming else None,
        upcoming_time_until_start=upcoming[2] if upcoming else None,
        active_occurrence=active[1] if active else None,
        upcoming_occurrence=upcoming[1] if upcoming else None,
    )

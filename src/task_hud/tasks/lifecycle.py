# src/task_hud/tasks/lifecycle.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from .task_models import Task

logger = logging.getLogger(__name__)

GRACE_PERIOD = timedelta(hours=24)


def _advance_one(task: Task, now: datetime) -> Task:
    if task.archived or task.completed or task.is_recurring:
        return task
    if not task.end < now:
        return task
    if task.expired_at is None:
        return replace(task, expired_at=now)
    if now - task.expired_at > GRACE_PERIOD:
        return replace(task, archived=True)
    return task


def advance(tasks: Iterable[Task], now: datetime) -> list[Task]:
    """
    Move one-off tasks through expired -> archived.

    - end passed, expired_at unset      -> expired_at = now
    - expired_at older than GRACE_PERIOD -> archived = True

    Recurring, completed and archived tasks pass through untouched.
    Returns a new list; unchanged tasks are the same objects.
    """
    return [_advance_one(t, now) for t in tasks]


def changed_tasks(before: Iterable[Task], after: Iterable[Task]) -> list[Task]:
    """Tasks from `after` that differ from their counterpart in `before` (paired by position)."""
    changed = [b for a, b in zip(before, after) if a is not b]
    if changed:
        logger.debug("Lifecycle advanced %d task(s)", len(changed))
    return changed

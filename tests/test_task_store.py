# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from task_hud.tasks.occurrences import resolve
from task_hud.tasks.task_models import CustomRepeatSettings, RepeatRule, WeekdayRepeatSettings
from task_hud.tasks.task_store import DEFAULT_LIST_NAME, TaskStore

NOW = datetime(2024, 1, 10, 12, 0)


def test_default_list_is_created_lazily(store: TaskStore) -> None:
    lists = store.list_task_lists()
    assert [tl.name for tl in lists] == [DEFAULT_LIST_NAME]
    assert store.get_active_list_id() == lists[0].id


def test_add_and_get_keeps_insertion_order(store: TaskStore) -> None:
    later = store.add_task(title="later", start="2024-01-10T18:00", end="2024-01-10T19:00")
    earlier = store.add_task(title="earlier", start="2024-01-10T13:00", end="2024-01-10T14:00")

    tasks = store.get_tasks(NOW)
    assert [t.id for t in tasks] == [later.id, earlier.id]
    assert store.count_tasks() == 2


def test_add_task_requires_title(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.add_task(title="  ", start="2024-01-10T13:00", end="2024-01-10T14:00")


def test_add_task_rejects_bad_timestamp(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.add_task(title="x", start="soon", end="2024-01-10T14:00")
    assert store.count_tasks() == 0


def test_repeat_settings_are_persisted(store: TaskStore) -> None:
    a = store.add_task(
        title="standup",
        start="2024-01-08T09:00",
        end="2024-01-08T09:15",
        repeat=RepeatRule.WEEKDAYS,
        repeat_settings={"type": "weekdays", "days": [1, 3, 5]},
    )
    b = store.add_task(
        title="gym",
        start="2024-01-08T18:00",
        end="2024-01-08T19:00",
        repeat="custom",
        repeat_settings=CustomRepeatSettings(interval=3),
    )

    loaded_a = store.get_task(a.id)
    loaded_b = store.get_task(b.id)
    assert loaded_a is not None and loaded_b is not None
    assert loaded_a.repeat_settings == WeekdayRepeatSettings(days=frozenset({1, 3, 5}))
    assert loaded_b.repeat is RepeatRule.CUSTOM
    assert loaded_b.repeat_settings == CustomRepeatSettings(interval=3)


def test_update_and_delete(store: TaskStore) -> None:
    task = store.add_task(title="draft", start="2024-01-10T13:00", end="2024-01-10T14:00")

    assert store.update_task(replace(task, title="final", completed=True)) is True
    loaded = store.get_task(task.id)
    assert loaded is not None
    assert loaded.title == "final"
    assert loaded.completed is True

    assert store.update_task(replace(task, id="missing")) is False
    assert store.delete_task(task.id) is True
    assert store.delete_task(task.id) is False
    assert store.get_task(task.id) is None


def test_get_tasks_runs_lifecycle_and_persists(store: TaskStore) -> None:
    task = store.add_task(title="meeting", start="2024-01-10T10:00", end="2024-01-10T11:00")

    visible = store.get_tasks(NOW)
    assert [t.id for t in visible] == [task.id]
    stored = store.get_task(task.id)
    assert stored is not None
    assert stored.expired_at == NOW
    assert stored.archived is False

    # still inside the grace period
    assert [t.id for t in store.get_tasks(NOW + timedelta(hours=23))] == [task.id]

    # past it
    assert store.get_tasks(NOW + timedelta(hours=25)) == []
    archived = store.get_archived_tasks()
    assert [t.id for t in archived] == [task.id]
    assert archived[0].expired_at == NOW


def test_recurring_task_never_expires(store: TaskStore) -> None:
    task = store.add_task(
        title="daily",
        start="2024-01-01T09:00",
        end="2024-01-01T10:00",
        repeat=RepeatRule.DAILY,
    )
    later = NOW + timedelta(days=30)

    assert [t.id for t in store.get_tasks(later)] == [task.id]
    stored = store.get_task(task.id)
    assert stored is not None
    assert stored.expired_at is None


def test_restore_archived_task(store: TaskStore) -> None:
    task = store.add_task(title="old", start="2024-01-01T09:00", end="2024-01-01T10:00")
    store.get_tasks(NOW)
    store.get_tasks(NOW + timedelta(days=2))
    assert store.get_archived_tasks()

    assert store.restore_archived_task(task.id) is True
    restored = store.get_task(task.id)
    assert restored is not None
    assert restored.archived is False
    assert restored.expired_at is None
    assert store.get_archived_tasks() == []


def test_delete_archived_task_only_touches_archived_rows(store: TaskStore) -> None:
    live = store.add_task(title="live", start="2024-02-01T09:00", end="2024-02-01T10:00")
    old = store.add_task(title="old", start="2024-01-01T09:00", end="2024-01-01T10:00")
    store.get_tasks(NOW)
    store.get_tasks(NOW + timedelta(days=2))

    assert store.delete_archived_task(live.id) is False
    assert store.delete_archived_task(old.id) is True
    assert store.get_task(old.id) is None
    assert store.get_task(live.id) is not None


def test_lists_keep_tasks_apart(store: TaskStore) -> None:
    default_id = store.get_active_list_id()
    store.add_task(title="home", start="2024-01-10T13:00", end="2024-01-10T14:00")

    work = store.create_task_list("Work")
    assert store.get_active_list_id() == work.id
    assert store.get_tasks(NOW) == []
    store.add_task(title="report", start="2024-01-10T15:00", end="2024-01-10T16:00")
    assert [t.title for t in store.get_tasks(NOW)] == ["report"]

    store.set_active_task_list(default_id)
    assert [t.title for t in store.get_tasks(NOW)] == ["home"]


def test_set_active_unknown_list_raises(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.set_active_task_list("nope")


def test_create_list_requires_name(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.create_task_list("")


def test_rename_and_delete_list(store: TaskStore) -> None:
    default_id = store.get_active_list_id()
    work = store.create_task_list("Work")
    store.add_task(title="report", start="2024-01-10T15:00", end="2024-01-10T16:00")

    assert store.rename_task_list(work.id, "Office") is True
    assert store.rename_task_list("nope", "x") is False
    assert [tl.name for tl in store.list_task_lists()] == [DEFAULT_LIST_NAME, "Office"]

    assert store.delete_task_list(work.id) is True
    assert store.delete_task_list(work.id) is False
    assert store.get_active_list_id() == default_id
    assert store.count_tasks() == 0


def test_deleting_last_list_recreates_default(store: TaskStore) -> None:
    only = store.get_active_list_id()
    assert store.delete_task_list(only) is True

    lists = store.list_task_lists()
    assert len(lists) == 1
    assert lists[0].name == DEFAULT_LIST_NAME
    assert lists[0].id != only


def test_store_survives_reopen(tmp_path) -> None:
    path = tmp_path / "tasks.sqlite3"
    first = TaskStore(path)
    task = first.add_task(title="persist", start="2024-01-10T13:00", end="2024-01-10T14:00")

    second = TaskStore(path)
    assert [t.id for t in second.get_tasks(NOW)] == [task.id]


def test_overnight_task_is_stored_with_next_day_end(store: TaskStore) -> None:
    task = store.add_task(title="night shift", start="2024-01-01T22:00", end="2024-01-01T02:00")
    assert task.end == datetime(2024, 1, 2, 2, 0)

    at_23 = datetime(2024, 1, 1, 23, 0)
    (visible,) = store.get_tasks(at_23)
    assert resolve([visible], at_23).active_task is not None
    assert visible.expired_at is None

    (after,) = store.get_tasks(datetime(2024, 1, 2, 3, 0))
    assert after.expired_at == datetime(2024, 1, 2, 3, 0)


def test_update_task_normalises_overnight_end(store: TaskStore) -> None:
    task = store.add_task(title="shift", start="2024-01-01T09:00", end="2024-01-01T17:00")

    store.update_task(replace(task, start=datetime(2024, 1, 1, 22, 0), end=datetime(2024, 1, 1, 6, 0)))

    stored = store.get_task(task.id)
    assert stored is not None
    assert stored.end == datetime(2024, 1, 2, 6, 0)


def test_malformed_repeat_settings_row_decodes_to_none(store: TaskStore, settings) -> None:
    task = store.add_task(
        title="gym",
        start="2024-01-01T18:00",
        end="2024-01-01T19:00",
        repeat=RepeatRule.CUSTOM,
        repeat_settings=CustomRepeatSettings(interval=2),
    )
    conn = sqlite3.connect(settings.tasks_db_path)
    try:
        conn.execute("UPDATE tasks SET repeat_settings = '{broken' WHERE id = ?", (task.id,))
        conn.commit()
    finally:
        conn.close()

    stored = store.get_task(task.id)
    assert stored is not None
    assert stored.repeat is RepeatRule.CUSTOM
    assert stored.repeat_settings is None

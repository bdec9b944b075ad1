# src/task_hud/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from .lifecycle import advance, changed_tasks
from .task_models import (
    RepeatRule,
    RepeatSettings,
    Task,
    TaskList,
    normalise_end,
    parse_repeat_settings,
    parse_timestamp,
    task_from_dict,
    task_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Default"
_ACTIVE_LIST_KEY = "active_list_id"


class TaskStore:
    """
    SQLite task store.

    Layout:
    - task_lists: named collections; exactly one is active (kept in app_state)
    - tasks: rows belong to a list and keep insertion order via `position`

    Every read of the active list runs the lifecycle manager first and writes back
    whatever it changed, so expired/archived flags are always current.

    Thread-safety:
    - each method opens its own SQLite connection
    - an RLock serialises read-modify-write cycles (single writer)
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Nothing to release: every call opens and closes its own connection."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_lists (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    list_id TEXT NOT NULL REFERENCES task_lists(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    start_at TEXT NOT NULL,
                    end_at TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    repeat TEXT NOT NULL DEFAULT 'none',
                    repeat_settings TEXT,
                    expired_at TEXT,
                    archived INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_list ON tasks(list_id, archived, position)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        settings = None
        if row["repeat_settings"]:
            try:
                settings = json.loads(row["repeat_settings"])
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed repeat_settings for task %s", row["id"])
        return task_from_dict(
            {
                "id": row["id"],
                "title": row["title"],
                "description": row["description"],
                "start": row["start_at"],
                "end": row["end_at"],
                "completed": bool(row["completed"]),
                "repeat": row["repeat"],
                "repeatSettings": settings,
                "expiredAt": row["expired_at"],
                "archived": bool(row["archived"]),
            }
        )

    @staticmethod
    def _task_columns(task: Task) -> dict[str, Any]:
        """Column values for `task`, end normalised past start."""
        data = task_to_dict(replace(task, end=normalise_end(task.start, task.end)))
        settings = data.get("repeatSettings")
        return {
            "title": data["title"],
            "description": data.get("description"),
            "start_at": data["start"],
            "end_at": data["end"],
            "completed": int(data["completed"]),
            "repeat": data["repeat"],
            "repeat_settings": json.dumps(settings, ensure_ascii=False) if settings is not None else None,
            "expired_at": data.get("expiredAt"),
            "archived": int(data.get("archived", False)),
        }

    def _write_task(self, conn: sqlite3.Connection, task: Task) -> int:
        cols = self._task_columns(task)
        assignments = ", ".join(f"{name} = :{name}" for name in cols)
        cur = conn.execute(
            f"UPDATE tasks SET {assignments}, updated_at = :updated_at WHERE id = :id",
            {**cols, "updated_at": time.time(), "id": task.id},
        )
        return cur.rowcount

    def _get_state(self, conn: sqlite3.Connection, key: str) -> str | None:
        row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    @staticmethod
    def _set_state(conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute(
            "INSERT INTO app_state(key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def _insert_list(self, conn: sqlite3.Connection, name: str) -> TaskList:
        list_id = uuid.uuid4().hex
        conn.execute(
            "INSERT INTO task_lists(id, name, created_at) VALUES (?, ?, ?)",
            (list_id, name, time.time()),
        )
        logger.debug("Task list created id=%s name=%s", list_id, name)
        return TaskList(id=list_id, name=name)

    def _active_list_id(self, conn: sqlite3.Connection) -> str:
        """Resolve the active list, creating/repairing it when needed. Caller commits."""
        active = self._get_state(conn, _ACTIVE_LIST_KEY)
        if active:
            row = conn.execute("SELECT id FROM task_lists WHERE id = ?", (active,)).fetchone()
            if row:
                return active

        row = conn.execute("SELECT id FROM task_lists ORDER BY created_at ASC, rowid ASC LIMIT 1").fetchone()
        if row:
            list_id = str(row["id"])
        else:
            list_id = self._insert_list(conn, DEFAULT_LIST_NAME).id
            logger.info("Created default task list id=%s", list_id)

        self._set_state(conn, _ACTIVE_LIST_KEY, list_id)
        return list_id

    def _select_tasks(self, conn: sqlite3.Connection, list_id: str, *, archived: bool | None) -> list[Task]:
        sql = "SELECT * FROM tasks WHERE list_id = ?"
        params: list[Any] = [list_id]
        if archived is not None:
            sql += " AND archived = ?"
            params.append(int(archived))
        sql += " ORDER BY position ASC"
        return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    # ---- task lists ----

    def list_task_lists(self) -> list[TaskList]:
        with self._lock:
            conn = self._get_conn()
            try:
                self._active_list_id(conn)
                conn.commit()
                rows = conn.execute(
                    "SELECT id, name FROM task_lists ORDER BY created_at ASC, rowid ASC"
                ).fetchall()
                return [TaskList(id=str(r["id"]), name=str(r["name"])) for r in rows]
            finally:
                conn.close()

    def get_active_list_id(self) -> str:
        with self._lock:
            conn = self._get_conn()
            try:
                list_id = self._active_list_id(conn)
                conn.commit()
                return list_id
            finally:
                conn.close()

    def set_active_task_list(self, list_id: str) -> None:
        with self._lock:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT id FROM task_lists WHERE id = ?", (list_id,)).fetchone()
                if row is None:
                    raise ValueError(f"Unknown task list: {list_id}")
                self._set_state(conn, _ACTIVE_LIST_KEY, list_id)
                conn.commit()
                logger.info("Active task list -> %s", list_id)
            finally:
                conn.close()

    def create_task_list(self, name: str) -> TaskList:
        if not name or not name.strip():
            raise ValueError("name is required")
        with self._lock:
            conn = self._get_conn()
            try:
                task_list = self._insert_list(conn, name.strip())
                self._set_state(conn, _ACTIVE_LIST_KEY, task_list.id)
                conn.commit()
                return task_list
            finally:
                conn.close()

    def rename_task_list(self, list_id: str, name: str) -> bool:
        if not name or not name.strip():
            raise ValueError("name is required")
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("UPDATE task_lists SET name = ? WHERE id = ?", (name.strip(), list_id))
                conn.commit()
                if cur.rowcount != 1:
                    logger.warning("rename_task_list: unknown list id=%s", list_id)
                    return False
                return True
            finally:
                conn.close()

    def delete_task_list(self, list_id: str) -> bool:
        """Remove a list together with its tasks. The first remaining list becomes active if needed."""
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("DELETE FROM task_lists WHERE id = ?", (list_id,))
                conn.execute("DELETE FROM tasks WHERE list_id = ?", (list_id,))
                if cur.rowcount != 1:
                    conn.commit()
                    logger.warning("delete_task_list: unknown list id=%s", list_id)
                    return False

                if self._get_state(conn, _ACTIVE_LIST_KEY) == list_id:
                    row = conn.execute(
                        "SELECT id FROM task_lists ORDER BY created_at ASC, rowid ASC LIMIT 1"
                    ).fetchone()
                    self._set_state(conn, _ACTIVE_LIST_KEY, str(row["id"]) if row else "")
                conn.commit()
                logger.info("Task list deleted id=%s", list_id)
                return True
            finally:
                conn.close()

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def get_tasks(self, now: datetime | None = None) -> list[Task]:
        """
        Visible tasks of the active list, in insertion order.

        Runs the lifecycle manager and persists its changes before filtering out archived tasks.
        """
        if now is None:
            now = datetime.now()

        with self._lock:
            conn = self._get_conn()
            try:
                list_id = self._active_list_id(conn)
                before = self._select_tasks(conn, list_id, archived=None)
                after = advance(before, now)
                for task in changed_tasks(before, after):
                    self._write_task(conn, task)
                    if task.archived:
                        logger.info("Task archived id=%s title=%s", task.id, task.title)
                conn.commit()
                return [t for t in after if not t.archived]
            finally:
                conn.close()

    def get_archived_tasks(self) -> list[Task]:
        with self._lock:
            conn = self._get_conn()
            try:
                list_id = self._active_list_id(conn)
                conn.commit()
                return self._select_tasks(conn, list_id, archived=True)
            finally:
                conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def add_task(
        self,
        *,
        title: str,
        start: datetime | str,
        end: datetime | str,
        repeat: RepeatRule | str = RepeatRule.NONE,
        repeat_settings: RepeatSettings | dict[str, Any] | None = None,
        description: str | None = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        start_dt = parse_timestamp(start)
        task = Task(
            id=uuid.uuid4().hex,
            title=title.strip(),
            start=start_dt,
            end=normalise_end(start_dt, parse_timestamp(end)),
            completed=False,
            repeat=repeat if isinstance(repeat, RepeatRule) else RepeatRule.parse(repeat),
            repeat_settings=parse_repeat_settings(repeat_settings),
            description=description,
        )

        now = time.time()
        with self._lock:
            conn = self._get_conn()
            try:
                list_id = self._active_list_id(conn)
                (pos,) = conn.execute(
                    "SELECT COALESCE(MAX(position), -1) + 1 FROM tasks WHERE list_id = ?", (list_id,)
                ).fetchone()
                cols = self._task_columns(task)
                conn.execute(
                    f"INSERT INTO tasks(id, list_id, position, {', '.join(cols)}, created_at, updated_at) "
                    f"VALUES (:id, :list_id, :position, {', '.join(':' + c for c in cols)}, :now, :now)",
                    {**cols, "id": task.id, "list_id": list_id, "position": int(pos), "now": now},
                )
                conn.commit()
            finally:
                conn.close()

        logger.debug(
            "Task added id=%s repeat=%s start=%s end=%s",
            task.id,
            task.repeat.value,
            task.start.isoformat(),
            task.end.isoformat(),
        )
        return task

    def update_task(self, task: Task) -> bool:
        """
        Replace the stored record with the same id.

        An end at or before the start is stored as the next day. Returns False for unknown ids.
        """
        if not task.title or not task.title.strip():
            raise ValueError("title is required")
        with self._lock:
            conn = self._get_conn()
            try:
                n = self._write_task(conn, task)
                conn.commit()
            finally:
                conn.close()
        if n != 1:
            logger.warning("update_task: unknown task id=%s", task.id)
            return False
        return True

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
                conn.commit()
                deleted = cur.rowcount == 1
            finally:
                conn.close()
        if deleted:
            logger.debug("Task deleted id=%s", task_id)
        return deleted

    def restore_archived_task(self, task_id: str) -> bool:
        """Clear `archived` and `expired_at` so the task reappears in the active view."""
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "UPDATE tasks SET archived = 0, expired_at = NULL, updated_at = ? WHERE id = ?",
                    (time.time(), task_id),
                )
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()

    def delete_archived_task(self, task_id: str) -> bool:
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("DELETE FROM tasks WHERE id = ? AND archived = 1", (task_id,))
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()

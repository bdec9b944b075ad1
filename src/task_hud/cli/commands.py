# src/task_hud/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
import shlex
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, time
from typing import cast

from ..core.state import AppState
from ..hud.formatting import repeat_label
from ..hud.hud_loop import build_frame
from ..hud.hud_settings import save_hud_settings, update_hud_setting
from ..tasks.task_models import (
    CustomRepeatSettings,
    RepeatRule,
    RepeatSettings,
    Task,
    TaskList,
    WeekdayRepeatSettings,
    normalise_end,
    parse_timestamp,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValueError as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def parse_when(raw: str, *, base: datetime) -> datetime:
    """
    "HH:MM" -> that time on base's date; anything else goes through parse_timestamp.
    """
    m = _HHMM_RE.match(raw.strip())
    if m:
        hh, mm = int(m.group(1)), int(m.group(2))
        if not (0 <= hh <= 23 and 0 <= mm <= 59):
            raise ValueError(f"Invalid HH:MM: {raw!r}")
        return datetime.combine(base.date(), time(hh, mm))
    return parse_timestamp(raw)


def parse_repeat_token(token: str) -> tuple[RepeatRule, RepeatSettings | None] | None:
    """
    "daily", "weekly", "weekdays", "weekdays:1,3,5", "weekends", "every_other_day",
    "custom:3". Returns None when the token is not a repeat rule.
    """
    name, _, arg = token.partition(":")
    name = name.strip().lower()
    if name not in {r.value for r in RepeatRule}:
        return None
    rule = RepeatRule(name)

    if rule == RepeatRule.WEEKDAYS:
        if not arg:
            return rule, WeekdayRepeatSettings()
        try:
            days = frozenset(int(d) for d in arg.split(",") if d.strip())
        except ValueError as e:
            raise ValueError(f"weekdays expects day numbers 0-6 (Sunday=0), got {arg!r}") from e
        if not days or any(d < 0 or d > 6 for d in days):
            raise ValueError(f"weekdays expects day numbers 0-6 (Sunday=0), got {arg!r}")
        return rule, WeekdayRepeatSettings(days=days)

    if rule == RepeatRule.CUSTOM:
        try:
            interval = int(arg)
        except ValueError as e:
            raise ValueError("custom expects an interval in days, e.g. custom:3") from e
        if interval < 1:
            raise ValueError("custom interval must be at least 1 day")
        return rule, CustomRepeatSettings(interval=interval)

    return rule, None


def _find_by_prefix(items: list[Task], prefix: str) -> Task:
    prefix = prefix.strip().lower()
    if not prefix:
        raise ValueError("task id is required")
    matches = [t for t in items if t.id.lower().startswith(prefix)]
    if not matches:
        raise ValueError(f"No task with id {prefix}")
    if len(matches) > 1:
        raise ValueError(f"Ambiguous task id {prefix} ({len(matches)} matches)")
    return matches[0]


def _find_list(lists: list[TaskList], key: str) -> TaskList:
    key_l = key.strip().lower()
    by_id = [tl for tl in lists if tl.id.lower().startswith(key_l)]
    if len(by_id) == 1:
        return by_id[0]
    by_name = [tl for tl in lists if tl.name.lower() == key_l]
    if len(by_name) == 1:
        return by_name[0]
    if by_id or by_name:
        raise ValueError(f"Ambiguous task list {key}")
    raise ValueError(f"No task list {key}")


def _fmt_dt(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")


def _fmt_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    label = repeat_label(task)
    label_str = f" ({label})" if label else ""
    return (
        f"[{mark}] {task.id[:SHORT_ID]}  {_fmt_dt(task.start)} -> {task.end.strftime('%H:%M')}"
        f"  {task.title}{label_str}"
    )


def _persist_hud_settings(state: AppState) -> None:
    path = getattr(state.settings, "hud_settings_path", None)
    if not path:
        return
    try:
        save_hud_settings(path, state.hud_settings)
    except OSError:
        logger.exception("Failed to save HUD settings to %s", path)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    lists = state.task_store.list_task_lists()
    active_id = state.task_store.get_active_list_id()
    active = next((tl.name for tl in lists if tl.id == active_id), "?")
    visible = state.task_store.get_tasks()
    archived = state.task_store.get_archived_tasks()
    return (
        "Status:\n"
        f"  Active list: {active}\n"
        f"  Tasks: {len(visible)} visible, {len(archived)} archived\n"
        f"  Task lists: {len(lists)}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.get_tasks()
    if not tasks:
        return "No tasks in this list. Add one with /add."
    return "\n".join(["Tasks:"] + [f"  {_fmt_task(t)}" for t in tasks])


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <start> <end> [repeat] <title...>

    start/end: HH:MM (today) or YYYY-MM-DDTHH:MM; an end time before the start means "next day".
    repeat: daily | weekly | weekdays[:1,2,3] | weekends | every_other_day | custom:N
    """
    if len(args) < 3:
        return "Usage: /add <start> <end> [repeat] <title>"

    now = datetime.now()
    start = parse_when(args[0], base=now)
    end = normalise_end(start, parse_when(args[1], base=start))

    rest = args[2:]
    repeat: RepeatRule = RepeatRule.NONE
    settings: RepeatSettings | None = None
    parsed = parse_repeat_token(rest[0])
    if parsed is not None and len(rest) > 1:
        repeat, settings = parsed
        rest = rest[1:]

    title = " ".join(rest).strip()
    task = state.task_store.add_task(
        title=title,
        start=start,
        end=end,
        repeat=repeat,
        repeat_settings=settings,
    )
    return f"Added: {_fmt_task(task)}"


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return "Usage: /done <id> | /undone <id>"
    task = _find_by_prefix(state.task_store.get_tasks(), args[0])
    state.task_store.update_task(replace(task, completed=completed))
    return f"{'Completed' if completed else 'Reopened'}: {task.title}"


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, True)


def cmd_undone(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, False)


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <id>"
    task = _find_by_prefix(state.task_store.get_tasks(), args[0])
    state.task_store.delete_task(task.id)
    return f"Deleted: {task.title}"


def cmd_archive(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.get_archived_tasks()
    if not tasks:
        return "Archive is empty."
    return "\n".join(["Archived tasks:"] + [f"  {_fmt_task(t)}" for t in tasks])


def cmd_restore(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /restore <id>"
    task = _find_by_prefix(state.task_store.get_archived_tasks(), args[0])
    state.task_store.restore_archived_task(task.id)
    return f"Restored: {task.title}"


def cmd_purge(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /purge <id>"
    task = _find_by_prefix(state.task_store.get_archived_tasks(), args[0])
    state.task_store.delete_archived_task(task.id)
    return f"Deleted from archive: {task.title}"


def cmd_lists(state: AppState, args: list[str]) -> str:
    active_id = state.task_store.get_active_list_id()
    lines = ["Task lists:"]
    for tl in state.task_store.list_task_lists():
        marker = "*" if tl.id == active_id else " "
        lines.append(f"  {marker} {tl.id[:SHORT_ID]}  {tl.name}")
    return "\n".join(lines)


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list new <name>
    /list use <id|name>
    /list rename <id|name> <new name>
    /list del <id|name>
    """
    usage = (
        "Usage:\n"
        "  /list new <name>\n"
        "  /list use <id|name>\n"
        "  /list rename <id|name> <new name>\n"
        "  /list del <id|name>"
    )
    if not args:
        return usage

    sub = args[0].lower()
    rest = args[1:]
    store = state.task_store

    if sub == "new" and rest:
        tl = store.create_task_list(" ".join(rest))
        return f"Created and switched to list: {tl.name}"

    if sub == "use" and rest:
        tl = _find_list(store.list_task_lists(), rest[0])
        store.set_active_task_list(tl.id)
        return f"Active list: {tl.name}"

    if sub == "rename" and len(rest) >= 2:
        tl = _find_list(store.list_task_lists(), rest[0])
        new_name = " ".join(rest[1:])
        store.rename_task_list(tl.id, new_name)
        return f"Renamed list {tl.name} -> {new_name}"

    if sub in ("del", "delete") and rest:
        tl = _find_list(store.list_task_lists(), rest[0])
        store.delete_task_list(tl.id)
        return f"Deleted list: {tl.name}"

    return usage


def cmd_hud(state: AppState, args: list[str]) -> str:
    with state.lock:
        settings = state.hud_settings
    now = datetime.now()
    frame = build_frame(state.task_store.get_tasks(now), now, settings)

    lines = []
    if frame.current_time:
        lines.append(f"Time: {frame.current_time}")
    if frame.active_title:
        rep = f" ({frame.active_repeat})" if frame.active_repeat else ""
        lines.append(f"Now:  {frame.active_title}{rep} - {frame.active_text} left")
    if frame.upcoming_title:
        rep = f" ({frame.upcoming_repeat})" if frame.upcoming_repeat else ""
        lines.append(f"Next: {frame.upcoming_title}{rep} - in {frame.upcoming_text}")
    if frame.is_empty:
        lines.append("Nothing scheduled.")
    return "\n".join(lines)


def cmd_set(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /set                -> show HUD settings
    /set <key> <value>  -> change one (dotted keys for nested values)
    """
    if not args:
        with state.lock:
            settings = state.hud_settings
        lines = ["HUD settings:"]
        for name in settings.__dataclass_fields__:
            lines.append(f"  {name} = {getattr(settings, name)}")
        return "\n".join(lines)

    if len(args) < 2:
        return "Usage: /set <key> <value>"

    key, value = args[0], " ".join(args[1:])
    with state.lock:
        state.hud_settings = update_hud_setting(state.hud_settings, key, value)

    if emit:
        with contextlib.suppress(Exception):
            emit(f"[HUD] {key} -> {value}")

    _persist_hud_settings(state)
    return f"HUD setting updated: {key} = {value}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show active list and task counts.")
registry.register("tasks", cmd_tasks, help_text="List tasks in the active list.", aliases=["ls"])
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <start> <end> [repeat] <title>.",
)
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("undone", cmd_undone, help_text="Reopen a task: /undone <id>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("archive", cmd_archive, help_text="List archived tasks.")
registry.register("restore", cmd_restore, help_text="Restore an archived task: /restore <id>.")
registry.register("purge", cmd_purge, help_text="Delete an archived task: /purge <id>.")
registry.register("lists", cmd_lists, help_text="Show task lists (* = active).")
registry.register("list", cmd_list, help_text="Manage lists: /list new|use|rename|del.")
registry.register("hud", cmd_hud, help_text="Show the current and next task now.")
registry.register("set", cmd_set, help_text="Show or change HUD settings: /set <key> <value>.")

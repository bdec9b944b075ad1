# src/task_hud/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The HUD loop and commands depend on Protocols instead of concrete implementations.
This keeps storage and renderers swappable and makes testing easier.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from ..tasks.task_models import RepeatRule, RepeatSettings, Task, TaskList

if TYPE_CHECKING:
    from ..hud.hud_loop import HudFrame


class TaskReader(Protocol):
    """What the presentation layer needs: the visible tasks of the active list."""

    def get_tasks(self, now: datetime | None = None) -> list[Task]: ...


class TaskRepo(TaskReader, Protocol):
    def get_archived_tasks(self) -> list[Task]: ...
    def get_task(self, task_id: str) -> Task | None: ...

    def add_task(
            self,
            *,
            title: str,
            start: datetime | str,
            end: datetime | str,
            repeat: RepeatRule | str = RepeatRule.NONE,
            repeat_settings: RepeatSettings | dict[str, Any] | None = None,
            description: str | None = None,
    ) -> Task: ...

    def update_task(self, task: Task) -> bool: ...
    def delete_task(self, task_id: str) -> bool: ...
    def restore_archived_task(self, task_id: str) -> bool: ...
    def delete_archived_task(self, task_id: str) -> bool: ...

    def list_task_lists(self) -> list[TaskList]: ...
    def get_active_list_id(self) -> str: ...
    def set_active_task_list(self, list_id: str) -> None: ...
    def create_task_list(self, name: str) -> TaskList: ...
    def rename_task_list(self, list_id: str, name: str) -> bool: ...
    def delete_task_list(self, list_id: str) -> bool: ...

    def close(self) -> None: ...


class HudRenderer(Protocol):
    """
    Presentation-side port: where HUD frames go.

    The renderer decides how to draw a frame (terminal line, window, tray tooltip, ...).
    """

    def render(self, frame: HudFrame) -> None: ...

# src/task_hud/hud/hud_loop.py

"""
HUD loop.

A small polling loop that, once per tick:
- reads the visible tasks from the store (which also advances their lifecycle),
- resolves the active and upcoming task,
- builds a HudFrame and hands it to an injected renderer port.

How a frame is drawn belongs to the renderer, not the loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.ports import HudRenderer, TaskReader
from ..tasks.occurrences import Resolution, resolve
from ..tasks.task_models import Task
from .colors import calculate_border_color
from .formatting import format_clock, format_countdown, format_percentage, repeat_label
from .hud_settings import HudSettings

logger = logging.getLogger(__name__)

SettingsProvider = Callable[[], HudSettings]
Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class HudFrame:
    """
    Everything a renderer needs for one tick.

    Text fields are already formatted; `resolution` keeps the raw answer for renderers
    that want to draw their own thing.
    """

    now: datetime
    resolution: Resolution

    current_time: str | None

    active_title: str | None
    active_text: str | None
    active_repeat: str

    upcoming_title: str | None
    upcoming_text: str | None
    upcoming_repeat: str

    time_left: timedelta | None
    border_color: str | None
    opacity: float

    @property
    def is_empty(self) -> bool:
        return self.active_title is None and self.upcoming_title is None

    @property
    def change_key(self) -> tuple[str | None, str | None]:
        """Identity of what is shown, ignoring the ticking countdown."""
        r = self.resolution
        return (
            r.active_task.id if r.active_task else None,
            r.upcoming_task.id if r.upcoming_task else None,
        )


def build_frame(tasks: Iterable[Task], now: datetime, settings: HudSettings | None = None) -> HudFrame:
    """Resolve `tasks` at `now` and apply the display policy from `settings`."""
    settings = settings or HudSettings()
    res = resolve(tasks, now)

    active = res.active_task
    upcoming = res.upcoming_task
    if active is not None and settings.hide_upcoming_when_active:
        upcoming = None

    if active is None:
        active_text = None
    elif settings.time_display_format == "percentage":
        active_text = format_percentage(res.active_occurrence, now)
    else:
        active_text = format_countdown(res.active_time_remaining)

    time_left = res.active_time_remaining if active is not None else res.upcoming_time_until_start

    border_color = None
    if settings.show_border:
        border_color = calculate_border_color(
            time_left,
            settings.dynamic_border_color,
            settings.border_colors,
            settings.color_thresholds,
        )

    return HudFrame(
        now=now,
        resolution=res,
        current_time=format_clock(now) if settings.show_current_time else None,
        active_title=active.title if active else None,
        active_text=active_text,
        active_repeat=repeat_label(active) if active else "",
        upcoming_title=upcoming.title if upcoming else None,
        upcoming_text=format_countdown(res.upcoming_time_until_start) if upcoming else None,
        upcoming_repeat=repeat_label(upcoming) if upcoming else "",
        time_left=time_left,
        border_color=border_color,
        opacity=settings.opacity,
    )


def hud_tick(
    repo: TaskReader,
    renderer: HudRenderer,
    *,
    settings: HudSettings | None = None,
    now: datetime | None = None,
) -> HudFrame | None:
    """One HUD update. Store and renderer failures are logged, never raised."""
    if now is None:
        now = datetime.now()

    try:
        tasks = repo.get_tasks(now)
    except Exception:
        logger.exception("get_tasks failed")
        return None

    frame = build_frame(tasks, now, settings)

    try:
        renderer.render(frame)
    except Exception:
        logger.exception("HUD render failed")
    return frame


async def run_hud_loop(
    repo: TaskReader,
    renderer: HudRenderer,
    *,
    interval_seconds: float = 1.0,
    settings_provider: SettingsProvider | None = None,
    clock: Clock = datetime.now,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Polling HUD loop.

    Every interval_seconds:
    - read the HUD settings (settings_provider lets the REPL change them live)
    - run hud_tick() with the current wall-clock time

    To stop the loop, cancel the coroutine/task or set stop_event.
    """
    sleep_s = max(0.05, float(interval_seconds))
    logger.info("HUD loop started interval=%.2fs", sleep_s)

    while stop_event is None or not stop_event.is_set():
        settings = None
        if settings_provider is not None:
            try:
                settings = settings_provider()
            except Exception:
                logger.exception("settings_provider failed; using defaults")

        hud_tick(repo, renderer, settings=settings, now=clock())

        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)

    logger.info("HUD loop stopped")


@dataclass
class HudBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal HUD stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_hud_in_background(
    repo: TaskReader,
    renderer: HudRenderer,
    *,
    interval_seconds: float = 1.0,
    settings_provider: SettingsProvider | None = None,
) -> HudBackgroundRunner | None:
    """
    Start the HUD loop in a background thread (so the console REPL can run in parallel).

    The REPL blocks on input(); the HUD loop wants its own event loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_hud_loop(
                    repo,
                    renderer,
                    interval_seconds=interval_seconds,
                    settings_provider=settings_provider,
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name="hud-loop", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("HUD thread did not initialize properly.")
        return None

    logger.info("HUD background thread started.")
    return HudBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)

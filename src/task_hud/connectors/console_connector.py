# src/task_hud/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from typing import TextIO

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..hud.hud_loop import HudFrame

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleHudRenderer:
    """
    HUD renderer for a terminal that is also running the REPL.

    Redrawing every second would trash the prompt, so a line is printed only when
    the active/upcoming task changes. /hud shows the live countdown on demand.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._last_key: tuple[str | None, str | None] | None = None
        self._lock = threading.Lock()

    def render(self, frame: HudFrame) -> None:
        with self._lock:
            key = frame.change_key
            if key == self._last_key:
                return
            self._last_key = key

        stream = self._stream or sys.stdout
        stream.write(f"\n[{_ts_local()}] [HUD] {describe_frame(frame)}\n")
        stream.flush()


def describe_frame(frame: HudFrame) -> str:
    if frame.is_empty:
        return "Nothing scheduled."
    parts = []
    if frame.active_title:
        parts.append(f"Now: {frame.active_title} ({frame.active_text} left)")
    if frame.upcoming_title:
        parts.append(f"Next: {frame.upcoming_title} (in {frame.upcoming_text})")
    return " | ".join(parts)


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Manage your tasks here. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for slower operations
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."

        _print_ts(response)

    logger.info("Console connector finished.")

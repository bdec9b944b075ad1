# src/task_hud/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the HUD loop in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleHudRenderer, run_console_loop
from ..core.state import AppState
from ..hud.hud_loop import HudBackgroundRunner, start_hud_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.task_store.close()
    except Exception:
        logger.debug("Task store close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    def current_hud_settings():
        with state.lock:
            return state.hud_settings

    hud_runner: HudBackgroundRunner | None = None
    if settings.hud_enabled:
        hud_runner = start_hud_in_background(
            state.task_store,
            ConsoleHudRenderer(),
            interval_seconds=settings.hud_interval_seconds,
            settings_provider=current_hud_settings,
        )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    # The REPL handles Ctrl+C itself (KeyboardInterrupt from input()).
    if not settings.console_enabled:
        # Some platforms do not support SIGTERM.
        with contextlib.suppress(ValueError, AttributeError, OSError):
            signal.signal(signal.SIGINT, _handle_signal)
            signal.signal(signal.SIGTERM, _handle_signal)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the HUD only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if hud_runner is not None:
            hud_runner.stop()
            hud_runner.join(timeout=5.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()

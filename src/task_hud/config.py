# src/task_hud/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every key has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKHUD"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (gitignored) never overrides the real environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool
    hud_enabled: bool

    # ---- HUD ----
    hud_interval_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    log_dir: Path
    tasks_db_path: Path
    hud_settings_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "task-hud").strip() or "task-hud"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        hud_enabled = _env_bool(_k("HUD_ENABLED"), True)

        # The HUD counts down in seconds; anything slower makes the display jump.
        hud_interval_seconds = max(0.1, _env_float(_k("HUD_INTERVAL_SECONDS"), 1.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_hud"))
        log_dir = _env_path(_k("LOG_DIR"), data_dir)
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        hud_settings_path = _env_path(_k("HUD_SETTINGS_PATH"), data_dir / "hud_settings.json")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            hud_enabled=hud_enabled,
            hud_interval_seconds=hud_interval_seconds,
            data_dir=data_dir,
            log_dir=log_dir,
            tasks_db_path=tasks_db_path,
            hud_settings_path=hud_settings_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

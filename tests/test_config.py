# tests/test_config.py

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from types import SimpleNamespace

import pytest

from task_hud.cli.bootstrap import create_initial_state
from task_hud.config import Settings
from task_hud.hud.hud_settings import HudSettings, save_hud_settings

_KEYS = (
    "APP_NAME",
    "LOG_LEVEL",
    "CONSOLE_ENABLED",
    "HUD_ENABLED",
    "HUD_INTERVAL_SECONDS",
    "DATA_DIR",
    "LOG_DIR",
    "TASKS_DB_PATH",
    "HUD_SETTINGS_PATH",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in _KEYS:
        monkeypatch.delenv(f"TASKHUD_{key}", raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()

    assert s.app_name == "task-hud"
    assert s.console_enabled is True
    assert s.hud_enabled is True
    assert s.hud_interval_seconds == 1.0
    assert s.data_dir == Path(".local/task_hud")
    assert s.tasks_db_path == s.data_dir / "tasks.sqlite3"
    assert s.hud_settings_path == s.data_dir / "hud_settings.json"


def test_env_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASKHUD_DATA_DIR", str(tmp_path))
    clean_env.setenv("TASKHUD_HUD_ENABLED", "no")
    clean_env.setenv("TASKHUD_HUD_INTERVAL_SECONDS", "0.01")

    s = Settings.from_env()

    assert s.hud_enabled is False
    assert s.hud_interval_seconds == 0.1
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.log_dir == tmp_path


def test_bad_interval_falls_back(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TASKHUD_HUD_INTERVAL_SECONDS", "fast")
    assert Settings.from_env().hud_interval_seconds == 1.0


def test_create_initial_state(tmp_path: Path) -> None:
    settings = SimpleNamespace(
        app_name="t",
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "db" / "tasks.sqlite3",
        hud_settings_path=tmp_path / "data" / "hud.json",
    )
    save_hud_settings(settings.hud_settings_path, replace(HudSettings(), opacity=0.3))

    state = create_initial_state(settings=settings)

    assert state.settings is settings
    assert state.hud_settings.opacity == 0.3
    assert settings.tasks_db_path.exists()
    assert state.task_store.get_tasks() == []

# src/task_hud/hud/hud_settings.py

"""
HUD appearance settings.

Persisted as a small JSON document; stored values are merged over the defaults so
older files missing newer keys still load.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TIME_DISPLAY_FORMATS = ("minutes", "percentage")


@dataclass(frozen=True, slots=True)
class BorderColors:
    normal: str = "#4fa3e3"
    warning: str = "#ffa726"
    critical: str = "#ef5350"


@dataclass(frozen=True, slots=True)
class ColorThresholds:
    # minutes left
    warning: float = 15.0
    critical: float = 5.0


@dataclass(frozen=True, slots=True)
class HudSettings:
    show_current_time: bool = False
    opacity: float = 0.85
    show_border: bool = True
    dynamic_border_color: bool = True
    border_colors: BorderColors = field(default_factory=BorderColors)
    color_thresholds: ColorThresholds = field(default_factory=ColorThresholds)
    time_display_format: str = "minutes"
    hide_upcoming_when_active: bool = False


_NESTED = {"border_colors": BorderColors, "color_thresholds": ColorThresholds}


def _coerce(name: str, current: Any, raw: Any) -> Any:
    """Convert `raw` to the type of the current value. Raises ValueError/TypeError."""
    if isinstance(current, bool):
        if isinstance(raw, bool):
            return raw
        s = str(raw).strip().lower()
        if s in {"1", "true", "yes", "y", "on"}:
            return True
        if s in {"0", "false", "no", "n", "off"}:
            return False
        raise ValueError(f"{name}: expected a boolean, got {raw!r}")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return str(raw)


def _nested_from_dict(cls: type, current: Any, raw: Any) -> Any:
    if not isinstance(raw, dict):
        return current
    known = {f.name for f in fields(cls)}
    updates: dict[str, Any] = {}
    for key, value in raw.items():
        if key in known:
            try:
                updates[key] = _coerce(key, getattr(current, key), value)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid HUD setting %s=%r", key, value)
    return replace(current, **updates)


def hud_settings_from_dict(data: dict[str, Any]) -> HudSettings:
    """Merge a stored dict over the defaults. Unknown keys and bad values are ignored."""
    base = HudSettings()
    updates: dict[str, Any] = {}
    for f in fields(HudSettings):
        if f.name not in data:
            continue
        current = getattr(base, f.name)
        raw = data[f.name]
        if f.name in _NESTED:
            updates[f.name] = _nested_from_dict(_NESTED[f.name], current, raw)
            continue
        try:
            updates[f.name] = _coerce(f.name, current, raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid HUD setting %s=%r", f.name, raw)
    settings = replace(base, **updates)
    if settings.time_display_format not in TIME_DISPLAY_FORMATS:
        settings = replace(settings, time_display_format=base.time_display_format)
    return settings


def update_hud_setting(settings: HudSettings, key: str, raw: str) -> HudSettings:
    """
    Return a copy with one setting changed.

    Nested values use dotted keys: "border_colors.warning", "color_thresholds.critical".
    Raises ValueError for unknown keys or unparsable values.
    """
    head, _, tail = key.partition(".")
    if head in _NESTED and tail:
        nested = getattr(settings, head)
        if tail not in {f.name for f in fields(_NESTED[head])}:
            raise ValueError(f"Unknown HUD setting: {key}")
        value = _coerce(key, getattr(nested, tail), raw)
        return replace(settings, **{head: replace(nested, **{tail: value})})

    if head not in {f.name for f in fields(HudSettings)} or head in _NESTED or tail:
        raise ValueError(f"Unknown HUD setting: {key}")

    value = _coerce(key, getattr(settings, head), raw)
    if head == "time_display_format" and value not in TIME_DISPLAY_FORMATS:
        raise ValueError(f"time_display_format must be one of: {', '.join(TIME_DISPLAY_FORMATS)}")
    if head == "opacity" and not 0.0 <= value <= 1.0:
        raise ValueError("opacity must be between 0 and 1")
    return replace(settings, **{head: value})


def load_hud_settings(path: str | Path) -> HudSettings:
    path = Path(path)
    if not path.exists():
        return HudSettings()
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to load HUD settings from %s", path)
        return HudSettings()
    if not isinstance(data, dict):
        logger.warning("HUD settings file %s is not an object; using defaults", path)
        return HudSettings()
    return hud_settings_from_dict(data)


def save_hud_settings(path: str | Path, settings: HudSettings) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(asdict(settings), ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        os.chmod(path, 0o600)
    logger.info("Saved HUD settings to %s", path)

# src/task_hud/hud/colors.py

from __future__ import annotations

from datetime import timedelta

from .hud_settings import BorderColors, ColorThresholds

# Minutes over which one colour blends into the next.
TRANSITION_MINUTES = 2.0


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    s = color.strip().lstrip("#")
    if len(s) != 6:
        raise ValueError(f"Invalid colour: {color!r}")
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


def interpolate_color(color1: str, color2: str, factor: float) -> str:
    """Linear blend of two #rrggbb colours; factor 0 -> color1, 1 -> color2."""
    factor = min(1.0, max(0.0, factor))
    r1, g1, b1 = _hex_to_rgb(color1)
    r2, g2, b2 = _hex_to_rgb(color2)
    parts = (
        round(r1 + (r2 - r1) * factor),
        round(g1 + (g2 - g1) * factor),
        round(b1 + (b2 - b1) * factor),
    )
    return "#" + "".join(f"{p:02x}" for p in parts)


def calculate_border_color(
    time_left: timedelta | None,
    dynamic: bool,
    colors: BorderColors,
    thresholds: ColorThresholds | None = None,
) -> str:
    """
    Border colour for the HUD given the countdown.

    critical (<= critical min) -> blend -> warning (<= warning min) -> blend -> normal
    """
    if not dynamic or time_left is None:
        return colors.normal

    thresholds = thresholds or ColorThresholds()
    minutes_left = time_left.total_seconds() / 60.0
    critical = thresholds.critical
    warning = thresholds.warning

    if minutes_left <= critical:
        return colors.critical
    if minutes_left <= critical + TRANSITION_MINUTES:
        factor = (minutes_left - critical) / TRANSITION_MINUTES
        return interpolate_color(colors.critical, colors.warning, factor)
    if minutes_left <= warning:
        return colors.warning
    if minutes_left <= warning + TRANSITION_MINUTES:
        factor = (minutes_left - warning) / TRANSITION_MINUTES
        return interpolate_color(colors.warning, colors.normal, factor)
    return colors.normal

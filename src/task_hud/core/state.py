# src/task_hud/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..hud.hud_settings import HudSettings
from .ports import TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskRepo
    hud_settings: HudSettings = field(default_factory=HudSettings)

    # Guards hud_settings swaps between the REPL and the HUD thread.
    lock: threading.RLock = field(default_factory=threading.RLock)

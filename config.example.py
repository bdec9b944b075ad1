# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep machine-specific values in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKHUD_APP_NAME": "App display name (default: task-hud).",
    "TASKHUD_LOG_LEVEL": "Console logging level (default: INFO). The log file always records DEBUG.",
    # Switches
    "TASKHUD_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "TASKHUD_HUD_ENABLED": "Run the HUD loop in the background (true/false, default: true).",
    # HUD
    "TASKHUD_HUD_INTERVAL_SECONDS": "Seconds between HUD refreshes (default: 1.0, minimum 0.1).",
    # Paths (gitignored)
    "TASKHUD_DATA_DIR": "Local data directory (default: .local/task_hud).",
    "TASKHUD_LOG_DIR": "Directory for task_hud.log (default: <data_dir>).",
    "TASKHUD_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKHUD_HUD_SETTINGS_PATH": "HUD settings JSON path (default: <data_dir>/hud_settings.json).",
}

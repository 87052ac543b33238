# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/taskflow/config.py for parsing and defaults.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Logging level (default: INFO).",
    # Switches
    "TASKFLOW_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "TASKFLOW_SCHEDULER_ENABLED": "Run the reminder scheduler in the background (default: true).",
    "TASKFLOW_SEED_EXAMPLES": "Seed three example tasks on first start (default: true).",
    # Reminders
    "TASKFLOW_REMINDER_INTERVAL_SECONDS": "Seconds between scheduler ticks (default: 300).",
    "TASKFLOW_NOTIFIER": "Notification backend: console | desktop | none (default: console).",
    "TASKFLOW_OVERDUE_POLICY": "Overdue alert dedup: repeat | once | cooldown (default: repeat).",
    "TASKFLOW_OVERDUE_COOLDOWN_MINUTES": "Cooldown window for the 'cooldown' policy (default: 60).",
    "TASKFLOW_NOTIFY_SETTINGS_PER_DEVICE": (
        "Store notification settings per device id instead of globally (default: false)."
    ),
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory (default: .local/taskflow).",
    "TASKFLOW_DB_PATH": "Key-value SQLite path (default: <data_dir>/taskflow.sqlite3).",
}

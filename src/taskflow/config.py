# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Tests build Settings directly instead of reading the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

# Real environment variables win over .env entries.
load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Connectors / background work ----
    console_enabled: bool
    scheduler_enabled: bool

    # ---- Reminders ----
    reminder_interval_seconds: float
    notifier: str
    overdue_policy: str
    overdue_cooldown_minutes: int
    notify_settings_per_device: bool

    # ---- Tasks ----
    seed_examples: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskflow.sqlite3")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)

        reminder_interval_seconds = _env_float(_k("REMINDER_INTERVAL_SECONDS"), 300.0)
        notifier = _env(_k("NOTIFIER"), "console").strip().lower()
        overdue_policy = _env(_k("OVERDUE_POLICY"), "repeat").strip().lower()
        overdue_cooldown_minutes = _env_int(_k("OVERDUE_COOLDOWN_MINUTES"), 60)
        notify_settings_per_device = _env_bool(_k("NOTIFY_SETTINGS_PER_DEVICE"), False)

        seed_examples = _env_bool(_k("SEED_EXAMPLES"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            console_enabled=console_enabled,
            scheduler_enabled=scheduler_enabled,
            reminder_interval_seconds=max(1.0, reminder_interval_seconds),
            notifier=notifier,
            overdue_policy=overdue_policy,
            overdue_cooldown_minutes=max(0, overdue_cooldown_minutes),
            notify_settings_per_device=notify_settings_per_device,
            seed_examples=seed_examples,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

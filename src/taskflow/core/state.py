# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .ports import Clock, KeyValueStore, NotificationGateway

if TYPE_CHECKING:
    from ..notifications.settings_store import NotificationSettingsStore
    from ..tasks.task_scheduler import ReminderScheduler
    from ..tasks.task_store import TaskRepository


@dataclass
class AppState:
    """Everything a connector (console, ...) needs, wired once by cli.bootstrap."""

    # Settings object (config.Settings or a test stand-in).
    settings: Any

    store: KeyValueStore
    clock: Clock
    device_id: str

    tasks: TaskRepository
    notification_settings: NotificationSettingsStore
    gateway: NotificationGateway
    scheduler: ReminderScheduler

# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- resolves the device identity,
- wires concrete implementations into AppState (store/tasks/notifications/scheduler).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.errors import StorageUnavailableError
from ..core.ports import Clock, KeyValueStore, NotificationGateway
from ..core.state import AppState
from ..identity.device_id import IdentityProvider, ephemeral_device_id
from ..notifications.gateway import build_gateway
from ..notifications.settings_store import NotificationSettingsStore
from ..storage.kv_store import InMemoryKeyValueStore, SQLiteKeyValueStore
from ..tasks.overdue_policy import build_overdue_policy
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def open_store(settings) -> KeyValueStore:
    """SQLite store under data_dir; falls back to memory so the app still runs for this session."""
    try:
        return SQLiteKeyValueStore(settings.db_path)
    except StorageUnavailableError:
        logger.exception("Durable store unavailable at %s; using in-memory store (nothing will be saved)", settings.db_path)
        return InMemoryKeyValueStore()


def resolve_device_id(store: KeyValueStore, clock: Clock) -> str:
    try:
        return IdentityProvider(store, clock=clock).get_device_id()
    except StorageUnavailableError:
        device_id = ephemeral_device_id(clock)
        logger.exception("Could not read device id; using session-only id %s", device_id)
        return device_id


def create_initial_state(
    *,
    settings=None,
    store: KeyValueStore | None = None,
    clock: Clock | None = None,
    gateway: NotificationGateway | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping collaborators injectable makes the app easier to test and avoids hidden global reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    if store is None:
        try:
            _ensure_local_dirs(settings)
        except OSError:
            logger.exception("Could not create data directory %s", settings.data_dir)
        store = open_store(settings)

    device_id = resolve_device_id(store, clock)

    repository = TaskRepository(store, device_id, clock=clock, seed_examples=settings.seed_examples)
    repository.load_or_recover()

    notification_settings = NotificationSettingsStore(
        store,
        device_id=device_id if settings.notify_settings_per_device else None,
    )

    if gateway is None:
        gateway = build_gateway(settings.notifier)

    scheduler = ReminderScheduler(
        repository,
        notification_settings,
        gateway,
        clock=clock,
        interval_seconds=settings.reminder_interval_seconds,
        overdue_policy=build_overdue_policy(
            settings.overdue_policy,
            cooldown_minutes=settings.overdue_cooldown_minutes,
        ),
    )

    logger.info("State ready device=%s tasks=%d", device_id, len(repository.tasks()))
    return AppState(
        settings=settings,
        store=store,
        clock=clock,
        device_id=device_id,
        tasks=repository,
        notification_settings=notification_settings,
        gateway=gateway,
        scheduler=scheduler,
    )

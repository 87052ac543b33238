# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.state import AppState
from taskflow.notifications.settings_store import NotificationSettingsStore
from taskflow.tasks.task_models import NotificationSettings
from taskflow.tasks.task_scheduler import ReminderScheduler
from taskflow.tasks.task_store import TaskRepository

from .fakes import FakeClock, FlakyStore, RecordingGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "taskflow.sqlite3",
        console_enabled=False,
        scheduler_enabled=False,
        reminder_interval_seconds=300.0,
        notifier="console",
        overdue_policy="repeat",
        overdue_cooldown_minutes=60,
        notify_settings_per_device=False,
        seed_examples=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture()
def repo(store: FlakyStore, clock: FakeClock) -> TaskRepository:
    """Repository for a fixed device, loaded without the example seed."""
    r = TaskRepository(store, "device_test", clock=clock, seed_examples=False)
    r.load()
    return r


@pytest.fixture()
def settings_store(store: FlakyStore) -> NotificationSettingsStore:
    s = NotificationSettingsStore(store)
    s.save(NotificationSettings(enabled=True, reminder_minutes=30))
    return s


@pytest.fixture()
def scheduler(
    repo: TaskRepository,
    settings_store: NotificationSettingsStore,
    gateway: RecordingGateway,
    clock: FakeClock,
) -> ReminderScheduler:
    return ReminderScheduler(repo, settings_store, gateway, clock=clock, interval_seconds=0.01)


@pytest.fixture()
def state(settings: SimpleNamespace, store: FlakyStore, clock: FakeClock, gateway: RecordingGateway) -> AppState:
    """
    AppState wired with deterministic fakes.

    The store is in-memory; SQLite behaviour has its own tests.
    """
    return create_initial_state(settings=settings, store=store, clock=clock, gateway=gateway)

# tests/test_bootstrap.py

from __future__ import annotations

from datetime import timedelta

from taskflow.cli.bootstrap import create_initial_state
from taskflow.identity.device_id import DEVICE_ID_KEY, storage_key_for
from taskflow.notifications.settings_store import NOTIFICATION_KEY
from taskflow.storage.kv_store import SQLiteKeyValueStore
from taskflow.tasks.task_models import NotificationSettings

from .fakes import FlakyStore, RecordingGateway


def test_restart_keeps_identity_and_tasks(settings, clock) -> None:
    gateway = RecordingGateway()
    first = create_initial_state(settings=settings, clock=clock, gateway=gateway)
    task = first.tasks.create("Persistida", due_date=clock.now() + timedelta(days=1))

    # Fresh process: new store object over the same SQLite file.
    second = create_initial_state(settings=settings, clock=clock, gateway=gateway)

    assert second.device_id == first.device_id
    assert second.tasks.get(task.id).title == "Persistida"
    assert isinstance(second.store, SQLiteKeyValueStore)


def test_unreadable_store_still_starts(settings, clock, gateway) -> None:
    store = FlakyStore()
    store.fail_get = True

    state = create_initial_state(settings=settings, store=store, clock=clock, gateway=gateway)

    assert state.device_id.startswith("device_")
    assert state.tasks.tasks() == []
    assert state.scheduler.tick().enabled is False


def test_corrupt_tasks_recover_to_seed(settings, clock, gateway) -> None:
    store = FlakyStore({DEVICE_ID_KEY: "device_known"})
    store.set(storage_key_for("device_known"), "][")

    state = create_initial_state(settings=settings, store=store, clock=clock, gateway=gateway)

    assert state.device_id == "device_known"
    assert [t.id for t in state.tasks.tasks()] == ["1", "2", "3"]


def test_per_device_notification_settings(settings, clock, gateway) -> None:
    store = FlakyStore({DEVICE_ID_KEY: "device_known"})
    store.set(NOTIFICATION_KEY, '{"enabled": true, "reminderMinutes": 30}')

    shared = create_initial_state(settings=settings, store=store, clock=clock, gateway=gateway)
    isolated = create_initial_state(
        settings=replace_ns(settings, notify_settings_per_device=True),
        store=store,
        clock=clock,
        gateway=gateway,
    )

    assert shared.notification_settings.load() == NotificationSettings(enabled=True, reminder_minutes=30)
    assert isolated.notification_settings.load() == NotificationSettings()


def test_seed_can_be_disabled(settings, store, clock, gateway) -> None:
    state = create_initial_state(
        settings=replace_ns(settings, seed_examples=False),
        store=store,
        clock=clock,
        gateway=gateway,
    )
    assert state.tasks.tasks() == []


def replace_ns(ns, **changes):
    values = dict(vars(ns))
    values.update(changes)
    return type(ns)(**values)

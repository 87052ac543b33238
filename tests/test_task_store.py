# tests/test_task_store.py

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from taskflow.core.errors import CorruptStateError, NotFoundError, StorageUnavailableError, ValidationError
from taskflow.identity.device_id import storage_key_for
from taskflow.tasks.task_models import Priority, encode_tasks
from taskflow.tasks.task_store import CORRUPT_SUFFIX, TaskRepository

from .fakes import FakeClock, FlakyStore


def _reload(store, clock, device_id: str = "device_test") -> TaskRepository:
    r = TaskRepository(store, device_id, clock=clock, seed_examples=False)
    r.load()
    return r


def test_first_load_seeds_and_persists(store: FlakyStore, clock: FakeClock) -> None:
    repo = TaskRepository(store, "device_a", clock=clock)

    tasks = repo.load()

    assert [t.id for t in tasks] == ["1", "2", "3"]
    assert [t.priority for t in tasks] == [Priority.HIGH, Priority.MEDIUM, Priority.LOW]
    assert [t.completed for t in tasks] == [False, False, True]
    assert tasks[0].title == "Revisar relatório mensal"
    assert store.get(storage_key_for("device_a")) is not None


def test_seed_is_not_reapplied_after_tasks_are_deleted(store, clock) -> None:
    repo = TaskRepository(store, "device_a", clock=clock)
    for t in repo.load():
        repo.delete(t.id)

    again = TaskRepository(store, "device_a", clock=clock)
    assert again.load() == []


def test_create_prepends_and_writes_through(repo, store, clock) -> None:
    first = repo.create("Primeira")
    clock.advance(seconds=1)
    second = repo.create("  Segunda  ", description=" detalhes ", priority="high")

    assert [t.id for t in repo.tasks()] == [second.id, first.id]
    assert second.title == "Segunda"
    assert second.description == "detalhes"
    assert second.priority == Priority.HIGH
    assert second.completed is False
    assert second.reminder_sent is False
    assert second.created_at == clock.now()

    assert [t.id for t in _reload(store, clock).tasks()] == [second.id, first.id]


def test_create_defaults_to_medium_priority(repo) -> None:
    assert repo.create("x").priority == Priority.MEDIUM


@pytest.mark.parametrize("title", ["", "   ", "\n\t"])
def test_create_rejects_blank_title(repo, title) -> None:
    with pytest.raises(ValidationError):
        repo.create(title)
    assert repo.tasks() == []


def test_create_rejects_unknown_priority(repo) -> None:
    with pytest.raises(ValidationError):
        repo.create("x", priority="urgent")


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(minutes=-1), timedelta(days=-3)])
def test_create_rejects_due_date_not_in_future(repo, clock, offset) -> None:
    with pytest.raises(ValidationError):
        repo.create("x", due_date=clock.now() + offset)


def test_create_accepts_naive_due_date_as_utc(repo, clock) -> None:
    naive = (clock.now() + timedelta(hours=1)).replace(tzinfo=None)
    task = repo.create("x", due_date=naive)
    assert task.due_date == clock.now() + timedelta(hours=1)


def test_ids_are_unique_within_a_namespace(repo) -> None:
    ids = {repo.create(f"t{i}").id for i in range(50)}
    assert len(ids) == 50


def test_toggle_twice_is_a_noop(repo, store, clock) -> None:
    task = repo.create("x")
    before = store.get(repo.storage_key)

    assert repo.toggle_completed(task.id).completed is True
    assert _reload(store, clock).get(task.id).completed is True
    assert repo.toggle_completed(task.id).completed is False

    assert store.get(repo.storage_key) == before


def test_delete_removes_and_persists(repo, store, clock) -> None:
    keep = repo.create("keep")
    gone = repo.create("gone")

    repo.delete(gone.id)

    assert [t.id for t in repo.tasks()] == [keep.id]
    assert [t.id for t in _reload(store, clock).tasks()] == [keep.id]


@pytest.mark.parametrize(
    "op",
    [
        lambda r: r.toggle_completed("nope"),
        lambda r: r.delete("nope"),
        lambda r: r.mark_reminder_sent("nope", None),
        lambda r: r.get("nope"),
    ],
    ids=["toggle_completed", "delete", "mark_reminder_sent", "get"],
)
def test_unknown_id_raises_not_found(repo, op) -> None:
    repo.create("x")
    with pytest.raises(NotFoundError) as exc:
        op(repo)
    assert exc.value.task_id == "nope"


def test_mark_reminder_sent_is_idempotent(repo, store, clock) -> None:
    task = repo.create("x", due_date=clock.now() + timedelta(minutes=5))
    assert repo.mark_reminder_sent(task.id, task.due_date) is True
    assert repo.mark_reminder_sent(task.id, task.due_date) is True
    assert _reload(store, clock).get(task.id).reminder_sent is True


def test_mark_reminder_sent_ignores_stale_due_date(repo, store, clock) -> None:
    task = repo.create("x", due_date=clock.now() + timedelta(minutes=5))
    moved = repo.reschedule(task.id, clock.now() + timedelta(minutes=20))
    before = store.get(repo.storage_key)

    assert repo.mark_reminder_sent(task.id, task.due_date) is False

    assert repo.get(task.id).reminder_sent is False
    assert store.get(repo.storage_key) == before
    assert repo.mark_reminder_sent(task.id, moved.due_date) is True


def test_reschedule_rearms_and_validates(repo, clock) -> None:
    task = repo.create("x", due_date=clock.now() + timedelta(minutes=5))
    repo.mark_reminder_sent(task.id, task.due_date)

    moved = repo.reschedule(task.id, clock.now() + timedelta(days=1))
    assert moved.reminder_sent is False
    assert moved.due_date == clock.now() + timedelta(days=1)

    cleared = repo.reschedule(task.id, None)
    assert cleared.due_date is None

    with pytest.raises(ValidationError):
        repo.reschedule(task.id, clock.now() - timedelta(minutes=1))


def test_failed_write_leaves_memory_and_storage_unchanged(repo, store) -> None:
    task = repo.create("x")
    before = store.get(repo.storage_key)
    store.fail_set = True

    with pytest.raises(StorageUnavailableError):
        repo.create("y")
    with pytest.raises(StorageUnavailableError):
        repo.toggle_completed(task.id)
    with pytest.raises(StorageUnavailableError):
        repo.delete(task.id)

    assert [t.id for t in repo.tasks()] == [task.id]
    assert repo.get(task.id).completed is False
    assert store.get(repo.storage_key) == before


def test_round_trip_preserves_collection(repo, store, clock) -> None:
    repo.create("a", description="d", priority="low", due_date=clock.now() + timedelta(hours=3))
    b = repo.create("b", priority="high")
    repo.toggle_completed(b.id)

    assert _reload(store, clock).tasks() == repo.tasks()


def test_identities_do_not_see_each_other(store, clock) -> None:
    a = TaskRepository(store, "device_a", clock=clock)
    a.load()
    created = a.create("only for A")

    b = TaskRepository(store, "device_b", clock=clock)
    b_tasks = b.load()

    assert created.id not in {t.id for t in b_tasks}
    assert [t.id for t in b_tasks] == ["1", "2", "3"]


def test_load_passes_unknown_fields_through(store, clock) -> None:
    key = storage_key_for("device_x")
    store.set(
        key,
        json.dumps(
            [
                {
                    "id": "1717000000000",
                    "title": "Vinda do app antigo",
                    "description": "",
                    "priority": "high",
                    "completed": False,
                    "createdAt": "2024-05-29T16:26:40.000Z",
                    "color": "#dc2626",
                }
            ]
        ),
    )
    repo = TaskRepository(store, "device_x", clock=clock)
    (task,) = repo.load()
    assert task.extra == {"color": "#dc2626"}

    repo.toggle_completed(task.id)
    (record,) = json.loads(store.get(key))
    assert record["color"] == "#dc2626"
    assert record["completed"] is True


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        '{"id": "1"}',
        '[{"id": "1", "title": "x", "createdAt": "yesterday"}]',
        '[{"title": "no id", "createdAt": "2026-01-01T00:00:00Z"}]',
        "[1, 2, 3]",
        '[{"id": "1", "title": "a", "createdAt": "2026-01-01T00:00:00Z"}, {"id": 1, "title": "b", "createdAt": "2026-01-01T00:00:00Z"}]',
        '[{"id": "1", "title": "x", "completed": "false", "createdAt": "2026-01-01T00:00:00Z"}]',
        '[{"id": "1", "title": "x", "reminderSent": 1, "createdAt": "2026-01-01T00:00:00Z"}]',
    ],
)
def test_load_rejects_corrupt_payload(store, clock, payload) -> None:
    store.set(storage_key_for("device_c"), payload)
    repo = TaskRepository(store, "device_c", clock=clock)
    with pytest.raises(CorruptStateError):
        repo.load()


def test_load_or_recover_from_corruption_seeds_and_keeps_backup(store, clock) -> None:
    key = storage_key_for("device_c")
    store.set(key, "{not json")
    repo = TaskRepository(store, "device_c", clock=clock)

    tasks = repo.load_or_recover()

    assert [t.id for t in tasks] == ["1", "2", "3"]
    assert store.get(key + CORRUPT_SUFFIX) == "{not json"
    assert [t.id for t in _reload(store, clock, "device_c").tasks()] == ["1", "2", "3"]


def test_load_or_recover_without_seed_fails_closed_to_empty(store, clock) -> None:
    store.set(storage_key_for("device_c"), "garbage")
    repo = TaskRepository(store, "device_c", clock=clock, seed_examples=False)
    assert repo.load_or_recover() == []
    assert repo.tasks() == []


def test_load_or_recover_when_storage_unavailable(store, clock) -> None:
    store.fail_get = True
    repo = TaskRepository(store, "device_a", clock=clock)

    assert repo.load_or_recover() == []
    store.fail_get = False
    assert store.get(repo.storage_key) is None


def test_encode_of_loaded_collection_matches_storage(store, clock) -> None:
    repo = TaskRepository(store, "device_a", clock=clock)
    repo.load()
    assert encode_tasks(repo.tasks()) == store.get(repo.storage_key)

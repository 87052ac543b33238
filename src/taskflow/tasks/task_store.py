# src/taskflow/tasks/task_store.py

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import replace
from datetime import datetime

from ..core.clock import SystemClock, as_utc, epoch_ms
from ..core.errors import CorruptStateError, NotFoundError, StorageUnavailableError, ValidationError
from ..core.ports import Clock, KeyValueStore
from ..identity.device_id import storage_key_for
from .task_models import Priority, Task, decode_tasks, encode_tasks

logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"


def seed_tasks(now: datetime) -> list[Task]:
    """First-run example set, shown when a device has no collection yet."""
    return [
        Task(
            id="1",
            title="Revisar relatório mensal",
            description="Analisar dados de vendas e preparar apresentação",
            priority=Priority.HIGH,
            completed=False,
            created_at=now,
        ),
        Task(
            id="2",
            title="Comprar ingredientes",
            description="Lista: arroz, frango, legumes",
            priority=Priority.MEDIUM,
            completed=False,
            created_at=now,
        ),
        Task(
            id="3",
            title="Agendar consulta médica",
            description="Marcar consulta com cardiologista",
            priority=Priority.LOW,
            completed=True,
            created_at=now,
        ),
    ]


class TaskRepository:
    """
    Owner of the task collection for one device id.

    Persistence is write-through:
    - every mutation builds the new collection, writes it in full, and only then
      swaps it in memory
    - a failed write raises StorageUnavailableError and leaves memory untouched,
      so a later load() never sees a half-applied change

    Ordering is most-recent-first (new tasks are prepended).

    Thread-safety:
    - an RLock serializes "read, mutate, persist" (the scheduler runs on its own thread)
    """

    def __init__(
        self,
        store: KeyValueStore,
        device_id: str,
        *,
        clock: Clock | None = None,
        seed_examples: bool = True,
    ) -> None:
        self._store = store
        self._device_id = device_id
        self._key = storage_key_for(device_id)
        self._clock = clock or SystemClock()
        self._seed_examples = seed_examples
        self._tasks: list[Task] = []
        self._lock = threading.RLock()

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def storage_key(self) -> str:
        return self._key

    # ---- low-level helpers ----

    def _persist(self, tasks: list[Task]) -> None:
        self._store.set(self._key, encode_tasks(tasks))

    def _commit(self, tasks: list[Task]) -> None:
        self._persist(tasks)
        self._tasks = tasks

    def _initial_tasks(self) -> list[Task]:
        return seed_tasks(self._clock.now()) if self._seed_examples else []

    def _index_of(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise NotFoundError(task_id)

    def _new_id(self) -> str:
        existing = {t.id for t in self._tasks}
        while True:
            task_id = f"{epoch_ms(self._clock.now())}-{secrets.token_hex(3)}"
            if task_id not in existing:
                return task_id

    def _replace_at(self, index: int, task: Task) -> Task:
        tasks = list(self._tasks)
        tasks[index] = task
        self._commit(tasks)
        return task

    # ---- loading ----

    def load(self) -> list[Task]:
        """
        Load the collection for this device.

        - absent: the seed set is written and returned (first-run experience)
        - present: JSON is decoded and timestamps rebuilt

        Raises StorageUnavailableError (store read/write failed) or
        CorruptStateError (payload could not be decoded).
        """
        with self._lock:
            raw = self._store.get(self._key)
            if raw is None:
                tasks = self._initial_tasks()
                self._commit(tasks)
                logger.info("No tasks for device=%s; seeded %d example tasks", self._device_id, len(tasks))
                return list(tasks)

            tasks = decode_tasks(raw, key=self._key)
            self._tasks = tasks
            logger.info("Loaded %d tasks for device=%s", len(tasks), self._device_id)
            return list(tasks)

    def load_or_recover(self) -> list[Task]:
        """
        load() with the degraded-but-running fallbacks:

        - StorageUnavailableError: empty in-memory collection, nothing written
        - CorruptStateError: the raw payload is kept under "<key>.corrupt",
          then the seed set is written so the UI has something actionable
        """
        with self._lock:
            try:
                return self.load()
            except StorageUnavailableError:
                logger.exception("Task storage unavailable for device=%s; starting empty", self._device_id)
                self._tasks = []
                return []
            except CorruptStateError as e:
                logger.error("Corrupt task data for device=%s: %s", self._device_id, e)
                return self._recover_from_corruption(e)

    def _recover_from_corruption(self, error: CorruptStateError) -> list[Task]:
        if error.raw is not None:
            try:
                self._store.set(self._key + CORRUPT_SUFFIX, error.raw)
                logger.warning("Unreadable task payload preserved under %s", self._key + CORRUPT_SUFFIX)
            except StorageUnavailableError:
                logger.warning("Could not preserve unreadable task payload", exc_info=True)

        tasks = self._initial_tasks()
        try:
            self._commit(tasks)
        except StorageUnavailableError:
            logger.exception("Could not rewrite task collection after corruption; in-memory only")
            self._tasks = tasks
        return list(tasks)

    # ---- public API ----

    def tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks)

    def get(self, task_id: str) -> Task:
        with self._lock:
            return self._tasks[self._index_of(task_id)]

    def create(
        self,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        due_date: datetime | None = None,
    ) -> Task:
        title = (title or "").strip()
        if not title:
            raise ValidationError("title is required")

        try:
            prio = Priority(priority)
        except ValueError:
            raise ValidationError(f"unknown priority: {priority!r}") from None

        with self._lock:
            now = self._clock.now()
            if due_date is not None:
                if not isinstance(due_date, datetime):
                    raise ValidationError("due date must be a datetime")
                due_date = as_utc(due_date)
                if due_date <= now:
                    raise ValidationError("due date must be in the future")

            task = Task(
                id=self._new_id(),
                title=title,
                description=(description or "").strip(),
                priority=prio,
                completed=False,
                created_at=now,
                due_date=due_date,
            )
            self._commit([task, *self._tasks])
            logger.debug("Task created id=%s priority=%s due=%s", task.id, prio.value, due_date)
            return task

    def toggle_completed(self, task_id: str) -> Task:
        with self._lock:
            i = self._index_of(task_id)
            task = self._tasks[i]
            updated = self._replace_at(i, replace(task, completed=not task.completed))
            logger.debug("Task %s completed=%s", task_id, updated.completed)
            return updated

    def delete(self, task_id: str) -> None:
        with self._lock:
            i = self._index_of(task_id)
            self._commit(self._tasks[:i] + self._tasks[i + 1:])
            logger.debug("Task %s deleted", task_id)

    def mark_reminder_sent(self, task_id: str, due_date: datetime | None) -> bool:
        """
        Set reminder_sent, but only if the task still has the due date the reminder was built for.

        Returns False (nothing written) when the task was rescheduled in the meantime,
        so the new due date keeps its own reminder.
        """
        with self._lock:
            i = self._index_of(task_id)
            task = self._tasks[i]
            if task.due_date != (as_utc(due_date) if due_date is not None else None):
                logger.debug("Task %s due date changed; reminder flag left armed", task_id)
                return False
            if not task.reminder_sent:
                self._replace_at(i, replace(task, reminder_sent=True))
            return True

    def reschedule(self, task_id: str, due_date: datetime | None) -> Task:
        """
        Change (or clear) a due date. The reminder is re-armed, so the
        at-most-once guarantee holds per due date rather than per task.
        """
        with self._lock:
            i = self._index_of(task_id)
            if due_date is not None:
                due_date = as_utc(due_date)
                if due_date <= self._clock.now():
                    raise ValidationError("due date must be in the future")
            task = self._tasks[i]
            updated = self._replace_at(i, replace(task, due_date=due_date, reminder_sent=False))
            logger.debug("Task %s rescheduled due=%s", task_id, due_date)
            return updated

# src/taskflow/tasks/task_models.py

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.clock import as_utc
from ..core.errors import CorruptStateError


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class ReminderState(StrEnum):
    """
    Derived reminder status of a task (never stored).

    Notes:
    - DORMANT is absorbing for completed tasks and tasks without a due date.
    - PENDING also covers tasks inside the reminder window that were already reminded.
    """

    DORMANT = "dormant"
    PENDING = "pending"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    description: str
    priority: Priority
    completed: bool
    created_at: datetime
    due_date: datetime | None = None
    reminder_sent: bool = False

    # Unknown record fields, written back unchanged.
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class NotificationSettings:
    enabled: bool = False
    reminder_minutes: int = 30


# ---- serialization ----

_KNOWN_KEYS = frozenset(
    {"id", "title", "description", "priority", "completed", "createdAt", "dueDate", "reminderSent"}
)


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z."""
    return as_utc(dt).isoformat().replace("+00:00", "Z")


def parse_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"not a timestamp: {raw!r}")
    return as_utc(datetime.fromisoformat(raw.strip()))


def task_to_record(task: Task) -> dict[str, Any]:
    record: dict[str, Any] = dict(task.extra)
    record.update(
        {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "priority": task.priority.value,
            "completed": task.completed,
            "createdAt": format_timestamp(task.created_at),
            "reminderSent": task.reminder_sent,
        }
    )
    if task.due_date is not None:
        record["dueDate"] = format_timestamp(task.due_date)
    return record


def task_from_record(record: Any) -> Task:
    """
    Rebuild a Task from its JSON record.

    Raises ValueError for records that cannot represent a task
    (not an object, missing id/title, non-boolean flags, unparsable timestamps).
    """
    if not isinstance(record, dict):
        raise ValueError(f"task record must be an object, got {type(record).__name__}")

    task_id = record.get("id")
    if isinstance(task_id, int) and not isinstance(task_id, bool):
        task_id = str(task_id)
    if not isinstance(task_id, str) or not task_id.strip():
        raise ValueError("task record has no id")

    title = record.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValueError(f"task {task_id} has no title")

    completed = record.get("completed", False)
    if not isinstance(completed, bool):
        raise ValueError(f"task {task_id} has a non-boolean completed: {completed!r}")
    reminder_sent = record.get("reminderSent", False)
    if not isinstance(reminder_sent, bool):
        raise ValueError(f"task {task_id} has a non-boolean reminderSent: {reminder_sent!r}")

    raw_due = record.get("dueDate")
    due_date = parse_timestamp(raw_due) if raw_due is not None else None

    return Task(
        id=task_id,
        title=title,
        description=str(record.get("description") or ""),
        priority=Priority.from_db(record.get("priority")),
        completed=completed,
        created_at=parse_timestamp(record.get("createdAt")),
        due_date=due_date,
        reminder_sent=reminder_sent,
        extra={k: v for k, v in record.items() if k not in _KNOWN_KEYS},
    )


def encode_tasks(tasks: list[Task]) -> str:
    return json.dumps([task_to_record(t) for t in tasks], ensure_ascii=False)


def decode_tasks(raw: str, *, key: str | None = None) -> list[Task]:
    """Parse a persisted collection. Any malformed content raises CorruptStateError."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptStateError(f"task collection is not valid JSON: {e}", key=key, raw=raw) from e

    if not isinstance(data, list):
        raise CorruptStateError("task collection is not a JSON array", key=key, raw=raw)

    try:
        tasks = [task_from_record(r) for r in data]
    except ValueError as e:
        raise CorruptStateError(f"invalid task record: {e}", key=key, raw=raw) from e

    seen: set[str] = set()
    for t in tasks:
        if t.id in seen:
            raise CorruptStateError(f"duplicate task id: {t.id}", key=key, raw=raw)
        seen.add(t.id)
    return tasks


def encode_settings(settings: NotificationSettings) -> str:
    return json.dumps({"enabled": settings.enabled, "reminderMinutes": settings.reminder_minutes})


def decode_settings(raw: str) -> NotificationSettings:
    """Raises ValueError for malformed payloads."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("notification settings must be a JSON object")
    minutes = data.get("reminderMinutes", 30)
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or minutes < 0:
        raise ValueError(f"invalid reminderMinutes: {minutes!r}")
    return NotificationSettings(enabled=bool(data.get("enabled", False)), reminder_minutes=int(minutes))

# src/taskflow/tasks/task_api.py

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.clock import as_utc
from ..core.errors import ValidationError
from .task_models import Priority, Task

logger = logging.getLogger(__name__)

FILTERS = ("all", "pending", "completed")

_PRIORITY_LABELS = {
    Priority.HIGH: "Alta",
    Priority.MEDIUM: "Média",
    Priority.LOW: "Baixa",
}

_RELATIVE_RE = re.compile(r"^\+(\d+)\s*([mhd])$", re.IGNORECASE)
_BR_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})(?:\s+(\d{2}):(\d{2}))?$")


@dataclass(slots=True, frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    progress: float  # percent, 0..100


def filter_tasks(tasks: Iterable[Task], which: str = "all") -> list[Task]:
    """Keep the repository order; `which` is one of all / pending / completed."""
    key = (which or "all").strip().lower()
    if key == "pending":
        return [t for t in tasks if not t.completed]
    if key == "completed":
        return [t for t in tasks if t.completed]
    if key != "all":
        raise ValidationError(f"unknown filter: {which!r} (use {', '.join(FILTERS)})")
    return list(tasks)


def task_stats(tasks: Iterable[Task]) -> TaskStats:
    items = list(tasks)
    total = len(items)
    completed = sum(1 for t in items if t.completed)
    progress = (completed / total) * 100 if total > 0 else 0.0
    return TaskStats(total=total, completed=completed, pending=total - completed, progress=progress)


def priority_label(priority: Priority | str) -> str:
    try:
        return _PRIORITY_LABELS[Priority(priority)]
    except ValueError:
        return "Normal"


def parse_priority(raw: str | None) -> Priority:
    if not raw or not raw.strip():
        return Priority.MEDIUM
    key = raw.strip().lower()
    aliases = {"alta": "high", "média": "medium", "media": "medium", "baixa": "low"}
    try:
        return Priority(aliases.get(key, key))
    except ValueError:
        raise ValidationError(f"unknown priority: {raw!r} (use low, medium or high)") from None


def parse_due_date(text: str, now: datetime) -> datetime:
    """
    Turn user input into an aware UTC due date.

    Accepted forms:
    - "+30m", "+2h", "+1d"          (relative to now)
    - "2026-10-20T14:00", ISO-8601  (naive values are local time)
    - "20/10/2026 14:00"            (DD/MM/YYYY [HH:MM], local time; date-only means 23:59)

    Does not check that the result is in the future; TaskRepository.create does that.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("empty due date")

    m = _RELATIVE_RE.match(raw)
    if m:
        amount = int(m.group(1))
        unit = m.group(2).lower()
        delta = {"m": timedelta(minutes=amount), "h": timedelta(hours=amount), "d": timedelta(days=amount)}[unit]
        return as_utc(now) + delta

    m = _BR_DATE_RE.match(raw)
    if m:
        day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        hour = int(m.group(4)) if m.group(4) is not None else 23
        minute = int(m.group(5)) if m.group(5) is not None else 59
        try:
            local = datetime(year, month, day, hour, minute)
        except ValueError as e:
            raise ValidationError(f"invalid date {raw!r}: {e}") from e
        return as_utc(local.astimezone())

    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(
            f"cannot parse due date {raw!r} (use +30m, +2h, DD/MM/YYYY HH:MM or ISO-8601)"
        ) from None

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return as_utc(parsed)

# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/notification backends swappable and makes testing easier.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol


class Permission(StrEnum):
    """
    Result of asking the platform for permission to show notifications.

    DENIED and UNSUPPORTED are terminal states, not errors:
    the scheduler still computes (and logs) its intents but skips delivery.
    """

    GRANTED = "granted"
    DENIED = "denied"
    UNSUPPORTED = "unsupported"


class Clock(Protocol):
    """Source of "now". Must return timezone-aware datetimes."""
    def now(self) -> datetime: ...


class KeyValueStore(Protocol):
    """
    Durable string-keyed store.

    All methods raise StorageUnavailableError when the backend cannot be read/written.
    No multi-key transactions are implied; a single set() replaces the value atomically.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class NotificationGateway(Protocol):
    """
    Platform notification capability.

    The gateway only shows things; deciding what to show lives in the scheduler.
    deliver() raises DeliveryFailedError when the notification could not be shown.
    """

    def request_permission(self) -> Permission: ...
    def deliver(self, title: str, body: str, tag: str) -> None: ...


class TaskRepo(Protocol):
    # Read API
    def tasks(self) -> list[Any]: ...
    def get(self, task_id: str) -> Any: ...

    # Mutations (write-through)
    def create(
            self,
            title: str,
            description: str = "",
            priority: Any = None,  # Priority (kept as Any to avoid import coupling)
            due_date: datetime | None = None,
    ) -> Any: ...
    def toggle_completed(self, task_id: str) -> Any: ...
    def delete(self, task_id: str) -> None: ...
    def reschedule(self, task_id: str, due_date: datetime | None) -> Any: ...

    # Scheduler API
    def mark_reminder_sent(self, task_id: str, due_date: datetime | None) -> bool: ...


class NotificationSettingsRepo(Protocol):
    def load(self) -> Any: ...
    def save(self, settings: Any) -> None: ...

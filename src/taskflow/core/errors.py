# src/taskflow/core/errors.py

"""
Error taxonomy for the task/reminder core.

ValidationError and NotFoundError go back to the caller for user-facing messages.
StorageUnavailableError and CorruptStateError are recovered at load time (see TaskRepository.load_or_recover).
DeliveryFailedError is recorded by the scheduler and never aborts a tick.
"""

from __future__ import annotations


class TaskFlowError(Exception):
    """Base class for all errors raised by the core."""


class StorageUnavailableError(TaskFlowError):
    """Read or write to the durable key-value store failed."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class CorruptStateError(TaskFlowError):
    """Persisted task data could not be parsed into valid Task records."""

    def __init__(self, message: str, *, key: str | None = None, raw: str | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.raw = raw


class ValidationError(TaskFlowError):
    """Caller-supplied fields violate creation constraints."""


class NotFoundError(TaskFlowError):
    """Operation referenced a task id that is not in the collection."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class DeliveryFailedError(TaskFlowError):
    """A notification could not be shown."""

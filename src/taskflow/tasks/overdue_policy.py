# src/taskflow/tasks/overdue_policy.py

"""
Dedup strategies for the batched overdue notification.

Upcoming reminders are deduplicated by the persisted reminder_sent flag.
Overdue alerts have no such flag, so whether they repeat is decided here.
should_notify() only asks; record() is called once the alert was delivered
(or only logged, without permission), so a failed delivery is retried.
State is kept in memory only (a restart re-notifies once).
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime, timedelta
from typing import Protocol

logger = logging.getLogger(__name__)


class OverduePolicy(Protocol):
    def should_notify(self, overdue_ids: Collection[str], now: datetime) -> bool: ...

    def record(self, overdue_ids: Collection[str], now: datetime) -> None: ...


class RepeatEveryTick:
    """Notify on every enabled tick while anything is overdue."""

    def should_notify(self, overdue_ids: Collection[str], now: datetime) -> bool:
        return bool(overdue_ids)

    def record(self, overdue_ids: Collection[str], now: datetime) -> None:
        pass


class OncePerOverdueSet:
    """Notify only when a task becomes overdue that was not covered by the last notification."""

    def __init__(self) -> None:
        self._notified: frozenset[str] = frozenset()

    def should_notify(self, overdue_ids: Collection[str], now: datetime) -> bool:
        current = frozenset(overdue_ids)
        # Ids that are no longer overdue may re-trigger later.
        self._notified &= current
        return not current <= self._notified

    def record(self, overdue_ids: Collection[str], now: datetime) -> None:
        self._notified = frozenset(overdue_ids)


class CooldownPolicy:
    """Notify at most once per cooldown window."""

    def __init__(self, minutes: int = 60) -> None:
        self._cooldown = timedelta(minutes=max(0, int(minutes)))
        self._last: datetime | None = None

    def should_notify(self, overdue_ids: Collection[str], now: datetime) -> bool:
        if not overdue_ids:
            return False
        return self._last is None or now - self._last >= self._cooldown

    def record(self, overdue_ids: Collection[str], now: datetime) -> None:
        self._last = now


def build_overdue_policy(name: str, *, cooldown_minutes: int = 60) -> OverduePolicy:
    key = (name or "").strip().lower()
    if key in ("", "repeat", "always"):
        return RepeatEveryTick()
    if key == "once":
        return OncePerOverdueSet()
    if key == "cooldown":
        return CooldownPolicy(cooldown_minutes)
    logger.warning("Unknown overdue policy %r; falling back to 'repeat'", name)
    return RepeatEveryTick()

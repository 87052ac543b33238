# src/taskflow/core/clock.py

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Wall-clock time source (timezone-aware UTC)."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

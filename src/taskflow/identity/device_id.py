# src/taskflow/identity/device_id.py

"""
Installation-scoped device identity.

The id is an opaque key used only to namespace persisted state:
- generated lazily on first access (time component + random component)
- written back to the store before it is returned
- never mutated or deleted by the application
"""

from __future__ import annotations

import logging
import secrets
import string

from ..core.clock import SystemClock, epoch_ms
from ..core.errors import StorageUnavailableError
from ..core.ports import Clock, KeyValueStore

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "@taskflow_device_id"
TASKS_KEY_PREFIX = "@taskflow_tasks_"

_BASE36 = string.digits + string.ascii_lowercase


def storage_key_for(device_id: str) -> str:
    """Task collection key for a device id (deterministic; distinct ids never collide)."""
    return f"{TASKS_KEY_PREFIX}{device_id}"


def generate_device_id(clock: Clock | None = None) -> str:
    now = (clock or SystemClock()).now()
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"device_{epoch_ms(now)}_{suffix}"


def ephemeral_device_id(clock: Clock | None = None) -> str:
    """Session-only fallback id used when the store cannot be read at all."""
    now = (clock or SystemClock()).now()
    return f"device_{epoch_ms(now)}"


class IdentityProvider:
    def __init__(self, store: KeyValueStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        # Generated this session but not yet written successfully.
        self._session_id: str | None = None

    @property
    def is_durable(self) -> bool:
        return self._session_id is None

    def get_device_id(self) -> str:
        """
        Return the installation id, creating and persisting it if absent.

        Raises StorageUnavailableError if the store cannot be read.
        A failed write is a degradation, not an error: the fresh id is returned for
        this session (with a warning) and the write is retried on the next call.
        """
        stored = self._store.get(DEVICE_ID_KEY)
        if stored:
            self._session_id = None
            return stored

        device_id = self._session_id or generate_device_id(self._clock)
        try:
            self._store.set(DEVICE_ID_KEY, device_id)
        except StorageUnavailableError:
            logger.warning(
                "Device id %s could not be persisted; it is valid for this session only.",
                device_id,
                exc_info=True,
            )
            self._session_id = device_id
            return device_id

        if self._session_id is None:
            logger.info("Created device id %s", device_id)
        else:
            logger.info("Persisted session device id %s", device_id)
        self._session_id = None
        return device_id

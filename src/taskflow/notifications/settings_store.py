# src/taskflow/notifications/settings_store.py

from __future__ import annotations

import logging

from ..core.errors import StorageUnavailableError, ValidationError
from ..core.ports import KeyValueStore
from ..tasks.task_models import NotificationSettings, decode_settings, encode_settings

logger = logging.getLogger(__name__)

NOTIFICATION_KEY = "@taskflow_notifications"


def settings_key_for(device_id: str | None = None) -> str:
    """Global key by default; per-device key when a device id is given."""
    if not device_id:
        return NOTIFICATION_KEY
    return f"{NOTIFICATION_KEY}_{device_id}"


class NotificationSettingsStore:
    """
    User notification preferences (enabled flag + reminder lead time).

    load() never raises: missing, malformed, or unreadable settings fall back to defaults.
    save() validates and raises StorageUnavailableError if the write fails.
    """

    def __init__(self, store: KeyValueStore, *, device_id: str | None = None) -> None:
        self._store = store
        self._key = settings_key_for(device_id)

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> NotificationSettings:
        try:
            raw = self._store.get(self._key)
        except StorageUnavailableError:
            logger.warning("Notification settings unreadable; using defaults", exc_info=True)
            return NotificationSettings()

        if raw is None:
            return NotificationSettings()

        try:
            return decode_settings(raw)
        except ValueError as e:
            logger.warning("Malformed notification settings (%s); using defaults", e)
            return NotificationSettings()

    def save(self, settings: NotificationSettings) -> None:
        if settings.reminder_minutes < 0:
            raise ValidationError("reminder minutes must be >= 0")
        self._store.set(self._key, encode_settings(settings))
        logger.info(
            "Notification settings saved enabled=%s reminder_minutes=%s",
            settings.enabled,
            settings.reminder_minutes,
        )

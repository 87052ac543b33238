# src/taskflow/storage/kv_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from pathlib import Path

from ..core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """
    SQLite-backed durable key-value store.

    One table, one row per key:
    - set() is a single UPSERT statement, so a value is replaced atomically
      (readers see either the old or the new value, never a partial one)
    - sqlite3 / filesystem errors are surfaced as StorageUnavailableError

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"cannot open key-value store at {self._db_path}: {e}") from e
        logger.info("KeyValueStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"read failed for key {key!r}: {e}", key=key) from e
        return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"write failed for key {key!r}: {e}", key=key) from e
        logger.debug("kv set key=%s bytes=%d", key, len(value))

    def remove(self, key: str) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"remove failed for key {key!r}: {e}", key=key) from e
        logger.debug("kv remove key=%s", key)

    def keys(self, prefix: str = "") -> list[str]:
        """List keys (optionally by prefix). Diagnostics only."""
        try:
            conn = self._get_conn()
            try:
                rows = conn.execute(
                    "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                    (len(prefix), prefix),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"key listing failed: {e}") from e
        return [str(r[0]) for r in rows]


class InMemoryKeyValueStore:
    """Dict-backed store for demos and tests. Not durable across processes."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def close(self) -> None:
        return

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))

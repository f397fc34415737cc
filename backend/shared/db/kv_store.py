"""SQLite-backed key-value store."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.dal.errors import StorageIOError
from shared.dal.kv_store import KeyValueStore

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteKeyValueStore(KeyValueStore):
    """SQLite implementation of KeyValueStore.

    Each key is one row of the kv_entries table. Writes are single
    upsert statements committed immediately, so a reader sees either the
    previous value or the new one.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_item(self, key: str) -> str | None:
        try:
            row = self._db.connection.execute(
                "SELECT value FROM kv_entries WHERE key = ?",
                (key,),
            ).fetchone()
        except sqlite3.Error as exc:
            msg = f"Failed to read key '{key}'"
            raise StorageIOError(msg, key=key) from exc
        if row is None:
            return None
        return row[0]

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute(
                    "INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, value, datetime.now(tz=UTC).isoformat()),
                )
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                msg = f"Failed to write key '{key}'"
                raise StorageIOError(msg, key=key) from exc
        logger.debug("stored value", key=key, size=len(value))

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            conn = self._db.connection
            try:
                cursor = conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                msg = f"Failed to remove key '{key}'"
                raise StorageIOError(msg, key=key) from exc
        if cursor.rowcount:
            logger.debug("removed value", key=key)

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional, Tuple

import aiosqlite

from modshield.errors import StoreUnavailable
from modshield.utils.clock import Clock, now_ms

logger = logging.getLogger("modshield")


def _expiry(ttl: Optional[timedelta], clock: Clock) -> Optional[int]:
    if ttl is None:
        return None
    return clock() + int(ttl.total_seconds() * 1000)


class RecordStore(ABC):
    """String-keyed, string-valued store with optional expiry"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value under key, or None if absent or expired"""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[timedelta] = None):
        """Store value under key, overwriting; ttl=None means no expiry"""

    @abstractmethod
    async def delete(self, key: str):
        """Delete key; deleting an absent key is a no-op"""

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix, returning how many were removed"""


class MemoryRecordStore(RecordStore):
    """In-process store, used for tests and dry runs"""

    def __init__(self, clock: Clock = now_ms):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[int]]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: Optional[timedelta] = None):
        self._data[key] = (value, _expiry(ttl, self._clock))

    async def delete(self, key: str):
        self._data.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        matched = [key for key in self._data if key.startswith(prefix)]
        for key in matched:
            del self._data[key]
        return len(matched)

    def keys(self):
        return list(self._data)


class SqliteRecordStore(RecordStore):
    """Record store persisted in a single sqlite table"""

    def __init__(self, db_path: str = "modshield.db", clock: Clock = now_ms):
        self.db_path = db_path
        self._clock = clock
        self.connection: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Open the database and create the records table"""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row
            await self._create_tables()
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"Failed to open record store at {self.db_path}: {e}") from e

        logger.info(f"Record store initialized at {self.db_path}")

    async def _create_tables(self):
        async with self.connection.cursor() as cursor:
            await cursor.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    expires_at INTEGER
                )
            """)

            await cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_records_expires_at ON records(expires_at)
            """)

            await self.connection.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self.connection is None:
            raise StoreUnavailable("Record store is not initialized")
        return self.connection

    async def get(self, key: str) -> Optional[str]:
        connection = self._require_connection()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    "SELECT value, expires_at FROM records WHERE key = ?",
                    (key,)
                )
                row = await cursor.fetchone()

                if row is None:
                    return None

                if row["expires_at"] is not None and row["expires_at"] <= self._clock():
                    await cursor.execute("DELETE FROM records WHERE key = ?", (key,))
                    await connection.commit()
                    return None

                return row["value"]
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"get {key} failed: {e}") from e

    async def set(self, key: str, value: str, ttl: Optional[timedelta] = None):
        connection = self._require_connection()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute("""
                    INSERT INTO records (key, value, expires_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
                """, (key, value, _expiry(ttl, self._clock)))
                await connection.commit()
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"set {key} failed: {e}") from e

    async def delete(self, key: str):
        connection = self._require_connection()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute("DELETE FROM records WHERE key = ?", (key,))
                await connection.commit()
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"delete {key} failed: {e}") from e

    async def delete_prefix(self, prefix: str) -> int:
        connection = self._require_connection()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    "DELETE FROM records WHERE substr(key, 1, ?) = ?",
                    (len(prefix), prefix)
                )
                deleted = cursor.rowcount
                await connection.commit()
                return deleted
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"delete prefix {prefix} failed: {e}") from e

    async def purge_expired(self) -> int:
        """Delete every expired row"""
        connection = self._require_connection()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    "DELETE FROM records WHERE expires_at IS NOT NULL AND expires_at <= ?",
                    (self._clock(),)
                )
                deleted = cursor.rowcount
                if deleted > 0:
                    await connection.commit()
                    logger.info(f"Purged {deleted} expired records")
                return deleted
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"purge failed: {e}") from e

    async def close(self):
        """Close the database connection"""
        if self.connection:
            await self.connection.close()
            self.connection = None
            logger.info("Record store connection closed")

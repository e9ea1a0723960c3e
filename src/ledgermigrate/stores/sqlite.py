"""
SQLite key-value store implementation.

Provides durable, embedded storage for the legacy record, the privacy-first
records and the pre-migration archives using the async aiosqlite driver.

Each operation opens its own connection, so the store needs a database
file; ":memory:" databases do not survive between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

import aiosqlite

from ledgermigrate.exceptions import KeyExistsError, StorageError
from ledgermigrate.observability import ATTR_STORAGE_KEY, Tracer, create_tracer
from ledgermigrate.stores.interface import KeyValueStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    created_at TEXT NOT NULL
)
"""


class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite implementation of KeyValueStore.

    Features:
    - File-based persistence
    - put_new enforced by the primary-key constraint
    - put_many/delete_many committed in a single transaction
    - Optional OpenTelemetry tracing

    Example:
        >>> store = SQLiteKeyValueStore("ledger.db")
        >>> await store.initialize()
        >>> await store.put("UserData", b"{...}")

    Note:
        Call initialize() once before use to create the kv_store table.
    """

    def __init__(
        self,
        database_path: str,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the SQLite key-value store.

        Args:
            database_path: Path to the SQLite database file.
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing (default True).
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._database_path = database_path
        logger.debug("SQLiteKeyValueStore initialized with %s", database_path)

    async def initialize(self) -> None:
        """
        Create the kv_store table if it does not exist.

        This method is idempotent - safe to call multiple times.
        """
        try:
            async with aiosqlite.connect(self._database_path) as conn:
                await conn.execute(_SCHEMA)
                await conn.commit()
        except aiosqlite.Error as e:
            raise StorageError("kv_store", f"schema creation failed: {e}") from e
        logger.info("Initialized SQLite key-value schema: %s", self._database_path)

    async def get(self, key: str) -> bytes | None:
        with self._tracer.span("ledgermigrate.kv.get", {ATTR_STORAGE_KEY: key}):
            try:
                async with aiosqlite.connect(self._database_path) as conn:
                    cursor = await conn.execute(
                        "SELECT value FROM kv_store WHERE key = ?",
                        (key,),
                    )
                    row = await cursor.fetchone()
            except aiosqlite.Error as e:
                raise StorageError(key, f"read failed: {e}") from e

            if row is None:
                return None
            return bytes(row[0])

    async def put(self, key: str, value: bytes) -> None:
        with self._tracer.span("ledgermigrate.kv.put", {ATTR_STORAGE_KEY: key}):
            try:
                async with aiosqlite.connect(self._database_path) as conn:
                    await conn.execute(
                        """
                        INSERT OR REPLACE INTO kv_store (key, value, created_at)
                        VALUES (?, ?, ?)
                        """,
                        (key, value, datetime.now(UTC).isoformat()),
                    )
                    await conn.commit()
            except aiosqlite.Error as e:
                raise StorageError(key, f"write failed: {e}") from e
            logger.debug("Stored %d bytes under %s", len(value), key)

    async def put_new(self, key: str, value: bytes) -> None:
        with self._tracer.span("ledgermigrate.kv.put_new", {ATTR_STORAGE_KEY: key}):
            try:
                async with aiosqlite.connect(self._database_path) as conn:
                    try:
                        await conn.execute(
                            """
                            INSERT INTO kv_store (key, value, created_at)
                            VALUES (?, ?, ?)
                            """,
                            (key, value, datetime.now(UTC).isoformat()),
                        )
                        await conn.commit()
                    except aiosqlite.IntegrityError as e:
                        await conn.rollback()
                        raise KeyExistsError(key) from e
            except aiosqlite.Error as e:
                raise StorageError(key, f"write failed: {e}") from e
            logger.debug("Stored new key %s", key)

    async def put_many(self, items: Mapping[str, bytes]) -> None:
        keys = ",".join(items)
        with self._tracer.span("ledgermigrate.kv.put_many", {ATTR_STORAGE_KEY: keys}):
            now = datetime.now(UTC).isoformat()
            try:
                async with aiosqlite.connect(self._database_path) as conn:
                    try:
                        await conn.executemany(
                            """
                            INSERT OR REPLACE INTO kv_store (key, value, created_at)
                            VALUES (?, ?, ?)
                            """,
                            [(key, value, now) for key, value in items.items()],
                        )
                        await conn.commit()
                    except aiosqlite.Error:
                        await conn.rollback()
                        raise
            except aiosqlite.Error as e:
                raise StorageError(keys, f"write failed: {e}") from e
            logger.debug("Stored %d keys in one transaction", len(items))

    async def delete_many(self, keys: Sequence[str]) -> int:
        joined = ",".join(keys)
        with self._tracer.span("ledgermigrate.kv.delete_many", {ATTR_STORAGE_KEY: joined}):
            removed = 0
            try:
                async with aiosqlite.connect(self._database_path) as conn:
                    try:
                        for key in keys:
                            cursor = await conn.execute(
                                "DELETE FROM kv_store WHERE key = ?",
                                (key,),
                            )
                            removed += cursor.rowcount
                        await conn.commit()
                    except aiosqlite.Error:
                        await conn.rollback()
                        raise
            except aiosqlite.Error as e:
                raise StorageError(joined, f"delete failed: {e}") from e
            logger.debug("Deleted %d of %d keys", removed, len(keys))
            return removed

    async def exists(self, key: str) -> bool:
        try:
            async with aiosqlite.connect(self._database_path) as conn:
                cursor = await conn.execute(
                    "SELECT EXISTS (SELECT 1 FROM kv_store WHERE key = ?)",
                    (key,),
                )
                row = await cursor.fetchone()
                return bool(row[0]) if row else False
        except aiosqlite.Error as e:
            raise StorageError(key, f"read failed: {e}") from e

    async def keys(self, prefix: str = "") -> list[str]:
        try:
            async with aiosqlite.connect(self._database_path) as conn:
                cursor = await conn.execute(
                    "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                    (len(prefix), prefix),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(prefix, f"key listing failed: {e}") from e
        return [row[0] for row in rows]

    @property
    def database_path(self) -> str:
        """Get the database path."""
        return self._database_path


__all__ = [
    "SQLiteKeyValueStore",
]

"""
In-memory store implementations.

Provides simple stores for testing and development. All data is kept in
memory and lost when the process ends.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence

from ledgermigrate.exceptions import KeyExistsError
from ledgermigrate.models import FinancialData, LegacyUserData, UserProfile
from ledgermigrate.observability import ATTR_STORAGE_KEY, Tracer, create_tracer
from ledgermigrate.stores.interface import KeyValueStore, LegacyStore, PrivacyFirstStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """
    In-memory implementation of KeyValueStore for testing and development.

    Uses asyncio.Lock so multi-key operations are atomic with respect to
    other coroutines.

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> await store.put_new("UserData_PreMigration_1700000000", b"{}")
        >>> await store.keys("UserData_PreMigration")
        ['UserData_PreMigration_1700000000']
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        logger.debug("InMemoryKeyValueStore initialized")

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        with self._tracer.span("ledgermigrate.kv.put", {ATTR_STORAGE_KEY: key}):
            async with self._lock:
                self._data[key] = value

    async def put_new(self, key: str, value: bytes) -> None:
        with self._tracer.span("ledgermigrate.kv.put_new", {ATTR_STORAGE_KEY: key}):
            async with self._lock:
                if key in self._data:
                    raise KeyExistsError(key)
                self._data[key] = value

    async def put_many(self, items: Mapping[str, bytes]) -> None:
        async with self._lock:
            self._data.update(items)

    async def delete_many(self, keys: Sequence[str]) -> int:
        async with self._lock:
            removed = 0
            for key in keys:
                if self._data.pop(key, None) is not None:
                    removed += 1
            return removed

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return key in self._data

    async def keys(self, prefix: str = "") -> list[str]:
        async with self._lock:
            return sorted(key for key in self._data if key.startswith(prefix))

    async def clear(self) -> None:
        """Clear all stored values. Useful for test cleanup."""
        async with self._lock:
            self._data.clear()

    @property
    def size(self) -> int:
        return len(self._data)


class InMemoryLegacyStore(LegacyStore):
    """
    LegacyStore test double that keeps the record object directly.

    Example:
        >>> store = InMemoryLegacyStore(record)
        >>> (await store.load()) == record
        True
    """

    def __init__(self, record: LegacyUserData | None = None) -> None:
        self._record = record
        self._lock = asyncio.Lock()

    async def load(self) -> LegacyUserData | None:
        async with self._lock:
            return self._record

    async def save(self, record: LegacyUserData) -> None:
        async with self._lock:
            self._record = record
            logger.debug("Saved legacy record %s", record.id)

    async def exists(self) -> bool:
        async with self._lock:
            return self._record is not None

    async def clear(self) -> None:
        async with self._lock:
            self._record = None


class InMemoryPrivacyFirstStore(PrivacyFirstStore):
    """PrivacyFirstStore test double that keeps both records in memory."""

    def __init__(
        self,
        profile: UserProfile | None = None,
        financial: FinancialData | None = None,
    ) -> None:
        self._profile = profile
        self._financial = financial
        self._lock = asyncio.Lock()

    async def load_profile(self) -> UserProfile | None:
        async with self._lock:
            return self._profile

    async def load_financial_data(self) -> FinancialData | None:
        async with self._lock:
            return self._financial

    async def save(self, profile: UserProfile, financial: FinancialData) -> None:
        async with self._lock:
            self._profile = profile
            self._financial = financial
            logger.debug("Saved privacy-first records for user %s", profile.id)

    async def save_profile(self, profile: UserProfile) -> None:
        async with self._lock:
            self._profile = profile

    async def save_financial_data(self, financial: FinancialData) -> None:
        async with self._lock:
            self._financial = financial

    async def exists(self) -> bool:
        async with self._lock:
            return self._profile is not None

    async def clear(self) -> None:
        async with self._lock:
            self._profile = None
            self._financial = None


__all__ = [
    "InMemoryKeyValueStore",
    "InMemoryLegacyStore",
    "InMemoryPrivacyFirstStore",
]

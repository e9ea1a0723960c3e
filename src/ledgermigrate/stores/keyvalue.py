"""
Record stores backed by a KeyValueStore.

Records are encoded as pydantic JSON and written under the keys given by
StorageKeys. These are the production implementations of LegacyStore and
PrivacyFirstStore; pair them with SQLiteKeyValueStore for durability.

Example:
    >>> kv = SQLiteKeyValueStore("ledger.db")
    >>> await kv.initialize()
    >>> legacy_store = KeyValueLegacyStore(kv)
    >>> privacy_store = KeyValuePrivacyFirstStore(kv)
"""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ledgermigrate.exceptions import StorageSerializationError
from ledgermigrate.models import FinancialData, LegacyUserData, UserProfile
from ledgermigrate.observability import ATTR_STORAGE_KEY, Tracer, create_tracer
from ledgermigrate.serialization import json_dumps
from ledgermigrate.stores.interface import (
    KeyValueStore,
    LegacyStore,
    PrivacyFirstStore,
    StorageKeys,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode_record(key: str, record: BaseModel) -> bytes:
    """
    Encode a record as JSON bytes.

    Non-finite floats cannot round-trip through JSON and are rejected.

    Raises:
        StorageSerializationError: If the record cannot be encoded
    """
    try:
        return json_dumps(record.model_dump()).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise StorageSerializationError(key, str(e)) from e


def decode_record(key: str, data: bytes, model: type[ModelT]) -> ModelT:
    """
    Decode JSON bytes into a record.

    Raises:
        StorageSerializationError: If the bytes are not a valid record
    """
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise StorageSerializationError(key, str(e)) from e


class KeyValueLegacyStore(LegacyStore):
    """
    LegacyStore that keeps the aggregate record under one key.

    Args:
        kv: Backing key-value store
        keys: Storage key configuration
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable OpenTelemetry tracing
    """

    def __init__(
        self,
        kv: KeyValueStore,
        keys: StorageKeys | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._kv = kv
        self._keys = keys or StorageKeys()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def key(self) -> str:
        return self._keys.legacy

    async def load(self) -> LegacyUserData | None:
        with self._tracer.span("ledgermigrate.legacy_store.load", {ATTR_STORAGE_KEY: self.key}):
            data = await self._kv.get(self.key)
            if data is None:
                return None
            return decode_record(self.key, data, LegacyUserData)

    async def save(self, record: LegacyUserData) -> None:
        with self._tracer.span("ledgermigrate.legacy_store.save", {ATTR_STORAGE_KEY: self.key}):
            await self._kv.put(self.key, encode_record(self.key, record))
            logger.debug("Saved legacy record %s under %s", record.id, self.key)

    async def exists(self) -> bool:
        return await self._kv.exists(self.key)

    async def clear(self) -> None:
        with self._tracer.span("ledgermigrate.legacy_store.clear", {ATTR_STORAGE_KEY: self.key}):
            removed = await self._kv.delete_many([self.key])
            logger.debug("Cleared %d legacy record(s) under %s", removed, self.key)


class KeyValuePrivacyFirstStore(PrivacyFirstStore):
    """
    PrivacyFirstStore that keeps profile and financial data under two keys.

    Both records are encoded before anything is written, so an encoding
    failure never leaves one record behind without the other.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        keys: StorageKeys | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._kv = kv
        self._keys = keys or StorageKeys()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def load_profile(self) -> UserProfile | None:
        key = self._keys.profile
        data = await self._kv.get(key)
        if data is None:
            return None
        return decode_record(key, data, UserProfile)

    async def load_financial_data(self) -> FinancialData | None:
        key = self._keys.financial_data
        data = await self._kv.get(key)
        if data is None:
            return None
        return decode_record(key, data, FinancialData)

    async def save(self, profile: UserProfile, financial: FinancialData) -> None:
        with self._tracer.span(
            "ledgermigrate.privacy_store.save",
            {ATTR_STORAGE_KEY: f"{self._keys.profile},{self._keys.financial_data}"},
        ):
            items = {
                self._keys.profile: encode_record(self._keys.profile, profile),
                self._keys.financial_data: encode_record(self._keys.financial_data, financial),
            }
            await self._kv.put_many(items)
            logger.debug("Saved privacy-first records for user %s", profile.id)

    async def save_profile(self, profile: UserProfile) -> None:
        key = self._keys.profile
        await self._kv.put(key, encode_record(key, profile))

    async def save_financial_data(self, financial: FinancialData) -> None:
        key = self._keys.financial_data
        await self._kv.put(key, encode_record(key, financial))

    async def exists(self) -> bool:
        return await self._kv.exists(self._keys.profile)

    async def clear(self) -> None:
        with self._tracer.span("ledgermigrate.privacy_store.clear"):
            removed = await self._kv.delete_many([self._keys.profile, self._keys.financial_data])
            logger.debug("Cleared %d privacy-first records", removed)


__all__ = [
    "KeyValueLegacyStore",
    "KeyValuePrivacyFirstStore",
    "encode_record",
    "decode_record",
]

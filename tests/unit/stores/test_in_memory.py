"""
Unit tests for the in-memory stores.

Tests cover:
- InMemoryKeyValueStore get/put/put_new/put_many/delete_many/keys
- InMemoryLegacyStore and InMemoryPrivacyFirstStore round-trips
"""

import pytest

from ledgermigrate.exceptions import KeyExistsError
from ledgermigrate.observability import MockTracer
from ledgermigrate.stores import (
    InMemoryKeyValueStore,
    InMemoryLegacyStore,
    InMemoryPrivacyFirstStore,
)
from tests.fixtures import make_legacy_record, make_privacy_records

# =============================================================================
# InMemoryKeyValueStore
# =============================================================================


class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore."""

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self) -> None:
        """Missing keys read as None."""
        store = InMemoryKeyValueStore(enable_tracing=False)
        assert await store.get("UserData") is None

    @pytest.mark.asyncio
    async def test_put_replaces_value(self) -> None:
        """put overwrites an existing value."""
        store = InMemoryKeyValueStore(enable_tracing=False)
        await store.put("UserData", b"one")
        await store.put("UserData", b"two")

        assert await store.get("UserData") == b"two"
        assert store.size == 1

    @pytest.mark.asyncio
    async def test_put_new_rejects_existing_key(self) -> None:
        """put_new never overwrites."""
        store = InMemoryKeyValueStore(enable_tracing=False)
        await store.put_new("UserData_PreMigration_1", b"first")

        with pytest.raises(KeyExistsError) as exc_info:
            await store.put_new("UserData_PreMigration_1", b"second")

        assert exc_info.value.key == "UserData_PreMigration_1"
        assert await store.get("UserData_PreMigration_1") == b"first"

    @pytest.mark.asyncio
    async def test_put_many_and_delete_many(self) -> None:
        """Multi-key writes and deletes report what they touched."""
        store = InMemoryKeyValueStore(enable_tracing=False)
        await store.put_many({"a": b"1", "b": b"2"})

        removed = await store.delete_many(["a", "b", "missing"])

        assert removed == 2
        assert store.size == 0

    @pytest.mark.asyncio
    async def test_keys_filters_by_prefix_sorted(self) -> None:
        """keys() returns matching keys in sorted order."""
        store = InMemoryKeyValueStore(enable_tracing=False)
        await store.put("UserData", b"x")
        await store.put("UserData_PreMigration_2", b"x")
        await store.put("UserData_PreMigration_1", b"x")

        assert await store.keys("UserData_PreMigration_") == [
            "UserData_PreMigration_1",
            "UserData_PreMigration_2",
        ]
        assert len(await store.keys()) == 3

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryKeyValueStore(enable_tracing=False)
        await store.put("UserData", b"x")
        await store.clear()
        assert await store.exists("UserData") is False

    @pytest.mark.asyncio
    async def test_writes_are_traced(self) -> None:
        """put and put_new create spans with the storage key."""
        tracer = MockTracer()
        store = InMemoryKeyValueStore(tracer=tracer)

        await store.put("UserData", b"x")
        await store.put_new("Other", b"y")

        assert tracer.span_names == ["ledgermigrate.kv.put", "ledgermigrate.kv.put_new"]
        assert tracer.spans[0][1] == {"ledgermigrate.storage.key": "UserData"}


# =============================================================================
# Record stores
# =============================================================================


class TestInMemoryLegacyStore:
    """Tests for InMemoryLegacyStore."""

    @pytest.mark.asyncio
    async def test_empty_store(self) -> None:
        store = InMemoryLegacyStore()
        assert await store.exists() is False
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_save_and_load(self) -> None:
        record = make_legacy_record()
        store = InMemoryLegacyStore()

        await store.save(record)

        assert await store.exists() is True
        assert await store.load() == record

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryLegacyStore(make_legacy_record())

        await store.clear()

        assert await store.exists() is False


class TestInMemoryPrivacyFirstStore:
    """Tests for InMemoryPrivacyFirstStore."""

    @pytest.mark.asyncio
    async def test_save_loads_both_records(self) -> None:
        profile, financial = make_privacy_records()
        store = InMemoryPrivacyFirstStore()

        await store.save(profile, financial)

        assert await store.exists() is True
        assert await store.load_profile() == profile
        assert await store.load_financial_data() == financial

    @pytest.mark.asyncio
    async def test_clear_removes_both_records(self) -> None:
        profile, financial = make_privacy_records()
        store = InMemoryPrivacyFirstStore(profile, financial)

        await store.clear()

        assert await store.exists() is False
        assert await store.load_financial_data() is None

"""
Unit tests for MigrationExecutor.

Tests cover:
- Forward migration output and committed records
- Progress reporting
- Failure modes (no source, blocked, write and serialization faults)
- Legacy record untouched by a failed forward migration
- Rollback reconstruction and failure recovery
- Cost estimation
"""

import math
from datetime import UTC, datetime

import pytest

from ledgermigrate.migration.exceptions import (
    ExecutorSerializationError,
    ExecutorWriteError,
    NoSourceDataError,
    ValidationBlockedError,
)
from ledgermigrate.migration.executor import MigrationExecutor
from ledgermigrate.migration.models import IntegrationConfig, MigrationProgress
from ledgermigrate.stores import (
    InMemoryKeyValueStore,
    InMemoryLegacyStore,
    InMemoryPrivacyFirstStore,
    KeyValueLegacyStore,
    KeyValuePrivacyFirstStore,
)
from tests.fixtures import FailingPrivacyFirstStore, make_legacy_record, make_privacy_records

MIGRATED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return MIGRATED_AT


def make_executor(legacy_store, privacy_store, **kwargs) -> MigrationExecutor:
    return MigrationExecutor(
        legacy_store,
        privacy_store,
        clock=fixed_clock,
        enable_tracing=False,
        **kwargs,
    )


# =============================================================================
# Forward migration
# =============================================================================


class TestMigrate:
    """Tests for MigrationExecutor.migrate()."""

    @pytest.mark.asyncio
    async def test_migrate_commits_privacy_first_records(self) -> None:
        record = make_legacy_record(enable_firebase_sync=True)
        legacy_store = InMemoryLegacyStore(record)
        privacy_store = InMemoryPrivacyFirstStore()

        output = await make_executor(legacy_store, privacy_store).migrate()

        profile = await privacy_store.load_profile()
        financial = await privacy_store.load_financial_data()
        assert profile == output.profile
        assert financial == output.financial
        assert profile.id == record.id
        assert profile.name == record.name
        assert profile.enable_cloud_backup is False
        assert financial.user_id == record.id
        assert financial.total_balance == pytest.approx(120.50)
        assert financial.transaction_count == 3
        assert output.source == record
        assert output.migrated_at == MIGRATED_AT

    @pytest.mark.asyncio
    async def test_migrate_leaves_legacy_record_in_place(self) -> None:
        record = make_legacy_record()
        legacy_store = InMemoryLegacyStore(record)

        await make_executor(legacy_store, InMemoryPrivacyFirstStore()).migrate()

        assert await legacy_store.load() == record

    @pytest.mark.asyncio
    async def test_progress_steps(self) -> None:
        reported: list[MigrationProgress] = []
        executor = make_executor(
            InMemoryLegacyStore(make_legacy_record()), InMemoryPrivacyFirstStore()
        )

        await executor.migrate(on_progress=reported.append)

        assert [p.step for p in reported] == [
            "Legacy data loaded",
            "Legacy data validated",
            "User profile created",
            "Financial data created",
            "Migrated data verified",
            "Privacy-first data saved",
            "Migration complete",
        ]
        assert [p.progress for p in reported] == sorted(p.progress for p in reported)
        assert reported[-1].progress == 1.0

    @pytest.mark.asyncio
    async def test_no_legacy_record(self) -> None:
        executor = make_executor(InMemoryLegacyStore(), InMemoryPrivacyFirstStore())

        with pytest.raises(NoSourceDataError):
            await executor.migrate()

    @pytest.mark.asyncio
    async def test_blocking_issues_abort_before_writing(self) -> None:
        privacy_store = InMemoryPrivacyFirstStore()
        executor = make_executor(InMemoryLegacyStore(make_legacy_record(name="")), privacy_store)

        with pytest.raises(ValidationBlockedError) as exc_info:
            await executor.migrate()

        assert len(exc_info.value.issues) == 1
        assert await privacy_store.exists() is False

    @pytest.mark.asyncio
    async def test_write_failure_keeps_legacy_bytes(self) -> None:
        """A failed privacy-first save leaves the stored legacy bytes identical."""
        kv = InMemoryKeyValueStore(enable_tracing=False)
        legacy_store = KeyValueLegacyStore(kv, enable_tracing=False)
        await legacy_store.save(make_legacy_record())
        before = await kv.get("UserData")
        privacy_store = FailingPrivacyFirstStore()
        privacy_store.fail_save = True

        with pytest.raises(ExecutorWriteError) as exc_info:
            await make_executor(legacy_store, privacy_store).migrate()

        assert "disk full" in exc_info.value.message
        assert await kv.get("UserData") == before
        assert await privacy_store.exists() is False

    @pytest.mark.asyncio
    async def test_corrupt_legacy_record(self) -> None:
        kv = InMemoryKeyValueStore(enable_tracing=False)
        await kv.put("UserData", b"not json")
        executor = make_executor(
            KeyValueLegacyStore(kv, enable_tracing=False),
            KeyValuePrivacyFirstStore(kv, enable_tracing=False),
        )

        with pytest.raises(ExecutorSerializationError):
            await executor.migrate()

    @pytest.mark.asyncio
    async def test_non_finite_amount_is_blocked(self) -> None:
        executor = make_executor(
            InMemoryLegacyStore(make_legacy_record([1.0, math.inf])),
            InMemoryPrivacyFirstStore(),
        )

        with pytest.raises(ValidationBlockedError):
            await executor.migrate()


# =============================================================================
# Rollback
# =============================================================================


class TestRollback:
    """Tests for MigrationExecutor.rollback()."""

    @pytest.mark.asyncio
    async def test_round_trip_restores_equivalent_record(self) -> None:
        record = make_legacy_record(enable_firebase_sync=True)
        legacy_store = InMemoryLegacyStore(record)
        privacy_store = InMemoryPrivacyFirstStore()
        executor = make_executor(legacy_store, privacy_store)

        await executor.migrate()
        restored = await executor.rollback()

        assert restored.id == record.id
        assert restored.name == record.name
        assert restored.email == record.email
        assert restored.goals == record.goals
        assert restored.enable_firebase_sync is True
        assert restored.created_at == record.created_at
        assert restored.transactions == record.transactions
        assert restored.accounts == record.accounts
        assert await legacy_store.load() == restored
        assert await privacy_store.exists() is False
        assert await privacy_store.load_financial_data() is None

    @pytest.mark.asyncio
    async def test_rollback_keeps_post_migration_changes(self) -> None:
        record = make_legacy_record()
        legacy_store = InMemoryLegacyStore(record)
        privacy_store = InMemoryPrivacyFirstStore()
        executor = make_executor(legacy_store, privacy_store)
        output = await executor.migrate()
        financial = output.financial.with_transaction_removed(record.transactions[0].id)
        await privacy_store.save_financial_data(financial)

        restored = await executor.rollback()

        assert restored.transaction_count == 2
        assert restored.total_balance == pytest.approx(20.50)

    @pytest.mark.asyncio
    async def test_rollback_without_previous_legacy_record(self) -> None:
        profile, financial = make_privacy_records()
        legacy_store = InMemoryLegacyStore()
        executor = make_executor(legacy_store, InMemoryPrivacyFirstStore(profile, financial))

        restored = await executor.rollback()

        assert restored.id == profile.id
        assert restored.enable_firebase_sync is False
        assert restored.updated_at == MIGRATED_AT

    @pytest.mark.asyncio
    async def test_rollback_without_privacy_records(self) -> None:
        executor = make_executor(InMemoryLegacyStore(), InMemoryPrivacyFirstStore())

        with pytest.raises(NoSourceDataError) as exc_info:
            await executor.rollback()

        assert exc_info.value.source == "privacy-first"

    @pytest.mark.asyncio
    async def test_failed_clear_restores_previous_legacy(self) -> None:
        record = make_legacy_record()
        legacy_store = InMemoryLegacyStore(record)
        privacy_store = FailingPrivacyFirstStore()
        executor = make_executor(legacy_store, privacy_store)
        await executor.migrate()
        privacy_store.fail_clear = True

        with pytest.raises(ExecutorWriteError):
            await executor.rollback()

        assert await legacy_store.load() == record
        assert await privacy_store.exists() is True

    @pytest.mark.asyncio
    async def test_failed_clear_removes_rebuilt_legacy(self) -> None:
        """Without an earlier legacy record, a failed rollback leaves none behind."""
        legacy_store = InMemoryLegacyStore()
        privacy_store = FailingPrivacyFirstStore(*make_privacy_records())
        executor = make_executor(legacy_store, privacy_store)
        privacy_store.fail_clear = True

        with pytest.raises(ExecutorWriteError):
            await executor.rollback()

        assert await legacy_store.exists() is False
        assert await privacy_store.exists() is True


# =============================================================================
# Estimation
# =============================================================================


class TestAssess:
    """Tests for MigrationExecutor.assess()."""

    def test_estimate_uses_config(self) -> None:
        config = IntegrationConfig(
            base_estimate_seconds=1.0,
            seconds_per_transaction=0.5,
            seconds_per_account=2.0,
        )
        executor = make_executor(InMemoryLegacyStore(), InMemoryPrivacyFirstStore(), config=config)

        estimated, size = executor.assess(make_legacy_record())

        assert estimated == pytest.approx(1.0 + 3 * 0.5 + 1 * 2.0)
        assert size > 0

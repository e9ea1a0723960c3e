"""
MigrationExecutor - Transforms legacy data into the privacy-first schema and back.

Forward migration:
    1. Load the legacy record (NoSourceDataError if there is none)
    2. Re-validate it (ValidationBlockedError on critical issues)
    3. Build the user profile and financial-data records
    4. Verify them against the source (MigrationVerificationError)
    5. Commit both records in one atomic save

The legacy record is never modified by the forward path, so a failed
migration leaves it exactly as it was.

Rollback:
    1. Load the privacy-first records (NoSourceDataError if there are none)
    2. Rebuild the legacy record, taking legacy-only fields (goals, cloud
       sync preference, creation time) from the legacy record that is still
       stored from before the migration
    3. Save the legacy record, then clear the privacy-first records; if the
       clear fails the previous legacy record is put back

Storage faults surface as ExecutorWriteError, encoding faults as
ExecutorSerializationError.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from ledgermigrate.exceptions import StorageError, StorageSerializationError
from ledgermigrate.migration.exceptions import (
    ExecutorSerializationError,
    ExecutorWriteError,
    MigrationVerificationError,
    NoSourceDataError,
    ValidationBlockedError,
)
from ledgermigrate.migration.models import (
    IntegrationConfig,
    MigrationProgress,
    ProgressCallback,
)
from ledgermigrate.migration.validation import ValidationEngine
from ledgermigrate.models import FinancialData, LegacyUserData, UserProfile
from ledgermigrate.observability import (
    ATTR_ACCOUNT_COUNT,
    ATTR_TRANSACTION_COUNT,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from ledgermigrate.stores.interface import LegacyStore, PrivacyFirstStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class MigrationOutput:
    """
    Records involved in a successful forward migration.

    Attributes:
        source: The legacy record that was migrated (unchanged in storage).
        profile: The committed user profile.
        financial: The committed financial data.
        migrated_at: Clock time at which the records were built.
        duration_seconds: How long the forward run took.
    """

    source: LegacyUserData
    profile: UserProfile
    financial: FinancialData
    migrated_at: datetime
    duration_seconds: float


@contextmanager
def _executor_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except StorageSerializationError as e:
        raise ExecutorSerializationError(f"{operation} failed: {e}", e.key) from e
    except StorageError as e:
        raise ExecutorWriteError(f"{operation} failed: {e}", e.key) from e


class MigrationExecutor:
    """
    Performs the forward migration and its inverse.

    Example:
        >>> executor = MigrationExecutor(legacy_store, privacy_store)
        >>> output = await executor.migrate(on_progress=print)
        >>> output.financial.total_balance == output.source.balance
        True
    """

    def __init__(
        self,
        legacy_store: LegacyStore,
        privacy_store: PrivacyFirstStore,
        *,
        validation: ValidationEngine | None = None,
        config: IntegrationConfig | None = None,
        clock: Clock | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._legacy_store = legacy_store
        self._privacy_store = privacy_store
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._validation = validation or ValidationEngine(tracer=self._tracer)
        self._config = config or IntegrationConfig()
        self._clock = clock or utc_clock

    async def migrate(self, on_progress: ProgressCallback | None = None) -> MigrationOutput:
        """
        Migrate the legacy record into the privacy-first schema.

        Args:
            on_progress: Called with a MigrationProgress after each step

        Returns:
            The records that were committed

        Raises:
            NoSourceDataError: If no legacy record is stored
            ValidationBlockedError: If the record has critical issues
            MigrationVerificationError: If the built records do not match
            ExecutorWriteError: If a store read or write fails
            ExecutorSerializationError: If a record cannot be encoded/decoded
        """

        def report(step: str, progress: float) -> None:
            if on_progress is not None:
                on_progress(MigrationProgress(step, progress, timestamp=self._clock()))

        with self._tracer.span("ledgermigrate.executor.migrate") as span:
            started = time.perf_counter()

            with _executor_errors("Loading legacy data"):
                source = await self._legacy_store.load()
            if source is None:
                raise NoSourceDataError("legacy")
            report("Legacy data loaded", 0.15)

            if span is not None:
                span.set_attribute(ATTR_USER_ID, str(source.id))
                span.set_attribute(ATTR_TRANSACTION_COUNT, source.transaction_count)
                span.set_attribute(ATTR_ACCOUNT_COUNT, source.account_count)

            blocking = [issue for issue in self._validation.validate(source) if issue.is_blocking]
            if blocking:
                raise ValidationBlockedError(blocking)
            report("Legacy data validated", 0.25)

            migrated_at = self._clock()
            profile = self.build_profile(source, migrated_at)
            report("User profile created", 0.35)

            financial = self.build_financial_data(source, migrated_at)
            report("Financial data created", 0.60)

            issues = self._validation.validate_post_migration(
                source,
                profile,
                financial,
                tolerance=self._config.balance_tolerance,
            )
            if issues:
                raise MigrationVerificationError(issues)
            report("Migrated data verified", 0.80)

            with _executor_errors("Saving privacy-first data"):
                await self._privacy_store.save(profile, financial)
            report("Privacy-first data saved", 0.90)

            duration = time.perf_counter() - started
            report("Migration complete", 1.0)

            logger.info(
                "Migrated user %s: %d transactions, %d accounts, balance %.2f (%.3fs)",
                source.id,
                financial.transaction_count,
                financial.account_count,
                financial.total_balance,
                duration,
            )
            return MigrationOutput(
                source=source,
                profile=profile,
                financial=financial,
                migrated_at=migrated_at,
                duration_seconds=duration,
            )

    async def rollback(self) -> LegacyUserData:
        """
        Restore the legacy record from the privacy-first records.

        Returns:
            The legacy record that was written

        Raises:
            NoSourceDataError: If no privacy-first profile is stored
            ExecutorWriteError: If a write fails; when clearing the
                privacy-first records fails, the previous legacy record is
                restored, or the rebuilt one removed, before raising
            ExecutorSerializationError: If a record cannot be encoded/decoded
        """
        with self._tracer.span("ledgermigrate.executor.rollback"):
            with _executor_errors("Loading privacy-first data"):
                profile = await self._privacy_store.load_profile()
                financial = await self._privacy_store.load_financial_data()
                previous = await self._legacy_store.load()

            if profile is None:
                raise NoSourceDataError("privacy-first")

            restored = self.reconstruct_legacy(profile, financial, previous)

            with _executor_errors("Writing legacy data"):
                await self._legacy_store.save(restored)

            try:
                with _executor_errors("Clearing privacy-first data"):
                    await self._privacy_store.clear()
            except (ExecutorWriteError, ExecutorSerializationError):
                await self._restore_previous_legacy(previous)
                raise

            logger.info(
                "Rolled back user %s to legacy: %d transactions, %d accounts",
                restored.id,
                restored.transaction_count,
                restored.account_count,
            )
            return restored

    def assess(self, record: LegacyUserData) -> tuple[float, int]:
        """
        Estimate migration cost for a legacy record.

        Returns:
            (estimated seconds, encoded size in bytes)
        """
        estimated = (
            self._config.base_estimate_seconds
            + record.transaction_count * self._config.seconds_per_transaction
            + record.account_count * self._config.seconds_per_account
        )
        size = len(record.model_dump_json().encode("utf-8"))
        return estimated, size

    @staticmethod
    def build_profile(source: LegacyUserData, migrated_at: datetime) -> UserProfile:
        """Build the identity record; cloud backup always starts disabled."""
        return UserProfile(
            id=source.id,
            name=source.name,
            email=source.email,
            created_at=source.created_at,
            updated_at=migrated_at,
            goals=source.goals,
            enable_cloud_backup=False,
        )

    @staticmethod
    def build_financial_data(source: LegacyUserData, migrated_at: datetime) -> FinancialData:
        return FinancialData(
            user_id=source.id,
            transactions=list(source.transactions),
            accounts=list(source.accounts),
            created_at=source.created_at,
            updated_at=migrated_at,
            backup_enabled=False,
        )

    def reconstruct_legacy(
        self,
        profile: UserProfile,
        financial: FinancialData | None,
        previous: LegacyUserData | None,
    ) -> LegacyUserData:
        """
        Rebuild a legacy record from privacy-first records.

        The ledger (transactions and accounts) always comes from the
        financial data, so changes made after the migration survive.
        Fields the privacy-first schema does not carry are taken from the
        previous legacy record when one is stored.
        """
        transactions = list(financial.transactions) if financial else []
        accounts = list(financial.accounts) if financial else []

        if previous is not None and previous.id == profile.id:
            created_at = previous.created_at
            goals = profile.goals if profile.goals is not None else previous.goals
            enable_firebase_sync = previous.enable_firebase_sync
        else:
            created_at = profile.created_at
            goals = profile.goals
            enable_firebase_sync = profile.enable_cloud_backup

        return LegacyUserData(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            transactions=transactions,
            accounts=accounts,
            created_at=created_at,
            updated_at=self._clock(),
            goals=goals,
            enable_firebase_sync=enable_firebase_sync,
        )

    async def _restore_previous_legacy(self, previous: LegacyUserData | None) -> None:
        # Undo the legacy write so only the privacy-first records remain.
        if previous is None:
            try:
                await self._legacy_store.clear()
            except StorageError:
                logger.exception("Failed to remove rebuilt legacy record after failed rollback")
            else:
                logger.warning("Removed rebuilt legacy record after failed rollback")
            return
        try:
            await self._legacy_store.save(previous)
        except StorageError:
            logger.exception("Failed to restore previous legacy record %s", previous.id)
        else:
            logger.warning("Restored previous legacy record %s after failed rollback", previous.id)


__all__ = [
    "Clock",
    "MigrationExecutor",
    "MigrationOutput",
    "utc_clock",
]

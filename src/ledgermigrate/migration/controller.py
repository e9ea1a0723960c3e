"""
IntegrationController - Orchestrates the legacy to privacy-first migration.

The IntegrationController is the single entry point the rest of the
application uses. It owns the data mode, the integration status and the
migration progress, sequences assessment, migration and rollback, and
exposes a mode-agnostic CRUD facade.

Concurrency:
    - Transitions (assess, migrate, rollback) are serialized by one
      asyncio.Lock. A migration or rollback requested while any transition
      holds the lock is rejected immediately, never queued.
    - Mode, status, progress and recommendation live in one immutable
      IntegrationState that is replaced as a whole, without an await in
      between, so readers always see a consistent snapshot.
    - CRUD calls hold a ModeTransitionGate slot. A transition publishes
      data_mode MIGRATING first, then drains the calls already in flight;
      they finish under the mode they started in.

Usage:
    >>> controller = await IntegrationController.create(
    ...     legacy_store, privacy_store, ArchiveStore(kv)
    ... )
    >>> assessment = await controller.assess_migration_readiness()
    >>> if assessment.can_migrate:
    ...     result = await controller.execute_big_bang_migration()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from ledgermigrate.exceptions import StorageError
from ledgermigrate.migration.archive import ArchiveStore
from ledgermigrate.migration.exceptions import (
    ArchiveError,
    MigrationError,
    MigrationInProgressError,
    NotReadyError,
)
from ledgermigrate.migration.executor import Clock, MigrationExecutor, MigrationOutput, utc_clock
from ledgermigrate.migration.mode_gate import ModeTransitionGate
from ledgermigrate.migration.models import (
    DataMode,
    IntegrationConfig,
    IntegrationState,
    IntegrationStatus,
    MigrationAssessment,
    MigrationProgress,
    MigrationResult,
    RollbackResult,
    StateListener,
    UnifiedUserData,
    ValidationIssue,
    WriteResult,
    has_blocking_issues,
)
from ledgermigrate.migration.router import DataModeRouter
from ledgermigrate.migration.validation import ValidationEngine
from ledgermigrate.models import Account, LegacyUserData, Transaction
from ledgermigrate.observability import (
    ATTR_ARCHIVE_KEY,
    ATTR_DATA_MODE,
    ATTR_INTEGRATION_STATUS,
    ATTR_MIGRATION_SUCCESS,
    Tracer,
    create_tracer,
)
from ledgermigrate.stores.interface import LegacyStore, PrivacyFirstStore

logger = logging.getLogger(__name__)


class IntegrationController:
    """
    Owns the migration state machine and the CRUD facade.

    Example:
        >>> controller = IntegrationController(legacy_store, privacy_store, archive)
        >>> await controller.initialize()
        >>> controller.integration_status
        <IntegrationStatus.PENDING_MIGRATION: 'pending_migration'>
    """

    def __init__(
        self,
        legacy_store: LegacyStore,
        privacy_store: PrivacyFirstStore,
        archive: ArchiveStore,
        *,
        config: IntegrationConfig | None = None,
        validation: ValidationEngine | None = None,
        executor: MigrationExecutor | None = None,
        router: DataModeRouter | None = None,
        clock: Clock | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the controller.

        The controller starts in NOT_INITIALIZED; call initialize() (or use
        create()) to inspect persisted storage.

        Args:
            legacy_store: Store of the legacy aggregate record
            privacy_store: Store of the privacy-first records
            archive: Where pre-migration snapshots are written
            config: Tolerances, estimates and drain timeout
            validation: Custom ValidationEngine
            executor: Custom MigrationExecutor
            router: Custom DataModeRouter
            clock: Time source for progress and archive timestamps
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._config = config or IntegrationConfig()
        self._clock = clock or utc_clock
        self._legacy_store = legacy_store
        self._privacy_store = privacy_store
        self._archive = archive
        self._validation = validation or ValidationEngine(tracer=self._tracer)
        self._executor = executor or MigrationExecutor(
            legacy_store,
            privacy_store,
            validation=self._validation,
            config=self._config,
            clock=self._clock,
            tracer=self._tracer,
        )
        self._router = router or DataModeRouter(
            legacy_store,
            privacy_store,
            tracer=self._tracer,
        )
        self._gate = ModeTransitionGate(drain_timeout=self._config.transition_drain_timeout)

        self._state = IntegrationState(
            mode=DataMode.LEGACY,
            status=IntegrationStatus.NOT_INITIALIZED,
        )
        self._transition_lock = asyncio.Lock()
        self._last_assessment: MigrationAssessment | None = None
        self._listeners: list[StateListener] = []

    @classmethod
    async def create(
        cls,
        legacy_store: LegacyStore,
        privacy_store: PrivacyFirstStore,
        archive: ArchiveStore,
        **kwargs: Any,
    ) -> IntegrationController:
        """Construct a controller and run the startup assessment."""
        controller = cls(legacy_store, privacy_store, archive, **kwargs)
        await controller.initialize()
        return controller

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> IntegrationState:
        """Consistent snapshot of mode, status, progress and recommendation."""
        return self._state

    @property
    def data_mode(self) -> DataMode:
        return self._state.mode

    @property
    def integration_status(self) -> IntegrationStatus:
        return self._state.status

    @property
    def migration_progress(self) -> MigrationProgress | None:
        return self._state.progress

    @property
    def migration_recommended(self) -> bool:
        return self._state.migration_recommended

    @property
    def should_show_migration_ui(self) -> bool:
        """Whether the app should offer the migration to the user."""
        state = self._state
        return state.migration_recommended and state.status == IntegrationStatus.READY

    @property
    def is_ready_for_operations(self) -> bool:
        state = self._state
        return state.mode.allows_operations and state.status != IntegrationStatus.VALIDATION_FAILED

    @property
    def architecture_description(self) -> str:
        descriptions = {
            DataMode.LEGACY: (
                "Using legacy data architecture. "
                "Migration to privacy-first architecture recommended."
            ),
            DataMode.PRIVACY_FIRST: (
                "Using privacy-first data architecture with enhanced security "
                "and future sync capabilities."
            ),
            DataMode.MIGRATING: "Migration in progress. Please wait for completion.",
        }
        return descriptions[self._state.mode]

    @property
    def gate(self) -> ModeTransitionGate:
        return self._gate

    def add_state_listener(self, listener: StateListener) -> None:
        """
        Register a callback that receives every new IntegrationState.

        Listeners are called synchronously after each transition and each
        progress update.
        """
        self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(
        self,
        mode: DataMode,
        status: IntegrationStatus,
        *,
        progress: MigrationProgress | None = None,
        recommended: bool = False,
    ) -> None:
        previous = self._state
        if previous.status != status and not previous.status.can_transition_to(status):
            raise RuntimeError(
                f"Illegal integration transition: {previous.status.value} -> {status.value}"
            )
        self._state = IntegrationState(
            mode=mode,
            status=status,
            progress=progress,
            migration_recommended=recommended,
        )
        if previous.status != status or previous.mode != mode:
            logger.info(
                "Integration state: %s/%s -> %s/%s",
                previous.mode.value,
                previous.status.value,
                mode.value,
                status.value,
            )
        self._notify_listeners()

    def _publish_progress(self, progress: MigrationProgress) -> None:
        state = self._state
        if state.mode != DataMode.MIGRATING:
            return
        logger.debug("Migration progress: %s (%s)", progress.step, progress.formatted_progress)
        self._set_state(
            state.mode,
            state.status,
            progress=progress,
            recommended=state.migration_recommended,
        )

    def _notify_listeners(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> IntegrationState:
        """
        Inspect persisted storage and pick the starting mode.

        Privacy-first records win over a legacy record: if both exist the
        user has already migrated. Calling this again after startup is a
        no-op.

        Returns:
            The resulting state

        Raises:
            StorageError: If the stores cannot be read
        """
        with self._tracer.span("ledgermigrate.controller.initialize") as span:
            async with self._transition_lock:
                if self._state.status != IntegrationStatus.NOT_INITIALIZED:
                    return self._state

                if await self._privacy_store.exists():
                    self._set_state(DataMode.PRIVACY_FIRST, IntegrationStatus.MIGRATION_COMPLETED)
                elif await self._legacy_store.exists():
                    self._set_state(DataMode.LEGACY, IntegrationStatus.PENDING_MIGRATION)
                else:
                    self._set_state(DataMode.LEGACY, IntegrationStatus.NO_DATA)

                if span is not None:
                    span.set_attribute(ATTR_DATA_MODE, self._state.mode.value)
                    span.set_attribute(ATTR_INTEGRATION_STATUS, self._state.status.value)
                return self._state

    async def assess_migration_readiness(self) -> MigrationAssessment:
        """
        Validate the legacy record and update the migration recommendation.

        Safe to call repeatedly; with unchanged data the result and the
        resulting status are identical. Waits for a running transition to
        finish before assessing.

        Returns:
            The assessment. When the controller is not in a legacy-mode
            status (already migrated, migrating, not initialized), the
            assessment carries error_code NOT_READY and the state is left
            unchanged.
        """
        with self._tracer.span("ledgermigrate.controller.assess") as span:
            async with self._transition_lock:
                status = self._state.status
                if not status.allows_assessment:
                    error = NotReadyError("assess migration readiness", status)
                    logger.warning("%s", error.message)
                    return MigrationAssessment(reason=error.message, error_code=error.error_code)

                try:
                    record = await self._legacy_store.load()
                except StorageError as e:
                    logger.error("Assessment could not load legacy data: %s", e)
                    return MigrationAssessment(reason=str(e), error_code="STORAGE_ERROR")

                if record is None:
                    assessment = MigrationAssessment(reason="No legacy data to migrate")
                    self._set_state(DataMode.LEGACY, IntegrationStatus.NO_LEGACY_DATA)
                else:
                    issues = tuple(self._validation.validate(record))
                    blocking = has_blocking_issues(issues)
                    estimated, size = self._executor.assess(record)
                    assessment = MigrationAssessment(
                        issues=issues,
                        recommended=not blocking,
                        can_migrate=not blocking,
                        reason=(
                            f"{sum(issue.is_blocking for issue in issues)} critical issue(s) "
                            "must be fixed before migrating"
                            if blocking
                            else "Legacy data is ready for migration"
                        ),
                        transaction_count=record.transaction_count,
                        account_count=record.account_count,
                        estimated_seconds=estimated,
                        data_size_bytes=size,
                    )
                    self._set_state(
                        DataMode.LEGACY,
                        (
                            IntegrationStatus.VALIDATION_FAILED
                            if blocking
                            else IntegrationStatus.READY
                        ),
                        recommended=not blocking,
                    )

                self._last_assessment = assessment
                if span is not None:
                    span.set_attribute(ATTR_INTEGRATION_STATUS, self._state.status.value)
                logger.info(
                    "Assessment: status=%s, issues=%d, recommended=%s",
                    self._state.status.value,
                    len(assessment.issues),
                    assessment.recommended,
                )
                return assessment

    def get_migration_assessment(self) -> MigrationAssessment | None:
        """Return the result of the last assessment that ran, if any."""
        return self._last_assessment

    async def execute_big_bang_migration(self) -> MigrationResult:
        """
        Migrate the legacy record to the privacy-first schema in one step.

        Requires status READY; a second call while a transition is running
        is rejected with NOT_READY and never queued. After the records are
        committed the pre-migration legacy record is archived; an archive
        failure is reported in the result without undoing the migration.

        Returns:
            MigrationResult describing the outcome. Executor failures and
            drain timeouts leave the controller in LEGACY/MIGRATION_FAILED.
        """
        with self._tracer.span("ledgermigrate.controller.execute_migration") as span:
            rejection = self._check_transition("execute migration", IntegrationStatus.READY)
            if rejection is not None:
                return self._migration_rejected(rejection)

            async with self._transition_lock:
                output, failure = await self._run_forward_migration()

                if failure is not None:
                    if span is not None:
                        span.set_attribute(ATTR_MIGRATION_SUCCESS, False)
                    return MigrationResult(
                        success=False,
                        status=self._state.status,
                        mode=self._state.mode,
                        error_code=failure.error_code,
                        error_message=failure.message,
                        issues=tuple(getattr(failure, "issues", ())),
                    )

                assert output is not None
                archive_key: str | None = None
                archive_error: str | None = None
                try:
                    archive_key = await self._archive.archive(output.source, output.migrated_at)
                except ArchiveError as e:
                    archive_error = e.message
                    logger.warning("Migration completed with warning: %s", e.message)

                if span is not None:
                    span.set_attribute(ATTR_MIGRATION_SUCCESS, True)
                    if archive_key:
                        span.set_attribute(ATTR_ARCHIVE_KEY, archive_key)

                return MigrationResult(
                    success=True,
                    status=self._state.status,
                    mode=self._state.mode,
                    archive_key=archive_key,
                    archive_error=archive_error,
                    duration_seconds=output.duration_seconds,
                )

    async def rollback_to_legacy(self) -> RollbackResult:
        """
        Restore the legacy schema after a completed migration.

        Emergency path only. Requires status MIGRATION_COMPLETED. While the
        rollback runs the controller reports MIGRATING/ROLLING_BACK. On
        success it moves to LEGACY/READY; on failure it returns to
        PRIVACY_FIRST/MIGRATION_COMPLETED.
        """
        with self._tracer.span("ledgermigrate.controller.rollback"):
            rejection = self._check_transition(
                "roll back to legacy", IntegrationStatus.MIGRATION_COMPLETED
            )
            if rejection is not None:
                logger.warning("%s", rejection.message)
                return self._rollback_failed(rejection.error_code, rejection.message)

            async with self._transition_lock:
                self._set_state(DataMode.MIGRATING, IntegrationStatus.ROLLING_BACK)
                restored: LegacyUserData | None = None
                failure: MigrationError | None = None
                try:
                    async with self._gate.transition(
                        "rollback",
                        timeout=self._config.transition_drain_timeout,
                    ):
                        restored = await self._executor.rollback()
                        self._set_state(
                            DataMode.LEGACY,
                            IntegrationStatus.READY,
                            recommended=True,
                        )
                except MigrationError as e:
                    failure = e
                except Exception as e:
                    logger.exception("Rollback failed unexpectedly")
                    failure = MigrationError(str(e))
                finally:
                    if restored is None:
                        self._set_state(
                            DataMode.PRIVACY_FIRST, IntegrationStatus.MIGRATION_COMPLETED
                        )

                if failure is not None:
                    logger.error("Rollback failed: %s", failure.message)
                    return self._rollback_failed(failure.error_code, failure.message)

                assert restored is not None
                logger.info("Rolled back user %s to legacy mode", restored.id)
                return RollbackResult(
                    success=True,
                    status=self._state.status,
                    mode=self._state.mode,
                )

    def _check_transition(
        self,
        operation: str,
        required: IntegrationStatus,
    ) -> NotReadyError | None:
        # Synchronous: nothing can interleave between this check and taking
        # the transition lock.
        status = self._state.status
        if status != required:
            return NotReadyError(operation, status)
        if self._transition_lock.locked():
            return MigrationInProgressError(operation, status)
        return None

    async def _run_forward_migration(
        self,
    ) -> tuple[MigrationOutput | None, MigrationError | None]:
        recommended = self._state.migration_recommended
        self._set_state(
            DataMode.MIGRATING,
            IntegrationStatus.MIGRATING,
            progress=MigrationProgress("Initializing", 0.0, timestamp=self._clock()),
            recommended=recommended,
        )

        # Published before the drain: every call the gate rejects sees MIGRATING.
        resolved = False
        try:
            async with self._gate.transition(
                "migration",
                timeout=self._config.transition_drain_timeout,
            ):
                output = await self._executor.migrate(on_progress=self._publish_progress)
                self._set_state(DataMode.PRIVACY_FIRST, IntegrationStatus.MIGRATION_COMPLETED)
                resolved = True
            return output, None
        except MigrationError as e:
            self._fail_migration(e.message)
            resolved = True
            return None, e
        except Exception as e:
            logger.exception("Migration failed unexpectedly")
            self._fail_migration(str(e))
            resolved = True
            error = MigrationError(str(e))
            return None, error
        finally:
            if not resolved:
                self._fail_migration("Migration was interrupted")

    def _fail_migration(self, message: str) -> None:
        logger.error("Migration failed: %s", message)
        self._set_state(DataMode.LEGACY, IntegrationStatus.MIGRATION_FAILED)

    def _migration_rejected(self, error: MigrationError) -> MigrationResult:
        logger.warning("Migration rejected: %s", error.message)
        issues: tuple[ValidationIssue, ...] = ()
        if (
            self._state.status == IntegrationStatus.VALIDATION_FAILED
            and self._last_assessment is not None
        ):
            issues = tuple(self._last_assessment.blocking_issues)
        return MigrationResult(
            success=False,
            status=self._state.status,
            mode=self._state.mode,
            error_code=error.error_code,
            error_message=error.message,
            issues=issues,
        )

    def _rollback_failed(self, error_code: str, message: str) -> RollbackResult:
        return RollbackResult(
            success=False,
            status=self._state.status,
            mode=self._state.mode,
            error_code=error_code,
            error_message=message,
        )

    # =========================================================================
    # CRUD facade
    # =========================================================================

    async def get_current_user_data(self) -> UnifiedUserData | None:
        """
        Project the user's data from the active schema.

        Returns:
            The projection, or None while migrating or when there is no user
        """
        async with self._gate.operation() as admitted:
            if not admitted:
                return None
            return await self._router.user_data(self._state.mode)

    async def total_balance(self) -> float:
        async with self._gate.operation() as admitted:
            if not admitted:
                return 0.0
            return await self._router.total_balance(self._state.mode)

    async def transactions(self) -> list[Transaction]:
        async with self._gate.operation() as admitted:
            if not admitted:
                return []
            return await self._router.transactions(self._state.mode)

    async def accounts(self) -> list[Account]:
        async with self._gate.operation() as admitted:
            if not admitted:
                return []
            return await self._router.accounts(self._state.mode)

    async def add_transaction(self, transaction: Transaction) -> WriteResult:
        async with self._gate.operation() as admitted:
            if not admitted:
                return WriteResult.rejected_migrating()
            return await self._router.add_transaction(self._state.mode, transaction)

    async def update_transaction(self, transaction: Transaction) -> WriteResult:
        async with self._gate.operation() as admitted:
            if not admitted:
                return WriteResult.rejected_migrating()
            return await self._router.update_transaction(self._state.mode, transaction)

    async def remove_transaction(self, transaction_id: UUID) -> WriteResult:
        async with self._gate.operation() as admitted:
            if not admitted:
                return WriteResult.rejected_migrating()
            return await self._router.remove_transaction(self._state.mode, transaction_id)

    async def enable_privacy_features(self) -> bool:
        """
        Force the privacy-first profile to local-only storage.

        Returns:
            True if the profile was updated, False outside PRIVACY_FIRST
            mode or when no profile is stored.
        """
        async with self._gate.operation() as admitted:
            if not admitted or self._state.mode != DataMode.PRIVACY_FIRST:
                return False
            try:
                profile = await self._privacy_store.load_profile()
                if profile is None:
                    return False
                await self._privacy_store.save_profile(
                    profile.model_copy(
                        update={"enable_cloud_backup": False, "updated_at": self._clock()}
                    )
                )
            except StorageError as e:
                logger.error("Could not enable privacy features: %s", e)
                return False

            logger.info("Enhanced privacy features enabled for user %s", profile.id)
            return True


__all__ = [
    "IntegrationController",
]

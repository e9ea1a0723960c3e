"""
Legacy to privacy-first data migration.

This package provides:
- IntegrationController: state machine and CRUD facade (entry point)
- DataModeRouter: dispatch of CRUD operations by data mode
- ModeTransitionGate: barrier between CRUD calls and mode transitions
- ValidationEngine: pre- and post-migration checks
- MigrationExecutor: forward migration and rollback
- ArchiveStore: write-once pre-migration snapshots

Usage:
    >>> from ledgermigrate.migration import ArchiveStore, IntegrationController
    >>>
    >>> controller = await IntegrationController.create(
    ...     legacy_store, privacy_store, ArchiveStore(kv)
    ... )
    >>> await controller.assess_migration_readiness()
    >>> result = await controller.execute_big_bang_migration()
"""

from ledgermigrate.migration.archive import ArchiveStore
from ledgermigrate.migration.controller import IntegrationController
from ledgermigrate.migration.exceptions import (
    ArchiveError,
    ErrorClassification,
    ExecutorError,
    ExecutorSerializationError,
    ExecutorWriteError,
    MigrationError,
    MigrationInProgressError,
    MigrationVerificationError,
    NoSourceDataError,
    NotReadyError,
    ValidationBlockedError,
)
from ledgermigrate.migration.executor import MigrationExecutor, MigrationOutput
from ledgermigrate.migration.mode_gate import (
    ModeTransitionGate,
    TransitionDrainTimeoutError,
    TransitionMetrics,
)
from ledgermigrate.migration.models import (
    DataMode,
    IntegrationConfig,
    IntegrationState,
    IntegrationStatus,
    MigrationAssessment,
    MigrationProgress,
    MigrationResult,
    RollbackResult,
    UnifiedUserData,
    ValidationIssue,
    ValidationSeverity,
    WriteOutcome,
    WriteResult,
    has_blocking_issues,
)
from ledgermigrate.migration.router import (
    DataModeRouter,
    LegacyBackend,
    ModeBackend,
    PrivacyFirstBackend,
)
from ledgermigrate.migration.validation import ValidationEngine

__all__ = [
    # Controller
    "IntegrationController",
    # Components
    "ArchiveStore",
    "DataModeRouter",
    "ModeBackend",
    "LegacyBackend",
    "PrivacyFirstBackend",
    "MigrationExecutor",
    "MigrationOutput",
    "ModeTransitionGate",
    "TransitionMetrics",
    "ValidationEngine",
    # Models
    "DataMode",
    "IntegrationConfig",
    "IntegrationState",
    "IntegrationStatus",
    "MigrationAssessment",
    "MigrationProgress",
    "MigrationResult",
    "RollbackResult",
    "UnifiedUserData",
    "ValidationIssue",
    "ValidationSeverity",
    "WriteOutcome",
    "WriteResult",
    "has_blocking_issues",
    # Exceptions
    "ErrorClassification",
    "MigrationError",
    "NotReadyError",
    "MigrationInProgressError",
    "ValidationBlockedError",
    "ExecutorError",
    "ExecutorWriteError",
    "ExecutorSerializationError",
    "NoSourceDataError",
    "MigrationVerificationError",
    "ArchiveError",
    "TransitionDrainTimeoutError",
]

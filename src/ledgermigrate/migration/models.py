"""
Data models for the legacy to privacy-first migration.

Models in this module:

Enums:
    - DataMode: Which schema currently serves reads and writes
    - IntegrationStatus: Migration lifecycle states
    - ValidationSeverity: Severity of a validation finding
    - WriteOutcome: Outcome of a routed write

Configuration:
    - IntegrationConfig: Tolerances and estimates for the controller

Core Models:
    - ValidationIssue: A single validation finding
    - MigrationProgress: Progress of a running migration
    - UnifiedUserData: Schema-independent projection of the user's data
    - IntegrationState: Consistent snapshot of mode, status and progress
    - MigrationAssessment: Result of a readiness assessment
    - WriteResult: Result of a routed CRUD write
    - MigrationResult: Result of a big-bang migration
    - RollbackResult: Result of a rollback to legacy
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class DataMode(Enum):
    """
    Which schema is active.

    Exactly one mode is active at a time. MIGRATING is transient and
    blocks all mutations.
    """

    LEGACY = "legacy"
    PRIVACY_FIRST = "privacy_first"
    MIGRATING = "migrating"

    @property
    def display_name(self) -> str:
        names = {
            DataMode.LEGACY: "Legacy Mode",
            DataMode.PRIVACY_FIRST: "Privacy-First Mode",
            DataMode.MIGRATING: "Migrating...",
        }
        return names[self]

    @property
    def allows_operations(self) -> bool:
        """Whether CRUD operations are served in this mode."""
        return self != DataMode.MIGRATING


class IntegrationStatus(Enum):
    """
    Migration lifecycle states.

    State machine transitions:
        NOT_INITIALIZED -> NO_DATA | PENDING_MIGRATION | MIGRATION_COMPLETED
        PENDING_MIGRATION -> READY | VALIDATION_FAILED | NO_LEGACY_DATA
        READY -> MIGRATING
        MIGRATING -> MIGRATION_COMPLETED | MIGRATION_FAILED
        MIGRATION_COMPLETED -> ROLLING_BACK | READY
        ROLLING_BACK -> READY | MIGRATION_COMPLETED

    Re-assessment is also accepted from every other legacy-mode status so
    that a failed or blocked migration can be retried once the data is
    fixed.
    """

    NOT_INITIALIZED = "not_initialized"
    NO_DATA = "no_data"
    NO_LEGACY_DATA = "no_legacy_data"
    PENDING_MIGRATION = "pending_migration"
    READY = "ready"
    VALIDATION_FAILED = "validation_failed"
    MIGRATING = "migrating"
    MIGRATION_COMPLETED = "migration_completed"
    MIGRATION_FAILED = "migration_failed"
    ROLLING_BACK = "rolling_back"

    @property
    def display_name(self) -> str:
        names = {
            IntegrationStatus.NOT_INITIALIZED: "Not Initialized",
            IntegrationStatus.NO_DATA: "No Data",
            IntegrationStatus.NO_LEGACY_DATA: "No Legacy Data",
            IntegrationStatus.PENDING_MIGRATION: "Pending Migration",
            IntegrationStatus.READY: "Ready",
            IntegrationStatus.VALIDATION_FAILED: "Validation Failed",
            IntegrationStatus.MIGRATING: "Migrating",
            IntegrationStatus.MIGRATION_COMPLETED: "Migration Completed",
            IntegrationStatus.MIGRATION_FAILED: "Migration Failed",
            IntegrationStatus.ROLLING_BACK: "Rolling Back",
        }
        return names[self]

    @property
    def is_terminal(self) -> bool:
        """Whether this status ends a migration attempt."""
        return self in (
            IntegrationStatus.MIGRATION_COMPLETED,
            IntegrationStatus.MIGRATION_FAILED,
        )

    @property
    def allows_assessment(self) -> bool:
        """Whether assess_migration_readiness() may run from this status."""
        return self in _ASSESSABLE_STATUSES

    def can_transition_to(self, target: IntegrationStatus) -> bool:
        if self in _ASSESSABLE_STATUSES and target in _ASSESSMENT_OUTCOMES:
            return True
        return target in _TRANSITIONS.get(self, ())


_ASSESSABLE_STATUSES = frozenset(
    {
        IntegrationStatus.NO_DATA,
        IntegrationStatus.NO_LEGACY_DATA,
        IntegrationStatus.PENDING_MIGRATION,
        IntegrationStatus.READY,
        IntegrationStatus.VALIDATION_FAILED,
        IntegrationStatus.MIGRATION_FAILED,
    }
)

_ASSESSMENT_OUTCOMES = frozenset(
    {
        IntegrationStatus.READY,
        IntegrationStatus.VALIDATION_FAILED,
        IntegrationStatus.NO_LEGACY_DATA,
    }
)

_TRANSITIONS: dict[IntegrationStatus, tuple[IntegrationStatus, ...]] = {
    IntegrationStatus.NOT_INITIALIZED: (
        IntegrationStatus.NO_DATA,
        IntegrationStatus.PENDING_MIGRATION,
        IntegrationStatus.MIGRATION_COMPLETED,
    ),
    IntegrationStatus.READY: (IntegrationStatus.MIGRATING,),
    IntegrationStatus.MIGRATING: (
        IntegrationStatus.MIGRATION_COMPLETED,
        IntegrationStatus.MIGRATION_FAILED,
    ),
    IntegrationStatus.MIGRATION_COMPLETED: (
        IntegrationStatus.ROLLING_BACK,
        IntegrationStatus.READY,
    ),
    IntegrationStatus.ROLLING_BACK: (
        IntegrationStatus.READY,
        IntegrationStatus.MIGRATION_COMPLETED,
    ),
}


class ValidationSeverity(Enum):
    """Severity of a validation finding. Only CRITICAL blocks migration."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def is_blocking(self) -> bool:
        return self == ValidationSeverity.CRITICAL


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single validation finding.

    Attributes:
        description: Human-readable description of the problem.
        severity: How serious the finding is.
        field: Name of the offending field, if any.
        suggestion: How to fix the problem, if known.
    """

    description: str
    severity: ValidationSeverity
    field: str | None = None
    suggestion: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity.is_blocking

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "severity": self.severity.value,
            "field": self.field,
            "suggestion": self.suggestion,
        }


def has_blocking_issues(issues: Iterable[ValidationIssue]) -> bool:
    """Return True if at least one issue is CRITICAL."""
    return any(issue.is_blocking for issue in issues)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class MigrationProgress:
    """
    Progress of a running migration.

    Progress values outside [0, 1] are clamped.

    Attributes:
        step: Name of the current step.
        progress: Completion fraction in [0, 1].
        timestamp: When the step was reported.
    """

    step: str
    progress: float
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "progress", min(max(self.progress, 0.0), 1.0))

    @property
    def formatted_progress(self) -> str:
        return f"{int(self.progress * 100)}%"


ProgressCallback = Callable[[MigrationProgress], None]


@dataclass(frozen=True)
class UnifiedUserData:
    """
    Read-only projection of the user's data over whichever schema is active.

    Recomputed on every access; never owns data.
    """

    mode: DataMode
    name: str
    email: str
    total_balance: float
    transaction_count: int
    account_count: int


@dataclass(frozen=True)
class IntegrationState:
    """
    Consistent snapshot of the controller's state.

    Mode, status, progress and recommendation are always read together, so
    a reader can never see a mode from one transition paired with a status
    from another.
    """

    mode: DataMode
    status: IntegrationStatus
    progress: MigrationProgress | None = None
    migration_recommended: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "status": self.status.value,
            "progress": (
                {
                    "step": self.progress.step,
                    "progress": self.progress.progress,
                    "timestamp": self.progress.timestamp.isoformat(),
                }
                if self.progress
                else None
            ),
            "migration_recommended": self.migration_recommended,
        }


StateListener = Callable[[IntegrationState], None]


@dataclass(frozen=True)
class MigrationAssessment:
    """
    Result of a readiness assessment.

    Attributes:
        issues: Validation findings in rule order.
        recommended: Whether migration is recommended.
        can_migrate: Whether migration may proceed (no blocking issues).
        reason: Short explanation of the verdict.
        transaction_count: Transactions in the legacy record.
        account_count: Accounts in the legacy record.
        estimated_seconds: Rough migration duration estimate.
        data_size_bytes: Encoded size of the legacy record.
        error_code: Set when the assessment was rejected without running.
    """

    issues: tuple[ValidationIssue, ...] = ()
    recommended: bool = False
    can_migrate: bool = False
    reason: str = ""
    transaction_count: int = 0
    account_count: int = 0
    estimated_seconds: float = 0.0
    data_size_bytes: int = 0
    error_code: str | None = None

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_blocking]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == ValidationSeverity.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return {
            "issues": [issue.to_dict() for issue in self.issues],
            "recommended": self.recommended,
            "can_migrate": self.can_migrate,
            "reason": self.reason,
            "transaction_count": self.transaction_count,
            "account_count": self.account_count,
            "estimated_seconds": self.estimated_seconds,
            "data_size_bytes": self.data_size_bytes,
            "error_code": self.error_code,
        }


class WriteOutcome(Enum):
    """Outcome of a routed CRUD write."""

    APPLIED = "applied"
    REJECTED_MIGRATING = "rejected_migrating"
    NO_DATA = "no_data"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class WriteResult:
    """
    Result of a routed CRUD write.

    Every write returns one of these; nothing is dropped or queued.

    Attributes:
        outcome: What happened to the write.
        mode: The mode the write was routed under.
        message: Diagnostic message for unsuccessful writes.
    """

    outcome: WriteOutcome
    mode: DataMode
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome == WriteOutcome.APPLIED

    @property
    def rejected(self) -> bool:
        return self.outcome == WriteOutcome.REJECTED_MIGRATING

    @classmethod
    def applied(cls, mode: DataMode) -> WriteResult:
        return cls(outcome=WriteOutcome.APPLIED, mode=mode)

    @classmethod
    def rejected_migrating(cls) -> WriteResult:
        return cls(
            outcome=WriteOutcome.REJECTED_MIGRATING,
            mode=DataMode.MIGRATING,
            message="Rejected: migration in progress",
        )

    @classmethod
    def no_data(cls, mode: DataMode) -> WriteResult:
        return cls(
            outcome=WriteOutcome.NO_DATA,
            mode=mode,
            message=f"No {mode.display_name} data to write to",
        )

    @classmethod
    def not_found(cls, mode: DataMode, message: str) -> WriteResult:
        return cls(outcome=WriteOutcome.NOT_FOUND, mode=mode, message=message)

    @classmethod
    def duplicate(cls, mode: DataMode, message: str) -> WriteResult:
        return cls(outcome=WriteOutcome.DUPLICATE, mode=mode, message=message)

    @classmethod
    def failed(cls, mode: DataMode, message: str) -> WriteResult:
        return cls(outcome=WriteOutcome.FAILED, mode=mode, message=message)


@dataclass(frozen=True)
class MigrationResult:
    """
    Result of execute_big_bang_migration().

    A successful migration whose archive could not be written is reported
    with success=True and archive_error set (completed with warning).
    status and mode are the controller's state after the call; issues
    holds the blocking issues when validation rejected the migration.
    """

    success: bool
    status: IntegrationStatus
    mode: DataMode
    error_code: str | None = None
    error_message: str | None = None
    archive_key: str | None = None
    archive_error: str | None = None
    issues: tuple[ValidationIssue, ...] = ()
    duration_seconds: float = 0.0

    @property
    def completed_with_warning(self) -> bool:
        return self.success and self.archive_error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "mode": self.mode.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "archive_key": self.archive_key,
            "archive_error": self.archive_error,
            "issues": [issue.to_dict() for issue in self.issues],
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class RollbackResult:
    """
    Result of rollback_to_legacy().

    On failure the controller is back in PRIVACY_FIRST/MIGRATION_COMPLETED.
    """

    success: bool
    status: IntegrationStatus
    mode: DataMode
    error_code: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "mode": self.mode.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class IntegrationConfig:
    """
    Configuration for the integration controller.

    Attributes:
        balance_tolerance: Max balance difference accepted when verifying
            migrated data (default 0.01).
        base_estimate_seconds: Fixed part of the duration estimate.
        seconds_per_transaction: Estimated cost of one transaction.
        seconds_per_account: Estimated cost of one account.
        transition_drain_timeout: Seconds to wait for in-flight CRUD calls
            before a mode transition (None waits indefinitely).
    """

    balance_tolerance: float = 0.01
    base_estimate_seconds: float = 2.0
    seconds_per_transaction: float = 0.01
    seconds_per_account: float = 0.1
    transition_drain_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.balance_tolerance < 0:
            raise ValueError(f"balance_tolerance must be >= 0, got {self.balance_tolerance}")

        for name in ("base_estimate_seconds", "seconds_per_transaction", "seconds_per_account"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

        if self.transition_drain_timeout is not None and self.transition_drain_timeout <= 0:
            raise ValueError(
                f"transition_drain_timeout must be > 0, got {self.transition_drain_timeout}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance_tolerance": self.balance_tolerance,
            "base_estimate_seconds": self.base_estimate_seconds,
            "seconds_per_transaction": self.seconds_per_transaction,
            "seconds_per_account": self.seconds_per_account,
            "transition_drain_timeout": self.transition_drain_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IntegrationConfig:
        return cls(
            balance_tolerance=data.get("balance_tolerance", 0.01),
            base_estimate_seconds=data.get("base_estimate_seconds", 2.0),
            seconds_per_transaction=data.get("seconds_per_transaction", 0.01),
            seconds_per_account=data.get("seconds_per_account", 0.1),
            transition_drain_timeout=data.get("transition_drain_timeout"),
        )


__all__ = [
    # Enums
    "DataMode",
    "IntegrationStatus",
    "ValidationSeverity",
    "WriteOutcome",
    # Configuration
    "IntegrationConfig",
    # Core models
    "ValidationIssue",
    "has_blocking_issues",
    "MigrationProgress",
    "ProgressCallback",
    "UnifiedUserData",
    "IntegrationState",
    "StateListener",
    "MigrationAssessment",
    "WriteResult",
    "MigrationResult",
    "RollbackResult",
]

"""
Migration-specific exceptions for the ledgermigrate migration system.

Exception Hierarchy:
    MigrationError (base)
    +-- NotReadyError
    |   +-- MigrationInProgressError
    +-- ValidationBlockedError
    +-- ExecutorError
    |   +-- ExecutorWriteError
    |   +-- ExecutorSerializationError
    |   +-- NoSourceDataError
    |   +-- MigrationVerificationError
    +-- ArchiveError

Every error carries an ErrorClassification with a stable error code, so
result objects can report failures without holding on to the exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ledgermigrate.migration.models import IntegrationStatus, ValidationIssue


@dataclass(frozen=True)
class ErrorClassification:
    """
    Metadata describing an error type.

    Attributes:
        error_code: Unique error code for programmatic handling.
        category: Error category for grouping related errors.
        recoverable: Whether retrying after operator action can succeed.
        suggested_action: Human-readable guidance.
    """

    error_code: str
    category: str
    recoverable: bool = False
    suggested_action: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "category": self.category,
            "recoverable": self.recoverable,
            "suggested_action": self.suggested_action,
        }


class MigrationError(Exception):
    """
    Base exception for all migration-related errors.

    Attributes:
        message: Human-readable error description.
        suggested_action: Suggested action for recovery.
    """

    _default_classification: ErrorClassification = ErrorClassification(
        error_code="MIGRATION_ERROR",
        category="general",
        suggested_action="Review migration logs",
    )

    def __init__(self, message: str, *, suggested_action: str | None = None) -> None:
        self.message = message
        self.suggested_action = suggested_action or self._default_classification.suggested_action
        super().__init__(message)

    @property
    def classification(self) -> ErrorClassification:
        return self._default_classification

    @property
    def error_code(self) -> str:
        """
        Get the unique error code for this exception.

        Returns:
            String error code (e.g., "NOT_READY").
        """
        return self.classification.error_code

    @property
    def recoverable(self) -> bool:
        return self.classification.recoverable

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggested_action": self.suggested_action,
            "classification": self.classification.to_dict(),
        }


class NotReadyError(MigrationError):
    """
    Raised when an operation is attempted outside its required status.

    Precondition violations never change controller state.

    Attributes:
        operation: The operation that was attempted.
        current_status: The status the controller was in.
    """

    _default_classification = ErrorClassification(
        error_code="NOT_READY",
        category="state",
        recoverable=True,
        suggested_action="Run assess_migration_readiness() and retry once the status is Ready",
    )

    def __init__(
        self,
        operation: str,
        current_status: IntegrationStatus,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.current_status = current_status
        super().__init__(
            message
            or f"Integration not ready: cannot {operation} while status is "
            f"{current_status.value}"
        )


class MigrationInProgressError(NotReadyError):
    """Raised when a second transition is requested while one is running."""

    _default_classification = ErrorClassification(
        error_code="MIGRATION_IN_PROGRESS",
        category="state",
        recoverable=True,
        suggested_action="Wait for the running migration to finish",
    )

    def __init__(self, operation: str, current_status: IntegrationStatus) -> None:
        super().__init__(
            operation,
            current_status,
            f"Integration not ready: a migration transition is already in progress "
            f"({operation} rejected)",
        )


class ValidationBlockedError(MigrationError):
    """
    Raised when critical validation issues prevent migration.

    Attributes:
        issues: The blocking issues that were found.
    """

    _default_classification = ErrorClassification(
        error_code="VALIDATION_BLOCKED",
        category="validation",
        recoverable=True,
        suggested_action="Fix the critical issues in the legacy data and re-assess",
    )

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(f"Migration blocked by {len(issues)} critical issue(s)")


class ExecutorError(MigrationError):
    """Base exception for failures inside the MigrationExecutor."""

    _default_classification = ErrorClassification(
        error_code="EXECUTOR_ERROR",
        category="executor",
    )


class ExecutorWriteError(ExecutorError):
    """
    Raised when a store write or delete fails during migration or rollback.

    Attributes:
        key: Storage key involved, if known.
    """

    _default_classification = ErrorClassification(
        error_code="EXECUTOR_WRITE_FAILED",
        category="executor",
        recoverable=True,
        suggested_action="Check local storage availability and retry",
    )

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class ExecutorSerializationError(ExecutorError):
    """Raised when a record cannot be encoded or decoded."""

    _default_classification = ErrorClassification(
        error_code="EXECUTOR_SERIALIZATION_FAILED",
        category="executor",
        suggested_action="Inspect the stored record for corrupt or non-finite values",
    )

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class NoSourceDataError(ExecutorError):
    """
    Raised when there is nothing to migrate or roll back from.

    Attributes:
        source: Which schema was expected to hold data ("legacy" or
            "privacy_first").
    """

    _default_classification = ErrorClassification(
        error_code="NO_SOURCE_DATA",
        category="executor",
    )

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"No {source} data found")


class MigrationVerificationError(ExecutorError):
    """
    Raised when the constructed records do not match the source record.

    Nothing is written when verification fails.

    Attributes:
        issues: The post-migration issues that were found.
    """

    _default_classification = ErrorClassification(
        error_code="MIGRATION_VERIFICATION_FAILED",
        category="executor",
        suggested_action="Report the mismatch; the legacy record is unchanged",
    )

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        details = "; ".join(issue.description for issue in issues)
        super().__init__(f"Migrated data failed verification: {details}")


class ArchiveError(MigrationError):
    """
    Raised when the pre-migration archive cannot be written.

    Archive failures do not undo a successful migration.
    """

    _default_classification = ErrorClassification(
        error_code="ARCHIVE_FAILED",
        category="archive",
        recoverable=True,
        suggested_action="Retry archiving; the legacy record is still in place",
    )

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


__all__ = [
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
]

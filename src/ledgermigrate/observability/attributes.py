"""
Standard span attributes for ledgermigrate.

Attribute constants shared by all components so that spans carry
consistent names.

Example:
    >>> from ledgermigrate.observability.attributes import ATTR_DATA_MODE
    >>>
    >>> with tracer.span(
    ...     "ledgermigrate.router.add_transaction",
    ...     {ATTR_DATA_MODE: mode.value},
    ... ):
    ...     pass
"""

# =============================================================================
# Integration Attributes
# =============================================================================

ATTR_DATA_MODE = "ledgermigrate.data_mode"
"""Active data architecture mode (legacy, privacy_first, migrating)."""

ATTR_INTEGRATION_STATUS = "ledgermigrate.integration.status"
"""Integration state machine status."""

ATTR_USER_ID = "ledgermigrate.user.id"
"""Identifier of the user whose dataset is touched (UUID string)."""

# =============================================================================
# Record Attributes
# =============================================================================

ATTR_TRANSACTION_ID = "ledgermigrate.transaction.id"
"""Identifier of a transaction (UUID string)."""

ATTR_TRANSACTION_COUNT = "ledgermigrate.transaction.count"
"""Number of transactions in a record (integer)."""

ATTR_ACCOUNT_COUNT = "ledgermigrate.account.count"
"""Number of accounts in a record (integer)."""

ATTR_STORAGE_KEY = "ledgermigrate.storage.key"
"""Storage key read or written (string)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_ISSUE_COUNT = "ledgermigrate.validation.issue_count"
"""Number of validation issues found (integer)."""

ATTR_BLOCKING = "ledgermigrate.validation.blocking"
"""Whether validation found blocking issues (boolean)."""

ATTR_ARCHIVE_KEY = "ledgermigrate.archive.key"
"""Key under which a legacy snapshot was archived (string)."""

ATTR_MIGRATION_SUCCESS = "ledgermigrate.migration.success"
"""Whether a migration or rollback succeeded (boolean)."""


__all__ = [
    "ATTR_DATA_MODE",
    "ATTR_INTEGRATION_STATUS",
    "ATTR_USER_ID",
    "ATTR_TRANSACTION_ID",
    "ATTR_TRANSACTION_COUNT",
    "ATTR_ACCOUNT_COUNT",
    "ATTR_STORAGE_KEY",
    "ATTR_ISSUE_COUNT",
    "ATTR_BLOCKING",
    "ATTR_ARCHIVE_KEY",
    "ATTR_MIGRATION_SUCCESS",
]

"""
ledgermigrate - Local ledger migration from a legacy to a privacy-first schema.

This library provides:
- Pydantic record models for both storage schemas
- Store interfaces with in-memory and SQLite (aiosqlite) backends
- A migration controller with validation, big-bang migration, archival
  and rollback
- A mode-agnostic CRUD facade that stays usable before, during and after
  the migration
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ledgermigrate")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from ledgermigrate.exceptions import (
    KeyExistsError,
    LedgerMigrateError,
    RecordNotFoundError,
    StorageError,
    StorageSerializationError,
)
from ledgermigrate.migration import (
    ArchiveStore,
    DataMode,
    IntegrationConfig,
    IntegrationController,
    IntegrationState,
    IntegrationStatus,
    MigrationAssessment,
    MigrationProgress,
    MigrationResult,
    RollbackResult,
    UnifiedUserData,
    ValidationIssue,
    ValidationSeverity,
    WriteResult,
)
from ledgermigrate.models import (
    Account,
    AccountType,
    FinancialData,
    LegacyUserData,
    Transaction,
    UserProfile,
)
from ledgermigrate.stores import (
    InMemoryKeyValueStore,
    InMemoryLegacyStore,
    InMemoryPrivacyFirstStore,
    KeyValueLegacyStore,
    KeyValuePrivacyFirstStore,
    SQLiteKeyValueStore,
    StorageKeys,
)

__all__ = [
    "__version__",
    # Exceptions
    "LedgerMigrateError",
    "StorageError",
    "StorageSerializationError",
    "KeyExistsError",
    "RecordNotFoundError",
    # Records
    "Account",
    "AccountType",
    "Transaction",
    "LegacyUserData",
    "UserProfile",
    "FinancialData",
    # Stores
    "StorageKeys",
    "KeyValueLegacyStore",
    "KeyValuePrivacyFirstStore",
    "SQLiteKeyValueStore",
    "InMemoryKeyValueStore",
    "InMemoryLegacyStore",
    "InMemoryPrivacyFirstStore",
    # Migration
    "ArchiveStore",
    "IntegrationController",
    "IntegrationConfig",
    "IntegrationState",
    "IntegrationStatus",
    "DataMode",
    "MigrationAssessment",
    "MigrationProgress",
    "MigrationResult",
    "RollbackResult",
    "UnifiedUserData",
    "ValidationIssue",
    "ValidationSeverity",
    "WriteResult",
]

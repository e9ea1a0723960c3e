"""Library exceptions for the ledgermigrate package."""


class LedgerMigrateError(Exception):
    """Base exception for ledgermigrate library."""

    pass


class StorageError(LedgerMigrateError):
    """Raised when a storage backend fails to read or write a record."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Storage error for key {key!r}: {message}")


class StorageSerializationError(StorageError):
    """Raised when a stored record cannot be encoded or decoded."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(key, f"serialization failed: {message}")


class KeyExistsError(StorageError):
    """
    Raised by write-once operations when the key is already present.

    Write-once keys (archives) are never overwritten; callers are expected
    to pick another key.

    Attributes:
        key: The key that already exists
    """

    def __init__(self, key: str) -> None:
        super().__init__(key, "key already exists")


class RecordNotFoundError(LedgerMigrateError):
    """Raised when a record required by an operation does not exist."""

    def __init__(self, record_type: str, key: str | None = None) -> None:
        self.record_type = record_type
        self.key = key
        key_info = f" at {key!r}" if key else ""
        super().__init__(f"{record_type} not found{key_info}")


__all__ = [
    "LedgerMigrateError",
    "StorageError",
    "StorageSerializationError",
    "KeyExistsError",
    "RecordNotFoundError",
]

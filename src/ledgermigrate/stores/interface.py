"""
Storage interfaces consumed by the migration core.

This module provides:
- StorageKeys: Configuration of the keys each schema is persisted under
- KeyValueStore: Generic byte-oriented persistence (also used for archives)
- LegacyStore: Load/save of the single legacy aggregate record
- PrivacyFirstStore: Load/save of the split profile + financial-data records

The migration core only talks to these abstractions. Encoding is left to
the implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ledgermigrate.models import FinancialData, LegacyUserData, UserProfile


@dataclass(frozen=True)
class StorageKeys:
    """
    Keys under which each record is persisted.

    Attributes:
        legacy: Key of the legacy aggregate record.
        profile: Key of the privacy-first user profile.
        financial_data: Key of the privacy-first financial-data record.
        archive_prefix: Prefix for write-once pre-migration archives.

    Example:
        >>> keys = StorageKeys(legacy="UserData")
        >>> keys.archive_prefix
        'UserData_PreMigration'
    """

    legacy: str = "UserData"
    profile: str = "UserProfile"
    financial_data: str = "LocalFinancialData"
    archive_prefix: str = "UserData_PreMigration"

    def __post_init__(self) -> None:
        """Validate that keys are non-empty and distinct."""
        keys = [self.legacy, self.profile, self.financial_data, self.archive_prefix]
        if any(not key for key in keys):
            raise ValueError("storage keys must be non-empty")
        if len(set(keys)) != len(keys):
            raise ValueError(f"storage keys must be distinct, got {keys}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "legacy": self.legacy,
            "profile": self.profile,
            "financial_data": self.financial_data,
            "archive_prefix": self.archive_prefix,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageKeys:
        return cls(
            legacy=data.get("legacy", "UserData"),
            profile=data.get("profile", "UserProfile"),
            financial_data=data.get("financial_data", "LocalFinancialData"),
            archive_prefix=data.get("archive_prefix", "UserData_PreMigration"),
        )


class KeyValueStore(ABC):
    """
    Abstract byte-oriented key-value persistence.

    Multi-key operations (put_many, delete_many) must be atomic: either
    every key is written/removed or none is.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """
        Get the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored bytes, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """
        Store a value, replacing any existing value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def put_new(self, key: str, value: bytes) -> None:
        """
        Store a value under a key that must not exist yet.

        Raises:
            KeyExistsError: If the key is already present
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def put_many(self, items: Mapping[str, bytes]) -> None:
        """
        Atomically store several values.

        Raises:
            StorageError: If the write fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def delete_many(self, keys: Sequence[str]) -> int:
        """
        Atomically remove several keys.

        Returns:
            Number of keys that existed and were removed

        Raises:
            StorageError: If the delete fails (nothing is removed)
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """
        List stored keys starting with prefix, sorted.

        Args:
            prefix: Key prefix to filter by (default: all keys)
        """
        pass


class LegacyStore(ABC):
    """Persistence of the legacy aggregate record."""

    @abstractmethod
    async def load(self) -> LegacyUserData | None:
        """
        Load the legacy record.

        Returns:
            The record, or None if none is stored

        Raises:
            StorageSerializationError: If the stored record cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save(self, record: LegacyUserData) -> None:
        """
        Persist the legacy record, replacing the previous one.

        Raises:
            StorageSerializationError: If the record cannot be encoded
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def exists(self) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> None:
        """
        Remove the legacy record. A no-op when none is stored.

        Raises:
            StorageError: If the delete fails
        """
        pass


class PrivacyFirstStore(ABC):
    """
    Persistence of the privacy-first profile and financial-data records.

    The two records live under separate keys but save() and clear() treat
    them as one unit.
    """

    @abstractmethod
    async def load_profile(self) -> UserProfile | None:
        pass

    @abstractmethod
    async def load_financial_data(self) -> FinancialData | None:
        pass

    @abstractmethod
    async def save(self, profile: UserProfile, financial: FinancialData) -> None:
        """
        Atomically persist both records.

        Raises:
            StorageSerializationError: If either record cannot be encoded
                (nothing is written)
            StorageError: If the write fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> None:
        pass

    @abstractmethod
    async def save_financial_data(self, financial: FinancialData) -> None:
        pass

    @abstractmethod
    async def exists(self) -> bool:
        """Check whether a privacy-first profile record is stored."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """
        Atomically remove both records.

        Raises:
            StorageError: If the delete fails (nothing is removed)
        """
        pass


__all__ = [
    "StorageKeys",
    "KeyValueStore",
    "LegacyStore",
    "PrivacyFirstStore",
]

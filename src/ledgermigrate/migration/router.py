"""
DataModeRouter - Routes CRUD operations to the store of the active mode.

The router is a dispatch table keyed by DataMode. Both steady-state modes
are served by a ModeBackend with the same interface, so every operation
defined for the legacy schema has an equivalent for the privacy-first
schema and vice versa.

Routing Behavior by Mode:
    - LEGACY: Ledger read from and written to the legacy aggregate record
    - PRIVACY_FIRST: Ledger read from and written to the financial-data
      record, identity read from the profile record
    - MIGRATING: Reads return the empty/zero value, writes return
      WriteResult.rejected_migrating()

Writes are load-modify-save cycles and are serialized with an
asyncio.Lock so that concurrent writers do not lose each other's changes.

Usage:
    >>> router = DataModeRouter(legacy_store, privacy_store)
    >>> result = await router.add_transaction(DataMode.LEGACY, txn)
    >>> result.success
    True
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from uuid import UUID

from ledgermigrate.exceptions import RecordNotFoundError, StorageError
from ledgermigrate.migration.models import DataMode, UnifiedUserData, WriteResult
from ledgermigrate.models import Account, LedgerRecord, Transaction
from ledgermigrate.observability import (
    ATTR_DATA_MODE,
    ATTR_TRANSACTION_ID,
    Tracer,
    create_tracer,
)
from ledgermigrate.stores.interface import LegacyStore, PrivacyFirstStore

logger = logging.getLogger(__name__)


class ModeBackend(ABC):
    """
    Access to the ledger and identity of one schema.

    Implementations must be symmetric: the router never branches on which
    backend it is talking to.
    """

    mode: DataMode

    @abstractmethod
    async def load_ledger(self) -> LedgerRecord | None:
        """Load the record holding transactions and accounts."""
        pass

    @abstractmethod
    async def save_ledger(self, ledger: LedgerRecord) -> None:
        """Persist a record previously returned by load_ledger()."""
        pass

    @abstractmethod
    async def load_identity(self) -> tuple[str, str] | None:
        """Load (name, email), or None if the schema holds no user."""
        pass


class LegacyBackend(ModeBackend):
    """Serves both ledger and identity from the legacy aggregate record."""

    mode = DataMode.LEGACY

    def __init__(self, store: LegacyStore) -> None:
        self._store = store

    async def load_ledger(self) -> LedgerRecord | None:
        return await self._store.load()

    async def save_ledger(self, ledger: LedgerRecord) -> None:
        await self._store.save(ledger)  # type: ignore[arg-type]

    async def load_identity(self) -> tuple[str, str] | None:
        record = await self._store.load()
        if record is None:
            return None
        return record.name, record.email


class PrivacyFirstBackend(ModeBackend):
    """Serves the ledger from financial data and identity from the profile."""

    mode = DataMode.PRIVACY_FIRST

    def __init__(self, store: PrivacyFirstStore) -> None:
        self._store = store

    async def load_ledger(self) -> LedgerRecord | None:
        return await self._store.load_financial_data()

    async def save_ledger(self, ledger: LedgerRecord) -> None:
        await self._store.save_financial_data(ledger)  # type: ignore[arg-type]

    async def load_identity(self) -> tuple[str, str] | None:
        profile = await self._store.load_profile()
        if profile is None:
            return None
        return profile.name, profile.email


class DataModeRouter:
    """
    Mode-agnostic CRUD over the legacy and privacy-first stores.

    The router holds no mode of its own; callers pass the mode the
    operation runs under.
    """

    def __init__(
        self,
        legacy_store: LegacyStore,
        privacy_store: PrivacyFirstStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._backends: dict[DataMode, ModeBackend] = {
            DataMode.LEGACY: LegacyBackend(legacy_store),
            DataMode.PRIVACY_FIRST: PrivacyFirstBackend(privacy_store),
        }
        self._write_lock = asyncio.Lock()

    def backend_for(self, mode: DataMode) -> ModeBackend | None:
        """Return the backend serving a mode, or None for MIGRATING."""
        return self._backends.get(mode)

    # =========================================================================
    # Reads
    # =========================================================================

    async def total_balance(self, mode: DataMode) -> float:
        ledger = await self._load_ledger(mode)
        return ledger.total_balance if ledger else 0.0

    async def transactions(self, mode: DataMode) -> list[Transaction]:
        ledger = await self._load_ledger(mode)
        return list(ledger.transactions) if ledger else []

    async def accounts(self, mode: DataMode) -> list[Account]:
        ledger = await self._load_ledger(mode)
        return list(ledger.accounts) if ledger else []

    async def user_data(self, mode: DataMode) -> UnifiedUserData | None:
        """
        Build the unified projection for a mode.

        Returns:
            The projection, or None while migrating or when the active
            schema holds no user.
        """
        backend = self._backends.get(mode)
        if backend is None:
            return None

        with self._tracer.span("ledgermigrate.router.user_data", {ATTR_DATA_MODE: mode.value}):
            identity = await backend.load_identity()
            if identity is None:
                return None
            ledger = await backend.load_ledger()

        name, email = identity
        return UnifiedUserData(
            mode=mode,
            name=name,
            email=email,
            total_balance=ledger.total_balance if ledger else 0.0,
            transaction_count=ledger.transaction_count if ledger else 0,
            account_count=ledger.account_count if ledger else 0,
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def add_transaction(self, mode: DataMode, transaction: Transaction) -> WriteResult:
        return await self._mutate(
            mode,
            "add_transaction",
            transaction.id,
            lambda ledger: ledger.with_transaction_added(transaction),
        )

    async def update_transaction(self, mode: DataMode, transaction: Transaction) -> WriteResult:
        return await self._mutate(
            mode,
            "update_transaction",
            transaction.id,
            lambda ledger: ledger.with_transaction_updated(transaction),
        )

    async def remove_transaction(self, mode: DataMode, transaction_id: UUID) -> WriteResult:
        return await self._mutate(
            mode,
            "remove_transaction",
            transaction_id,
            lambda ledger: ledger.with_transaction_removed(transaction_id),
        )

    async def _load_ledger(self, mode: DataMode) -> LedgerRecord | None:
        backend = self._backends.get(mode)
        if backend is None:
            return None
        return await backend.load_ledger()

    async def _mutate(
        self,
        mode: DataMode,
        operation: str,
        transaction_id: UUID,
        change: Callable[[LedgerRecord], LedgerRecord],
    ) -> WriteResult:
        backend = self._backends.get(mode)
        if backend is None:
            logger.warning("%s rejected: migration in progress", operation)
            return WriteResult.rejected_migrating()

        with self._tracer.span(
            f"ledgermigrate.router.{operation}",
            {ATTR_DATA_MODE: mode.value, ATTR_TRANSACTION_ID: str(transaction_id)},
        ):
            async with self._write_lock:
                try:
                    ledger = await backend.load_ledger()
                    if ledger is None:
                        return WriteResult.no_data(mode)
                    updated = change(ledger)
                    await backend.save_ledger(updated)
                except RecordNotFoundError as e:
                    return WriteResult.not_found(mode, str(e))
                except StorageError as e:
                    logger.error("%s failed in %s mode: %s", operation, mode.value, e)
                    return WriteResult.failed(mode, str(e))
                except ValueError as e:
                    return WriteResult.duplicate(mode, str(e))

            logger.debug("%s applied in %s mode (%s)", operation, mode.value, transaction_id)
            return WriteResult.applied(mode)


__all__ = [
    "DataModeRouter",
    "ModeBackend",
    "LegacyBackend",
    "PrivacyFirstBackend",
]

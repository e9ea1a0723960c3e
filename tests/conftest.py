"""
Shared pytest fixtures for the ledgermigrate tests.

This module provides:
- Sample record fixtures (legacy_record, user_id)
- Store fixtures (kv_store, legacy_store, privacy_store, archive)
- Controller fixtures (controller, ready_controller)
- SQLite fixtures (sqlite_path)

Stores are in-memory unless a test asks for SQLite explicitly.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest

from ledgermigrate.migration import ArchiveStore, IntegrationController
from ledgermigrate.models import LegacyUserData
from ledgermigrate.observability import MockTracer
from ledgermigrate.stores import (
    InMemoryKeyValueStore,
    KeyValueLegacyStore,
    KeyValuePrivacyFirstStore,
)
from tests.fixtures import make_legacy_record

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for tests."""
    config.addinivalue_line("markers", "sqlite: marks tests that require SQLite (aiosqlite)")


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def legacy_record(user_id: UUID) -> LegacyUserData:
    """
    Provide a valid legacy record.

    Three transactions (100.00, 50.00, -29.50) totalling 120.50, all booked
    against one default account.
    """
    return make_legacy_record(user_id=user_id)


@pytest.fixture
def tracer() -> MockTracer:
    return MockTracer()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Provide a fresh in-memory key-value store."""
    return InMemoryKeyValueStore(enable_tracing=False)


@pytest.fixture
def legacy_store(kv_store: InMemoryKeyValueStore) -> KeyValueLegacyStore:
    return KeyValueLegacyStore(kv_store, enable_tracing=False)


@pytest.fixture
def privacy_store(kv_store: InMemoryKeyValueStore) -> KeyValuePrivacyFirstStore:
    return KeyValuePrivacyFirstStore(kv_store, enable_tracing=False)


@pytest.fixture
def archive(kv_store: InMemoryKeyValueStore) -> ArchiveStore:
    return ArchiveStore(kv_store, enable_tracing=False)


# =============================================================================
# Controller Fixtures
# =============================================================================


@pytest.fixture
async def controller(
    legacy_store: KeyValueLegacyStore,
    privacy_store: KeyValuePrivacyFirstStore,
    archive: ArchiveStore,
    legacy_record: LegacyUserData,
) -> IntegrationController:
    """Provide an initialized controller over a stored legacy record."""
    await legacy_store.save(legacy_record)
    return await IntegrationController.create(
        legacy_store,
        privacy_store,
        archive,
        enable_tracing=False,
    )


@pytest.fixture
async def ready_controller(controller: IntegrationController) -> IntegrationController:
    """Provide a controller that has been assessed as READY."""
    await controller.assess_migration_readiness()
    return controller


# =============================================================================
# SQLite Fixtures
# =============================================================================


@pytest.fixture
def sqlite_path() -> Iterator[str]:
    """Provide a database file path inside a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "ledger.db")

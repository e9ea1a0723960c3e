"""
Shared test fixtures for ledgermigrate tests.

Re-exports the record factories and fault-injecting stores so tests can
import them from one place:

    from tests.fixtures import make_legacy_record, FailingPrivacyFirstStore
"""

from tests.fixtures.records import (
    FailingKeyValueStore,
    FailingPrivacyFirstStore,
    make_account,
    make_legacy_record,
    make_privacy_records,
    make_transaction,
)

__all__ = [
    "make_account",
    "make_transaction",
    "make_legacy_record",
    "make_privacy_records",
    "FailingPrivacyFirstStore",
    "FailingKeyValueStore",
]

"""
Storage collaborators for ledgermigrate.

This module provides:
- Interfaces: KeyValueStore, LegacyStore, PrivacyFirstStore, StorageKeys
- Record stores on top of any KeyValueStore
- In-memory implementations for testing
- An aiosqlite-backed KeyValueStore for durable local storage

Example:
    >>> from ledgermigrate.stores import (
    ...     KeyValueLegacyStore,
    ...     KeyValuePrivacyFirstStore,
    ...     SQLiteKeyValueStore,
    ... )
    >>>
    >>> kv = SQLiteKeyValueStore("ledger.db")
    >>> await kv.initialize()
    >>> legacy = KeyValueLegacyStore(kv)
"""

from ledgermigrate.stores.in_memory import (
    InMemoryKeyValueStore,
    InMemoryLegacyStore,
    InMemoryPrivacyFirstStore,
)
from ledgermigrate.stores.interface import (
    KeyValueStore,
    LegacyStore,
    PrivacyFirstStore,
    StorageKeys,
)
from ledgermigrate.stores.keyvalue import (
    KeyValueLegacyStore,
    KeyValuePrivacyFirstStore,
    decode_record,
    encode_record,
)
from ledgermigrate.stores.sqlite import SQLiteKeyValueStore

__all__ = [
    # Interfaces
    "StorageKeys",
    "KeyValueStore",
    "LegacyStore",
    "PrivacyFirstStore",
    # Key-value record stores
    "KeyValueLegacyStore",
    "KeyValuePrivacyFirstStore",
    "encode_record",
    "decode_record",
    # Implementations
    "InMemoryKeyValueStore",
    "InMemoryLegacyStore",
    "InMemoryPrivacyFirstStore",
    "SQLiteKeyValueStore",
]

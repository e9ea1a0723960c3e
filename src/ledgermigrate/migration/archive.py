"""
ArchiveStore - Write-once snapshots of the pre-migration legacy record.

Archives are stored as JSON envelopes under
``"<archive_prefix>_<epoch seconds>"``. An existing archive is never
overwritten: if the key is taken (two migrations within the same second),
``_1``, ``_2``, ... suffixes are tried until a free key is found.

Archives exist for manual recovery only; nothing in the migration core
reads them back.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ledgermigrate.exceptions import KeyExistsError, StorageError
from ledgermigrate.migration.exceptions import ArchiveError
from ledgermigrate.models import LegacyUserData
from ledgermigrate.observability import (
    ATTR_ARCHIVE_KEY,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from ledgermigrate.serialization import json_dumps
from ledgermigrate.stores.interface import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


class ArchiveStore:
    """
    Appends timestamp-keyed copies of legacy records to a KeyValueStore.

    Example:
        >>> archive = ArchiveStore(kv_store)
        >>> key = await archive.archive(legacy_record, datetime.now(UTC))
        >>> key
        'UserData_PreMigration_1700000000'
    """

    def __init__(
        self,
        kv: KeyValueStore,
        keys: StorageKeys | None = None,
        *,
        max_collision_suffix: int = 1000,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the archive store.

        Args:
            kv: Key-value store the archives are written to
            keys: Storage key configuration (archive prefix, legacy key)
            max_collision_suffix: Highest suffix tried before giving up
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing
        """
        if max_collision_suffix < 1:
            raise ValueError(f"max_collision_suffix must be >= 1, got {max_collision_suffix}")
        self._kv = kv
        self._keys = keys or StorageKeys()
        self._max_collision_suffix = max_collision_suffix
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def prefix(self) -> str:
        return self._keys.archive_prefix

    def base_key(self, migrated_at: datetime) -> str:
        return f"{self.prefix}_{int(migrated_at.timestamp())}"

    async def archive(self, record: LegacyUserData, migrated_at: datetime) -> str:
        """
        Write a new archive of the record.

        Args:
            record: The pre-migration legacy record
            migrated_at: Migration timestamp used for the key

        Returns:
            The key the archive was written under

        Raises:
            ArchiveError: If the record cannot be encoded, the store fails,
                or no free key is left
        """
        with self._tracer.span(
            "ledgermigrate.archive.write",
            {ATTR_USER_ID: str(record.id)},
        ) as span:
            base_key = self.base_key(migrated_at)
            try:
                payload = json_dumps(
                    {
                        "archived_at": migrated_at,
                        "source_key": self._keys.legacy,
                        "record": record.model_dump(),
                    }
                ).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise ArchiveError(f"Could not encode archive: {e}", base_key) from e

            for attempt in range(self._max_collision_suffix + 1):
                key = base_key if attempt == 0 else f"{base_key}_{attempt}"
                try:
                    await self._kv.put_new(key, payload)
                except KeyExistsError:
                    logger.debug("Archive key %s taken, trying next suffix", key)
                    continue
                except StorageError as e:
                    raise ArchiveError(f"Could not write archive: {e}", key) from e

                if span is not None:
                    span.set_attribute(ATTR_ARCHIVE_KEY, key)
                logger.info("Archived legacy record %s under %s", record.id, key)
                return key

            raise ArchiveError(
                f"No free archive key after {self._max_collision_suffix} suffixes",
                base_key,
            )

    async def archive_keys(self) -> list[str]:
        """
        List existing archive keys, sorted.

        Intended for operators inspecting what can be recovered.
        """
        return await self._kv.keys(f"{self.prefix}_")


__all__ = [
    "ArchiveStore",
]

"""JSON mapping between cast records and raw key-value store entries."""

import json
import logging
from typing import List, Optional

from cast_mirror.models.record import CastRecord
from cast_mirror.storage.kv_store import KVStore

logger = logging.getLogger(__name__)

# Reserved key holding the rate limiter's call timestamps; never a cast hash.
RATE_LIMIT_KEY = "api_calls"
RESERVED_KEYS = frozenset({RATE_LIMIT_KEY})


class CastRepository:
    """Reads and writes :class:`CastRecord` objects through a :class:`KVStore`."""

    def __init__(self, store: KVStore):
        self.store = store

    def get(self, cast_id: str) -> Optional[CastRecord]:
        """
        Load one cast.

        Returns:
            The decoded record, or None if no entry exists or the id is a
            reserved key

        Raises:
            StoreFailure: If the store read fails
            ValueError: If the stored entry is not a valid cast
        """
        if cast_id in RESERVED_KEYS:
            return None
        raw = self.store.get(cast_id)
        if raw is None:
            return None
        return CastRecord.from_stored(json.loads(raw))

    def put(self, record: CastRecord) -> None:
        """Persist a cast under its hash."""
        if record.id in RESERVED_KEYS:
            raise ValueError(f"Cast id {record.id!r} collides with a reserved key")
        self.store.put(record.id, json.dumps(record.to_stored()))

    def list_ids(self) -> List[str]:
        """List every cast hash in the store, excluding reserved keys."""
        return [key for key in self.store.list_keys() if key not in RESERVED_KEYS]

    def list_all(self) -> List[CastRecord]:
        """
        Load every cast in the store.

        Entries that vanish between listing and reading are skipped, as are
        entries that cannot be decoded (logged). Store failures propagate.
        """
        records = []
        for cast_id in self.list_ids():
            try:
                record = self.get(cast_id)
            except ValueError as e:
                logger.error(f"Skipping undecodable cast {cast_id}: {str(e)}")
                continue
            if record is not None:
                records.append(record)
        return records

"""Ranked read view over stored casts."""

import logging
from typing import List

from cast_mirror.exceptions import NotFound
from cast_mirror.models.record import CastRecord
from cast_mirror.storage.cast_repository import CastRepository

logger = logging.getLogger(__name__)


def rank(records: List[CastRecord]) -> List[CastRecord]:
    """Order casts by votes, most first; ties go to the most recently updated."""
    return sorted(records, key=lambda r: (r.votes, r.last_updated), reverse=True)


class ReadService:
    """Serves stored casts to readers."""

    def __init__(self, repository: CastRepository):
        self.repository = repository

    def list_ranked(self) -> List[CastRecord]:
        """
        Load every stored cast and rank it.

        Raises:
            StoreFailure: If the store cannot be listed or read
        """
        records = rank(self.repository.list_all())
        logger.debug(f"Serving {len(records)} ranked casts")
        return records

    def get(self, cast_id: str) -> CastRecord:
        """
        Load a single cast.

        Raises:
            NotFound: If no cast is stored under ``cast_id``
        """
        record = self.repository.get(cast_id)
        if record is None:
            raise NotFound(f"No cast stored for hash {cast_id}")
        return record

"""Vote mutation on stored casts."""

import logging
import time
from dataclasses import replace
from typing import Callable, Union

from cast_mirror.exceptions import InvalidRequest, NotFound
from cast_mirror.models.record import CastRecord, VoteDirection, timestamp_from_epoch
from cast_mirror.storage.cast_repository import CastRepository

logger = logging.getLogger(__name__)


def parse_direction(action: Union[str, VoteDirection]) -> VoteDirection:
    """
    Map a request's ``action`` string onto a vote direction.

    Raises:
        InvalidRequest: If the action is neither 'upvote' nor 'downvote'
    """
    try:
        return VoteDirection(action)
    except ValueError:
        raise InvalidRequest(f"Invalid action {action!r}; expected 'upvote' or 'downvote'")


class VoteMutator:
    """
    Applies single vote events to stored casts.

    Each vote is a read-modify-write of one key. Concurrent votes on the same
    cast can therefore lose an increment; the store offers no compare-and-swap.
    """

    def __init__(
        self,
        repository: CastRepository,
        clock: Callable[[], float] = time.time,
        prometheus_exporter=None,
    ):
        self.repository = repository
        self.clock = clock
        self.prometheus_exporter = prometheus_exporter

    def vote(self, cast_id: str, direction: VoteDirection) -> CastRecord:
        """
        Add one vote to a cast.

        Args:
            cast_id: Hash of the cast
            direction: Up adds one, down subtracts one (no floor)

        Returns:
            The updated record

        Raises:
            NotFound: If no cast is stored under ``cast_id``
            StoreFailure: If the store read or write fails
        """
        existing = self.repository.get(cast_id)
        if existing is None:
            logger.info(f"Vote on unknown cast {cast_id}")
            raise NotFound(f"No cast stored for hash {cast_id}")

        now = timestamp_from_epoch(self.clock())
        updated = replace(
            existing,
            votes=existing.votes + direction.delta,
            last_updated=max(now, existing.last_updated),
        )
        self.repository.put(updated)

        logger.info(f"Recorded {direction.value} on cast {cast_id}: {existing.votes} -> {updated.votes}")
        if self.prometheus_exporter:
            self.prometheus_exporter.record_vote(direction.value)
        return updated

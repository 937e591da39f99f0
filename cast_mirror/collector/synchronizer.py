"""Sync cycle: fetch the upstream feed and reconcile it with the store."""

import logging
import time
from typing import Any, Callable

from cast_mirror.collector.feed_client import FeedClient
from cast_mirror.collector.merge import extract_cast_id, merge
from cast_mirror.collector.rate_limiter import RateLimiter
from cast_mirror.exceptions import CastMirrorError, RateLimitExceeded
from cast_mirror.models.record import MergeAction, SyncResult, timestamp_from_epoch
from cast_mirror.storage.cast_repository import CastRepository

logger = logging.getLogger(__name__)


class CastSynchronizer:
    """Runs one polling cycle: rate limit gate, fetch, merge, verify, count."""

    def __init__(
        self,
        repository: CastRepository,
        rate_limiter: RateLimiter,
        feed_client: FeedClient,
        clock: Callable[[], float] = time.time,
        prometheus_exporter=None,
    ):
        """
        Initialize the synchronizer.

        Args:
            repository: Cast repository over the shared store
            rate_limiter: Gate for upstream API calls
            feed_client: Client for the upstream feed
            clock: Source of the current epoch time in seconds
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.repository = repository
        self.rate_limiter = rate_limiter
        self.feed_client = feed_client
        self.clock = clock
        self.prometheus_exporter = prometheus_exporter

    async def run_once(self) -> SyncResult:
        """
        Run a single sync cycle.

        Returns:
            Counts of inserted, updated, skipped and verified casts plus the
            per-item failures

        Raises:
            RateLimitExceeded: If the rate limiter denied the upstream call
            UpstreamUnauthorized: If the feed rejected the API key
            UpstreamFailure: On any other upstream error
        """
        cycle_start = time.monotonic()

        if not self.rate_limiter.try_acquire():
            self._record_cycle("rate_limited")
            raise RateLimitExceeded()

        try:
            casts = await self.feed_client.fetch_casts()
        except CastMirrorError as e:
            logger.error(f"Sync cycle aborted: {e.kind}: {e.detail}")
            self._record_cycle(e.kind)
            raise

        result = SyncResult()
        for index, fetched in enumerate(casts):
            self._process_item(index, fetched, result)

        result.duration_sec = round(time.monotonic() - cycle_start, 3)
        logger.info(
            f"Processed {result.inserted} new casts, updated {result.updated} casts, "
            f"skipped {result.skipped} unchanged, verified {result.verified} casts, "
            f"{result.failed} failures in {result.duration_sec:.2f}s"
        )

        if self.prometheus_exporter:
            self.prometheus_exporter.record_sync_result(result)
            try:
                self.prometheus_exporter.set_known_casts(len(self.repository.list_ids()))
            except CastMirrorError as e:
                logger.warning(f"Could not count stored casts for metrics: {e.detail}")
        self._record_cycle("success")
        return result

    def _process_item(self, index: int, fetched: Any, result: SyncResult) -> None:
        """Merge one fetched cast into the store, recording any failure on the result."""
        cast_id = f"#{index}"
        try:
            cast_id = extract_cast_id(fetched)
            logger.debug(f"Processing cast: {cast_id}")

            existing = self.repository.get(cast_id)
            outcome = merge(existing, fetched, timestamp_from_epoch(self.clock()))

            if outcome.action is MergeAction.INSERT:
                logger.debug(f"Storing new cast: {cast_id}")
                self.repository.put(outcome.record)
                result.inserted += 1
            elif outcome.action is MergeAction.UPDATE:
                logger.debug(f"Updating existing cast: {cast_id}")
                self.repository.put(outcome.record)
                result.updated += 1
            else:
                result.skipped += 1

            stored = self.repository.get(cast_id)
            if stored is None:
                logger.error(f"Failed to verify cast {cast_id}: not found after write")
                result.record_failure(cast_id, "verification failed: cast missing after write")
            elif stored.to_stored() != outcome.record.to_stored():
                logger.error(f"Failed to verify cast {cast_id}: stored value differs from written value")
                result.record_failure(cast_id, "verification failed: stored cast differs from written cast")
            else:
                result.verified += 1

        except CastMirrorError as e:
            logger.error(f"Error processing cast {cast_id}: {e.detail}")
            result.record_failure(cast_id, e.detail)
        except (ValueError, TypeError) as e:
            logger.error(f"Error processing cast {cast_id}: {str(e)}")
            result.record_failure(cast_id, str(e))

    def _record_cycle(self, outcome: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_sync_cycle(outcome)

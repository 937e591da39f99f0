"""Sliding-window rate limiting for upstream feed API calls."""

import json
import logging
import time
from typing import Callable, List, Optional

from cast_mirror.config import RateLimitConfig
from cast_mirror.exceptions import StoreFailure
from cast_mirror.storage.cast_repository import RATE_LIMIT_KEY
from cast_mirror.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Rate limiter for upstream feed API requests.

    Keeps the timestamps of admitted calls under a reserved store key, so the
    budget is shared by every process that points at the same store. The
    read-modify-write on that key is not atomic: two cycles racing on it can
    both be admitted and slightly exceed the limit.
    """

    def __init__(
        self,
        store: KVStore,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.time,
        prometheus_exporter=None,
    ):
        """
        Initialize the rate limiter.

        Args:
            store: Store holding the call window
            config: Rate limiting configuration
            clock: Source of the current epoch time in seconds
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.store = store
        self.config = config
        self.clock = clock
        self.prometheus_exporter = prometheus_exporter

    def _load_window(self, now: int) -> List[int]:
        """Read the stored window and drop timestamps outside (now - window, now]."""
        raw = self.store.get(RATE_LIMIT_KEY)
        if raw is None:
            return []

        try:
            calls = json.loads(raw)
        except ValueError:
            calls = None
        if not isinstance(calls, list) or not all(
            isinstance(ts, int) and not isinstance(ts, bool) for ts in calls
        ):
            logger.warning(f"Discarding malformed rate limit window under '{RATE_LIMIT_KEY}': {raw[:100]!r}")
            return []

        window_start = now - self.config.window_sec
        return [ts for ts in calls if window_start < ts <= now]

    def try_acquire(self) -> bool:
        """
        Try to admit one upstream call.

        Returns:
            True if the call may proceed (and has been recorded), False if the
            window is full or the store could not be read or written
        """
        now = int(self.clock())

        try:
            calls = self._load_window(now)

            if len(calls) >= self.config.limit:
                logger.warning(
                    f"Rate limit reached: {len(calls)}/{self.config.limit} calls "
                    f"in the last {self.config.window_sec}s"
                )
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_rate_limit_denied()
                return False

            calls.append(now)
            self.store.put(RATE_LIMIT_KEY, json.dumps(calls))
        except StoreFailure as e:
            logger.error(f"Error checking rate limit, refusing call: {e.detail}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_rate_limit_denied()
            return False

        logger.debug(f"Rate limit status: {len(calls)}/{self.config.limit} calls used")
        return True

    def remaining(self) -> Optional[int]:
        """
        Report how many calls are still available in the current window.

        Returns:
            Remaining calls, or None if the store could not be read
        """
        now = int(self.clock())
        try:
            calls = self._load_window(now)
        except StoreFailure as e:
            logger.error(f"Error reading rate limit window: {e.detail}")
            return None
        return max(0, self.config.limit - len(calls))

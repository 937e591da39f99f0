"""Prometheus metrics for monitoring the cast mirror."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

CASTS_PROCESSED = Counter(
    "cast_mirror_casts_processed_total",
    "Casts handled by sync cycles, by outcome",
    ["outcome"],
)

SYNC_CYCLES = Counter(
    "cast_mirror_sync_cycles_total",
    "Sync cycles run, by result",
    ["result"],
)

UPSTREAM_ERRORS = Counter(
    "cast_mirror_upstream_errors_total",
    "Errors returned by the upstream feed API",
    ["error_type"],
)

RATE_LIMIT_DENIALS = Counter(
    "cast_mirror_rate_limit_denials_total",
    "Upstream calls refused by the rate limiter",
)

VOTES = Counter(
    "cast_mirror_votes_total",
    "Votes recorded, by direction",
    ["direction"],
)

KNOWN_CASTS = Gauge(
    "cast_mirror_known_casts",
    "Number of casts in the store",
)

LAST_SUCCESSFUL_SYNC = Gauge(
    "cast_mirror_last_successful_sync_timestamp_seconds",
    "Unix time of the last sync cycle that completed",
)

REQUEST_DURATION = Histogram(
    "cast_mirror_upstream_request_duration_seconds",
    "Duration of upstream feed API requests in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the cast mirror."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_sync_result(self, result) -> None:
        """
        Record the per-cast outcomes of one sync cycle.

        Args:
            result: SyncResult returned by the synchronizer
        """
        CASTS_PROCESSED.labels(outcome="inserted").inc(result.inserted)
        CASTS_PROCESSED.labels(outcome="updated").inc(result.updated)
        CASTS_PROCESSED.labels(outcome="skipped").inc(result.skipped)
        CASTS_PROCESSED.labels(outcome="verified").inc(result.verified)
        CASTS_PROCESSED.labels(outcome="failed").inc(result.failed)

    def record_sync_cycle(self, result: str) -> None:
        """
        Record a sync cycle.

        Args:
            result: 'success', 'rate_limited' or an error kind
        """
        SYNC_CYCLES.labels(result=result).inc()

    def record_upstream_error(self, error_type: str) -> None:
        """
        Record an upstream API error.

        Args:
            error_type: Type of error (e.g., '401', '5xx', 'timeout', 'connection')
        """
        UPSTREAM_ERRORS.labels(error_type=error_type).inc()

    def record_rate_limit_denied(self) -> None:
        RATE_LIMIT_DENIALS.inc()

    def record_vote(self, direction: str) -> None:
        VOTES.labels(direction=direction).inc()

    def set_known_casts(self, count: int) -> None:
        KNOWN_CASTS.set(count)

    def set_last_success(self, timestamp: float) -> None:
        LAST_SUCCESSFUL_SYNC.set(timestamp)

    def time_request(self) -> "RequestTimer":
        """
        Create a context manager for timing upstream requests.

        Returns:
            RequestTimer context manager
        """
        return RequestTimer()


class RequestTimer:
    """Context manager for timing API requests."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "RequestTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            duration = time.time() - self.start_time
            REQUEST_DURATION.observe(duration)

"""Scheduled loop that runs a sync cycle at a fixed interval."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cast_mirror.collector.synchronizer import CastSynchronizer
from cast_mirror.exceptions import CastMirrorError, RateLimitExceeded, UpstreamUnauthorized
from cast_mirror.models.record import SyncResult

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    Runner for periodic sync cycles.

    Each cycle is independent: a failed cycle is logged and simply retried at
    the next tick, with no backoff state carried over.
    """

    def __init__(
        self,
        synchronizer: CastSynchronizer,
        interval_sec: int = 600,
        prometheus_exporter=None,
    ):
        """
        Initialize the scheduler.

        Args:
            synchronizer: Synchronizer that performs one cycle
            interval_sec: Seconds between the start of consecutive cycles
            prometheus_exporter: Optional Prometheus metrics exporter
        """
        self.synchronizer = synchronizer
        self.interval_sec = interval_sec
        self.prometheus_exporter = prometheus_exporter
        self.running = False
        self.last_success_time = 0.0
        self.last_result: Optional[SyncResult] = None
        self.stats: Dict[str, int] = {
            "cycles_run": 0,
            "cycles_succeeded": 0,
            "cycles_rate_limited": 0,
            "cycles_failed": 0,
            "total_inserted": 0,
            "total_updated": 0,
        }

    async def run_once(self) -> Optional[SyncResult]:
        """
        Run a single cycle, swallowing cycle-level errors after logging them.

        Returns:
            The cycle's result, or None if the cycle was declined or aborted
        """
        self.stats["cycles_run"] += 1
        logger.info(f"Starting sync cycle at {datetime.now(timezone.utc).isoformat()}")

        try:
            result = await self.synchronizer.run_once()
        except RateLimitExceeded:
            self.stats["cycles_rate_limited"] += 1
            logger.warning("Sync cycle skipped: rate limit exceeded, will retry next tick")
            return None
        except UpstreamUnauthorized as e:
            self.stats["cycles_failed"] += 1
            logger.critical(f"Sync cycle aborted, upstream rejected credentials: {e.detail}")
            return None
        except CastMirrorError as e:
            self.stats["cycles_failed"] += 1
            logger.error(f"Sync cycle aborted ({e.kind}): {e.detail}")
            return None

        self.stats["cycles_succeeded"] += 1
        self.stats["total_inserted"] += result.inserted
        self.stats["total_updated"] += result.updated
        self.last_result = result
        self.last_success_time = time.time()
        if self.prometheus_exporter:
            self.prometheus_exporter.set_last_success(self.last_success_time)
        return result

    async def run_daemon(self) -> None:
        """Run sync cycles continuously until stopped or cancelled."""
        self.running = True
        logger.info(f"Starting sync daemon, interval: {self.interval_sec}s")

        try:
            while self.running:
                cycle_start = time.time()

                try:
                    await self.run_once()
                except Exception as e:
                    logger.error(f"Unexpected error in sync cycle: {str(e)}", exc_info=True)

                elapsed = time.time() - cycle_start
                sleep_time = max(0, self.interval_sec - elapsed)
                if self.running and sleep_time > 0:
                    logger.info(f"Sleeping for {sleep_time:.2f}s until next cycle")
                    await asyncio.sleep(sleep_time)

        except asyncio.CancelledError:
            logger.info("Sync daemon cancelled")
            self.running = False
            raise
        finally:
            logger.info(
                f"Sync daemon stopped after {self.stats['cycles_run']} cycles, "
                f"inserted {self.stats['total_inserted']} casts in total"
            )

    def stop(self) -> None:
        """Stop the loop after the current cycle."""
        logger.info("Stopping sync daemon")
        self.running = False

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get current scheduler status for monitoring.

        Returns:
            Dictionary of counters and the last successful sync time
        """
        return {
            **self.stats,
            "last_success_time": (
                datetime.fromtimestamp(self.last_success_time, tz=timezone.utc).isoformat()
                if self.last_success_time > 0
                else None
            ),
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "is_running": self.running,
        }

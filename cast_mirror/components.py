"""Construction of the collaborating components from configuration."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from cast_mirror.collector.feed_client import FeedClient
from cast_mirror.collector.maintenance import SyncScheduler
from cast_mirror.collector.rate_limiter import RateLimiter
from cast_mirror.collector.synchronizer import CastSynchronizer
from cast_mirror.config import Config
from cast_mirror.services.ranking import ReadService
from cast_mirror.services.votes import VoteMutator
from cast_mirror.storage import create_store
from cast_mirror.storage.cast_repository import CastRepository
from cast_mirror.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Every component wired against one shared store."""

    config: Config
    store: KVStore
    repository: CastRepository
    rate_limiter: RateLimiter
    feed_client: FeedClient
    synchronizer: CastSynchronizer
    scheduler: SyncScheduler
    votes: VoteMutator
    reader: ReadService

    async def close(self) -> None:
        await self.feed_client.close()
        if hasattr(self.store, "close"):
            self.store.close()


def build_components(
    config: Config,
    store: Optional[KVStore] = None,
    feed_client: Optional[FeedClient] = None,
    clock: Callable[[], float] = time.time,
    prometheus_exporter=None,
) -> Components:
    """
    Wire the store, rate limiter, synchronizer and services together.

    Args:
        config: Application configuration
        store: Store to use instead of the configured backend
        feed_client: Feed client to use instead of building one from config
        clock: Source of the current epoch time in seconds
        prometheus_exporter: Optional Prometheus exporter shared by all components

    Returns:
        Components bundle
    """
    if store is None:
        store = create_store(config.store)
    if feed_client is None:
        feed_client = FeedClient(config.feed, prometheus_exporter=prometheus_exporter)

    repository = CastRepository(store)
    rate_limiter = RateLimiter(store, config.rate_limit, clock=clock, prometheus_exporter=prometheus_exporter)
    synchronizer = CastSynchronizer(
        repository, rate_limiter, feed_client, clock=clock, prometheus_exporter=prometheus_exporter
    )
    scheduler = SyncScheduler(synchronizer, config.sync_interval_sec, prometheus_exporter=prometheus_exporter)

    logger.info(
        f"Components ready (store={type(store).__name__}, channel={config.feed.channel_ids}, "
        f"limit={config.rate_limit.limit}/{config.rate_limit.window_sec}s)"
    )
    return Components(
        config=config,
        store=store,
        repository=repository,
        rate_limiter=rate_limiter,
        feed_client=feed_client,
        synchronizer=synchronizer,
        scheduler=scheduler,
        votes=VoteMutator(repository, clock=clock, prometheus_exporter=prometheus_exporter),
        reader=ReadService(repository),
    )

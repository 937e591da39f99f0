"""Shared pytest fixtures."""

import pytest

from cast_mirror.config import Config, StoreConfig
from cast_mirror.storage.cast_repository import CastRepository
from tests.helpers import FailingStore, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def repository(store) -> CastRepository:
    return CastRepository(store)


@pytest.fixture
def config() -> Config:
    """Config for tests: in-memory store, dummy key, no Prometheus server."""
    cfg = Config(store=StoreConfig(backend="memory", url=""))
    cfg.feed.api_key = "test-key"
    cfg.monitoring.enable_prometheus = False
    return cfg

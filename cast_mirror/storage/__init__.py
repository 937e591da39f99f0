"""Storage backends for the cast mirror."""

import logging

from cast_mirror.config import StoreConfig
from cast_mirror.storage.cast_repository import RATE_LIMIT_KEY, CastRepository
from cast_mirror.storage.kv_store import KVStore
from cast_mirror.storage.memory_store import InMemoryKVStore

logger = logging.getLogger(__name__)


def create_store(store_config: StoreConfig) -> KVStore:
    """
    Build the configured key-value store backend.

    Args:
        store_config: Store section of the application config

    Returns:
        A ready-to-use store

    Raises:
        ValueError: If the backend name is unknown
        StoreFailure: If the SQLAlchemy backend cannot connect
    """
    if store_config.backend == "memory":
        logger.warning("Using in-memory store; casts and votes are lost on restart")
        return InMemoryKVStore()
    if store_config.backend == "sqlalchemy":
        from cast_mirror.storage.sqlalchemy_store import SQLAlchemyKVStore

        return SQLAlchemyKVStore(store_config.url)
    raise ValueError(f"Unknown store backend: {store_config.backend}")


__all__ = ["RATE_LIMIT_KEY", "CastRepository", "InMemoryKVStore", "KVStore", "create_store"]

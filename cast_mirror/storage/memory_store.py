"""In-process key-value store backend."""

import logging
import threading
from typing import Dict, List, Optional

from cast_mirror.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


class InMemoryKVStore(KVStore):
    """Dictionary-backed store, used for local runs and as the test double."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
        logger.debug(f"Stored key {key} ({len(value)} bytes)")

    def list_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)

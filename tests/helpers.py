"""Shared test doubles: a controllable clock, a failing store and cast payloads."""

from typing import Any, Dict, List, Optional

from cast_mirror.exceptions import StoreFailure
from cast_mirror.storage.memory_store import InMemoryKVStore

BASE_TIME = 1_700_000_000.0  # 2023-11-14T22:13:20Z


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = BASE_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStore(InMemoryKVStore):
    """In-memory store that can be switched to fail reads and/or writes."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.fail_get = False
        self.fail_put = False
        self.fail_list = False
        self.fail_put_keys: set = set()
        self.puts: List[str] = []

    def get(self, key: str) -> Optional[str]:
        if self.fail_get:
            raise StoreFailure(f"read of {key} failed")
        return super().get(key)

    def put(self, key: str, value: str) -> None:
        if self.fail_put or key in self.fail_put_keys:
            raise StoreFailure(f"write of {key} failed")
        self.puts.append(key)
        super().put(key, value)

    def list_keys(self) -> List[str]:
        if self.fail_list:
            raise StoreFailure("list failed")
        return super().list_keys()


def make_cast(cast_hash: str, text: str = "gm", likes: int = 0, **extra: Any) -> Dict[str, Any]:
    """Build an upstream cast payload shaped like the channel feed returns it."""
    cast = {
        "hash": cast_hash,
        "thread_hash": cast_hash,
        "parent_hash": None,
        "author": {
            "fid": 3,
            "username": "dwr",
            "display_name": "Dan Romero",
            "pfp_url": "https://example.com/dwr.png",
        },
        "text": text,
        "timestamp": "2024-05-01T12:00:00.000Z",
        "embeds": [],
        "reactions": {"likes": likes, "recasts": 0},
        "replies": {"count": 0},
    }
    cast.update(extra)
    return cast

"""Tests for the cast repository and store factory."""

import json

import pytest

from cast_mirror.config import StoreConfig
from cast_mirror.models.record import CastRecord, timestamp_from_epoch
from cast_mirror.storage import InMemoryKVStore, create_store
from cast_mirror.storage.sqlalchemy_store import SQLAlchemyKVStore
from tests.helpers import BASE_TIME, make_cast


def make_record(cast_id="0xabc", votes=0):
    return CastRecord(id=cast_id, payload=make_cast(cast_id), votes=votes, last_updated=timestamp_from_epoch(BASE_TIME))


class TestCastRepository:
    def test_put_writes_stored_layout(self, repository, store):
        repository.put(make_record(votes=3))

        stored = json.loads(store.get("0xabc"))
        assert stored["hash"] == "0xabc"
        assert stored["votes"] == 3
        assert stored["lastUpdated"] == "2023-11-14T22:13:20.000Z"

    def test_get_round_trip(self, repository):
        record = make_record(votes=-1)
        repository.put(record)
        assert repository.get("0xabc") == record

    def test_get_missing(self, repository):
        assert repository.get("0xnone") is None

    def test_get_corrupt_raises_value_error(self, repository, store):
        store.put("0xbad", json.dumps({"hash": "0xbad", "votes": "many", "lastUpdated": "2024-01-01T00:00:00.000Z"}))
        with pytest.raises(ValueError):
            repository.get("0xbad")

    def test_get_reserved_key_returns_none(self, repository, store):
        store.put("api_calls", "[1700000000]")
        assert repository.get("api_calls") is None

    def test_reserved_id_rejected(self, repository):
        with pytest.raises(ValueError):
            repository.put(make_record(cast_id="api_calls"))

    def test_list_ids_excludes_rate_limit_key(self, repository, store):
        repository.put(make_record("0x1"))
        store.put("api_calls", "[]")
        assert repository.list_ids() == ["0x1"]

    def test_list_all_skips_undecodable(self, repository, store):
        repository.put(make_record("0x1"))
        store.put("0x2", "not json")
        assert [r.id for r in repository.list_all()] == ["0x1"]


class TestCreateStore:
    def test_memory_backend(self):
        assert isinstance(create_store(StoreConfig(backend="memory", url="")), InMemoryKVStore)

    def test_sqlalchemy_backend(self):
        store = create_store(StoreConfig(backend="sqlalchemy", url="sqlite://"))
        assert isinstance(store, SQLAlchemyKVStore)
        store.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_store(StoreConfig(backend="redis", url=""))

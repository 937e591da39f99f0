"""Tests for the ranked read view."""

import json
from datetime import timedelta

import pytest

from cast_mirror.exceptions import NotFound, StoreFailure
from cast_mirror.models.record import CastRecord, timestamp_from_epoch
from cast_mirror.services.ranking import ReadService, rank
from tests.helpers import BASE_TIME, make_cast

NOW = timestamp_from_epoch(BASE_TIME)


def record(cast_id, votes, age_minutes=0):
    return CastRecord(
        id=cast_id, payload=make_cast(cast_id), votes=votes, last_updated=NOW - timedelta(minutes=age_minutes)
    )


def test_rank_by_votes_then_recency():
    a = record("A", votes=5, age_minutes=10)
    b = record("B", votes=5, age_minutes=0)
    c = record("C", votes=2, age_minutes=0)

    assert [r.id for r in rank([c, a, b])] == ["B", "A", "C"]


def test_rank_negative_votes_last():
    assert [r.id for r in rank([record("neg", -3), record("zero", 0)])] == ["zero", "neg"]


def test_rank_empty():
    assert rank([]) == []


class TestReadService:
    @pytest.fixture
    def service(self, repository):
        return ReadService(repository)

    def test_list_ranked_skips_reserved_and_corrupt_entries(self, service, repository, store):
        repository.put(record("A", votes=1))
        repository.put(record("B", votes=4))
        store.put("api_calls", json.dumps([int(BASE_TIME)]))
        store.put("broken", "{oops")

        assert [r.id for r in service.list_ranked()] == ["B", "A"]

    def test_list_ranked_empty_store(self, service):
        assert service.list_ranked() == []

    def test_list_ranked_store_failure(self, service, store):
        store.fail_list = True
        with pytest.raises(StoreFailure):
            service.list_ranked()

    def test_get(self, service, repository):
        repository.put(record("A", votes=1))
        assert service.get("A").votes == 1

    def test_get_missing(self, service):
        with pytest.raises(NotFound):
            service.get("nope")

    def test_get_rate_limit_key(self, service, store):
        store.put("api_calls", json.dumps([int(BASE_TIME)]))
        with pytest.raises(NotFound):
            service.get("api_calls")

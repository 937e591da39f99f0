"""Tests for vote mutation."""

import json
from unittest.mock import MagicMock

import pytest

from cast_mirror.exceptions import InvalidRequest, NotFound, StoreFailure
from cast_mirror.models.record import CastRecord, VoteDirection, timestamp_from_epoch
from cast_mirror.services.votes import VoteMutator, parse_direction
from tests.helpers import BASE_TIME, make_cast


@pytest.fixture
def mutator(repository, clock):
    return VoteMutator(repository, clock=clock, prometheus_exporter=MagicMock())


@pytest.fixture
def seeded(repository):
    record = CastRecord(id="0xabc", payload=make_cast("0xabc"), votes=0, last_updated=timestamp_from_epoch(BASE_TIME))
    repository.put(record)
    return record


class TestParseDirection:
    @pytest.mark.parametrize("action,expected", [("upvote", VoteDirection.UP), ("downvote", VoteDirection.DOWN)])
    def test_valid(self, action, expected):
        assert parse_direction(action) is expected

    @pytest.mark.parametrize("action", ["up", "UPVOTE", "", "delete"])
    def test_invalid(self, action):
        with pytest.raises(InvalidRequest):
            parse_direction(action)


class TestVoteMutator:
    def test_upvotes_and_downvote(self, mutator, repository, seeded):
        for _ in range(3):
            mutator.vote("0xabc", VoteDirection.UP)
        record = mutator.vote("0xabc", VoteDirection.DOWN)

        assert record.votes == 2
        assert repository.get("0xabc").votes == 2
        assert mutator.prometheus_exporter.record_vote.call_count == 4

    def test_votes_can_go_negative(self, mutator, repository, seeded):
        mutator.vote("0xabc", VoteDirection.DOWN)
        mutator.vote("0xabc", VoteDirection.DOWN)
        assert repository.get("0xabc").votes == -2

    def test_vote_bumps_last_updated(self, mutator, repository, seeded, clock):
        clock.advance(42)
        record = mutator.vote("0xabc", VoteDirection.UP)
        assert record.last_updated == timestamp_from_epoch(BASE_TIME + 42)

    def test_vote_keeps_later_last_updated(self, mutator, seeded, clock):
        clock.advance(-100)
        record = mutator.vote("0xabc", VoteDirection.UP)
        assert record.last_updated == seeded.last_updated

    def test_vote_leaves_payload_alone(self, mutator, store, seeded):
        mutator.vote("0xabc", VoteDirection.UP)
        stored = json.loads(store.get("0xabc"))
        assert stored["text"] == "gm"
        assert stored["author"]["fid"] == 3

    def test_unknown_cast_writes_nothing(self, mutator, store):
        with pytest.raises(NotFound):
            mutator.vote("0xmissing", VoteDirection.UP)
        assert store.puts == []
        assert store.get("0xmissing") is None

    def test_store_failure_propagates(self, mutator, store, seeded):
        store.fail_put = True
        with pytest.raises(StoreFailure):
            mutator.vote("0xabc", VoteDirection.UP)

    def test_interleaved_votes_may_lose_an_increment(self, repository, clock, seeded):
        """Two votes that both read before either writes leave one increment behind."""
        first = VoteMutator(repository, clock=clock)
        second = VoteMutator(repository, clock=clock)
        stale = repository.get("0xabc")

        first.vote("0xabc", VoteDirection.UP)
        # Replay the second writer's read from before the first write
        second.repository = MagicMock(get=MagicMock(return_value=stale), put=repository.put)
        second.vote("0xabc", VoteDirection.UP)

        assert repository.get("0xabc").votes == 1

    def test_rate_limit_key_is_not_a_cast(self, mutator, store):
        store.put("api_calls", json.dumps([int(BASE_TIME)]))
        puts_before = list(store.puts)

        with pytest.raises(NotFound):
            mutator.vote("api_calls", VoteDirection.UP)

        assert store.puts == puts_before
        assert json.loads(store.get("api_calls")) == [int(BASE_TIME)]

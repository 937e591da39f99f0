"""Data models for mirrored casts and sync outcomes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

# Keys this system owns inside a stored cast; everything else is upstream payload.
ID_FIELD = "hash"
VOTES_FIELD = "votes"
LAST_UPDATED_FIELD = "lastUpdated"
LOCAL_FIELDS = (VOTES_FIELD, LAST_UPDATED_FIELD)


def timestamp_from_epoch(seconds: float) -> datetime:
    """Convert epoch seconds to a UTC datetime truncated to milliseconds."""
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as ISO 8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by :func:`format_timestamp` (or any ISO 8601 string)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class CastRecord:
    """
    A stored, vote-augmented mirror of one upstream cast.

    ``id``, ``votes`` and ``last_updated`` are owned by this system. ``payload``
    holds every upstream-supplied field verbatim (including ``hash``).
    """

    id: str
    payload: Dict[str, Any]
    votes: int = 0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_stored(self) -> Dict[str, Any]:
        """Return the persisted JSON layout: payload fields plus hash, votes and lastUpdated."""
        stored = dict(self.payload)
        stored[ID_FIELD] = self.id
        stored[VOTES_FIELD] = self.votes
        stored[LAST_UPDATED_FIELD] = format_timestamp(self.last_updated)
        return stored

    # The API serves casts in the same shape they are stored in.
    to_dict = to_stored

    @classmethod
    def from_stored(cls, data: Mapping[str, Any]) -> "CastRecord":
        """
        Build a record from its persisted JSON layout.

        Raises:
            ValueError: If the data is missing the owned fields or they have the wrong type
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Stored cast must be an object, got {type(data).__name__}")

        cast_id = data.get(ID_FIELD)
        if not isinstance(cast_id, str) or not cast_id:
            raise ValueError("Stored cast has no hash")

        votes = data.get(VOTES_FIELD, 0)
        if isinstance(votes, bool) or not isinstance(votes, int):
            raise ValueError(f"Stored cast {cast_id} has non-integer votes: {votes!r}")

        last_updated_raw = data.get(LAST_UPDATED_FIELD)
        if not isinstance(last_updated_raw, str):
            raise ValueError(f"Stored cast {cast_id} has no lastUpdated timestamp")

        payload = {k: v for k, v in data.items() if k not in LOCAL_FIELDS}
        return cls(
            id=cast_id,
            payload=payload,
            votes=votes,
            last_updated=parse_timestamp(last_updated_raw),
        )


class MergeAction(str, Enum):
    """What the merge engine decided to do with a fetched cast."""

    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class MergeResult:
    """Outcome of merging one fetched cast against its stored counterpart."""

    action: MergeAction
    record: CastRecord


class VoteDirection(str, Enum):
    """Direction of a single vote event."""

    UP = "upvote"
    DOWN = "downvote"

    @property
    def delta(self) -> int:
        return 1 if self is VoteDirection.UP else -1


@dataclass
class ItemFailure:
    """A single cast that could not be processed during a sync cycle."""

    id: str
    reason: str


@dataclass
class SyncResult:
    """Per-cycle counts returned by the synchronizer."""

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    verified: int = 0
    failed: int = 0
    failures: List[ItemFailure] = field(default_factory=list)
    duration_sec: Optional[float] = None

    def record_failure(self, cast_id: str, reason: str) -> None:
        self.failed += 1
        self.failures.append(ItemFailure(id=cast_id, reason=reason))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "verified": self.verified,
            "failed": self.failed,
            "failures": [{"id": f.id, "reason": f.reason} for f in self.failures],
            "duration_sec": self.duration_sec,
        }

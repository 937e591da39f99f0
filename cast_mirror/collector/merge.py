"""Upsert/merge policy for fetched casts."""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from cast_mirror.exceptions import RecordMergeFailure
from cast_mirror.models.record import ID_FIELD, LOCAL_FIELDS, CastRecord, MergeAction, MergeResult

logger = logging.getLogger(__name__)


def extract_cast_id(fetched: Any) -> str:
    """
    Return the hash of a fetched cast.

    Raises:
        RecordMergeFailure: If the item is not an object or has no usable hash
    """
    if not isinstance(fetched, Mapping):
        raise RecordMergeFailure(f"Fetched cast must be an object, got {type(fetched).__name__}")
    cast_id = fetched.get(ID_FIELD)
    if not isinstance(cast_id, str) or not cast_id.strip():
        raise RecordMergeFailure("Fetched cast has no hash")
    return cast_id


def upstream_payload(fetched: Mapping[str, Any]) -> dict:
    """Copy a fetched cast without the fields this system owns."""
    return {k: v for k, v in fetched.items() if k not in LOCAL_FIELDS}


def merge(existing: Optional[CastRecord], fetched: Mapping[str, Any], now: datetime) -> MergeResult:
    """
    Decide whether a fetched cast is inserted, updated or skipped.

    Fetched fields overwrite stored payload fields one by one; ``votes`` always
    comes from the stored record. When the merged payload equals the stored one
    the record is returned untouched, so repeated polls of unchanged content
    cause no writes and no timestamp bumps.

    Args:
        existing: Stored record for the same hash, if any
        fetched: Raw cast payload from the upstream feed
        now: Timestamp to stamp on inserted or updated records

    Returns:
        MergeResult with the chosen action and the record to persist

    Raises:
        RecordMergeFailure: If the fetched item is malformed or its hash does
            not match the stored record
    """
    cast_id = extract_cast_id(fetched)
    payload = upstream_payload(fetched)

    if existing is None:
        return MergeResult(
            action=MergeAction.INSERT,
            record=CastRecord(id=cast_id, payload=payload, votes=0, last_updated=now),
        )

    if existing.id != cast_id:
        raise RecordMergeFailure(f"Fetched hash {cast_id} does not match stored cast {existing.id}")

    candidate_payload = {**existing.payload, **payload}
    if candidate_payload == existing.payload:
        return MergeResult(action=MergeAction.SKIP, record=existing)

    return MergeResult(
        action=MergeAction.UPDATE,
        record=CastRecord(
            id=existing.id,
            payload=candidate_payload,
            votes=existing.votes,
            last_updated=max(now, existing.last_updated),
        ),
    )

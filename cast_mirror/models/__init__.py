"""Data models for the cast mirror."""

from cast_mirror.models.record import (
    CastRecord,
    ItemFailure,
    MergeAction,
    MergeResult,
    SyncResult,
    VoteDirection,
)

__all__ = [
    "CastRecord",
    "ItemFailure",
    "MergeAction",
    "MergeResult",
    "SyncResult",
    "VoteDirection",
]

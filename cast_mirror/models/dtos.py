"""
Pydantic Data Transfer Objects (DTOs) for the cast mirror HTTP API.

Casts are served in their stored layout (``hash``, ``votes``, ``lastUpdated``
plus the upstream payload fields), so the response models keep them as
open-ended dictionaries.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cast_mirror.models.record import VoteDirection


class VoteRequest(BaseModel):
    """Body of a vote request."""

    hash: str = Field(..., min_length=1, description="Hash of the cast to vote on")
    action: VoteDirection = Field(..., description="Either 'upvote' or 'downvote'")


class CastsResponse(BaseModel):
    """Ranked list of stored casts."""

    casts: List[Dict[str, Any]]


class VoteResponse(BaseModel):
    """Result of a successful vote."""

    message: str
    cast: Dict[str, Any]


class ItemFailureDTO(BaseModel):
    id: str
    reason: str


class SyncResponse(BaseModel):
    """Summary of one sync cycle."""

    message: str = "Casts processed"
    inserted: int
    updated: int
    skipped: int
    verified: int
    failed: int
    failures: List[ItemFailureDTO] = []
    duration_sec: Optional[float] = None


class StoredKeysResponse(BaseModel):
    """Listing of every key currently in the store."""

    message: str = "Worker is running!"
    storedKeys: List[str]


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint on failure."""

    error: str
    kind: str
    details: str

"""
Cast API endpoints.

Read view, vote mutation, manual sync trigger and raw store inspection.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cast_mirror.components import Components
from cast_mirror.exceptions import NotFound, StoreFailure
from cast_mirror.models.dtos import (
    CastsResponse,
    ErrorResponse,
    StoredKeysResponse,
    SyncResponse,
    VoteRequest,
    VoteResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_components(request: Request) -> Components:
    """Get the component bundle attached to the application."""
    return request.app.state.components


@router.get("/casts", response_model=CastsResponse, responses={500: {"model": ErrorResponse}})
def list_casts(components: Components = Depends(get_components)) -> CastsResponse:
    """
    List every stored cast, most votes first, most recently updated first on ties.

    Raises:
        StoreFailure: If the store cannot be read (mapped to 500)
    """
    records = components.reader.list_ranked()
    return CastsResponse(casts=[record.to_dict() for record in records])


@router.post("/casts/vote", response_model=VoteResponse, responses=ERROR_RESPONSES)
def vote_on_cast(
    request: VoteRequest,
    components: Components = Depends(get_components),
) -> VoteResponse:
    """
    Record one upvote or downvote on a stored cast.

    Returns 400 for a missing or invalid ``hash``/``action``, 404 for an
    unknown hash and 500 when the store fails.
    """
    try:
        record = components.votes.vote(request.hash, request.action)
    except ValueError as e:
        raise StoreFailure(f"Stored cast {request.hash} is corrupt: {str(e)}")

    return VoteResponse(message=f"Cast {request.action.value}d successfully", cast=record.to_dict())


@router.post(
    "/sync",
    response_model=SyncResponse,
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def trigger_sync(components: Components = Depends(get_components)) -> SyncResponse:
    """
    Run one sync cycle immediately.

    Returns 429 when the rate limiter declines, 401 when the upstream API key is
    rejected and 502 for other upstream failures.
    """
    result = await components.synchronizer.run_once()
    return SyncResponse(**result.to_dict())


@router.get("/store", response_model=StoredKeysResponse, responses={500: {"model": ErrorResponse}})
def list_stored_keys(components: Components = Depends(get_components)) -> StoredKeysResponse:
    """List every key in the store, including the reserved rate limit key."""
    return StoredKeysResponse(storedKeys=components.store.list_keys())


@router.get("/store/{key}", responses=ERROR_RESPONSES)
def get_stored_value(key: str, components: Components = Depends(get_components)) -> Any:
    """Return the raw JSON value stored under ``key``."""
    raw = components.store.get(key)
    if raw is None:
        logger.info(f"Key not found: {key}")
        raise NotFound(f"Key not found: {key}")
    try:
        return JSONResponse(content=json.loads(raw))
    except ValueError as e:
        raise StoreFailure(f"Value under {key} is not valid JSON: {str(e)}")

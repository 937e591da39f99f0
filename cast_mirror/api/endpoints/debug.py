"""Debug endpoint exposing non-secret configuration status."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from cast_mirror.api.endpoints.casts import get_components
from cast_mirror.components import Components

router = APIRouter()


@router.get("/debug")
def debug_status(components: Components = Depends(get_components)) -> Dict[str, Any]:
    """Report whether credentials are set and how the rate limiter and scheduler stand."""
    config = components.config
    return {
        "env": {
            "NEYNAR_API_KEY": "Set" if config.feed.api_key else "Not set",
            "store_backend": type(components.store).__name__,
            "channel_ids": config.feed.channel_ids,
        },
        "rate_limit": {
            "limit": config.rate_limit.limit,
            "window_sec": config.rate_limit.window_sec,
            "remaining": components.rate_limiter.remaining(),
        },
        "scheduler": components.scheduler.get_metrics(),
    }

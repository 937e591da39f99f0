"""
FastAPI application for the cast mirror.

Serves the ranked read view, the vote endpoint, a manual sync trigger and a
few inspection endpoints. Optionally runs the periodic sync loop as a
background task.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cast_mirror import __version__
from cast_mirror.api.endpoints import casts, debug
from cast_mirror.components import Components, build_components
from cast_mirror.config import Config
from cast_mirror.exceptions import CastMirrorError, InvalidRequest

logger = logging.getLogger(__name__)

APP_NAME = "CastMirror"
MAX_DETAIL_LENGTH = 300

STATUS_BY_KIND = {
    "invalid_request": 400,
    "upstream_unauthorized": 401,
    "not_found": 404,
    "rate_limit_exceeded": 429,
    "upstream_failure": 502,
}


def error_body(exc: CastMirrorError) -> dict:
    """Build the user-facing error body: short message, kind and a bounded detail string."""
    return {
        "error": exc.message,
        "kind": exc.kind,
        "details": exc.detail[:MAX_DETAIL_LENGTH],
    }


async def cast_mirror_error_handler(request: Request, exc: CastMirrorError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind}): {exc.detail}")
    return JSONResponse(status_code=status_code, content=error_body(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())[1:]) or "body"
        problems.append(f"{location}: {err.get('msg', 'invalid value')}")
    return JSONResponse(
        status_code=400,
        content=error_body(InvalidRequest("; ".join(problems) or "Malformed request body")),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Starts the sync scheduler as a background task when configured and closes
    the upstream session and store on shutdown.
    """
    components: Components = app.state.components
    scheduler_task: Optional[asyncio.Task] = None

    logger.info(f"Starting {APP_NAME} v{__version__}")
    if components.config.api.run_scheduler:
        logger.info("Starting sync scheduler as background task")
        scheduler_task = asyncio.create_task(components.scheduler.run_daemon())
    else:
        logger.info("Sync scheduler disabled; run 'cast-mirror daemon' or POST /api/sync to refresh casts")

    yield

    logger.info("Shutting down application")
    if scheduler_task:
        components.scheduler.stop()
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            logger.info("Sync scheduler task cancelled successfully")
    await components.close()


def create_app(config: Config, components: Optional[Components] = None, prometheus_exporter=None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration
        components: Pre-built components (tests pass in-memory ones)
        prometheus_exporter: Optional Prometheus exporter for the built components

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if components is None:
        components = build_components(config, prometheus_exporter=prometheus_exporter)

    app = FastAPI(
        title=APP_NAME,
        version=__version__,
        description="Mirror of a Farcaster channel feed with local voting and a ranked read view.",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "casts", "description": "Ranked casts, voting and sync"},
            {"name": "debug", "description": "Configuration status"},
            {"name": "health", "description": "Health check"},
        ],
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CastMirrorError, cast_mirror_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(casts.router, prefix="/api", tags=["casts"])
    app.include_router(debug.router, prefix="/api", tags=["debug"])

    @app.get("/health", tags=["health"], summary="Health Check")
    async def health_check() -> dict:
        return {"status": "healthy", "app": APP_NAME, "version": __version__}

    return app

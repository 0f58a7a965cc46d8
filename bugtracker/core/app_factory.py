"""Application factory for FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances against their own database
and upload directory.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from bugtracker.adapters.rate_limit import AbstractRateLimiter, InMemorySlidingWindowRateLimiter
from bugtracker.api.routes import (
    attachments_router,
    bugs_router,
    comments_router,
    projects_router,
    service_router,
    users_router,
)
from bugtracker.core.config import settings
from bugtracker.core.exception_handlers import setup_exception_handlers
from bugtracker.core.logging import configure_logging
from bugtracker.core.middleware import api_headers_middleware, request_id_middleware
from bugtracker.core.openapi import apply_openapi_customizations
from bugtracker.db.session import Database

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and create tables on startup; dispose on shutdown."""
    database = Database(settings.database.url, echo=settings.database.echo)
    database.connect()
    await database.create_all()
    Path(settings.app.upload_dir).mkdir(parents=True, exist_ok=True)

    app.state.db = database
    app.state.started_at = time.monotonic()
    logger.info("app.startup", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        await database.dispose()
        logger.info("app.shutdown")


def create_app(rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to use instead of a fresh in-memory one
            (tests inject one with a fake clock).

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Bug Tracker API",
        description=(
            "JSON API for tracking bugs across projects: users, projects and "
            "memberships, bugs with comments and change history, and file "
            "attachments. Optional API key auth, per-client rate limits, "
            "structured logs with request correlation."
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_url=f"{API_PREFIX}/openapi.json",
        docs_url=f"{API_PREFIX}/docs",
        redoc_url=None,
    )
    app.state.rate_limiter = rate_limiter or InMemorySlidingWindowRateLimiter()

    # Middleware (last added runs first)
    app.middleware("http")(api_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(service_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(projects_router, prefix=API_PREFIX)
    app.include_router(bugs_router, prefix=API_PREFIX)
    app.include_router(comments_router, prefix=API_PREFIX)
    app.include_router(attachments_router, prefix=API_PREFIX)

    # OpenAPI customizations (security schemes, tags, exemptions)
    apply_openapi_customizations(app)

    return app

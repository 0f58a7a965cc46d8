"""Service endpoints: API index, health check and the OpenAPI document.

None of these require an API key; each has its own rate-limit budget.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request

from bugtracker.core.rate_limit import NAMESPACE_HEALTH, NAMESPACE_INDEX, enforce_rate_limit
from bugtracker.schemas.service import ApiIndexOut, HealthOut, RouteInfo

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

router = APIRouter(tags=["Service"])


@router.get(
    "",
    response_model=ApiIndexOut,
    dependencies=[Depends(enforce_rate_limit(NAMESPACE_INDEX))],
)
async def api_index(request: Request) -> ApiIndexOut:
    """Describe the API: name, version and every routed operation."""
    app = request.app
    routes = []
    # Built from the schema so routers nested by include_router are covered.
    for path, operations in app.openapi().get("paths", {}).items():
        for method, operation in sorted(operations.items()):
            if method.upper() not in HTTP_METHODS:
                continue
            text = (operation.get("description") or operation.get("summary") or "").strip()
            summary = text.splitlines()[0] if text else ""
            routes.append(RouteInfo(method=method.upper(), path=path, description=summary))
    return ApiIndexOut(name=app.title, version=app.version, routes=routes)


@router.get(
    "/health",
    response_model=HealthOut,
    dependencies=[Depends(enforce_rate_limit(NAMESPACE_HEALTH))],
)
async def health_check(request: Request) -> HealthOut:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        HealthOut: ``status`` "ok", process uptime in seconds and the current
        epoch time in milliseconds.
    """
    started = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started if started is not None else 0.0
    return HealthOut(status="ok", uptime=round(uptime, 3), timestamp=int(time.time() * 1000))


@router.get("/openapi", include_in_schema=False)
async def openapi_document(request: Request) -> dict:
    """The generated OpenAPI schema, including security scheme metadata."""
    return request.app.openapi()

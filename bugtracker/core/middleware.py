"""HTTP middleware: request correlation, CORS and security headers.

``request_id_middleware``:
- Accepts incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id and the total duration into response headers
- Clears context after request completion to prevent context leaks

``api_headers_middleware`` (``/api`` paths only):
- Answers ``OPTIONS`` preflight with 204 and permissive CORS headers that
  reflect the caller's ``Origin``
- Adds the same CORS headers plus a fixed security header set to every other
  response; HSTS only in production

Usage:
    app.middleware("http")(api_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from bugtracker.core.config import settings
from bugtracker.core.logging import clear_request_id, set_request_id

ALLOWED_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
ALLOWED_HEADERS = "Authorization, Content-Type, X-Requested-With, X-API-Key, X-User-Id, X-Request-ID"
HSTS_VALUE = "max-age=63072000; includeSubDomains; preload"

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID
    is generated.

    Example:
        >>> # Headers: {"X-Request-ID": "req-abc-123"}
        >>> # Response includes:
        >>> # {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "45.67"}
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def cors_headers(request: Request) -> dict[str, str]:
    """CORS headers reflecting the request origin (``*`` when absent)."""
    return {
        "Access-Control-Allow-Origin": request.headers.get("origin") or "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def security_headers() -> dict[str, str]:
    headers = dict(SECURITY_HEADERS)
    if settings.is_production:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


async def api_headers_middleware(request: Request, call_next) -> Response:
    """Preflight handling plus CORS/security headers on ``/api`` responses."""

    if not request.url.path.startswith("/api"):
        return await call_next(request)

    if request.method == "OPTIONS":
        headers = {**cors_headers(request), **security_headers()}
        headers["Access-Control-Max-Age"] = "86400"
        return Response(status_code=204, headers=headers)

    response: Response = await call_next(request)
    for name, value in {**cors_headers(request), **security_headers()}.items():
        response.headers[name] = value
    return response

"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the limiter lives on ``app.state`` behind an abstract
  interface and is built by the application factory.
- One budget per route namespace, so the health check and the resource
  routes never drain each other.

Client identity is best effort: the first X-Forwarded-For hop, then
CF-Connecting-IP, then X-Real-IP, then the socket peer, then "unknown".
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import Request, Response

from bugtracker.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from bugtracker.core.config import settings
from bugtracker.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

NAMESPACE_API = "api"
NAMESPACE_HEALTH = "health"
NAMESPACE_INDEX = "index"


def get_client_id(request: Request) -> str:
    """Derive the limiter identity for the current request."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"

    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _hash_client_id(client_id: str) -> str:
    """Hash the client identity for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


def _limits_for(namespace: str) -> tuple[int, int]:
    cfg = settings.rate_limit
    if namespace == NAMESPACE_HEALTH:
        return cfg.health_limit, cfg.health_window_ms
    if namespace == NAMESPACE_INDEX:
        return cfg.index_limit, cfg.index_window_ms
    return cfg.api_limit, cfg.api_window_ms


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }
    if not decision.allowed:
        headers["Retry-After"] = str(decision.retry_after_seconds)
    return headers


def enforce_rate_limit(namespace: str) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the budget of ``namespace``.

    Usage:
        @router.get("/health", dependencies=[Depends(enforce_rate_limit("health"))])
    """

    async def dependency(request: Request, response: Response) -> None:
        if not settings.rate_limit.enabled:
            return

        limit, window_ms = _limits_for(namespace)
        client_id = get_client_id(request)
        decision = get_rate_limiter(request).check(client_id, namespace, limit, window_ms)
        headers = rate_limit_headers(decision)

        if decision.allowed:
            response.headers.update(headers)
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "namespace": namespace,
                    "client_hash": _hash_client_id(client_id),
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                },
            )
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "namespace": namespace,
                "client_hash": _hash_client_id(client_id),
                "limit": decision.limit,
                "window_ms": window_ms,
                "retry_after_ms": decision.retry_after_ms,
            },
        )
        raise RateLimitAppError(
            code="RATE_LIMITED",
            message="Too Many Requests",
            details={"retryAfterMs": decision.retry_after_ms},
            headers=headers,
        )

    return dependency

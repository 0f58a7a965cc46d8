"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Configured maximum number of requests per window.
        remaining: Requests still available in the window (0 when blocked).
        retry_after_ms: Milliseconds until a slot frees up (0 when allowed).
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int

    @property
    def retry_after_seconds(self) -> int:
        """Retry delay rounded up to whole seconds, for the Retry-After header."""
        return int(math.ceil(self.retry_after_ms / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(
        self,
        client_key: str,
        namespace: str,
        limit: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Admit or reject one request for ``client_key`` within ``namespace``.

        Args:
            client_key: Best-effort client identity (e.g. forwarded IP).
            namespace: Route group sharing one budget (e.g. "health", "api").
            limit: Maximum admitted requests per window.
            window_ms: Trailing window length in milliseconds.

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Forget all recorded requests."""
        raise NotImplementedError

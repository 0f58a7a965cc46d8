"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a lock guards the read-prune-append sequence on shared state.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

from bugtracker.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests inside a trailing time window.

    Every admitted request records its timestamp under ``namespace:client_key``.
    Before each decision the timestamps that fell out of the window are
    discarded, so the window moves continuously with the clock instead of
    resetting on aligned boundaries. Rejected requests are not recorded and
    therefore never consume budget.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], int] = _now_ms) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, deque[int]] = {}

    @staticmethod
    def build_key(client_key: str, namespace: str) -> str:
        return f"{namespace}:{client_key}"

    def check(
        self,
        client_key: str,
        namespace: str,
        limit: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Prune, decide and (on admission) record the current request.

        Args:
            client_key: Best-effort client identity.
            namespace: Route group the budget belongs to.
            limit: Maximum admitted requests per window; 0 rejects everything.
            window_ms: Trailing window length in milliseconds.

        Returns:
            RateLimitDecision with allowance decision and metadata.
        """
        key = self.build_key(client_key, namespace)
        now = self._clock()
        window_start = now - window_ms

        with self._lock:
            hits = self._hits.get(key)
            if hits is None:
                hits = deque()
            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= limit:
                oldest = hits[0] if hits else now
                self._store(key, hits)
                return RateLimitDecision(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    retry_after_ms=window_ms - (now - oldest),
                )

            hits.append(now)
            self._hits[key] = hits
            return RateLimitDecision(
                allowed=True,
                limit=limit,
                remaining=limit - len(hits),
                retry_after_ms=0,
            )

    def _store(self, key: str, hits: deque[int]) -> None:
        # Drop keys whose window emptied so idle clients do not accumulate.
        if hits:
            self._hits[key] = hits
        else:
            self._hits.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def tracked_keys(self) -> int:
        """Number of keys currently holding timestamps."""
        with self._lock:
            return len(self._hits)

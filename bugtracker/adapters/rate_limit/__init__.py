"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory sliding-window limiter and later move to a shared store without
changing the HTTP layer.
"""

from bugtracker.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision
from bugtracker.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemorySlidingWindowRateLimiter", "RateLimitDecision"]

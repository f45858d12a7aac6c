"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory window store and later migrate to Redis or another shared store
without changing the API layer.
"""

from authgate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractWindowStore,
    Decision,
    HeaderMode,
    RateLimitResult,
    WindowState,
)
from authgate.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from authgate.adapters.rate_limit.in_memory import InMemoryWindowStore

__all__ = [
    "AbstractRateLimiter",
    "AbstractWindowStore",
    "Decision",
    "FixedWindowRateLimiter",
    "HeaderMode",
    "InMemoryWindowStore",
    "RateLimitResult",
    "WindowState",
]

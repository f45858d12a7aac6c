"""Fixed-window rate limiter.

Each client key gets a window that opens with its first request and lasts
``window_seconds``. Every request is counted before the threshold check, so
once a client is over its quota every further request in the same window is
denied and still advances the stored count.
"""

from __future__ import annotations

import math
import time
from typing import Callable

from authgate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractWindowStore,
    Decision,
    RateLimitResult,
    WindowState,
)
from authgate.adapters.rate_limit.in_memory import InMemoryWindowStore


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Admission control over a pluggable window store.

    The limiter itself is stateless apart from its configuration; all
    counters live in the injected store, which is what makes it possible to
    share limits across processes by swapping the store.
    """

    def __init__(
        self,
        *,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
        store: AbstractWindowStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Maximum number of allowed requests per window.
            window_seconds: Length of the window in seconds.
            store: Window store; a fresh in-memory store when omitted.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If max_requests or window_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._store = store if store is not None else InMemoryWindowStore()
        self._clock = clock

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def store(self) -> AbstractWindowStore:
        return self._store

    def check(self, key: str) -> RateLimitResult:
        """Count one request for key and return the admission decision.

        Args:
            key: Client key (must be non-empty).

        Returns:
            RateLimitResult with the decision and quota metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        state = self._store.increment(key, now=now, window_seconds=self._window_seconds)
        return self._build_result(state, now)

    def reset(self, key: str) -> None:
        self._store.reset(key)

    def _build_result(self, state: WindowState, now: float) -> RateLimitResult:
        reset_at = state.window_start + self._window_seconds
        remaining = max(0, self._max_requests - state.count)

        if state.count <= self._max_requests:
            return RateLimitResult(
                decision=Decision.ALLOW,
                limit=self._max_requests,
                remaining=remaining,
                count=state.count,
                reset_at=reset_at,
                retry_after_seconds=None,
                checked_at=now,
            )

        # A positive wait never rounds down to zero
        retry_after = max(1, int(math.ceil(reset_at - now)))
        return RateLimitResult(
            decision=Decision.DENY,
            limit=self._max_requests,
            remaining=0,
            count=state.count,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
            checked_at=now,
        )

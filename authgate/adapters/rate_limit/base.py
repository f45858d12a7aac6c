"""Rate limiter interfaces.

The HTTP layer depends on these abstractions (not the concrete
implementations) so the window store can be swapped for a shared backend
(e.g., Redis) without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class Decision(str, Enum):
    """Outcome of an admission-control check."""

    ALLOW = "allow"
    DENY = "deny"


class HeaderMode(str, Enum):
    """Which rate limit metadata headers are exposed to clients.

    - STANDARD: ``RateLimit-*`` headers (IETF draft naming).
    - LEGACY: ``X-RateLimit-*`` headers.
    - NONE: no rate limit headers at all.
    """

    STANDARD = "standard"
    LEGACY = "legacy"
    NONE = "none"


@dataclass
class WindowState:
    """Request counter for a single client key.

    Attributes:
        count: Requests seen in the current window (denied ones included).
        window_start: UNIX time in seconds when the current window opened.
    """

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        decision: ALLOW or DENY.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        count: Stored request count after this check.
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        checked_at: UNIX time in seconds at which the check was made.
    """

    decision: Decision
    limit: int
    remaining: int
    count: int
    reset_at: float
    retry_after_seconds: int | None
    checked_at: float

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW


class AbstractWindowStore(ABC):
    """Storage for per-key window state.

    Implementations must make ``increment`` atomic per key: concurrent
    callers with the same key must never lose an update.
    """

    @abstractmethod
    def increment(self, key: str, *, now: float, window_seconds: float) -> WindowState:
        """Reset the window if it expired, then count one request.

        Args:
            key: Client key.
            now: Current UNIX time in seconds.
            window_seconds: Window length in seconds.

        Returns:
            Snapshot of the state after the increment.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> WindowState | None:
        """Return a snapshot of the state for key, if any."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget all state for key."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Forget all state."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, *, now: float, window_seconds: float) -> int:
        """Evict expired entries.

        Returns:
            Number of evicted entries.
        """
        raise NotImplementedError


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, key: str) -> RateLimitResult:
        """Count a request for key and decide whether it may proceed.

        Args:
            key: Unique client identifier (e.g., ``ip:203.0.113.7``).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str) -> None:
        """Clear the counter for key."""
        raise NotImplementedError

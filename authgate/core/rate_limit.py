"""Rate limiting stage for the auth routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes only see a pipeline stage.
- Swap-friendly: the limiter (and its window store) is built once by the app
  factory and kept on ``app.state``, so tests and deployments can inject
  their own.
- Per-IP identity: the client key is the socket peer address, or the first
  ``X-Forwarded-For`` hop when running behind a trusted proxy.
"""

from __future__ import annotations

import logging
import math

from fastapi import Request, Response, status

from authgate.adapters.rate_limit.base import HeaderMode, RateLimitResult
from authgate.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from authgate.adapters.rate_limit.in_memory import InMemoryWindowStore
from authgate.core.config import RateLimitSettings
from authgate.core.errors import InvalidClientKeyError
from authgate.core.exception_handlers import build_error_response
from authgate.core.logging import hash_identifier
from authgate.core.pipeline import add_response_headers

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def build_rate_limiter(cfg: RateLimitSettings) -> FixedWindowRateLimiter:
    """Build the limiter described by the rate limit settings."""
    return FixedWindowRateLimiter(
        max_requests=cfg.max_requests,
        window_seconds=cfg.window_seconds,
        store=InMemoryWindowStore(sweep_interval_seconds=cfg.sweep_interval_seconds),
    )


def build_client_key(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Derive the limiter key for a request.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Prefer the first ``X-Forwarded-For`` address.

    Returns:
        str: Namespaced limiter key, e.g. ``ip:203.0.113.7``.

    Raises:
        InvalidClientKeyError: If no client address can be determined.
    """
    host: str | None = None

    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        host = forwarded.split(",")[0].strip() or None

    if host is None and request.client is not None:
        host = request.client.host or None

    if not host:
        raise InvalidClientKeyError(
            code="invalid_client_key",
            message="Unable to determine client address for rate limiting",
        )
    return f"ip:{host}"


def build_rate_limit_headers(
    result: RateLimitResult,
    *,
    mode: HeaderMode,
    window_seconds: float,
) -> dict[str, str]:
    """Render quota metadata as response headers for the given mode.

    Args:
        result: Outcome of the limiter check.
        mode: Header flavour to emit.
        window_seconds: Configured window length, advertised in the policy.

    Returns:
        Header name to value mapping (empty for ``HeaderMode.NONE``).
    """
    if mode is HeaderMode.NONE:
        return {}

    headers: dict[str, str] = {}
    if mode is HeaderMode.STANDARD:
        seconds_to_reset = max(0, int(math.ceil(result.reset_at - result.checked_at)))
        headers["RateLimit-Policy"] = f"{result.limit};w={int(window_seconds)}"
        headers["RateLimit-Limit"] = str(result.limit)
        headers["RateLimit-Remaining"] = str(result.remaining)
        headers["RateLimit-Reset"] = str(seconds_to_reset)
    else:
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(int(math.ceil(result.reset_at)))

    if not result.allowed and result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


class RateLimitStage:
    """Pipeline stage enforcing the per-client quota.

    Allowed requests continue with quota headers queued on the response;
    denied requests are answered with 429 and the handler never runs.
    """

    def __init__(
        self,
        limiter: FixedWindowRateLimiter,
        *,
        header_mode: HeaderMode = HeaderMode.STANDARD,
        trust_forwarded_for: bool = False,
    ) -> None:
        self._limiter = limiter
        self._header_mode = header_mode
        self._trust_forwarded_for = trust_forwarded_for

    @property
    def limiter(self) -> FixedWindowRateLimiter:
        return self._limiter

    async def __call__(self, request: Request) -> Response | None:
        key = build_client_key(request, trust_forwarded_for=self._trust_forwarded_for)
        result = self._limiter.check(key)
        headers = build_rate_limit_headers(
            result,
            mode=self._header_mode,
            window_seconds=self._limiter.window_seconds,
        )

        log_extra = {
            "key_hash": hash_identifier(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "count": result.count,
            "window_s": self._limiter.window_seconds,
            "path": request.url.path,
        }

        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
            add_response_headers(request, headers)
            return None

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "retry_after_s": result.retry_after_seconds},
        )
        return build_error_response(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code="rate_limit_exceeded",
            message=RATE_LIMIT_MESSAGE,
            details={"retry_after": result.retry_after_seconds or 0},
            headers=headers,
        )

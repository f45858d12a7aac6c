"""Tests for the HTTP rate limiting stage, client keys and headers."""

from __future__ import annotations

import json
from unittest.mock import Mock

import pytest
from starlette.requests import Request

from authgate.adapters.rate_limit.base import Decision, HeaderMode, RateLimitResult
from authgate.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from authgate.core.errors import InvalidClientKeyError
from authgate.core.rate_limit import (
    RATE_LIMIT_MESSAGE,
    RateLimitStage,
    build_client_key,
    build_rate_limit_headers,
)


def make_request(
    client: tuple[str, int] | None = ("203.0.113.7", 5000),
    headers: dict[str, str] | None = None,
) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "query_string": b"",
    }
    return Request(scope)


def make_result(**overrides) -> RateLimitResult:
    values = {
        "decision": Decision.ALLOW,
        "limit": 100,
        "remaining": 99,
        "count": 1,
        "reset_at": 1900.0,
        "retry_after_seconds": None,
        "checked_at": 1000.0,
    }
    values.update(overrides)
    return RateLimitResult(**values)


class TestBuildClientKey:
    def test_uses_peer_address(self) -> None:
        assert build_client_key(make_request()) == "ip:203.0.113.7"

    def test_ignores_forwarded_for_by_default(self) -> None:
        request = make_request(headers={"X-Forwarded-For": "198.51.100.1"})

        assert build_client_key(request) == "ip:203.0.113.7"

    def test_uses_first_forwarded_hop_when_trusted(self) -> None:
        request = make_request(headers={"X-Forwarded-For": "198.51.100.1, 10.0.0.2"})

        assert build_client_key(request, trust_forwarded_for=True) == "ip:198.51.100.1"

    def test_falls_back_to_peer_when_forwarded_header_empty(self) -> None:
        request = make_request(headers={"X-Forwarded-For": " "})

        assert build_client_key(request, trust_forwarded_for=True) == "ip:203.0.113.7"

    def test_missing_identity_raises(self) -> None:
        with pytest.raises(InvalidClientKeyError) as exc_info:
            build_client_key(make_request(client=None))

        assert exc_info.value.code == "invalid_client_key"


class TestBuildRateLimitHeaders:
    def test_standard_headers(self) -> None:
        headers = build_rate_limit_headers(
            make_result(), mode=HeaderMode.STANDARD, window_seconds=900
        )

        assert headers == {
            "RateLimit-Policy": "100;w=900",
            "RateLimit-Limit": "100",
            "RateLimit-Remaining": "99",
            "RateLimit-Reset": "900",
        }

    def test_legacy_headers(self) -> None:
        headers = build_rate_limit_headers(
            make_result(reset_at=1900.2), mode=HeaderMode.LEGACY, window_seconds=900
        )

        assert headers == {
            "X-RateLimit-Limit": "100",
            "X-RateLimit-Remaining": "99",
            "X-RateLimit-Reset": "1901",
        }

    def test_none_mode_emits_nothing(self) -> None:
        denied = make_result(decision=Decision.DENY, remaining=0, retry_after_seconds=30)

        assert build_rate_limit_headers(denied, mode=HeaderMode.NONE, window_seconds=900) == {}

    @pytest.mark.parametrize("mode", [HeaderMode.STANDARD, HeaderMode.LEGACY])
    def test_retry_after_only_when_denied(self, mode: HeaderMode) -> None:
        allowed = build_rate_limit_headers(make_result(), mode=mode, window_seconds=900)
        denied = build_rate_limit_headers(
            make_result(decision=Decision.DENY, remaining=0, retry_after_seconds=30),
            mode=mode,
            window_seconds=900,
        )

        assert "Retry-After" not in allowed
        assert denied["Retry-After"] == "30"


class TestRateLimitStage:
    @pytest.mark.asyncio
    async def test_allowed_request_continues_and_queues_headers(self) -> None:
        limiter = FixedWindowRateLimiter(
            max_requests=2, window_seconds=60, clock=Mock(return_value=1000.0)
        )
        stage = RateLimitStage(limiter)
        request = make_request()

        assert await stage(request) is None
        assert request.state.response_headers["RateLimit-Remaining"] == "1"

    @pytest.mark.asyncio
    async def test_denied_request_answers_429(self) -> None:
        limiter = FixedWindowRateLimiter(
            max_requests=1, window_seconds=60, clock=Mock(return_value=1000.0)
        )
        stage = RateLimitStage(limiter, header_mode=HeaderMode.LEGACY)

        await stage(make_request())
        response = await stage(make_request())

        assert response is not None
        assert response.status_code == 429
        body = json.loads(response.body)
        assert body["error"]["code"] == "rate_limit_exceeded"
        assert body["error"]["message"] == RATE_LIMIT_MESSAGE
        assert body["error"]["details"]["retry_after"] == 60
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_clients_are_isolated(self) -> None:
        limiter = FixedWindowRateLimiter(
            max_requests=1, window_seconds=60, clock=Mock(return_value=1000.0)
        )
        stage = RateLimitStage(limiter)

        assert await stage(make_request(client=("198.51.100.1", 1))) is None
        assert await stage(make_request(client=("198.51.100.2", 1))) is None
        assert await stage(make_request(client=("198.51.100.1", 1))) is not None

    @pytest.mark.asyncio
    async def test_missing_identity_does_not_touch_limiter(self) -> None:
        limiter = Mock(spec=FixedWindowRateLimiter)
        stage = RateLimitStage(limiter)

        with pytest.raises(InvalidClientKeyError):
            await stage(make_request(client=None))

        limiter.check.assert_not_called()

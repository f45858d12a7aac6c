"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets TESTING (and the defaults below) before any authgate import so the
settings never pick up a local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")

os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "100")
os.environ.setdefault("RATE_LIMIT_WINDOW_SECONDS", "900")

from typing import Callable  # noqa: E402
from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from authgate.adapters.rate_limit.base import HeaderMode  # noqa: E402
from authgate.adapters.rate_limit.fixed_window import FixedWindowRateLimiter  # noqa: E402
from authgate.adapters.rate_limit.in_memory import InMemoryWindowStore  # noqa: E402
from authgate.core.app_factory import create_app  # noqa: E402
from authgate.core.config import RateLimitSettings, Settings  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable time source starting at t=1000s."""
    return Mock(return_value=1000.0)


@pytest.fixture
def build_app(clock: Mock) -> Callable[..., FastAPI]:
    """Factory building an app with a small, clock-controlled limiter."""

    def _build(
        *,
        max_requests: int = 2,
        window_seconds: int = 60,
        header_mode: HeaderMode = HeaderMode.STANDARD,
        enabled: bool = True,
        trust_forwarded_for: bool = False,
    ) -> FastAPI:
        cfg = Settings(
            rate_limit=RateLimitSettings(
                enabled=enabled,
                max_requests=max_requests,
                window_seconds=window_seconds,
                header_mode=header_mode,
                trust_forwarded_for=trust_forwarded_for,
            )
        )
        limiter = FixedWindowRateLimiter(
            max_requests=max_requests,
            window_seconds=window_seconds,
            store=InMemoryWindowStore(),
            clock=clock,
        )
        return create_app(app_settings=cfg, rate_limiter=limiter)

    return _build


@pytest.fixture
def client(build_app: Callable[..., FastAPI]) -> TestClient:
    """Test client for an app allowing 2 requests per 60s window."""
    return TestClient(build_app())


@pytest.fixture
def register_body() -> dict[str, str]:
    return {
        "name": "John",
        "lastName": "Doe",
        "email": "johndoes@gmail.com",
        "password": "test@123",
        "location": "Mumbai",
    }

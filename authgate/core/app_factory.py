"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the objects shared across requests: the rate limiter with its window store,
the auth pipeline and the auth service all live on ``app.state`` so tests
and deployments can inject their own.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from authgate.adapters.rate_limit.base import HeaderMode
from authgate.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from authgate.adapters.users.base import AbstractUserRepository
from authgate.adapters.users.in_memory import InMemoryUserRepository
from authgate.api.routes import auth_router, health_router
from authgate.core.config import Settings, settings as default_settings
from authgate.core.exception_handlers import setup_exception_handlers
from authgate.core.logging import configure_logging
from authgate.core.middleware import build_request_id_middleware
from authgate.core.openapi import apply_openapi_customizations
from authgate.core.pipeline import PipelineStage, RequestPipeline
from authgate.core.rate_limit import RateLimitStage, build_rate_limiter
from authgate.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def create_app(
    *,
    app_settings: Settings | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
    users: AbstractUserRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; the process-wide settings by default.
        rate_limiter: Limiter guarding the auth routes; built from
            ``RATE_LIMIT_*`` settings when omitted.
        users: User repository; a fresh in-memory one when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title=cfg.app.title,
        description=(
            "User registration and login endpoints guarded by a per-client "
            "fixed-window rate limiter. Rate limit metadata is returned in "
            "RateLimit-* (or legacy X-RateLimit-*) headers."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    limiter = rate_limiter or build_rate_limiter(cfg.rate_limit)
    stages: list[PipelineStage] = []
    if cfg.rate_limit.enabled:
        stages.append(
            RateLimitStage(
                limiter,
                header_mode=cfg.rate_limit.header_mode,
                trust_forwarded_for=cfg.rate_limit.trust_forwarded_for,
            )
        )

    app.state.rate_limiter = limiter
    app.state.auth_pipeline = RequestPipeline(stages)
    app.state.auth_service = AuthService(
        users if users is not None else InMemoryUserRepository(),
        auth_settings=cfg.auth,
    )

    # Middleware
    app.middleware("http")(build_request_id_middleware(cfg.log.request_id_header))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(health_router)

    documented_headers = cfg.rate_limit.header_mode if cfg.rate_limit.enabled else HeaderMode.NONE
    apply_openapi_customizations(app, header_mode=documented_headers)

    logger.info(
        "app.created",
        extra={
            "app_env": cfg.app_env,
            "rate_limit_enabled": cfg.rate_limit.enabled,
            "rate_limit_max_requests": limiter.max_requests,
            "rate_limit_window_s": limiter.window_seconds,
            "rate_limit_header_mode": cfg.rate_limit.header_mode.value,
        },
    )
    return app

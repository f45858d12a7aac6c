"""FastAPI dependencies resolving objects installed by the app factory."""

from __future__ import annotations

from fastapi import Request

from authgate.core.pipeline import RequestPipeline
from authgate.services.auth_service import AuthService


def get_auth_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.auth_pipeline


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service

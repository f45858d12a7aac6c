"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata (``Auth``, ``Health``)
- Component schemas for request bodies read by the auth pipeline, plus the
  public ``User`` schema
- Rate limit headers for the configured header mode documented on the
  auth operations

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI
from pydantic import BaseModel

from authgate.adapters.rate_limit.base import HeaderMode
from authgate.schemas.auth import LoginRequest, RegisterRequest, UserPublic

REF_TEMPLATE = "#/components/schemas/{model}"

_COMPONENT_MODELS: dict[str, type[BaseModel]] = {
    "RegisterRequest": RegisterRequest,
    "LoginRequest": LoginRequest,
    "User": UserPublic,
}

_RATE_LIMIT_HEADERS: dict[HeaderMode, dict[str, Any]] = {
    HeaderMode.STANDARD: {
        "RateLimit-Policy": {
            "description": "Quota policy as `<limit>;w=<window seconds>`.",
            "schema": {"type": "string"},
        },
        "RateLimit-Limit": {
            "description": "Requests allowed per window.",
            "schema": {"type": "integer"},
        },
        "RateLimit-Remaining": {
            "description": "Requests left in the current window.",
            "schema": {"type": "integer"},
        },
        "RateLimit-Reset": {
            "description": "Seconds until the window resets.",
            "schema": {"type": "integer"},
        },
    },
    HeaderMode.LEGACY: {
        "X-RateLimit-Limit": {
            "description": "Requests allowed per window.",
            "schema": {"type": "integer"},
        },
        "X-RateLimit-Remaining": {
            "description": "Requests left in the current window.",
            "schema": {"type": "integer"},
        },
        "X-RateLimit-Reset": {
            "description": "UNIX time (seconds) at which the window resets.",
            "schema": {"type": "integer"},
        },
    },
    HeaderMode.NONE: {},
}

_RETRY_AFTER_HEADER: dict[str, Any] = {
    "Retry-After": {
        "description": "Seconds to wait before retrying.",
        "schema": {"type": "integer"},
    },
}


def _model_schema(model: type[BaseModel], schemas: dict[str, Any]) -> dict[str, Any]:
    schema = model.model_json_schema(by_alias=True, ref_template=REF_TEMPLATE)
    # Nested definitions become siblings in components.schemas
    for name, definition in schema.pop("$defs", {}).items():
        schemas.setdefault(name, definition)
    return schema


def apply_openapi_customizations(
    app: FastAPI, *, header_mode: HeaderMode = HeaderMode.STANDARD
) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and schemas.

    Args:
        app: FastAPI application instance.
        header_mode: Rate limit header set actually sent by the auth routes;
            ``HeaderMode.NONE`` documents no rate limit headers.
    """
    rate_limit_headers = _RATE_LIMIT_HEADERS[header_mode]

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        for name, model in _COMPONENT_MODELS.items():
            schemas.setdefault(name, _model_schema(model, schemas))

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Auth",
                "description": "Authentication APIs (rate limited per client IP).",
            },
            {
                "name": "Health",
                "description": "Liveness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if "/auth/" not in path:
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                for status, response in method_obj.get("responses", {}).items():
                    headers = dict(rate_limit_headers)
                    if status == "429" and header_mode is not HeaderMode.NONE:
                        headers.update(_RETRY_AFTER_HEADER)
                    if headers:
                        response.setdefault("headers", {}).update(headers)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]

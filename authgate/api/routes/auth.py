from __future__ import annotations

from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from authgate.api.deps import get_auth_pipeline, get_auth_service
from authgate.core.pipeline import RequestPipeline
from authgate.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from authgate.schemas.errors import ErrorResponse
from authgate.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

BodyT = TypeVar("BodyT", bound=BaseModel)

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    429: {"model": ErrorResponse, "description": "Too many requests from this client"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}


def _json_body(schema_name: str) -> dict[str, Any]:
    """OpenAPI requestBody pointing at a component registered in core.openapi."""
    return {
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {
                    "schema": {"$ref": f"#/components/schemas/{schema_name}"},
                }
            },
        }
    }


async def parse_body(request: Request, model: type[BodyT]) -> BodyT:
    """Validate the JSON body against a model.

    Bodies are read here, after the pipeline stages ran, so that malformed
    requests are still counted by the rate limiter.

    Raises:
        RequestValidationError: If the body is not JSON or fails validation
            (rendered as 422 by FastAPI).
    """
    try:
        body = await request.json()
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": None}]
        ) from exc

    try:
        return model.model_validate(body)
    except ValidationError as exc:
        errors = [
            {**error, "loc": ("body", *error["loc"])}
            for error in exc.errors(include_url=False, include_context=False)
        ]
        raise RequestValidationError(errors) from exc


@router.post(
    "/register",
    summary="Register new user",
    response_model=AuthResponse,
    responses={200: {"description": "User created successfully"}, 409: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    openapi_extra=_json_body("RegisterRequest"),
)
async def register(
    request: Request,
    pipeline: Annotated[RequestPipeline, Depends(get_auth_pipeline)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> Response:
    """Create a user account.

    Guarded by the per-client rate limiter; the body is only validated and
    the account created when the request is admitted.
    """

    async def handler(req: Request) -> AuthResponse:
        payload = await parse_body(req, RegisterRequest)
        return await service.register(payload)

    return await pipeline.run(request, handler)


@router.post(
    "/login",
    summary="Login",
    response_model=AuthResponse,
    responses={200: {"description": "Login successful"}, 401: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    openapi_extra=_json_body("LoginRequest"),
)
async def login(
    request: Request,
    pipeline: Annotated[RequestPipeline, Depends(get_auth_pipeline)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> Response:
    """Exchange email and password for an access token."""

    async def handler(req: Request) -> AuthResponse:
        payload = await parse_body(req, LoginRequest)
        return await service.login(payload)

    return await pipeline.run(request, handler)

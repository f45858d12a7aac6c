"""Explicit request-handling pipeline.

Routes run their handler through an ordered list of stages instead of
stacking decorators or dependencies. Each stage either lets the request
continue (returns ``None``) or answers it (returns a ``Response``), in which
case later stages and the handler are skipped.

Stages may queue response headers with :func:`add_response_headers`; they are
applied to whatever response the pipeline finally returns.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[Any]]


class PipelineStage(Protocol):
    """A single step executed before the route handler."""

    async def __call__(self, request: Request) -> Response | None: ...


def add_response_headers(request: Request, headers: Mapping[str, str]) -> None:
    """Queue headers to be set on the final response of this request."""
    pending: dict[str, str] = getattr(request.state, "response_headers", None) or {}
    pending.update(headers)
    request.state.response_headers = pending


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    return JSONResponse(status_code=200, content=jsonable_encoder(result, by_alias=True))


class RequestPipeline:
    """Run stages in order, then the handler if no stage answered."""

    def __init__(self, stages: Sequence[PipelineStage]) -> None:
        self._stages = tuple(stages)

    @property
    def stages(self) -> tuple[PipelineStage, ...]:
        return self._stages

    async def run(self, request: Request, handler: Handler) -> Response:
        """Execute the pipeline for a request.

        Args:
            request: Incoming request.
            handler: Final stage producing the response payload. Its return
                value is serialized to a 200 JSON response unless it already
                is a Response.

        Returns:
            The short-circuit response of the first stage that produced one,
            otherwise the handler's response. Queued headers are applied in
            both cases.

        Raises:
            Exception: Whatever the handler raises propagates unchanged.
        """
        response: Response | None = None
        for stage in self._stages:
            response = await stage(request)
            if response is not None:
                logger.debug(
                    "pipeline.short_circuit",
                    extra={
                        "stage": type(stage).__name__,
                        "status_code": response.status_code,
                    },
                )
                break

        if response is None:
            response = _to_response(await handler(request))

        for name, value in (getattr(request.state, "response_headers", None) or {}).items():
            response.headers[name] = value
        return response

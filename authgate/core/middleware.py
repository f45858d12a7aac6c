"""HTTP middleware for request ID propagation and correlation.

The middleware:
- Accepts the incoming request id header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Turns unexpected errors into the generic 500 envelope while the id is set
- Applies response headers queued by pipeline stages, including on error responses
- Echoes request_id and total duration back in response headers
- Logs one ``http.request`` line per request

Usage:
    app.middleware("http")(build_request_id_middleware("X-Request-ID"))
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from authgate.core.exception_handlers import general_exception_handler
from authgate.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def _apply_queued_headers(request: Request, response: Response) -> None:
    # request.state lives in the ASGI scope, shared with the route's Request
    for name, value in (getattr(request.state, "response_headers", None) or {}).items():
        response.headers[name] = value


def build_request_id_middleware(
    header_name: str,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Build the request id middleware bound to a header name.

    Args:
        header_name: Header read from the request and echoed on the response
            (``LogSettings.request_id_header``).

    Returns:
        An ``http`` middleware callable for ``app.middleware("http")``.
    """

    async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
        """Attach a correlation id and duration to every request/response pair.

        If the client sends the request id header that value is reused,
        otherwise a new UUID is generated.
        """
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        set_request_id(request_id)
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                response = await general_exception_handler(request, exc)

            _apply_queued_headers(request, response)
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "http.request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
        finally:
            clear_request_id()

        response.headers[header_name] = request_id
        response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
        return response

    return request_id_middleware

"""Tests for the explicit request pipeline."""

from __future__ import annotations

import json

import pytest
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from authgate.core.pipeline import RequestPipeline, add_response_headers


def make_request() -> Request:
    return Request({"type": "http", "method": "POST", "path": "/", "headers": [], "query_string": b""})


class Payload(BaseModel):
    last_name: str = Field(..., alias="lastName")


class RecordingStage:
    def __init__(self, name: str, calls: list[str], response: Response | None = None) -> None:
        self.name = name
        self.calls = calls
        self.response = response

    async def __call__(self, request: Request) -> Response | None:
        self.calls.append(self.name)
        add_response_headers(request, {f"X-Stage-{self.name}": "1"})
        return self.response


@pytest.mark.asyncio
async def test_stages_run_in_order_before_handler() -> None:
    calls: list[str] = []
    pipeline = RequestPipeline([RecordingStage("a", calls), RecordingStage("b", calls)])

    async def handler(request: Request) -> dict:
        calls.append("handler")
        return {"ok": True}

    response = await pipeline.run(make_request(), handler)

    assert calls == ["a", "b", "handler"]
    assert response.status_code == 200
    assert json.loads(response.body) == {"ok": True}
    assert response.headers["X-Stage-a"] == "1"
    assert response.headers["X-Stage-b"] == "1"


@pytest.mark.asyncio
async def test_short_circuit_skips_later_stages_and_handler() -> None:
    calls: list[str] = []
    blocked = JSONResponse(status_code=429, content={"blocked": True})
    pipeline = RequestPipeline(
        [RecordingStage("gate", calls, response=blocked), RecordingStage("after", calls)]
    )

    async def handler(request: Request) -> dict:
        calls.append("handler")
        return {}

    response = await pipeline.run(make_request(), handler)

    assert calls == ["gate"]
    assert response.status_code == 429
    assert response.headers["X-Stage-gate"] == "1"


@pytest.mark.asyncio
async def test_models_are_serialized_by_alias() -> None:
    pipeline = RequestPipeline([])

    async def handler(request: Request) -> Payload:
        return Payload(lastName="Doe")

    response = await pipeline.run(make_request(), handler)

    assert json.loads(response.body) == {"lastName": "Doe"}


@pytest.mark.asyncio
async def test_handler_errors_propagate() -> None:
    pipeline = RequestPipeline([])

    async def handler(request: Request) -> dict:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await pipeline.run(make_request(), handler)

"""Pydantic schemas documenting the shared error envelope."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable, machine-readable error code.")
    message: str = Field(..., description="Human-readable message.")
    request_id: str | None = Field(None, description="Correlation id of the request.")
    details: Dict[str, Any] | None = Field(None, description="Optional structured context.")


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the service."""

    error: ErrorBody

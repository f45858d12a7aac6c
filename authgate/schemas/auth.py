"""Pydantic schemas for the auth endpoints.

Field names follow the public JSON contract (``lastName``, ``createdAt``);
Python attributes stay snake_case through aliases.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    """Body of ``POST /api/v1/auth/register``."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100, description="User name.", examples=["John"])
    last_name: str | None = Field(
        None,
        alias="lastName",
        max_length=100,
        description="User last name.",
        examples=["Doe"],
    )
    email: str = Field(
        ...,
        pattern=EMAIL_PATTERN,
        max_length=254,
        description="User email address.",
        examples=["johndoes@gmail.com"],
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="User password (at least 6 characters).",
        examples=["test@123"],
    )
    location: str | None = Field(
        None,
        max_length=100,
        description="User location (city or country).",
        examples=["Mumbai"],
    )


class LoginRequest(BaseModel):
    """Body of ``POST /api/v1/auth/login``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254, description="User email address.")
    password: str = Field(..., min_length=1, max_length=128, description="User password.")


class UserPublic(BaseModel):
    """User representation returned to clients (never includes the password)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Auto-generated id of the user.")
    name: str
    last_name: str | None = Field(None, alias="lastName")
    email: str
    location: str | None = None
    created_at: datetime = Field(..., alias="createdAt")


class AuthResponse(BaseModel):
    """Successful register/login payload."""

    success: bool = True
    message: str
    user: UserPublic
    token: str = Field(..., description="Bearer access token (JWT).")

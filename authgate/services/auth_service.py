"""Registration and login.

The service owns the credential rules (password length, email uniqueness,
password verification) and token issuance. It knows nothing about rate
limiting; the HTTP layer only calls it once admission control allowed the
request.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from datetime import datetime, timezone

from authgate.adapters.users.base import AbstractUserRepository, UserRecord
from authgate.core.config import AuthSettings
from authgate.core.errors import AuthenticationAppError, ConflictAppError, ValidationAppError
from authgate.core.logging import hash_identifier
from authgate.core.security import (
    BCRYPT_MAX_PASSWORD_BYTES,
    create_access_token,
    hash_password,
    verify_password,
)
from authgate.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserPublic

logger = logging.getLogger(__name__)


@functools.cache
def _unknown_user_hash() -> str:
    # Checked when the email is unknown so both failure paths run bcrypt
    return hash_password(uuid.uuid4().hex)


def _to_public(user: UserRecord) -> UserPublic:
    return UserPublic(
        id=user.id,
        name=user.name,
        last_name=user.last_name,
        email=user.email,
        location=user.location,
        created_at=user.created_at,
    )


class AuthService:
    """Register and authenticate users against a repository."""

    def __init__(self, users: AbstractUserRepository, *, auth_settings: AuthSettings) -> None:
        self._users = users
        self._cfg = auth_settings

    async def register(self, payload: RegisterRequest) -> AuthResponse:
        """Create a user and return it with an access token.

        Args:
            payload: Validated registration body.

        Returns:
            AuthResponse with the public user and a token.

        Raises:
            ValidationAppError: If the password is too short or too long.
            ConflictAppError: If the email is already registered.
        """
        min_length = self._cfg.password_min_length
        if len(payload.password) < min_length:
            raise ValidationAppError(
                code="password_too_short",
                message=f"Password must be at least {min_length} characters",
                details={"field": "password"},
            )
        if len(payload.password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationAppError(
                code="password_too_long",
                message=f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes",
                details={"field": "password"},
            )

        # bcrypt is CPU-bound; keep it off the event loop
        loop = asyncio.get_running_loop()
        password_hash = await loop.run_in_executor(None, hash_password, payload.password)

        user = UserRecord(
            id=uuid.uuid4().hex,
            name=payload.name,
            last_name=payload.last_name,
            email=payload.email.lower(),
            password_hash=password_hash,
            location=payload.location,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._users.add(user)
        except ConflictAppError:
            logger.info(
                "auth.register.rejected",
                extra={"email_hash": hash_identifier(user.email)},
            )
            raise

        logger.info("auth.register.success", extra={"user_id": user.id})
        return AuthResponse(
            message="User created successfully",
            user=_to_public(user),
            token=create_access_token(user.id, self._cfg),
        )

    async def login(self, payload: LoginRequest) -> AuthResponse:
        """Verify credentials and return the user with an access token.

        Raises:
            AuthenticationAppError: If the email is unknown or the password
                does not match. Both cases raise the same error.
        """
        email = payload.email.lower()
        user = self._users.get_by_email(email)

        password_hash = user.password_hash if user is not None else _unknown_user_hash()
        loop = asyncio.get_running_loop()
        password_ok = await loop.run_in_executor(
            None, verify_password, payload.password, password_hash
        )

        if user is None or not password_ok:
            logger.warning(
                "auth.login.failed",
                extra={"email_hash": hash_identifier(email), "user_found": user is not None},
            )
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid email or password",
            )

        logger.info("auth.login.success", extra={"user_id": user.id})
        return AuthResponse(
            message="Login successful",
            user=_to_public(user),
            token=create_access_token(user.id, self._cfg),
        )

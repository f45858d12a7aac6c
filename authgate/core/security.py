"""Password hashing and access tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from authgate.core.config import AuthSettings
from authgate.core.errors import AuthenticationAppError


# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    encoded = plain.encode()
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode())


def create_access_token(subject: str, cfg: AuthSettings, *, now: datetime | None = None) -> str:
    """Issue a signed JWT for a user id.

    Args:
        subject: User id stored in the ``sub`` claim.
        cfg: Auth settings (secret, algorithm, lifetime).
        now: Issue time; defaults to the current UTC time.

    Returns:
        Encoded token string.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=cfg.jwt_expire_minutes),
    }
    return jwt.encode(payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm)


def decode_access_token(token: str, cfg: AuthSettings) -> dict[str, Any]:
    """Decode and validate a JWT.

    The service only issues tokens; this is the verification half for
    consumers of those tokens (downstream services, protected routes).

    Raises:
        AuthenticationAppError: If the token is invalid or expired.
    """
    try:
        return jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationAppError(
            code="invalid_token",
            message="Invalid or expired token",
        ) from exc

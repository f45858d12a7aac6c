"""Unit tests for the auth service and the user repository."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from authgate.adapters.users.base import UserRecord
from authgate.adapters.users.in_memory import InMemoryUserRepository
from authgate.core.config import AuthSettings
from authgate.core.errors import AuthenticationAppError, ConflictAppError, ValidationAppError
from authgate.core.security import decode_access_token
from authgate.schemas.auth import LoginRequest, RegisterRequest
from authgate.services.auth_service import AuthService


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(jwt_secret="unit-test-secret", password_min_length=6)


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def service(users: InMemoryUserRepository, auth_settings: AuthSettings) -> AuthService:
    return AuthService(users, auth_settings=auth_settings)


@pytest.fixture
def register_request(register_body: dict[str, str]) -> RegisterRequest:
    return RegisterRequest.model_validate(register_body)


class TestRegister:
    @pytest.mark.asyncio
    async def test_stores_hashed_password(
        self, service: AuthService, users: InMemoryUserRepository, register_request: RegisterRequest
    ) -> None:
        response = await service.register(register_request)

        stored = users.get_by_email("johndoes@gmail.com")
        assert stored is not None
        assert stored.password_hash != register_request.password
        assert stored.password_hash.startswith("$2")
        assert response.user.id == stored.id

    @pytest.mark.asyncio
    async def test_token_subject_is_user_id(
        self, service: AuthService, auth_settings: AuthSettings, register_request: RegisterRequest
    ) -> None:
        response = await service.register(register_request)

        claims = decode_access_token(response.token, auth_settings)
        assert claims["sub"] == response.user.id

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, service: AuthService, register_body: dict[str, str]) -> None:
        response = await service.register(
            RegisterRequest.model_validate({**register_body, "email": "John.Doe@Example.COM"})
        )

        assert response.user.email == "john.doe@example.com"

    @pytest.mark.asyncio
    async def test_rejects_short_password(
        self, service: AuthService, users: InMemoryUserRepository, register_body: dict[str, str]
    ) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await service.register(RegisterRequest.model_validate({**register_body, "password": "abc"}))

        assert exc_info.value.code == "password_too_short"
        assert len(users) == 0

    @pytest.mark.asyncio
    async def test_rejects_duplicate_email(
        self, service: AuthService, register_request: RegisterRequest
    ) -> None:
        await service.register(register_request)

        with pytest.raises(ConflictAppError) as exc_info:
            await service.register(register_request)

        assert exc_info.value.code == "email_already_registered"


class TestLogin:
    @pytest.mark.asyncio
    async def test_valid_credentials(
        self, service: AuthService, register_request: RegisterRequest
    ) -> None:
        registered = await service.register(register_request)

        response = await service.login(
            LoginRequest(email="JohnDoes@gmail.com", password=register_request.password)
        )

        assert response.user.id == registered.user.id
        assert response.message == "Login successful"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [
            ("johndoes@gmail.com", "wrong-password"),
            ("unknown@gmail.com", "test@123"),
        ],
    )
    async def test_invalid_credentials_share_one_error(
        self, service: AuthService, register_request: RegisterRequest, email: str, password: str
    ) -> None:
        await service.register(register_request)

        with pytest.raises(AuthenticationAppError) as exc_info:
            await service.login(LoginRequest(email=email, password=password))

        assert exc_info.value.code == "invalid_credentials"
        assert exc_info.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email_still_checks_a_password_hash(
        self, service: AuthService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        verify = Mock(return_value=True)
        monkeypatch.setattr("authgate.services.auth_service.verify_password", verify)

        with pytest.raises(AuthenticationAppError):
            await service.login(LoginRequest(email="unknown@gmail.com", password="test@123"))

        verify.assert_called_once()
        assert verify.call_args.args[1].startswith("$2")


class TestInMemoryUserRepository:
    def test_add_and_lookup_case_insensitive(self, users: InMemoryUserRepository) -> None:
        user = UserRecord(
            id="u1",
            name="Jane",
            last_name=None,
            email="jane@example.com",
            password_hash="x",
            location=None,
            created_at=datetime.now(timezone.utc),
        )

        users.add(user)

        assert users.get_by_email("JANE@example.com") == user
        assert users.get_by_email("other@example.com") is None

    def test_duplicate_add_raises(self, users: InMemoryUserRepository) -> None:
        user = UserRecord(
            id="u1",
            name="Jane",
            last_name=None,
            email="jane@example.com",
            password_hash="x",
            location=None,
            created_at=datetime.now(timezone.utc),
        )
        users.add(user)

        with pytest.raises(ConflictAppError):
            users.add(user)


@pytest.mark.asyncio
async def test_register_rejects_password_over_bcrypt_limit(
    service: AuthService, register_body: dict[str, str]
) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        await service.register(RegisterRequest.model_validate({**register_body, "password": "é" * 40}))

    assert exc_info.value.code == "password_too_long"

"""Process-local user repository."""

from __future__ import annotations

import threading

from authgate.adapters.users.base import AbstractUserRepository, UserRecord
from authgate.core.errors import ConflictAppError


class InMemoryUserRepository(AbstractUserRepository):
    """Thread-safe dict of users keyed by email."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users_by_email: dict[str, UserRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._users_by_email)

    def add(self, user: UserRecord) -> None:
        with self._lock:
            if user.email in self._users_by_email:
                raise ConflictAppError(
                    code="email_already_registered",
                    message="Email already registered, please login",
                )
            self._users_by_email[user.email] = user

    def get_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            return self._users_by_email.get(email.lower())

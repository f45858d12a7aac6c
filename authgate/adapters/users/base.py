"""User repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    """Stored user. ``email`` is always lower-cased."""

    id: str
    name: str
    last_name: str | None
    email: str
    password_hash: str
    location: str | None
    created_at: datetime


class AbstractUserRepository(ABC):
    """Persistence boundary for user records."""

    @abstractmethod
    def add(self, user: UserRecord) -> None:
        """Persist a new user.

        Raises:
            ConflictAppError: If a user with the same email already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def get_by_email(self, email: str) -> UserRecord | None:
        """Return the user registered with email, if any."""
        raise NotImplementedError

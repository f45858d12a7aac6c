"""User persistence adapters."""

from authgate.adapters.users.base import AbstractUserRepository, UserRecord
from authgate.adapters.users.in_memory import InMemoryUserRepository

__all__ = [
    "AbstractUserRepository",
    "InMemoryUserRepository",
    "UserRecord",
]

"""Repository package exposing persistence-layer access for the account model."""

from __future__ import annotations

from identity_service.repositories.base import (
    BaseRepository,
    UniqueViolation,
    is_unique_violation,
)
from identity_service.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "UniqueViolation",
    "UserRepository",
    "is_unique_violation",
]

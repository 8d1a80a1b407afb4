from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from identity_service.models.user import User

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SendCodeIn:
    """
    Input DTO for requesting a registration code.

    :param email: Address that will receive the code.
    :type email: str
    """

    email: str


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param email: Address the code was sent to.
    :param password: Raw password (hashed before storage).
    :param code: Six-digit verification code.
    :param nickname: Display name.
    """

    email: str
    password: str
    code: str
    nickname: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Account email, exactly as registered.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    """
    Partial profile update. ``None`` leaves a field unchanged.

    :param nickname: New display name; empty is rejected.
    :param avatar_url: New avatar location; empty clears it.
    """

    nickname: str | None = None
    avatar_url: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    """
    Public view of an account. Never carries the password hash.
    """

    id: int
    email: str
    nickname: str
    avatar_url: str | None
    is_premium: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            email=user.email,
            nickname=user.nickname,
            avatar_url=user.avatar_url,
            is_premium=bool(user.is_premium),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

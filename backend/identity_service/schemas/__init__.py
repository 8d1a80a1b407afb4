"""Marshmallow schemas for request validation and response shaping."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    SendCodeSchema,
    TokenPairSchema,
)
from .user import ProfileUpdateSchema, UserSchema

__all__ = [
    "LoginSchema",
    "ProfileUpdateSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "SendCodeSchema",
    "TokenPairSchema",
    "UserSchema",
]

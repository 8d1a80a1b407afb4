"""User account row: login identity plus public profile fields."""

from __future__ import annotations

from sqlalchemy import Boolean, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, validates

from identity_service.core.config import DEFAULT_NICKNAME, MAX_EMAIL_LENGTH
from identity_service.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Registered account.

    Fields
    ------
    email : str
        Login email, unique and compared exactly as stored.
    password_hash : str
        One-way hash produced by the password hasher. Never the raw secret.
    nickname : str
        Display name chosen at registration.
    avatar_url : str | None
        Optional avatar location.
    is_premium : bool
        Subscription flag, ``False`` for new accounts.
    created_at, updated_at : datetime
        Audit timestamps (from mixin).
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(MAX_EMAIL_LENGTH), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    nickname: Mapped[str] = mapped_column(
        String(64), nullable=False, default=DEFAULT_NICKNAME, server_default=DEFAULT_NICKNAME
    )
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_premium: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    @validates("email")
    def _check_email(self, key: str, value: str) -> str:
        """
        Reject empty or oversized emails. Format checks live at the API edge.

        :raises ValueError: If the email is blank or longer than allowed.
        """
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Email is required.")
        if len(value) > MAX_EMAIL_LENGTH:
            raise ValueError("Email is too long.")
        return value

    @validates("nickname")
    def _normalize_nickname(self, key: str, value: str | None) -> str:
        """Trim the nickname, substituting the default when blank."""
        v = (value or "").strip()
        return v or DEFAULT_NICKNAME

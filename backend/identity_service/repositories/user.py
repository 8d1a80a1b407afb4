"""User repository: account lookup and creation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import select

from identity_service.models.user import User
from identity_service.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Emails are matched exactly as stored. Creation relies on the
    ``uq_users_email`` constraint for uniqueness; callers do not pre-check.
    """

    model = User

    def _updatable_fields(self) -> set[str]:
        """Profile fields editable by the account owner (never email or password)."""
        return {"nickname", "avatar_url"}

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by exact email.

        :param email: Email address as submitted.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with exactly this email exists."""
        stmt = select(User.id).where(User.email == email).limit(1)
        return self.session.execute(stmt).first() is not None

    def create(self, *, email: str, password_hash: str, nickname: str) -> User:
        """Insert a new account and return it with its assigned id.

        :raises UniqueViolation: If the email is already registered.
        """
        return self.add(User(email=email, password_hash=password_hash, nickname=nickname))

    def update_profile(self, user_id: int, fields: Mapping[str, Any]) -> User | None:
        """Apply whitelisted profile changes and flush.

        :param user_id: Account to modify.
        :param fields: Subset of ``nickname`` / ``avatar_url``.
        :returns: The updated user, or ``None`` if it does not exist.
        """
        user = self.get(user_id)
        if user is None:
            return None
        if fields:
            self.assign_updates(user, fields)
        return user

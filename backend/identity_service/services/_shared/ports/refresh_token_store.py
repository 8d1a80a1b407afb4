from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum, auto
from typing import Protocol


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()


class RefreshTokenStore(Protocol):
    """
    Server-side record of live refresh tokens.

    Each token maps to its owner for ``ttl``. A per-user index allows revoking
    every session of one user. Implementations raise
    :class:`~.errors.StoreError` on backend failures.
    """

    def save(self, *, token: str, user_id: int, ttl: timedelta) -> None:
        """Record ``token`` as belonging to ``user_id``."""
        ...

    def get_user_id(self, token: str) -> int | None:
        """Return the owner of a live token, or ``None``."""
        ...

    def rotate(
        self, *, old_token: str, new_token: str, user_id: int, ttl: timedelta
    ) -> RotationResult:
        """
        Atomically delete ``old_token`` and record ``new_token``.

        Only one of several concurrent rotations of the same ``old_token``
        may return ``OK``; the others get ``NOT_FOUND`` and write nothing.
        """
        ...

    def delete(self, token: str) -> bool:
        """Remove a token. :returns: ``True`` if it existed."""
        ...

    def delete_all_for_user(self, user_id: int) -> int:
        """Remove every live token of ``user_id``. :returns: tokens removed."""
        ...


@dataclass(frozen=True, slots=True)
class _Entry:
    user_id: int
    expires_at: datetime


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh store with atomic rotation behavior.

    .. note::
       Uses a threading lock to simulate atomicity in unit tests. Expired
       entries are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._tokens: dict[str, _Entry] = {}
        self._by_user: dict[int, set[str]] = {}
        self._lock = threading.Lock()

    def _live(self, token: str) -> _Entry | None:
        entry = self._tokens.get(token)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._drop(token)
            return None
        return entry

    def _drop(self, token: str) -> _Entry | None:
        entry = self._tokens.pop(token, None)
        if entry is not None:
            self._by_user.get(entry.user_id, set()).discard(token)
        return entry

    def save(self, *, token: str, user_id: int, ttl: timedelta) -> None:
        with self._lock:
            self._tokens[token] = _Entry(user_id=user_id, expires_at=self._clock() + ttl)
            self._by_user.setdefault(user_id, set()).add(token)

    def get_user_id(self, token: str) -> int | None:
        with self._lock:
            entry = self._live(token)
            return entry.user_id if entry else None

    def rotate(
        self, *, old_token: str, new_token: str, user_id: int, ttl: timedelta
    ) -> RotationResult:
        with self._lock:
            entry = self._live(old_token)
            if entry is None or entry.user_id != user_id:
                return RotationResult.NOT_FOUND
            self._drop(old_token)
            self._tokens[new_token] = _Entry(user_id=user_id, expires_at=self._clock() + ttl)
            self._by_user.setdefault(user_id, set()).add(new_token)
            return RotationResult.OK

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._live(token) is not None and self._drop(token) is not None

    def delete_all_for_user(self, user_id: int) -> int:
        with self._lock:
            removed = 0
            for token in list(self._by_user.pop(user_id, set())):
                entry = self._tokens.pop(token, None)
                if entry is not None and entry.expires_at > self._clock():
                    removed += 1
            return removed

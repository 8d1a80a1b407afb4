from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class VerificationCode:
    """
    One-time registration code bound to an email.

    :ivar email: Address the code was sent to.
    :ivar code: Six ASCII digits.
    :ivar expires_at: Absolute expiry (UTC).
    """

    email: str
    code: str
    expires_at: datetime


class VerificationCodeStore(Protocol):
    """
    At most one live code per email; saving replaces the previous one.

    Implementations raise :class:`~.errors.StoreError` on backend failures.
    """

    def save(self, record: VerificationCode) -> None: ...

    def get(self, email: str) -> VerificationCode | None:
        """Return the stored code, or ``None`` when nothing is stored."""
        ...

    def delete(self, email: str) -> None:
        """Remove the code for ``email``; a missing code is not an error."""
        ...


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """
    Dict-backed store for unit tests.

    Records are returned as saved, including past ``expires_at`` values, so
    callers can exercise their own expiry checks.
    """

    def __init__(self) -> None:
        self._codes: dict[str, VerificationCode] = {}
        self._lock = threading.Lock()

    def save(self, record: VerificationCode) -> None:
        with self._lock:
            self._codes[record.email] = record

    def get(self, email: str) -> VerificationCode | None:
        with self._lock:
            return self._codes.get(email)

    def delete(self, email: str) -> None:
        with self._lock:
            self._codes.pop(email, None)

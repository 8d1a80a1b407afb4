from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    One-way password hashing.

    ``hash`` returns a salted, self-describing digest; hashing the same
    password twice yields different digests. ``verify`` compares in constant
    time and returns ``False`` (never raises) for a malformed digest.
    """

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...

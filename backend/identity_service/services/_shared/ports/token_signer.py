from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol


class TokenDecodeError(Exception):
    """Token is malformed, carries a bad signature or has the wrong type."""


class ExpiredTokenError(TokenDecodeError):
    """Token signature is valid but ``exp`` is in the past."""


@dataclass(frozen=True, slots=True)
class SignedToken:
    """
    Output of :meth:`TokenSigner.sign`.

    :ivar token: Compact serialized token.
    :ivar expires_at: Absolute expiry (UTC).
    :ivar expires_in: Lifetime in whole seconds from issuance.
    """

    token: str
    expires_at: datetime
    expires_in: int


class TokenSigner(Protocol):
    """
    Signs and verifies one token type with one secret.

    Access and refresh tokens use two signer instances with distinct secrets,
    so a token minted by one is rejected by the other.
    """

    lifetime: timedelta

    def sign(self, subject: int | str, *, now: datetime | None = None) -> SignedToken:
        """Mint a token for ``subject`` valid from ``now`` for :attr:`lifetime`."""
        ...

    def verify(self, token: str) -> dict[str, Any]:
        """
        Return the verified claims.

        :raises ExpiredTokenError: If the token has expired.
        :raises TokenDecodeError: For any other rejection.
        """
        ...

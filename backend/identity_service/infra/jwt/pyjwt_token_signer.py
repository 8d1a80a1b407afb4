"""HMAC JWT signer built on PyJWT."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from identity_service.services._shared.ports import (
    ExpiredTokenError,
    SignedToken,
    TokenDecodeError,
    TokenSigner,
)

ACCESS = "access"
REFRESH = "refresh"


class PyJWTTokenSigner(TokenSigner):
    """
    Sign and verify one token type with one HMAC secret.

    Claims
    ------
    ``sub``
        Subject as a string (user id).
    ``iat`` / ``nbf`` / ``exp``
        Issued-at, not-before and expiry as UTC epoch seconds.
    ``type``
        ``"access"`` or ``"refresh"``; checked on verify.
    ``jti``
        Random id, refresh tokens only, so two refresh tokens minted in the
        same second for the same user never collide.

    :param secret: HMAC key. Must be non-empty.
    :param token_type: Value written to and required in the ``type`` claim.
    :param lifetime: Validity window from issuance.
    :param algorithm: PyJWT HMAC algorithm name.
    :param leeway: Clock skew tolerated on verify.
    """

    def __init__(
        self,
        *,
        secret: str,
        token_type: str,
        lifetime: timedelta,
        algorithm: str = "HS256",
        leeway: timedelta = timedelta(0),
    ) -> None:
        if not secret:
            raise ValueError("Token signer requires a non-empty secret.")
        self._secret = secret
        self.token_type = token_type
        self.lifetime = lifetime
        self.algorithm = algorithm
        self.leeway = leeway

    def sign(self, subject: int | str, *, now: datetime | None = None) -> SignedToken:
        issued = (now or datetime.now(UTC)).replace(microsecond=0)
        expires = issued + self.lifetime
        payload: dict[str, Any] = {
            "sub": str(subject),
            "iat": issued,
            "nbf": issued,
            "exp": expires,
            "type": self.token_type,
        }
        if self.token_type == REFRESH:
            payload["jti"] = uuid4().hex
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return SignedToken(
            token=token,
            expires_at=expires,
            expires_in=int(self.lifetime.total_seconds()),
        )

    def verify(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                leeway=self.leeway,
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError("token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenDecodeError(f"token rejected: {type(exc).__name__}") from exc
        if claims.get("type") != self.token_type:
            raise TokenDecodeError("unexpected token type")
        return claims

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from identity_service.core.config import ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL
from identity_service.services._shared.errors import ConfigurationError

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Refresh token previously issued to the client.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Refresh token to revoke.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param expires_in: Access-token lifetime in seconds.
    :param refresh_expires_in: Refresh-token lifetime in seconds.
    :param token_type: Authorization scheme for the access token.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_in: int
    token_type: str = "Bearer"


# ----------------------------- Settings ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Token signing configuration resolved once at startup.

    :param access_secret: HMAC secret for access tokens.
    :param refresh_secret: HMAC secret for refresh tokens.
    :param access_ttl: Access-token lifetime.
    :param refresh_ttl: Refresh-token lifetime.
    :param algorithm: JWT HMAC algorithm.
    """

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = ACCESS_TOKEN_TTL
    refresh_ttl: timedelta = REFRESH_TOKEN_TTL
    algorithm: str = "HS256"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenSettings:
        """
        Build settings from a Flask config mapping.

        :raises ConfigurationError: If a secret is missing or both secrets are
            identical, since either would let one token type pass as the other.
        """
        access = (config.get("JWT_ACCESS_SECRET") or "").strip()
        refresh = (config.get("JWT_REFRESH_SECRET") or "").strip()
        missing = [
            name
            for name, value in (("JWT_ACCESS_SECRET", access), ("JWT_REFRESH_SECRET", refresh))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing token secret(s): {', '.join(missing)}")
        if access == refresh:
            raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return cls(access_secret=access, refresh_secret=refresh)

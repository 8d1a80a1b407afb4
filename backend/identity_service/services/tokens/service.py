from __future__ import annotations

import logging

from identity_service.services._shared.base import BaseService, ServiceContext
from identity_service.services._shared.errors import (
    InternalError,
    InvalidTokenError,
    TokenExpiredError,
)
from identity_service.services._shared.ports import (
    ExpiredTokenError,
    RefreshTokenStore,
    RotationResult,
    StoreError,
    TokenDecodeError,
    TokenSigner,
)
from identity_service.services.tokens.dto import LogoutIn, RefreshIn, TokenPairOut

log = logging.getLogger(__name__)


class TokenLifecycleService(BaseService):
    """
    Token lifecycle: mint, validate, rotate and revoke.

    Access tokens are stateless and verified by signature only. Refresh
    tokens are only honoured while a server-side record exists in the
    :class:`RefreshTokenStore`, which makes them revocable.
    """

    def __init__(
        self,
        *,
        access_signer: TokenSigner,
        refresh_signer: TokenSigner,
        refresh_store: RefreshTokenStore,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param access_signer: Signer bound to the access secret.
        :param refresh_signer: Signer bound to the refresh secret.
        :param refresh_store: Server-side refresh session records.
        """
        super().__init__(ctx=ctx)
        self.access_signer = access_signer
        self.refresh_signer = refresh_signer
        self.refresh_store = refresh_store

    # ------------------------------------------------------------------ #
    # Minting
    # ------------------------------------------------------------------ #

    def issue_token_pair(self, user_id: int) -> TokenPairOut:
        """
        Mint an access/refresh pair for ``user_id`` without persisting it.

        :raises InternalError: If signing fails.
        """
        now = self.now_utc()
        try:
            access = self.access_signer.sign(user_id, now=now)
            refresh = self.refresh_signer.sign(user_id, now=now)
        except Exception as exc:
            log.error("Token signing failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc
        return TokenPairOut(
            access_token=access.token,
            refresh_token=refresh.token,
            expires_in=access.expires_in,
            refresh_expires_in=refresh.expires_in,
        )

    def open_session(self, user_id: int) -> TokenPairOut:
        """
        Mint a pair and record its refresh token server-side.

        :returns: Token pair ready to hand to the client.
        :raises InternalError: If signing or persistence fails.
        """
        pair = self.issue_token_pair(user_id)
        try:
            self.refresh_store.save(
                token=pair.refresh_token,
                user_id=user_id,
                ttl=self.refresh_signer.lifetime,
            )
        except StoreError as exc:
            log.error("Persisting refresh token failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc
        return pair

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate_access_token(self, token: str) -> int:
        """
        Verify an access token and return its user id.

        :param token: Compact JWT from the ``Authorization`` header.
        :returns: Positive user id from ``sub``.
        :raises InvalidTokenError: Empty, malformed, wrongly signed or with a
            non-numeric subject.
        :raises TokenExpiredError: Correctly signed but past ``exp``.
        """
        if not token:
            raise InvalidTokenError("Access token is required")
        try:
            claims = self.access_signer.verify(token)
        except ExpiredTokenError as exc:
            raise TokenExpiredError() from exc
        except TokenDecodeError as exc:
            raise InvalidTokenError() from exc
        return self._coerce_user_id(claims.get("sub"))

    @staticmethod
    def _coerce_user_id(raw: object) -> int:
        """Parse ``sub`` as a positive integer or raise :class:`InvalidTokenError`."""
        if not isinstance(raw, str) or not (raw.isascii() and raw.isdigit()):
            raise InvalidTokenError()
        user_id = int(raw)
        if user_id <= 0:
            raise InvalidTokenError()
        return user_id

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh_token(self, dto: RefreshIn) -> TokenPairOut:
        """
        Exchange a live refresh token for a new pair (rotation).

        The old record is replaced atomically. When two callers rotate the
        same token concurrently, only one wins; the other sees the old
        record gone and gets :class:`InvalidTokenError`.

        :param dto: Refresh input.
        :returns: New token pair.
        :raises InvalidTokenError: Empty, unknown, expired or already rotated.
        :raises InternalError: Store or signing failure.
        """
        old = dto.refresh_token
        if not old:
            raise InvalidTokenError("Refresh token is required")

        try:
            user_id = self.refresh_store.get_user_id(old)
        except StoreError as exc:
            log.error("Refresh token lookup failed", exc_info=True)
            raise InternalError() from exc
        if user_id is None:
            raise InvalidTokenError("Refresh token is invalid or expired")

        pair = self.issue_token_pair(user_id)
        try:
            result = self.refresh_store.rotate(
                old_token=old,
                new_token=pair.refresh_token,
                user_id=user_id,
                ttl=self.refresh_signer.lifetime,
            )
        except StoreError as exc:
            log.error("Refresh token rotation failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc

        if result is not RotationResult.OK:
            log.warning("Refresh token lost rotation race", extra={"user_id": user_id})
            raise InvalidTokenError("Refresh token is invalid or expired")
        return pair

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke one refresh token. Revoking an unknown token succeeds.

        :raises InvalidTokenError: If the token is empty.
        :raises InternalError: On store failure.
        """
        if not dto.refresh_token:
            raise InvalidTokenError("Refresh token is required")
        try:
            self.refresh_store.delete(dto.refresh_token)
        except StoreError as exc:
            log.error("Refresh token revocation failed", exc_info=True)
            raise InternalError() from exc

    def revoke_all(self, user_id: int) -> int:
        """
        Revoke every refresh token of ``user_id``.

        :returns: Number of live tokens removed.
        :raises InternalError: On store failure.
        """
        try:
            removed = self.refresh_store.delete_all_for_user(user_id)
        except StoreError as exc:
            log.error("Revoke-all failed", extra={"user_id": user_id}, exc_info=True)
            raise InternalError() from exc
        log.info("Revoked refresh tokens", extra={"user_id": user_id})
        return removed

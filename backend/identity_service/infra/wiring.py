"""Build request-scoped services from the current Flask app's extensions."""

from __future__ import annotations

from flask import current_app

from identity_service.core.extensions import get_redis
from identity_service.infra.jwt.pyjwt_token_signer import ACCESS, REFRESH, PyJWTTokenSigner
from identity_service.infra.redis.redis_rate_limiter import RedisRateLimiter
from identity_service.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from identity_service.infra.redis.redis_verification_code_store import RedisVerificationCodeStore
from identity_service.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from identity_service.services.accounts.service import AccountService
from identity_service.services.tokens.dto import TokenSettings
from identity_service.services.tokens.service import TokenLifecycleService


def build_token_service() -> TokenLifecycleService:
    settings: TokenSettings = current_app.extensions["token_settings"]
    return TokenLifecycleService(
        access_signer=PyJWTTokenSigner(
            secret=settings.access_secret,
            token_type=ACCESS,
            lifetime=settings.access_ttl,
            algorithm=settings.algorithm,
        ),
        refresh_signer=PyJWTTokenSigner(
            secret=settings.refresh_secret,
            token_type=REFRESH,
            lifetime=settings.refresh_ttl,
            algorithm=settings.algorithm,
        ),
        refresh_store=RedisRefreshTokenStore(get_redis()),
    )


def build_account_service() -> AccountService:
    redis_client = get_redis()
    return AccountService(
        code_store=RedisVerificationCodeStore(redis_client),
        rate_limiter=RedisRateLimiter(redis_client),
        password_hasher=WerkzeugPasswordHasher(current_app.config.get("PASSWORD_HASH_METHOD")),
        mailer=current_app.extensions["mailer"],
        tokens=build_token_service(),
    )

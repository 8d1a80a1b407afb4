"""
identity_service.services._shared.ports
=======================================

*Ports* (hexagonal interfaces) between the services and infrastructure.

Modules
-------
- :mod:`password_hasher`: :class:`~.PasswordHasher`, one-way password digests.
- :mod:`token_signer`: :class:`~.TokenSigner`, signing and verifying one
  token type with one secret.
- :mod:`verification_code_store`: :class:`~.VerificationCodeStore`, one live
  registration code per email.
- :mod:`rate_limiter`: :class:`~.RateLimiter`, set-if-absent fixed windows.
- :mod:`refresh_token_store`: :class:`~.RefreshTokenStore` and
  :class:`~.RotationResult`, server-side refresh sessions.
- :mod:`mailer`: :class:`~.Mailer`, outgoing verification mail.

Concrete adapters live under ``identity_service.infra``. The ``InMemory*``
classes next to each port back the unit tests.
"""

from __future__ import annotations

from .errors import MailDeliveryError, StoreError
from .mailer import InMemoryMailer, Mailer, OutgoingMail
from .password_hasher import PasswordHasher
from .rate_limiter import InMemoryRateLimiter, RateLimiter
from .refresh_token_store import InMemoryRefreshTokenStore, RefreshTokenStore, RotationResult
from .token_signer import ExpiredTokenError, SignedToken, TokenDecodeError, TokenSigner
from .verification_code_store import (
    InMemoryVerificationCodeStore,
    VerificationCode,
    VerificationCodeStore,
)

__all__ = [
    "ExpiredTokenError",
    "InMemoryMailer",
    "InMemoryRateLimiter",
    "InMemoryRefreshTokenStore",
    "InMemoryVerificationCodeStore",
    "MailDeliveryError",
    "Mailer",
    "OutgoingMail",
    "PasswordHasher",
    "RateLimiter",
    "RefreshTokenStore",
    "RotationResult",
    "SignedToken",
    "StoreError",
    "TokenDecodeError",
    "TokenSigner",
    "VerificationCode",
    "VerificationCodeStore",
]

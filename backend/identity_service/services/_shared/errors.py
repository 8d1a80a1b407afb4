"""
Service-level error taxonomy.

Every failure leaving a service is one of the classes below, each tagged with
an :class:`ErrorKind`. The kinds are framework-agnostic; the API layer maps
them to HTTP statuses in :meth:`BaseService.translate_exceptions`.

Infrastructure failures (database, Redis, mail relay) are re-raised as
:class:`InternalError` with the original exception chained as ``__cause__``
so operators keep the root cause while clients only see a generic message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Stable, machine-readable failure categories."""

    INVALID_ARGUMENT = "invalid_argument"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    INVALID_VERIFICATION_CODE = "invalid_verification_code"
    VERIFICATION_CODE_EXPIRED = "verification_code_expired"
    TOO_MANY_REQUESTS = "too_many_requests"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    :param message: Client-safe description. Falls back to ``default_message``.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL_ERROR
    default_message: ClassVar[str] = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgumentError(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT
    default_message = "Invalid argument"


class InvalidCredentialsError(ServiceError):
    """Unknown email or wrong password; the two are deliberately indistinguishable."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class EmailAlreadyExistsError(ServiceError):
    kind = ErrorKind.EMAIL_ALREADY_EXISTS
    default_message = "Email is already registered"


class InvalidVerificationCodeError(ServiceError):
    kind = ErrorKind.INVALID_VERIFICATION_CODE
    default_message = "Verification code is invalid"


class VerificationCodeExpiredError(ServiceError):
    kind = ErrorKind.VERIFICATION_CODE_EXPIRED
    default_message = "Verification code has expired"


class TooManyRequestsError(ServiceError):
    kind = ErrorKind.TOO_MANY_REQUESTS
    default_message = "Too many requests, try again later"


class InvalidTokenError(ServiceError):
    kind = ErrorKind.INVALID_TOKEN
    default_message = "Token is invalid"


class TokenExpiredError(ServiceError):
    kind = ErrorKind.TOKEN_EXPIRED
    default_message = "Token has expired"


@dataclass(slots=True, eq=False)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., ``"User"``).
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    entity: str
    key: str | int

    def __post_init__(self) -> None:
        self.message = f"{self.entity} not found"
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


class InternalError(ServiceError):
    """Infrastructure failure. Clients only ever see the generic message."""

    kind = ErrorKind.INTERNAL_ERROR


class ConfigurationError(InternalError):
    """Mandatory configuration is missing or inconsistent."""


__all__ = [
    "ConfigurationError",
    "EmailAlreadyExistsError",
    "ErrorKind",
    "InternalError",
    "InvalidArgumentError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "InvalidVerificationCodeError",
    "NotFoundError",
    "ServiceError",
    "TokenExpiredError",
    "TooManyRequestsError",
    "VerificationCodeExpiredError",
]

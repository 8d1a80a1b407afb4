from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from identity_service.core import errors as api_errors
from identity_service.services._shared.errors import ErrorKind, ServiceError
from identity_service.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# ErrorKind -> API error class (status + stable code come from the kind)
_API_ERRORS: dict[ErrorKind, type[api_errors.APIError]] = {
    ErrorKind.INVALID_ARGUMENT: api_errors.BadRequest,
    ErrorKind.INVALID_VERIFICATION_CODE: api_errors.BadRequest,
    ErrorKind.VERIFICATION_CODE_EXPIRED: api_errors.BadRequest,
    ErrorKind.INVALID_CREDENTIALS: api_errors.Unauthorized,
    ErrorKind.INVALID_TOKEN: api_errors.Unauthorized,
    ErrorKind.TOKEN_EXPIRED: api_errors.Unauthorized,
    ErrorKind.EMAIL_ALREADY_EXISTS: api_errors.Conflict,
    ErrorKind.NOT_FOUND: api_errors.NotFound,
    ErrorKind.TOO_MANY_REQUESTS: api_errors.TooManyRequests,
}


@dataclass(slots=True)
class ServiceContext:
    """
    Request-scoped data shared by services.

    :param actor_id: Authenticated user identifier, when known.
    :param request_id: Correlation id for logging.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Translate the service error taxonomy into API errors.
    * Offer a single UTC clock so subclasses and tests agree on "now".
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc)

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map a :class:`ServiceError` to its API-level counterpart.

        Internal errors always become a generic 500 so causes never leak.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised, or ``exc``
            untouched when it is not a service error.
        :rtype: Exception
        """
        if not isinstance(exc, ServiceError):
            return exc
        api_cls = _API_ERRORS.get(exc.kind)
        if api_cls is None:
            return api_errors.InternalServerError()
        return api_cls(exc.message, code=exc.kind.value)

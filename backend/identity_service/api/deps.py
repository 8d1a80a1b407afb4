"""Shared API helpers: responses, timing, error translation and auth."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from identity_service.infra.wiring import build_token_service
from identity_service.services._shared.base import BaseService
from identity_service.services._shared.errors import InvalidTokenError, ServiceError

F = TypeVar("F", bound=Callable[..., Any])

_translator = BaseService()


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def service_errors(func: F) -> F:
    """Re-raise :class:`ServiceError` as the matching API error (RFC 7807)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise _translator.translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def bearer_token() -> str:
    """Extract the token from ``Authorization: Bearer <token>``.

    :raises InvalidTokenError: If the header is missing or not a bearer token.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenError("Missing bearer token")
    return token.strip()


def require_auth(func: F) -> F:
    """Validate the bearer access token and expose its user id as ``g.user_id``.

    Must sit below :func:`service_errors` so token errors become 401s.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.user_id = build_token_service().validate_access_token(bearer_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]

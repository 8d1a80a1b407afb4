"""Helpers shared by the Redis adapters."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta

from redis.exceptions import RedisError  # type: ignore[import-untyped]

from identity_service.services._shared.ports import StoreError


@contextmanager
def translate_redis_errors(operation: str) -> Iterator[None]:
    """Re-raise any :class:`RedisError` as :class:`StoreError` (chained)."""
    try:
        yield
    except RedisError as exc:
        raise StoreError(f"redis {operation} failed: {type(exc).__name__}") from exc


def as_str(value: bytes | str | None) -> str | None:
    """Decode replies from clients created without ``decode_responses``."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for ``EX``; Redis rejects non-positive expirations."""
    return max(1, int(ttl.total_seconds()))

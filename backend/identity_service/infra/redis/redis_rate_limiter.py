from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta

import redis  # type: ignore[import-untyped]

from identity_service.services._shared.ports import RateLimiter

from ._common import translate_redis_errors, ttl_seconds


@dataclass(slots=True)
class RedisRateLimiter(RateLimiter):
    """
    ``SET key now NX EX window`` under ``rate_limit:{key}``.

    Atomicity comes from ``NX``: exactly one caller per window sees the set
    succeed.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(key: str) -> str:
        return f"rate_limit:{key}"

    def claim(self, key: str, window: timedelta) -> bool:
        with translate_redis_errors("claim rate limit"):
            created = self.r.set(self._k(key), int(time.time()), nx=True, ex=ttl_seconds(window))
        return bool(created)

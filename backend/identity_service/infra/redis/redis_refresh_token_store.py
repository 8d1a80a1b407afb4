from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

import redis  # type: ignore[import-untyped]

from identity_service.services._shared.ports import RefreshTokenStore, RotationResult

from ._common import as_str, translate_redis_errors, ttl_seconds

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    Layout
    ------
    ``refresh_token:{token}``
        Owner user id, expiring with the token.
    ``refresh_token:user:{user_id}``
        Set of the user's tokens. Its TTL is pushed forward on each write;
        members whose token key already expired are dropped with the set on
        revoke-all, where they count as nothing removed.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(token: str) -> str:
        return f"refresh_token:{token}"

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"refresh_token:user:{user_id}"

    @staticmethod
    def _owner(raw: bytes | str | None) -> int | None:
        value = as_str(raw)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            log.warning("Refresh token record holds a non-integer owner")
            return None

    def save(self, *, token: str, user_id: int, ttl: timedelta) -> None:
        seconds = ttl_seconds(ttl)
        with translate_redis_errors("save refresh token"):
            pipe = self.r.pipeline(transaction=True)
            pipe.set(self._k(token), user_id, ex=seconds)
            pipe.sadd(self._ku(user_id), token)
            pipe.expire(self._ku(user_id), seconds)
            pipe.execute()

    def get_user_id(self, token: str) -> int | None:
        with translate_redis_errors("get refresh token"):
            raw = self.r.get(self._k(token))
        return self._owner(raw)

    def rotate(
        self, *, old_token: str, new_token: str, user_id: int, ttl: timedelta
    ) -> RotationResult:
        """
        Atomically consume ``old_token`` and record ``new_token``.

        Uses WATCH/MULTI/EXEC on the old key: if another client touches it
        between the read and EXEC, the transaction aborts and the check is
        re-run, which then sees the key gone and returns ``NOT_FOUND``.
        """
        seconds = ttl_seconds(ttl)
        k_old, k_new, k_user = self._k(old_token), self._k(new_token), self._ku(user_id)

        with translate_redis_errors("rotate refresh token"), self.r.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(k_old)
                    if self._owner(pipe.get(k_old)) != user_id:
                        pipe.unwatch()
                        return RotationResult.NOT_FOUND
                    pipe.multi()
                    pipe.delete(k_old)
                    pipe.set(k_new, user_id, ex=seconds)
                    pipe.srem(k_user, old_token)
                    pipe.sadd(k_user, new_token)
                    pipe.expire(k_user, seconds)
                    pipe.execute()
                    return RotationResult.OK
                except redis.WatchError:
                    continue

    def delete(self, token: str) -> bool:
        key = self._k(token)
        with translate_redis_errors("delete refresh token"):
            owner = self._owner(self.r.get(key))
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(key)
            if owner is not None:
                pipe.srem(self._ku(owner), token)
            deleted = pipe.execute()[0]
        return bool(deleted)

    def delete_all_for_user(self, user_id: int) -> int:
        k_user = self._ku(user_id)
        with translate_redis_errors("revoke refresh tokens"):
            members = [as_str(m) for m in self.r.smembers(k_user)]
            pipe = self.r.pipeline(transaction=True)
            for token in members:
                pipe.delete(self._k(token))
            pipe.delete(k_user)
            results = pipe.execute()
        # Last reply belongs to the index key itself
        return int(sum(results[:-1]))

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from identity_service.services._shared.ports import VerificationCode, VerificationCodeStore

from ._common import as_str, translate_redis_errors, ttl_seconds


@dataclass(slots=True)
class RedisVerificationCodeStore(VerificationCodeStore):
    """
    Codes live in a hash under ``verification_code:{email}``.

    Fields
    ------
    ``code``
        The six digits.
    ``expires_at``
        Absolute expiry as UTC epoch seconds.

    The key also carries a native TTL so Redis drops it on its own. The TTL is
    never below one second, so a record saved already past its expiry is kept
    briefly and :meth:`get` reports the stored ``expires_at``, not the TTL.
    A hash without ``expires_at`` is reported as already expired.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(email: str) -> str:
        return f"verification_code:{email}"

    def save(self, record: VerificationCode) -> None:
        key = self._k(record.email)
        ttl = ttl_seconds(record.expires_at - datetime.now(UTC))
        with translate_redis_errors("save verification code"):
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(key)
            pipe.hset(
                key,
                mapping={"code": record.code, "expires_at": record.expires_at.timestamp()},
            )
            pipe.expire(key, ttl)
            pipe.execute()

    def get(self, email: str) -> VerificationCode | None:
        with translate_redis_errors("get verification code"):
            fields = self.r.hgetall(self._k(email))
        values = {as_str(k): as_str(v) for k, v in fields.items()}
        code = values.get("code")
        if code is None:
            return None
        raw_expiry = values.get("expires_at")
        try:
            expires_at = datetime.fromtimestamp(float(raw_expiry), UTC) if raw_expiry else None
        except ValueError:
            expires_at = None
        return VerificationCode(
            email=email,
            code=code,
            expires_at=expires_at or datetime.now(UTC),
        )

    def delete(self, email: str) -> None:
        with translate_redis_errors("delete verification code"):
            self.r.delete(self._k(email))

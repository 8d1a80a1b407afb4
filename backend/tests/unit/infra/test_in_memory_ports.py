from __future__ import annotations

import threading
from datetime import timedelta

from identity_service.services._shared.ports import (
    InMemoryRateLimiter,
    InMemoryRefreshTokenStore,
    RotationResult,
)

MINUTE = timedelta(minutes=1)


def test_rate_limiter_window_with_clock(clock):
    limiter = InMemoryRateLimiter(clock=clock)

    assert limiter.claim("k", MINUTE)
    clock.advance(seconds=30)
    assert not limiter.claim("k", MINUTE)
    clock.advance(seconds=30)
    assert limiter.claim("k", MINUTE)


def test_rate_limiter_concurrent_claims_single_winner():
    limiter = InMemoryRateLimiter()
    barrier = threading.Barrier(10)
    wins: list[bool] = []

    def claim():
        barrier.wait()
        wins.append(limiter.claim("same", MINUTE))

    threads = [threading.Thread(target=claim) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert wins.count(True) == 1


def test_refresh_store_expires_entries_lazily(clock):
    store = InMemoryRefreshTokenStore(clock=clock)
    store.save(token="t", user_id=1, ttl=MINUTE)

    clock.advance(minutes=1)

    assert store.get_user_id("t") is None
    assert store.rotate(old_token="t", new_token="n", user_id=1, ttl=MINUTE) is (
        RotationResult.NOT_FOUND
    )
    assert store.delete("t") is False


def test_refresh_store_revoke_all_skips_expired(clock):
    store = InMemoryRefreshTokenStore(clock=clock)
    store.save(token="short", user_id=1, ttl=MINUTE)
    store.save(token="long", user_id=1, ttl=MINUTE * 10)
    clock.advance(minutes=2)

    assert store.delete_all_for_user(1) == 1

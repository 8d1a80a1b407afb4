"""Account flows raced from several threads at once.

These tests swap the transactional test session for a file-backed SQLite
engine so that every thread gets its own connection and its own session.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from identity_service.core.extensions import db as _db
from identity_service.infra.redis.redis_rate_limiter import RedisRateLimiter
from identity_service.models.user import User
from identity_service.services._shared.errors import EmailAlreadyExistsError, TooManyRequestsError
from identity_service.services._shared.ports import VerificationCode
from identity_service.services.accounts.dto import RegisterIn, SendCodeIn
from identity_service.services.accounts.service import AccountService

THREADS = 8


@pytest.fixture
def threaded_engine(tmp_path, monkeypatch):
    """Point ``db.session`` at a thread-local session factory over a SQLite file."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    _db.metadata.create_all(engine)
    sessions = scoped_session(sessionmaker(bind=engine))
    monkeypatch.setattr(_db, "session", sessions)
    try:
        yield engine
    finally:
        sessions.remove()
        engine.dispose()


def _run_concurrently(target, count: int = THREADS) -> list:
    """Run ``target`` in ``count`` threads and collect each return value or exception."""
    outcomes: list = []
    lock = threading.Lock()

    def worker():
        try:
            result = target()
        except Exception as exc:
            result = exc
        finally:
            _db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert not any(t.is_alive() for t in threads)
    return outcomes


def test_concurrent_registrations_create_exactly_one_account(
    threaded_engine, code_store, account_service, monkeypatch
):
    email = "race@example.com"
    code_store.save(
        VerificationCode(
            email=email, code="123456", expires_at=datetime.now(UTC) + timedelta(minutes=10)
        )
    )

    # Every thread must have read the shared code before any of them consumes it.
    barrier = threading.Barrier(THREADS, timeout=30)
    read_code = code_store.get

    def get_then_wait(key):
        record = read_code(key)
        barrier.wait()
        return record

    monkeypatch.setattr(code_store, "get", get_then_wait)

    outcomes = _run_concurrently(
        lambda: account_service.register(
            RegisterIn(email=email, password="secret1", code="123456", nickname="Neo")
        )
    )

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    conflicts = [o for o in outcomes if isinstance(o, EmailAlreadyExistsError)]
    assert len(successes) == 1
    assert successes[0].email == email
    assert len(conflicts) == THREADS - 1
    with Session(threaded_engine) as check:
        count = check.scalar(select(func.count()).select_from(User).where(User.email == email))
    assert count == 1


def test_concurrent_claims_on_redis_admit_one_caller(fake_redis):
    limiter = RedisRateLimiter(fake_redis)
    barrier = threading.Barrier(THREADS, timeout=30)

    def claim():
        barrier.wait()
        return limiter.claim("send_code:a@example.com", timedelta(seconds=60))

    outcomes = _run_concurrently(claim)

    assert sorted(outcomes) == [False] * (THREADS - 1) + [True]


def test_concurrent_sends_mail_exactly_one_code(
    threaded_engine, fake_redis, code_store, hasher, mailer, token_service
):
    service = AccountService(
        code_store=code_store,
        rate_limiter=RedisRateLimiter(fake_redis),
        password_hasher=hasher,
        mailer=mailer,
        tokens=token_service,
    )
    barrier = threading.Barrier(THREADS, timeout=30)

    def send():
        barrier.wait()
        return service.send_verification_code(SendCodeIn(email="burst@example.com"))

    outcomes = _run_concurrently(send)

    assert outcomes.count(None) == 1
    assert sum(isinstance(o, TooManyRequestsError) for o in outcomes) == THREADS - 1
    assert len(mailer.outbox) == 1
    assert code_store.get("burst@example.com").code in mailer.outbox[0].body

"""Pytest fixtures: transactional database, fake Redis and wired services.

Each test runs inside an outer transaction on a shared in-memory SQLite
connection. The ORM session only ever creates SAVEPOINTs inside it, so service
commits and rollbacks behave normally while nothing leaks between tests.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from identity_service.core.config import TestingConfig
from identity_service.core.extensions import db as _db
from identity_service.factory import create_app
from identity_service.infra.jwt.pyjwt_token_signer import ACCESS, REFRESH, PyJWTTokenSigner
from identity_service.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from identity_service.services._shared.ports import (
    InMemoryMailer,
    InMemoryRateLimiter,
    InMemoryRefreshTokenStore,
    InMemoryVerificationCodeStore,
)
from identity_service.services.accounts.service import AccountService
from identity_service.services.tokens.service import TokenLifecycleService

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - In-memory SQLite, no Redis URL (tests inject ``fakeredis``).
    - Cheap password hashing and fixed token secrets.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REDIS_URL = None
    JWT_ACCESS_SECRET = ACCESS_SECRET
    JWT_REFRESH_SECRET = REFRESH_SECRET
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    USE_PROXYFIX = False
    LOG_LEVEL = "WARNING"


class FakeClock:
    """Controllable UTC clock for the in-memory doubles."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing."""
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, instance_relative_config=False)
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep one DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a scoped session confined to a per-test transaction.

    Notes
    -----
    ``begin_nested()`` on the connection emits the SAVEPOINT that actually
    opens the SQLite transaction (pysqlite defers ``BEGIN``). The session
    uses ``join_transaction_mode="create_savepoint"``, so its own commits
    release inner savepoints only and the final rollback discards everything.
    """
    top_trans = connection.begin()
    connection.begin_nested()

    SessionFactory = sessionmaker(bind=connection, join_transaction_mode="create_savepoint")
    scoped = scoped_session(SessionFactory)

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


# -- Collaborators --------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis():
    """Fresh FakeRedis per test, decoding replies like the production client."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def hasher() -> WerkzeugPasswordHasher:
    return WerkzeugPasswordHasher(TestConfig.PASSWORD_HASH_METHOD)


@pytest.fixture
def access_signer() -> PyJWTTokenSigner:
    return PyJWTTokenSigner(secret=ACCESS_SECRET, token_type=ACCESS, lifetime=timedelta(hours=1))


@pytest.fixture
def refresh_signer() -> PyJWTTokenSigner:
    return PyJWTTokenSigner(secret=REFRESH_SECRET, token_type=REFRESH, lifetime=timedelta(days=7))


@pytest.fixture
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture
def code_store() -> InMemoryVerificationCodeStore:
    return InMemoryVerificationCodeStore()


@pytest.fixture
def rate_limiter(clock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture
def mailer() -> InMemoryMailer:
    return InMemoryMailer()


@pytest.fixture
def token_service(access_signer, refresh_signer, refresh_store) -> TokenLifecycleService:
    return TokenLifecycleService(
        access_signer=access_signer,
        refresh_signer=refresh_signer,
        refresh_store=refresh_store,
    )


@pytest.fixture
def account_service(
    code_store, rate_limiter, hasher, mailer, token_service
) -> AccountService:
    return AccountService(
        code_store=code_store,
        rate_limiter=rate_limiter,
        password_hasher=hasher,
        mailer=mailer,
        tokens=token_service,
    )


# -- HTTP ---------------------------------------------------------------------
@pytest.fixture
def client(app, session, fake_redis, mailer):
    """Flask test client backed by fakeredis and an in-memory mailer."""
    previous_mailer = app.extensions.get("mailer")
    app.extensions["redis_client"] = fake_redis
    app.extensions["mailer"] = mailer
    try:
        yield app.test_client()
    finally:
        app.extensions.pop("redis_client", None)
        app.extensions["mailer"] = previous_mailer

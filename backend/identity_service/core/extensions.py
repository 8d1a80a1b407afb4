"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)


def init_app(app: Flask) -> None:
    """Bind the database, token settings, mailer and Redis to ``app``.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. Token settings are
        validated here so a missing secret stops the process at startup.

    Raises
    ------
    identity_service.services._shared.errors.ConfigurationError
        If either token secret is missing or both are identical, or if no
        SMTP relay is configured outside development and testing.
    RuntimeError
        If ``REDIS_URL`` is set but the server does not answer a ping.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from identity_service import models as _models  # noqa: F401

    migrate.init_app(app, db)

    from identity_service.infra.mail.smtp_mailer import mailer_from_config
    from identity_service.services.tokens.dto import TokenSettings

    app.extensions["token_settings"] = TokenSettings.from_mapping(app.config)
    app.extensions["mailer"] = mailer_from_config(app.config)

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop("redis_client", None)
        return

    client = redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=app.config.get("REDIS_SOCKET_TIMEOUT"),
    )
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = client


def get_redis() -> redis.Redis:
    """Return the Redis client bound to the current application."""
    client = current_app.extensions.get("redis_client")
    if client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL.")
    return client

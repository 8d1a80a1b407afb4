"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Credential lifetimes and windows
VERIFICATION_CODE_TTL: Final[timedelta] = timedelta(minutes=10)
VERIFICATION_CODE_LENGTH: Final[int] = 6
SEND_CODE_RATE_LIMIT_WINDOW: Final[timedelta] = timedelta(seconds=60)
ACCESS_TOKEN_TTL: Final[timedelta] = timedelta(hours=1)
REFRESH_TOKEN_TTL: Final[timedelta] = timedelta(days=7)
MIN_PASSWORD_LENGTH: Final[int] = 6
MAX_EMAIL_LENGTH: Final[int] = 254
DEFAULT_NICKNAME: Final[str] = "New user"

# Loads .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from the environment, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_ACCESS_SECRET: str | None
        HMAC secret for access tokens. Startup fails when it is missing.
    JWT_REFRESH_SECRET: str | None
        HMAC secret for refresh tokens. Must differ from the access secret.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Location of the Redis server backing codes, rate limits and sessions.
    REDIS_SOCKET_TIMEOUT: float
        Seconds before a Redis call is abandoned.
    SMTP_HOST: str | None
        Outgoing mail relay. Required unless ``MAIL_LOG_ONLY`` is set.
    MAIL_LOG_ONLY: bool
        Log verification mails instead of sending them when no relay is
        configured. Only development and testing enable it.
    MAIL_FROM: str
        Sender address for verification mails.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD")  # None: werkzeug default

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Redis
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))

    # Mail
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = env_int("SMTP_PORT", 587)
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)
    MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@localhost")
    MAIL_LOG_ONLY = False

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging, CORS & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    MAIL_LOG_ONLY = env_bool("MAIL_LOG_ONLY", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Leaves Redis unbound; tests inject a client through ``app.extensions``.
    - Provides throwaway token secrets so the factory can start.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = os.getenv("TEST_REDIS_URL")
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "testing-access-secret")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "testing-refresh-secret")
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    SMTP_HOST = None
    MAIL_LOG_ONLY = True
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Token secrets have no fallback here; :func:`identity_service.create_app`
    refuses to start until both are provided, and the same holds for
    ``SMTP_HOST``.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)

"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

MINUTE: Final[int] = 60
HOUR: Final[int] = 60 * MINUTE
DAY: Final[int] = 24 * HOUR


# Load .env in development (no-op when the file is missing)
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
    """Parse an integer from an environment variable, falling back to ``default``.

    Blank or non-numeric values are treated as unset.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    APP_VERSION: str
        Build identifier reported by the health endpoint.
    SECRET_KEY: str
        Flask secret used for session signing. Defaults to a development-safe
        placeholder and should be overridden in production.
    JWT_SECRET_KEY: str
        HMAC key used by ``flask-jwt-extended`` to sign access and refresh
        credentials.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    SQLALCHEMY_ENGINE_OPTIONS: dict
        Pool options bounding how long a request waits for a connection.
    REDIS_URL: str | None
        Shared denylist backend. When unset or unreachable the service falls
        back to an in-process denylist.
    ACCESS_TOKEN_TTL: int
        Access credential lifetime in seconds.
    REFRESH_SLIDING_WINDOW: int
        Seconds a refresh credential stays valid without being rotated.
    REFRESH_ABSOLUTE_LIFETIME: int
        Hard ceiling, in seconds, for a whole rotation chain.
    REFRESH_REVOCATION_RETENTION: int
        Seconds revoked refresh records are kept for audit and replay detection.
    TOKEN_CLEANUP_INTERVAL: int
        Seconds between two garbage-collection runs.
    TOKEN_CLEANUP_BATCH_SIZE: int
        Maximum rows deleted per batch.
    TOKEN_CLEANUP_MAX_BATCHES: int
        Upper bound of batches per run; leftovers wait for the next run.
    DENYLIST_SWEEP_INTERVAL: int
        Seconds between sweeps of the in-process denylist.
    REFRESH_REUSE_REVOKES_FAMILY: bool
        Revoke the whole rotation chain when a rotated-out credential is replayed.
    REFRESH_REUSE_GRACE: int
        Seconds after a rotation during which replaying the parent is rejected
        without revoking the chain, provided the successor is still live.
        ``0`` disables the window.
    TOKEN_SCHEDULER_ENABLED: bool
        Start the background cleanup thread from the factory.
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
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT_SECRET_AT_LEAST_32_BYTES")
    JWT_ALGORITHM = "HS256"
    JWT_TOKEN_LOCATION = ["headers"]

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # Redis (denylist)
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_SOCKET_TIMEOUT = env_int("REDIS_SOCKET_TIMEOUT", 2)

    # Token lifecycle
    ACCESS_TOKEN_TTL = env_int("ACCESS_TOKEN_TTL", 15 * MINUTE)
    REFRESH_SLIDING_WINDOW = env_int("REFRESH_SLIDING_WINDOW", 30 * DAY)
    REFRESH_ABSOLUTE_LIFETIME = env_int("REFRESH_ABSOLUTE_LIFETIME", 90 * DAY)
    REFRESH_REVOCATION_RETENTION = env_int("REFRESH_REVOCATION_RETENTION", 12 * HOUR)
    REFRESH_REUSE_REVOKES_FAMILY = env_bool("REFRESH_REUSE_REVOKES_FAMILY", True)
    REFRESH_REUSE_GRACE = env_int("REFRESH_REUSE_GRACE", 10)

    # Background maintenance
    TOKEN_SCHEDULER_ENABLED = env_bool("TOKEN_SCHEDULER_ENABLED", True)
    TOKEN_CLEANUP_INTERVAL = env_int("TOKEN_CLEANUP_INTERVAL", 30 * MINUTE)
    TOKEN_CLEANUP_BATCH_SIZE = env_int("TOKEN_CLEANUP_BATCH_SIZE", 100)
    TOKEN_CLEANUP_MAX_BATCHES = env_int("TOKEN_CLEANUP_MAX_BATCHES", 50)
    DENYLIST_SWEEP_INTERVAL = env_int("DENYLIST_SWEEP_INTERVAL", 15 * MINUTE)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Reverse proxy
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXY_HOPS = env_int("PROXY_HOPS", 1)

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CORS_MAX_AGE = env_int("CORS_MAX_AGE", 600)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Redis and never starts the cleanup thread.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    REDIS_URL = None
    TOKEN_SCHEDULER_ENABLED = False
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control. Bounds connection checkout so a stalled
    database surfaces as a 503 instead of hanging the worker.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_timeout": env_int("DB_POOL_TIMEOUT", 5),
    }
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

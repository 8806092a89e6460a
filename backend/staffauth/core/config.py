"""Settings classes selected by ``APP_ENV`` and fed from the environment.

A ``.env`` file in the working directory is loaded first when present.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"  # development | testing | production

load_dotenv()

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)
_DURATION_UNITS: Mapping[str, str] = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def env_bool(name: str, default: bool = False) -> bool:
    """Read a flag; ``1/true/yes/y/on`` (any case) is true, anything else false."""
    raw = os.getenv(name)
    return default if raw is None else raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Read an integer; unset or blank gives ``default``."""
    raw = os.getenv(name)
    return default if raw is None or not raw.strip() else int(raw)


def parse_duration(value: str | int | timedelta) -> timedelta:
    """Convert a compact duration such as ``"15m"`` or ``"7d"`` to a timedelta.

    Bare integers are read as seconds. Supported suffixes are ``s``, ``m``,
    ``h``, ``d`` and ``w``.

    :param value: Duration string, number of seconds or an existing timedelta.
    :type value: str | int | timedelta
    :returns: Parsed duration.
    :rtype: timedelta
    :raises ValueError: If the value is not a positive duration.
    """
    if isinstance(value, timedelta):
        delta = value
    elif isinstance(value, int):
        delta = timedelta(seconds=value)
    else:
        match = _DURATION_RE.match(str(value))
        if match is None:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        delta = timedelta(**{_DURATION_UNITS[unit.lower()]: int(amount)})
    if delta.total_seconds() <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return delta


class BaseConfig:
    """
    Defaults shared by every environment.

    Token signing
        ``JWT_ACCESS_SECRET`` and ``JWT_REFRESH_SECRET`` must both be set and
        must differ; the app factory refuses to start otherwise.
        ``JWT_ACCESS_EXPIRES`` / ``JWT_REFRESH_EXPIRES`` are compact
        durations (``15m`` and ``7d`` by default).
    Passwords
        ``PASSWORD_HASH_METHOD`` is handed to Werkzeug's hasher.
    Storage
        ``SQLALCHEMY_DATABASE_URI`` comes from ``DATABASE_URL``.
    Cache
        ``REDIS_URL`` selects Redis; without it an in-process store is used.
        ``CACHE_TTL_USER_LIST`` covers list pages and counts,
        ``CACHE_TTL_SINGLE_USER`` single-user entries (seconds).
    Refresh cookie
        ``REFRESH_COOKIE_NAME`` and ``REFRESH_COOKIE_SECURE``. The cookie is
        always HttpOnly and SameSite=Strict.
    Edge
        ``USE_PROXYFIX`` / ``PROXY_HOPS`` trust ``X-Forwarded-*`` from that
        many proxies. ``CORS_ORIGINS`` is a comma-separated allow-list.
    """

    APP_ENV = "production"
    API_BASE_PREFIX = "/api"
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    PROPAGATE_EXCEPTIONS = False

    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "")
    JWT_ACCESS_EXPIRES = os.getenv("JWT_ACCESS_EXPIRES", "15m")
    JWT_REFRESH_EXPIRES = os.getenv("JWT_REFRESH_EXPIRES", "7d")
    JWT_ALGORITHM = "HS256"

    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))
    CACHE_TTL_USER_LIST = env_int("CACHE_TTL_USER_LIST", 300)
    CACHE_TTL_SINGLE_USER = env_int("CACHE_TTL_SINGLE_USER", 600)

    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", True)

    USE_PROXYFIX = env_bool("USE_PROXYFIX", False)
    PROXY_HOPS = env_int("PROXY_HOPS", 1)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CORS_MAX_AGE = env_int("CORS_MAX_AGE", 600)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class DevelopmentConfig(BaseConfig):
    """Local runs: debug on, refresh cookie allowed over plain HTTP."""

    APP_ENV = "development"
    DEBUG = env_bool("FLASK_DEBUG", True)
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)


class TestingConfig(BaseConfig):
    """
    Test runs.

    In-memory SQLite (override with ``TEST_DATABASE_URL``), throwaway token
    secrets, the in-process cache and a deliberately cheap password hash.
    """

    APP_ENV = "testing"
    TESTING = True
    PROPAGATE_EXCEPTIONS = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    JWT_ACCESS_SECRET = "testing-access-secret-not-for-production"
    JWT_REFRESH_SECRET = "testing-refresh-secret-not-for-production"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    REDIS_URL = None
    REFRESH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    """Deployments: no debug, no SQL echo, ``Secure`` refresh cookie."""

    APP_ENV = "production"
    SQLALCHEMY_ECHO = False
    REFRESH_COOKIE_SECURE = True


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the class named by ``APP_ENV``; unset or unknown means development."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)

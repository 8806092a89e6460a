"""Per-application service wiring.

Adapters (token codec, password hasher, cache store) and the services built
on them are created once per Flask app and kept on ``app.extensions``. The
process entry point owns :meth:`ServiceContainer.close`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, current_app

from staffauth.infra.jwt.pyjwt_token_codec import PyJWTTokenCodec, TokenSettings
from staffauth.infra.redis.redis_cache_store import RedisCacheStore, build_redis_client
from staffauth.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from staffauth.services._shared.ports.cache_store import CacheStore, InMemoryCacheStore
from staffauth.services.auth.registry import RefreshTokenRegistry
from staffauth.services.auth.service import AuthService
from staffauth.services.users.cache import UserCache
from staffauth.services.users.service import UserDirectoryService

log = logging.getLogger(__name__)

EXTENSION_KEY = "staffauth"


@dataclass(slots=True)
class ServiceContainer:
    """Everything a request handler needs beyond the database session."""

    codec: PyJWTTokenCodec
    hasher: WerkzeugPasswordHasher
    cache_store: CacheStore
    user_cache: UserCache
    registry: RefreshTokenRegistry
    auth: AuthService
    users: UserDirectoryService

    @classmethod
    def from_app(cls, app: Flask) -> ServiceContainer:
        """
        Build the container from ``app.config``.

        :raises ConfigError: When the token secrets or lifetimes are unusable.
        """
        config = app.config
        settings = TokenSettings.from_config(config)
        settings.validate()

        codec = PyJWTTokenCodec(settings)
        hasher = WerkzeugPasswordHasher(method=config.get("PASSWORD_HASH_METHOD", "scrypt"))
        store = _build_cache_store(config.get("REDIS_URL"), config.get("REDIS_SOCKET_TIMEOUT", 2.0))
        user_cache = UserCache(
            store,
            list_ttl=int(config.get("CACHE_TTL_USER_LIST", 300)),
            single_ttl=int(config.get("CACHE_TTL_SINGLE_USER", 600)),
        )
        registry = RefreshTokenRegistry(codec=codec)
        return cls(
            codec=codec,
            hasher=hasher,
            cache_store=store,
            user_cache=user_cache,
            registry=registry,
            auth=AuthService(codec=codec, registry=registry, hasher=hasher, cache=user_cache),
            users=UserDirectoryService(cache=user_cache, hasher=hasher),
        )

    def close(self) -> None:
        self.cache_store.close()


def _build_cache_store(url: str | None, socket_timeout: float) -> CacheStore:
    if not url:
        log.info("cache.backend=memory")
        return InMemoryCacheStore()
    log.info("cache.backend=redis")
    return RedisCacheStore(build_redis_client(url, socket_timeout=float(socket_timeout)))


def init_app(app: Flask) -> ServiceContainer:
    """Build the container and attach it to ``app.extensions``."""
    container = ServiceContainer.from_app(app)
    app.extensions[EXTENSION_KEY] = container
    return container


def get_container(app: Flask | None = None) -> ServiceContainer:
    """Return the container of ``app`` (defaults to ``current_app``)."""
    target = app if app is not None else current_app
    return target.extensions[EXTENSION_KEY]


__all__ = ["ServiceContainer", "get_container", "init_app"]

# comments in English; reST docstrings
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from staffauth.services._shared.errors import CacheUnavailableError
from staffauth.services._shared.ports.cache_store import CacheStore

log = logging.getLogger(__name__)

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")


def build_redis_client(url: str, *, socket_timeout: float = 2.0) -> redis.Redis:
    """
    Create a Redis client for cache use.

    Startup does not fail when Redis is down: the cache is never
    authoritative and reads fall back to the database.

    :param url: ``redis://`` connection URL.
    :param socket_timeout: Seconds before a command or connect attempt fails.
    :returns: Configured client (connection is lazy).
    """
    client = redis.Redis.from_url(
        url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        decode_responses=True,
    )
    try:
        client.ping()
    except RedisError as exc:
        log.warning("cache.redis_unreachable url=%s error=%s", url, exc)
    return client


@dataclass(slots=True)
class RedisCacheStore(CacheStore):
    """
    Redis-backed cache store.

    :param r: A Redis client created with ``decode_responses=True``.
    :param scan_count: ``COUNT`` hint for ``SCAN`` during prefix invalidation.
    """

    r: redis.Redis
    scan_count: int = 500

    # -------------------- helpers --------------------

    @staticmethod
    def _glob_escape(prefix: str) -> str:
        return _GLOB_SPECIALS.sub(r"\\\1", prefix)

    @staticmethod
    def _text(value: Any) -> str | None:
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else str(value)

    # -------------------- API ------------------------

    def get(self, key: str) -> str | None:
        try:
            return self._text(self.r.get(key))
        except RedisError as exc:
            raise CacheUnavailableError(f"GET {key} failed") from exc

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.r.setex(key, max(1, int(ttl_seconds)), value)
        except RedisError as exc:
            raise CacheUnavailableError(f"SETEX {key} failed") from exc

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self.r.delete(*keys))
        except RedisError as exc:
            raise CacheUnavailableError("DEL failed") from exc

    def invalidate_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with ``prefix``.

        Uses ``SCAN MATCH`` (never ``KEYS``) and deletes in pipelined batches so
        large keyspaces do not block the server.
        """
        pattern = f"{self._glob_escape(prefix)}*"
        removed = 0
        try:
            batch: list[str] = []
            for key in self.r.scan_iter(match=pattern, count=self.scan_count):
                batch.append(self._text(key) or "")
                if len(batch) >= self.scan_count:
                    removed += self._delete_batch(batch)
                    batch = []
            if batch:
                removed += self._delete_batch(batch)
        except RedisError as exc:
            raise CacheUnavailableError(f"prefix invalidation {prefix!r} failed") from exc
        return removed

    def _delete_batch(self, keys: list[str]) -> int:
        pipe = self.r.pipeline(transaction=False)
        for key in keys:
            pipe.delete(key)
        return sum(int(n) for n in pipe.execute())

    def ping(self) -> bool:
        try:
            return bool(self.r.ping())
        except RedisError:
            return False

    def close(self) -> None:
        try:
            self.r.close()
        except RedisError as exc:
            log.warning("cache.close_failed error=%s", exc)

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol


class CacheStore(Protocol):
    """
    Key/value cache with per-entry TTL and prefix invalidation.

    Adapters raise :class:`~staffauth.services._shared.errors.CacheUnavailableError`
    when the backend cannot be reached; callers decide whether that is fatal.
    """

    def get(self, key: str) -> str | None:
        """Return the cached value or ``None`` on a miss or expired entry."""
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        ...

    def delete(self, *keys: str) -> int:
        """Delete exact keys and return how many existed."""
        ...

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix`` and return the count."""
        ...

    def ping(self) -> bool:
        """Return ``True`` when the backend answers."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...


class InMemoryCacheStore(CacheStore):
    """
    Process-local cache used in development, tests and when no Redis URL is set.

    .. note::
       Entries expire lazily on read and on prefix sweeps. A threading lock
       keeps concurrent request threads consistent.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def _alive(self, key: str, now: float) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry[1] <= now:
            del self._entries[key]
            return False
        return True

    def get(self, key: str) -> str | None:
        with self._lock:
            if not self._alive(key, self._clock()):
                return None
            return self._entries[key][0]

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + max(1, int(ttl_seconds)))

    def delete(self, *keys: str) -> int:
        with self._lock:
            now = self._clock()
            removed = 0
            for key in keys:
                if self._alive(key, now):
                    del self._entries[key]
                    removed += 1
            return removed

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            now = self._clock()
            doomed = [k for k in list(self._entries) if k.startswith(prefix) and self._alive(k, now)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def keys(self) -> list[str]:
        """Return live keys (test and debugging helper)."""
        with self._lock:
            now = self._clock()
            return [k for k in list(self._entries) if self._alive(k, now)]

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        with self._lock:
            self._entries.clear()

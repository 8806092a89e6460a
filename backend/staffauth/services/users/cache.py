# staffauth/services/users/cache.py
"""Cache keys and best-effort cache access for user reads.

Key layout::

    users:single:<id>
    users:list:page:<p>:limit:<l>:search:<s>:role:<r>
    users:count:search:<s>:role:<r>

An absent search or role is written as ``none`` / ``all``. A present value is
written as ``=`` followed by its percent-encoding, so no value can collide
with the absent marker or with a neighbouring field.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

from staffauth.services._shared.errors import CacheUnavailableError
from staffauth.services._shared.ports.cache_store import CacheStore

log = logging.getLogger(__name__)

SINGLE_PREFIX = "users:single:"
LIST_PREFIX = "users:list:"
COUNT_PREFIX = "users:count:"

DEFAULT_LIST_TTL = 300
DEFAULT_SINGLE_TTL = 600


def _part(value: str | None, absent: str) -> str:
    if value is None:
        return absent
    return "=" + quote(value, safe="")


def single_key(user_id: int) -> str:
    return f"{SINGLE_PREFIX}{int(user_id)}"


def list_key(page: int, limit: int, search: str | None, role: str | None) -> str:
    return (
        f"{LIST_PREFIX}page:{int(page)}:limit:{int(limit)}"
        f":search:{_part(search, 'none')}:role:{_part(role, 'all')}"
    )


def count_key(search: str | None, role: str | None) -> str:
    return f"{COUNT_PREFIX}search:{_part(search, 'none')}:role:{_part(role, 'all')}"


class UserCache:
    """
    JSON cache for user reads on top of a :class:`CacheStore`.

    Every operation swallows :class:`CacheUnavailableError` and logs a
    warning: a cache outage degrades to direct store reads and stale entries
    are bounded by their TTL.

    :param store: Backend (Redis or in-process).
    :param list_ttl: Seconds for list and count entries.
    :param single_ttl: Seconds for single-user entries.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        list_ttl: int = DEFAULT_LIST_TTL,
        single_ttl: int = DEFAULT_SINGLE_TTL,
    ) -> None:
        self.store = store
        self.list_ttl = list_ttl
        self.single_ttl = single_ttl

    # -------------------------- reads / population --------------------------

    def get_json(self, key: str) -> Any | None:
        """Return the decoded entry, or ``None`` on miss, outage or corrupt data."""
        try:
            raw = self.store.get(key)
        except CacheUnavailableError as exc:
            log.warning("cache.read_failed: %s", exc, extra={"cache_key": key})
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("cache.corrupt_entry", extra={"cache_key": key})
            self._delete(key)
            return None

    def put_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.store.set(key, json.dumps(value, separators=(",", ":")), ttl_seconds)
        except CacheUnavailableError as exc:
            log.warning("cache.write_failed: %s", exc, extra={"cache_key": key})

    # ------------------------------ invalidation ----------------------------

    def invalidate_user(self, user_id: int) -> None:
        """Drop the single-user entry only (e.g. after a password change)."""
        self._delete(single_key(user_id))

    def invalidate_collections(self) -> None:
        """Drop every cached list page and count."""
        for prefix in (LIST_PREFIX, COUNT_PREFIX):
            try:
                self.store.invalidate_prefix(prefix)
            except CacheUnavailableError as exc:
                log.warning("cache.invalidate_failed: %s", exc, extra={"cache_key": prefix})

    def invalidate_user_and_collections(self, user_id: int) -> None:
        self.invalidate_collections()
        self.invalidate_user(user_id)

    def _delete(self, key: str) -> None:
        try:
            self.store.delete(key)
        except CacheUnavailableError as exc:
            log.warning("cache.invalidate_failed: %s", exc, extra={"cache_key": key})

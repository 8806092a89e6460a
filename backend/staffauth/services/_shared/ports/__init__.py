"""
staffauth.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) the service layer depends on.

Modules
-------
- :mod:`token_codec`:
    :class:`~.TokenCodec` signs and verifies access/refresh tokens, plus the
    :class:`~.ClaimSet`, :class:`~.TokenClaims` and :class:`~.TokenPair` values.

- :mod:`password_hasher`:
    :class:`~.PasswordHasher` hashes and compares passwords.

- :mod:`cache_store`:
    :class:`~.CacheStore` with TTL and prefix invalidation, and the
    process-local :class:`~.InMemoryCacheStore`.

Concrete adapters (PyJWT, Werkzeug, Redis) live under ``staffauth.infra``.
"""

from __future__ import annotations

from .cache_store import CacheStore, InMemoryCacheStore
from .password_hasher import PasswordHasher
from .token_codec import ClaimSet, TokenClaims, TokenCodec, TokenKind, TokenPair

__all__ = [
    "CacheStore",
    "ClaimSet",
    "InMemoryCacheStore",
    "PasswordHasher",
    "TokenClaims",
    "TokenCodec",
    "TokenKind",
    "TokenPair",
]

from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """Port for one-way password hashing."""

    def hash(self, raw: str) -> str:
        """Return a salted hash of ``raw``."""
        ...

    def compare(self, raw: str, hashed: str) -> bool:
        """Return ``True`` when ``raw`` matches ``hashed``."""
        ...

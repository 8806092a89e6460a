"""Password hashing adapter built on ``werkzeug.security``."""

from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from staffauth.services._shared.ports.password_hasher import PasswordHasher


@dataclass(frozen=True, slots=True)
class WerkzeugPasswordHasher(PasswordHasher):
    """
    Salted one-way hashing via Werkzeug.

    :param method: Werkzeug method string. ``scrypt`` in production; tests
        configure a cheap ``pbkdf2`` round count.
    :param salt_length: Salt size in characters.
    """

    method: str = "scrypt"
    salt_length: int = 16

    def hash(self, raw: str) -> str:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(raw, method=self.method, salt_length=self.salt_length)

    def compare(self, raw: str, hashed: str) -> bool:
        if not hashed:
            return False
        # ``check_password_hash`` is untyped; coerce to bool.
        return bool(check_password_hash(hashed, raw))

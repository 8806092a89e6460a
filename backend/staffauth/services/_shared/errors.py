"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never depend on Flask or
HTTP. They serve as stable contracts between repositories, adapters and
application services. Every error carries an :class:`ErrorKind`; the
translation to HTTP responses is handled by ``staffauth/core/errors.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite reports ``table.column``,
    so the column part of ``uq_<table>_<column>`` is matched as a fallback.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :type exc: IntegrityError
    :param constraint_name: Constraint to match (e.g. ``"uq_users_email"``).
    :type constraint_name: str
    :returns: ``True`` if the IntegrityError matches the given constraint.
    :rtype: bool
    """
    message = str(exc.orig).lower() if exc.orig else ""
    name = constraint_name.lower()
    if name in message:
        return True
    parts = name.split("_", 2)
    if len(parts) == 3 and parts[0] == "uq":
        _, table, column = parts
        return f"{table}.{column}" in message
    return False


class ErrorKind(str, Enum):
    """Transport-neutral classification of service errors."""

    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    INTERNAL = "internal"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, adapters or domain logic.
    - ``kind`` drives the HTTP status chosen by the API layer.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.BAD_REQUEST
    default_message: ClassVar[str] = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Client-safe explanation, returned verbatim.
    :type detail: str
    """

    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT

    entity: str
    detail: str

    def __str__(self) -> str:
        return self.detail


class BadRequestError(ServiceError):
    """Raised when input is well-formed but rejected by a business rule."""

    kind = ErrorKind.BAD_REQUEST


class UnauthorizedError(ServiceError):
    """Raised when credentials or tokens do not authenticate a caller."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(ServiceError):
    """Raised when an authenticated caller lacks the required role."""

    kind = ErrorKind.FORBIDDEN
    default_message = "Insufficient permissions"


class InternalError(ServiceError):
    """Raised for unexpected failures the client cannot act upon."""

    kind = ErrorKind.INTERNAL
    default_message = "Internal server error"


class ConfigError(InternalError):
    """Raised when the process is misconfigured (fatal at startup)."""

    default_message = "Invalid configuration"


class CacheUnavailableError(InternalError):
    """Raised by cache adapters when the backend cannot be reached."""

    default_message = "Cache backend unavailable"


# --------------------------------------------------------------------------- #
# Token verification failures
# --------------------------------------------------------------------------- #


class TokenError(UnauthorizedError):
    """Base class for token decoding and verification failures."""

    default_message = "Invalid token"


class InvalidSignatureError(TokenError):
    """The token signature does not match the secret of the expected kind."""

    default_message = "Token signature is invalid"


class ExpiredTokenError(TokenError):
    """The token's embedded expiry is in the past."""

    default_message = "Token has expired"


class MalformedTokenError(TokenError):
    """The token cannot be decoded or lacks required claims."""

    default_message = "Token is malformed"

"""User model: employee identity, credentials and refresh-token set."""

from __future__ import annotations

import enum
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String, UniqueConstraint, true
from sqlalchemy.orm import Mapped, mapped_column, validates

from staffauth.core.extensions import db

from .base import IdentityMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """Authorization role attached to every account."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(IdentityMixin, TimestampMixin, db.Model):
    """
    Employee account.

    Fields
    ------
    first_name, middle_name, last_name : str
        Display names; ``middle_name`` is optional.
    email : str
        Stored normalized (lowercase, trimmed). Unique.
    employee_id : str
        Login identifier. Unique.
    phone_number : str
        Unique.
    password_hash : str
        Output of the configured password hasher. Never serialized.
    role : UserRole
        ``USER`` or ``ADMIN``.
    is_active : bool
        Deactivated accounts cannot log in, refresh or use access tokens.
    refresh_tokens : list[str]
        Refresh tokens currently valid for this user. The list is always
        replaced, never mutated in place, so the JSON column is flagged dirty.
    last_login : datetime | None
        Stamped whenever a refresh token is registered.
    version_id : int
        Optimistic concurrency counter. A flush against a stale row raises
        :class:`sqlalchemy.orm.exc.StaleDataError`.
    """

    __tablename__ = "users"

    # Columns
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, length=10),
        nullable=False,
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    refresh_tokens: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Constraints & versioning
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("employee_id", name="uq_users_employee_id"),
        UniqueConstraint("phone_number", name="uq_users_phone_number"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    # -------------------- Refresh-token set --------------------
    def holds_refresh_token(self, token: str) -> bool:
        """Return ``True`` when ``token`` is in the current set (exact match)."""
        return token in (self.refresh_tokens or [])

    def add_refresh_token(self, token: str, keep: Callable[[str], bool] | None = None) -> bool:
        """
        Append ``token`` unless already present.

        :param keep: Optional predicate; held tokens it rejects are dropped.
        :returns: ``True`` when the set changed.
        :rtype: bool
        """
        held = list(self.refresh_tokens or [])
        current = [t for t in held if keep(t)] if keep is not None else list(held)
        if token not in current:
            current.append(token)
        if current == held:
            return False
        self.refresh_tokens = current
        return True

    def remove_refresh_token(self, token: str) -> bool:
        """
        Remove exactly ``token`` from the set.

        :returns: ``True`` when the token was present.
        :rtype: bool
        """
        current = list(self.refresh_tokens or [])
        if token not in current:
            return False
        self.refresh_tokens = [t for t in current if t != token]
        return True

    def clear_refresh_tokens(self) -> int:
        """Empty the set and return how many tokens were dropped."""
        removed = len(self.refresh_tokens or [])
        if removed:
            self.refresh_tokens = []
        return removed

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("employee_id", "phone_number", "first_name", "last_name")
    def _strip_required(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} is required.")
        return value.strip()

    @validates("middle_name")
    def _strip_optional(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

# staffauth/services/users/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from staffauth.models.user import User, UserRole

PROFILE_FIELDS = ("first_name", "middle_name", "last_name", "email")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublic:
    """
    Client-safe view of a user.

    Never carries the password hash or the refresh-token set. This is also
    the shape stored in the cache (via :meth:`to_dict` / :meth:`from_dict`).
    """

    id: int
    first_name: str
    middle_name: str | None
    last_name: str
    email: str
    employee_id: str
    phone_number: str
    role: str
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserPublic:
        role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
        return cls(
            id=user.id,
            first_name=user.first_name,
            middle_name=user.middle_name,
            last_name=user.last_name,
            email=user.email,
            employee_id=user.employee_id,
            phone_number=user.phone_number,
            role=role,
            is_active=bool(user.is_active),
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "email": self.email,
            "employee_id": self.employee_id,
            "phone_number": self.phone_number,
            "role": self.role,
            "is_active": self.is_active,
            "last_login": _iso(self.last_login),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPublic:
        return cls(
            id=int(data["id"]),
            first_name=data["first_name"],
            middle_name=data.get("middle_name"),
            last_name=data["last_name"],
            email=data["email"],
            employee_id=data["employee_id"],
            phone_number=data["phone_number"],
            role=data["role"],
            is_active=bool(data["is_active"]),
            last_login=_parse_iso(data.get("last_login")),
            created_at=_parse_iso(data.get("created_at")),
            updated_at=_parse_iso(data.get("updated_at")),
        )


@dataclass(frozen=True, slots=True)
class UserLookupOut:
    """
    Single-user read result.

    :param user: Public view.
    :param from_cache: ``True`` when served without touching the store.
    """

    user: UserPublic
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class UserPageOut:
    """
    One page of the user directory.

    :param users: Users on this page, newest first.
    :param page: 1-based page number.
    :param limit: Page size.
    :param total: Users matching the filters across all pages.
    :param from_cache: ``True`` when both the page and the count were cache hits.
    """

    users: list[UserPublic]
    page: int
    limit: int
    total: int
    from_cache: bool = False

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserListQuery:
    """
    Directory listing filters.

    :param page: 1-based page (defaults to 1).
    :param limit: Page size (defaults to 10).
    :param search: Case-insensitive substring; blank means no filter.
    :param role: Optional role filter.
    """

    page: int = 1
    limit: int = 10
    search: str | None = None
    role: UserRole | None = None

    def normalized_search(self) -> str | None:
        if self.search is None:
            return None
        return self.search.strip() or None


@dataclass(frozen=True, slots=True)
class UpdateProfileIn:
    """
    Partial profile update; ``None`` leaves a field untouched.

    An empty ``middle_name`` clears it.
    """

    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    def changes(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key in PROFILE_FIELDS:
            value = getattr(self, key)
            if value is None:
                continue
            if key == "middle_name" and not value.strip():
                out[key] = None
            else:
                out[key] = value
        return out


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    old_password: str
    new_password: str

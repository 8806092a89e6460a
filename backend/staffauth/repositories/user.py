"""User repository: lookups by unique keys, directory search and safe updates."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, or_

from staffauth.models.user import User, UserRole
from staffauth.repositories.base import BaseRepository, Page, Pagination


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never hashes passwords or issues tokens; services do.
    """

    model = User

    lookup_columns = {
        "email": "email",
        "employee_id": "employee_id",
        "phone_number": "phone_number",
        "role": "role",
    }
    # Employee id and phone number are fixed once registered
    updatable_fields = frozenset(
        {
            "first_name",
            "middle_name",
            "last_name",
            "email",
            "is_active",
            "password_hash",
            "last_login",
        }
    )

    def _listing_order(self) -> list[ColumnElement[Any]]:
        # Newest first
        return [User.created_at.desc()]

    # ---------------------------- Lookup helpers ----------------------------

    def find_by_email(self, email: str) -> User | None:
        """Fetch a user by email (stored lower-cased)."""
        return self.find_one(email=email.strip().lower())

    def find_by_employee_id(self, employee_id: str) -> User | None:
        return self.find_one(employee_id=employee_id.strip())

    def find_by_phone_number(self, phone_number: str) -> User | None:
        return self.find_one(phone_number=phone_number.strip())

    def email_taken_by_other(self, email: str, user_id: int) -> bool:
        """Return ``True`` when ``email`` belongs to a user other than ``user_id``."""
        other = self.find_by_email(email)
        return other is not None and other.id != user_id

    # -------------------------------- Search --------------------------------

    @staticmethod
    def _search_clauses(search: str | None) -> list[ColumnElement[bool]]:
        """Case-insensitive substring match on names, email and employee id."""
        if not search:
            return []
        return [
            or_(
                User.first_name.icontains(search, autoescape=True),
                User.last_name.icontains(search, autoescape=True),
                User.email.icontains(search, autoescape=True),
                User.employee_id.icontains(search, autoescape=True),
            )
        ]

    @staticmethod
    def _role_filter(role: UserRole | None) -> dict[str, Any]:
        return {"role": role} if role is not None else {}

    def search(
        self,
        *,
        page: int,
        limit: int,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> Page[User]:
        """
        Return one page of users matching ``search`` and ``role``.

        The total is not computed here; :meth:`count_matching` serves it so
        list and count can be cached independently.

        :param page: 1-based page number.
        :param limit: Page size.
        :param search: Optional substring; ``None`` disables the filter.
        :param role: Optional role filter.
        :returns: Page ordered by creation time, newest first.
        :rtype: Page[User]
        """
        return self.page(
            Pagination(page=page, limit=limit),
            filters=self._role_filter(role),
            where=self._search_clauses(search),
        )

    def count_matching(self, *, search: str | None = None, role: UserRole | None = None) -> int:
        return self.count(filters=self._role_filter(role), where=self._search_clauses(search))

"""Persistence-only repository base for SQLAlchemy 2.x mapped models.

Repositories never open, commit or roll back transactions; the unit of work
owned by a service does. What they share here:

- Lookups by primary key, with an optional row lock for read-modify-write.
- Equality lookups restricted to a per-repository whitelist of columns.
- Assignments restricted to a per-repository whitelist of fields, so an
  identity key cannot be rewritten by accident.
- Offset pagination with a primary-key tiebreaker for stable pages.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar, cast

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from staffauth.core.extensions import db

M = TypeVar("M")


@dataclass(frozen=True, slots=True)
class Pagination:
    """1-based page request. Callers clamp the values before building one."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class Page(Generic[M]):
    """One slice of a listing. Totals are counted separately."""

    items: Sequence[M]
    page: int
    limit: int


class BaseRepository(Generic[M]):
    """
    Shared plumbing for a repository over one mapped model.

    Subclasses set :attr:`model` and may fill :attr:`lookup_columns`,
    :attr:`updatable_fields` and :meth:`_listing_order`.

    :param session: Session of the enclosing unit of work. Defaults to the
        Flask-scoped ``db.session``.
    """

    model: type[M]
    #: Columns accepted by :meth:`find_one` and the ``filters`` arguments
    lookup_columns: ClassVar[Mapping[str, str]] = {}
    #: Attributes :meth:`update` may assign
    updatable_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    @property
    def _pk(self) -> InstrumentedAttribute[Any]:
        return cast(InstrumentedAttribute[Any], getattr(self.model, "id"))

    def _listing_order(self) -> list[ColumnElement[Any]]:
        """``ORDER BY`` clauses for :meth:`page`; the primary key is appended."""
        return []

    def _where(
        self,
        stmt: Select[Any],
        filters: Mapping[str, Any] | None,
        clauses: Sequence[ColumnElement[bool]],
    ) -> Select[Any]:
        conditions: list[ColumnElement[bool]] = list(clauses)
        for key, value in (filters or {}).items():
            column = self.lookup_columns.get(key)
            if column is None:
                raise ValueError(f"{self.model.__name__} cannot be filtered by {key!r}")
            conditions.append(getattr(self.model, column) == value)
        return stmt.where(*conditions) if conditions else stmt

    # ------------------------------- Reads ----------------------------------

    def get(self, entity_id: int) -> M | None:
        stmt = select(self.model).where(self._pk == entity_id)
        return cast(M | None, self.session.scalars(stmt).first())

    def get_for_update(self, entity_id: int) -> M | None:
        """
        Load ``entity_id`` with ``SELECT ... FOR UPDATE`` where supported.

        ``populate_existing`` overwrites an instance already in the identity
        map, so a read-modify-write always starts from the stored row.
        """
        stmt = (
            select(self.model)
            .where(self._pk == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return cast(M | None, self.session.scalars(stmt).first())

    def find_one(self, **filters: Any) -> M | None:
        """
        :raises ValueError: If a key is not in :attr:`lookup_columns`.
        """
        stmt = self._where(select(self.model), filters, ())
        return cast(M | None, self.session.scalars(stmt).first())

    def count(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        where: Sequence[ColumnElement[bool]] = (),
    ) -> int:
        stmt = self._where(select(func.count()).select_from(self.model), filters, where)
        return int(self.session.execute(stmt).scalar_one())

    def page(
        self,
        pagination: Pagination,
        *,
        filters: Mapping[str, Any] | None = None,
        where: Sequence[ColumnElement[bool]] = (),
    ) -> Page[M]:
        stmt = self._where(select(self.model), filters, where)
        stmt = stmt.order_by(*self._listing_order(), self._pk.desc())
        stmt = stmt.limit(pagination.limit).offset(pagination.offset)
        items = list(self.session.scalars(stmt).all())
        return Page(items=items, page=pagination.page, limit=pagination.limit)

    # ------------------------------- Writes ---------------------------------

    def add(self, instance: M) -> M:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.flush()
        return instance

    def update(self, instance: M, **fields: Any) -> M:
        """
        Assign ``fields`` through ``setattr`` (so ``@validates`` hooks run) and flush.

        :raises ValueError: If a key is not in :attr:`updatable_fields`.
        """
        rejected = sorted(set(fields) - self.updatable_fields)
        if rejected:
            raise ValueError(f"Fields not updatable on {self.model.__name__}: {rejected}")
        for name, value in fields.items():
            setattr(instance, name, value)
        self.flush()
        return instance

    def delete(self, instance: M) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

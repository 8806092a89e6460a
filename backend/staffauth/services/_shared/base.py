# staffauth/services/_shared/base.py
from __future__ import annotations

from staffauth.repositories.base import Pagination
from staffauth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

MAX_PAGE_SIZE = 100


class BaseService:
    """
    Common ground for application services.

    Services orchestrate repositories inside a unit of work and raise
    :mod:`staffauth.services._shared.errors` types; they never see Flask
    requests or touch ``db.session`` directly.
    """

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Open a read-write unit of work (commit on clean exit)."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Open a read-only unit of work (writes refused, always discarded)."""
        return SQLAlchemyReadOnlyUnitOfWork()

    @staticmethod
    def ensure_pagination(*, page: int, limit: int, max_limit: int = MAX_PAGE_SIZE) -> Pagination:
        """
        Clamp ``page`` to ``>= 1`` and ``limit`` to ``[1, max_limit]``.

        :rtype: Pagination
        """
        return Pagination(page=max(1, int(page)), limit=min(max(1, int(limit)), max_limit))

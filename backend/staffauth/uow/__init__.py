"""Transaction scopes used by the services."""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = ["SQLAlchemyReadOnlyUnitOfWork", "SQLAlchemyUnitOfWork", "UnitOfWork"]

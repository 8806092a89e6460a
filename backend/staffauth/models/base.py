"""Column mixins for typed SQLAlchemy 2.0 models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


class IdentityMixin:
    """Integer surrogate key ``id`` and a ``<Class id=...>`` repr."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id}>"


class TimestampMixin:
    """
    Server-stamped ``created_at`` and ``updated_at`` (timezone-aware).

    ``created_at`` orders directory listings, newest first.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

"""Common Marshmallow schemas shared across resources."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, fields, post_load, validate


class PaginationQuerySchema(Schema):
    """Validate ``page`` / ``limit`` query parameters with configurable defaults."""

    class Meta:
        unknown = EXCLUDE

    def __init__(self, *, default_limit: int = 10, max_limit: int = 100, **kwargs: Any) -> None:
        self._default_limit = default_limit
        self._max_limit = max_limit
        super().__init__(**kwargs)

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(validate=validate.Range(min=1))

    @post_load
    def apply_defaults(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        limit = data.get("limit", self._default_limit)
        data["limit"] = min(max(limit, 1), self._max_limit)
        data.setdefault("page", 1)
        return data


def build_pagination(*, page: int, limit: int, total: int, pages: int) -> dict[str, int]:
    """Return a ``pagination`` mapping for list responses."""

    return {"page": int(page), "limit": int(limit), "total": int(total), "pages": int(pages)}

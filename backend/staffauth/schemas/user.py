"""User resource schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    pre_load,
    validate,
    validates_schema,
)

from staffauth.models.user import UserRole
from staffauth.schemas.auth import NAME_LENGTH
from staffauth.schemas.common import PaginationQuerySchema


class UserSchema(Schema):
    """Public representation of a user (password hash and tokens never dumped)."""

    id = fields.Integer(required=True)
    first_name = fields.String(required=True)
    middle_name = fields.String(allow_none=True)
    last_name = fields.String(required=True)
    email = fields.Email(required=True)
    employee_id = fields.String(required=True)
    phone_number = fields.String(required=True)
    role = fields.String(required=True)
    is_active = fields.Boolean(required=True)
    last_login = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)


class UserListQuerySchema(PaginationQuerySchema):
    """Query parameters for the admin user directory."""

    search = fields.String(load_default=None, validate=validate.Length(max=100))
    role = fields.Enum(UserRole, by_value=True, load_default=None)


class UpdateProfileSchema(Schema):
    """Partial profile update. An empty ``middle_name`` clears it."""

    class Meta:
        unknown = EXCLUDE

    first_name = fields.String(validate=NAME_LENGTH)
    middle_name = fields.String(allow_none=True, validate=validate.Length(max=50))
    last_name = fields.String(validate=NAME_LENGTH)
    email = fields.Email(validate=validate.Length(max=254))

    @pre_load
    def strip(self, data: Any, **_: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}

    @validates_schema
    def require_one(self, data: dict[str, Any], **_: Any) -> None:
        if not data:
            raise ValidationError("At least one field must be provided.")


class ChangePasswordSchema(Schema):
    """Payload for changing the caller's own password."""

    old_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=8, max=128)
    )

    @validates_schema
    def differs(self, data: dict[str, Any], **_: Any) -> None:
        if data.get("old_password") and data.get("old_password") == data.get("new_password"):
            raise ValidationError(
                "New password must differ from the old one.", field_name="new_password"
            )

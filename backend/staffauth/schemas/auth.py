"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, pre_load, validate

NAME_LENGTH = validate.Length(min=2, max=50)


def _strip_strings(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    return {k: v.strip() if isinstance(v, str) and k != "password" else v for k, v in data.items()}


class RegisterSchema(Schema):
    """Input payload for self-registration."""

    first_name = fields.String(required=True, validate=NAME_LENGTH)
    middle_name = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=50))
    last_name = fields.String(required=True, validate=NAME_LENGTH)
    email = fields.Email(required=True, validate=validate.Length(max=254))
    employee_id = fields.String(required=True, validate=validate.Length(min=3, max=20))
    phone_number = fields.String(
        required=True,
        validate=[
            validate.Length(min=10, max=20),
            validate.Regexp(r"^\+?[0-9][0-9 \-]*$", error="Invalid phone number."),
        ],
    )
    password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=8, max=128)
    )

    @pre_load
    def strip(self, data: Any, **_: Any) -> Any:
        return _strip_strings(data)


class LoginSchema(Schema):
    """Input payload for authenticating by employee id."""

    employee_id = fields.String(required=True, validate=validate.Length(min=1, max=20))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def strip(self, data: Any, **_: Any) -> Any:
        return _strip_strings(data)


class TokenResponseSchema(Schema):
    """Response payload carrying a new access token."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")

"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, RegisterSchema, TokenResponseSchema
from .common import PaginationQuerySchema, build_pagination
from .user import ChangePasswordSchema, UpdateProfileSchema, UserListQuerySchema, UserSchema

__all__ = [
    "LoginSchema",
    "RegisterSchema",
    "TokenResponseSchema",
    "PaginationQuerySchema",
    "build_pagination",
    "UserSchema",
    "UserListQuerySchema",
    "UpdateProfileSchema",
    "ChangePasswordSchema",
]

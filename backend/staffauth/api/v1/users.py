"""User endpoints: own-profile writes and the admin directory."""

from __future__ import annotations

from flask import Blueprint, request

from staffauth.api.deps import (
    current_principal,
    envelope,
    json_body,
    require_auth,
    require_roles,
    services,
    timing,
)
from staffauth.models.user import UserRole
from staffauth.schemas import (
    ChangePasswordSchema,
    UpdateProfileSchema,
    UserListQuerySchema,
    UserSchema,
    build_pagination,
)
from staffauth.services.users.dto import ChangePasswordIn, UpdateProfileIn, UserListQuery

bp = Blueprint("users", __name__)

user_schema = UserSchema()
user_list_schema = UserSchema(many=True)
list_query_schema = UserListQuerySchema()
update_profile_schema = UpdateProfileSchema()
change_password_schema = ChangePasswordSchema()


def _cached(message: str, from_cache: bool) -> str:
    return f"{message} (cached)" if from_cache else message


# ------------------------------ own account ------------------------------


@bp.route("/profile", methods=["PUT", "PATCH"])
@require_auth
@timing
def update_profile():
    """Update the caller's names and/or email."""

    data = update_profile_schema.load(json_body())
    user = services().users.update_profile(current_principal().user_id, UpdateProfileIn(**data))
    return envelope("Profile updated successfully", {"user": user_schema.dump(user)})


@bp.route("/change-password", methods=["PUT", "PATCH"])
@require_auth
@timing
def change_password():
    """Change the caller's password after checking the old one."""

    data = change_password_schema.load(json_body())
    services().users.change_password(current_principal().user_id, ChangePasswordIn(**data))
    return envelope("Password updated successfully")


# ------------------------------ admin directory ------------------------------


@bp.get("")
@require_roles(UserRole.ADMIN)
@timing
def list_users():
    """Return one page of users with the matching total."""

    args = list_query_schema.load(request.args)
    result = services().users.list_users(UserListQuery(**args))
    data = {
        "users": user_list_schema.dump(result.users),
        "pagination": build_pagination(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    }
    return envelope(_cached("Users retrieved successfully", result.from_cache), data)


@bp.get("/<int:user_id>")
@require_roles(UserRole.ADMIN)
@timing
def get_user(user_id: int):
    """Return one user by id."""

    result = services().users.get_user(user_id)
    return envelope(_cached("User found", result.from_cache), {"user": user_schema.dump(result.user)})


@bp.patch("/<int:user_id>/deactivate")
@require_roles(UserRole.ADMIN)
@timing
def deactivate_user(user_id: int):
    """Mark a user inactive; their tokens stop working on next use."""

    user = services().users.deactivate(user_id)
    return envelope("User deactivated successfully", {"user": user_schema.dump(user)})


@bp.delete("/<int:user_id>")
@require_roles(UserRole.ADMIN)
@timing
def delete_user(user_id: int):
    """Delete a user permanently."""

    services().users.delete(user_id)
    return envelope("User deleted successfully")

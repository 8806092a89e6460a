"""Authentication endpoints: session lifecycle and own profile."""

from __future__ import annotations

from flask import Blueprint

from staffauth.api.deps import (
    clear_refresh_cookie,
    current_principal,
    envelope,
    json_body,
    refresh_cookie,
    require_auth,
    services,
    set_refresh_cookie,
    timing,
)
from staffauth.schemas import LoginSchema, RegisterSchema, TokenResponseSchema, UserSchema
from staffauth.services.auth.dto import AuthResultOut, LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
user_schema = UserSchema()
token_schema = TokenResponseSchema()


def _session_response(result: AuthResultOut, message: str, *, status: int = 200):
    # The refresh token only ever travels in the cookie
    body = {"user": user_schema.dump(result.user), "access_token": result.tokens.access_token}
    response = envelope(message, body, status=status)
    return set_refresh_cookie(response, result.tokens.refresh_token)


@bp.post("/register")
@timing
def register():
    """Create a ``USER`` account and open its first session."""

    data = register_schema.load(json_body())
    result = services().auth.register(RegisterIn(**data))
    return _session_response(result, "User registered successfully", status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate by employee id and password."""

    data = login_schema.load(json_body())
    result = services().auth.login(LoginIn(**data))
    return _session_response(result, "Login successful")


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate the refresh cookie and return a new access token."""

    tokens = services().auth.refresh(RefreshIn(refresh_token=refresh_cookie()))
    response = envelope(
        "Token refreshed successfully", token_schema.dump({"access_token": tokens.access_token})
    )
    return set_refresh_cookie(response, tokens.refresh_token)


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Retire the refresh token of this session."""

    principal = current_principal()
    services().auth.logout(LogoutIn(user_id=principal.user_id, refresh_token=refresh_cookie()))
    return clear_refresh_cookie(envelope("Logout successful"))


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Retire every refresh token of the caller."""

    services().auth.logout_all(current_principal().user_id)
    return clear_refresh_cookie(envelope("Logged out from all devices successfully"))


@bp.get("/profile")
@require_auth
@timing
def profile():
    """Return the caller's own public profile."""

    user = services().auth.get_profile(current_principal().user_id)
    return envelope("Profile retrieved successfully", {"user": user_schema.dump(user)})

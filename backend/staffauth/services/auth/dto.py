# staffauth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

from staffauth.services._shared.ports.token_codec import TokenPair
from staffauth.services.users.dto import UserPublic

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-registration. New accounts always get the ``USER`` role.

    :param password: Raw password (hashed before persistence).
    """

    first_name: str
    last_name: str
    email: str
    employee_id: str
    phone_number: str
    password: str
    middle_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param employee_id: Login identifier.
    :type employee_id: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    employee_id: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT as read from the cookie (may be missing).
    :type refresh_token: str | None
    """

    refresh_token: str | None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param user_id: Authenticated user.
    :param refresh_token: Refresh token presented with the request, if any.
    """

    user_id: int
    refresh_token: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Result of register/login: the public user plus a fresh token pair.

    The HTTP layer returns ``tokens.access_token`` in the body and places
    ``tokens.refresh_token`` only in the refresh cookie.
    """

    user: UserPublic
    tokens: TokenPair


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller resolved from an access token."""

    user_id: int
    email: str
    role: str

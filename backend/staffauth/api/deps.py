"""Shared API helpers: response envelope, auth decorators, request parsing."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from staffauth.core.container import ServiceContainer, get_container
from staffauth.models.user import UserRole
from staffauth.services.auth.dto import Principal

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "


def services() -> ServiceContainer:
    """Return the service container of the current app."""

    return get_container()


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def envelope(message: str, data: Any = None, *, status: int = 200) -> Response:
    """Build a success envelope ``{"success": true, "message": ..., "data"?: ...}``."""

    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return json_response(body, status=status)


def bearer_token() -> str | None:
    """Extract the token from ``Authorization: Bearer <token>``."""

    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX) :].strip() or None


def refresh_cookie() -> str | None:
    """Return the refresh token cookie, if present."""

    return request.cookies.get(current_app.config.get("REFRESH_COOKIE_NAME", "refreshToken"))


def set_refresh_cookie(response: Response, token: str) -> Response:
    """Attach the refresh token as an HttpOnly, SameSite=Strict cookie."""

    container = services()
    max_age = int(container.codec.settings.refresh_expires.total_seconds())
    response.set_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refreshToken"),
        token,
        max_age=max_age,
        httponly=True,
        secure=bool(current_app.config.get("REFRESH_COOKIE_SECURE", True)),
        samesite="Strict",
        path="/",
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    response.delete_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refreshToken"),
        path="/",
        httponly=True,
        secure=bool(current_app.config.get("REFRESH_COOKIE_SECURE", True)),
        samesite="Strict",
    )
    return response


def current_principal() -> Principal:
    """Return the caller resolved by :func:`require_auth`."""

    principal = g.get("principal")
    if principal is None:  # pragma: no cover - decorator ordering bug
        raise RuntimeError("current_principal() used outside require_auth")
    return principal


def require_auth(func: F) -> F:
    """Resolve the bearer access token into a :class:`Principal` on ``g``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.principal = None
        g.principal = services().auth.authenticate(bearer_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_roles(*roles: UserRole | str) -> Callable[[F], F]:
    """Authenticate the caller and require one of ``roles``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            g.principal = None
            container = services()
            principal = container.auth.authenticate(bearer_token())
            container.auth.authorize(principal, roles)
            g.principal = principal
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_body() -> dict[str, Any]:
    """Return the JSON request body, or an empty dict when absent or invalid."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]

"""JSON error envelope for every failure leaving the API.

Shape::

    {"success": false, "message": "...", "code": "...",
     "details": {...},            # validation errors only
     "request_id": "..."}

Service errors are mapped by :class:`ErrorKind`; framework and database
errors get fixed codes. 5xx responses never echo internal messages.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from staffauth.core.logger import ensure_request_id
from staffauth.services._shared.errors import ErrorKind, ServiceError

log = logging.getLogger(__name__)

KIND_TO_STATUS: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.BAD_REQUEST: HTTPStatus.BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}

# Codes for framework-raised HTTP errors; others fall back to "error"
HTTP_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    500: "internal",
    503: "service_unavailable",
}

INTERNAL_MESSAGE = "Internal server error"


def _fail(
    status: int,
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    log_message: str | None = None,
    exc_info: bool = False,
):
    """Log the failure (warning for 4xx, error for 5xx) and build the response."""
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(
        level,
        "request.failed code=%s status=%s msg=%s",
        code,
        status,
        log_message or message,
        extra={"error_code": code, "status": status},
        exc_info=exc_info,
    )
    body: dict[str, Any] = {"success": False, "message": message, "code": code}
    if details:
        body["details"] = details
    body["request_id"] = ensure_request_id()
    return jsonify(body), int(status)


def init_app(app: Flask) -> None:
    """Register the JSON error handlers on ``app``."""

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        status = KIND_TO_STATUS.get(err.kind, HTTPStatus.INTERNAL_SERVER_ERROR)
        internal = status >= 500
        return _fail(
            status,
            err.kind.value,
            INTERNAL_MESSAGE if internal else err.message,
            log_message=err.message,
            exc_info=internal,
        )

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return _fail(
            HTTPStatus.BAD_REQUEST,
            ErrorKind.BAD_REQUEST.value,
            "Validation error",
            details={"errors": err.messages},
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or HTTPStatus.INTERNAL_SERVER_ERROR
        code = HTTP_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        return _fail(status, code, message)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # A constraint the services did not translate; raw DB text stays in the log
        return _fail(
            HTTPStatus.CONFLICT,
            ErrorKind.CONFLICT.value,
            "Resource conflict",
            log_message="IntegrityError",
            exc_info=True,
        )

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        return _fail(
            HTTPStatus.SERVICE_UNAVAILABLE,
            "service_unavailable",
            "Service temporarily unavailable",
            log_message="OperationalError",
            exc_info=True,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        return _fail(
            HTTPStatus.INTERNAL_SERVER_ERROR,
            ErrorKind.INTERNAL.value,
            INTERNAL_MESSAGE,
            log_message="Unhandled exception",
            exc_info=True,
        )

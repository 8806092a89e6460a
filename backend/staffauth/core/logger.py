"""JSON logging on stdout with a per-request correlation id.

The id is taken from ``X-Request-ID`` (or ``X-Correlation-ID``) when the
client sends one, generated otherwise, stamped on every log record emitted
while the request runs and echoed back in the ``X-Request-ID`` header.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_ID_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Whitelisted ``extra={...}`` keys; anything else stays out of the output
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "cache_key", "error_code", "status")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on records (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """Return the id of the current request, assigning one on first use.

    Outside a request a fresh id is returned on every call.
    """
    if not has_request_context():
        return uuid4().hex
    current = g.get("request_id")
    if current is None:
        inbound = (request.headers.get(name) for name in _INBOUND_ID_HEADERS)
        current = next((value for value in inbound if value), None) or uuid4().hex
        g.request_id = current
    return current


def configure_logging(level: str | int = "INFO") -> None:
    """Route the root logger to stdout as JSON at ``level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Assign the request id before each request and echo it on the response."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _assign_request_id() -> None:
        # ``g`` outlives the request when the app context was pushed beforehand
        g.pop("request_id", None)
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response: Response) -> Response:
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["JSONFormatter", "configure_logging", "ensure_request_id", "init_app"]

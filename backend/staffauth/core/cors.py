"""Cross-origin policy for ``/api/*``."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def _origins(raw: str | None) -> list[str]:
    return [origin.strip() for origin in (raw or "").split(",") if origin.strip()]


def init_app(app: Flask) -> None:
    """Apply ``CORS_ORIGINS`` (comma separated) and ``CORS_MAX_AGE``.

    Browsers only send the refresh cookie cross-origin when credentials are
    allowed, and credentials cannot be combined with ``*``. An explicit list
    therefore enables credentials; a blank value or ``*`` allows any origin
    without them.
    """
    origins = _origins(app.config.get("CORS_ORIGINS"))
    allow_any = origins in ([], ["*"])

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if allow_any else origins}},
        supports_credentials=not allow_any,
        expose_headers=["X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )

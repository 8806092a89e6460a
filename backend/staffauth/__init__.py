"""Expose the application factory at package level.

``from staffauth import create_app`` is the supported entry point for WSGI
servers, the Flask CLI and tests.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]

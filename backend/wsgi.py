"""WSGI entry point (``gunicorn wsgi:app``)."""

from __future__ import annotations

import atexit

from staffauth import create_app
from staffauth.core.container import get_container

app = create_app()

# The process owns the cache connection pool
atexit.register(get_container(app).close)

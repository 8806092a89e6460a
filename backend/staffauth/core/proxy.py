"""Reverse-proxy header handling."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` when ``USE_PROXYFIX`` is set.

    Parameters
    ----------
    app: flask.Flask
        Application to wrap. ``PROXY_HOPS`` sets how many upstream proxies are
        trusted for ``X-Forwarded-For`` / ``-Proto`` / ``-Host``; the
        ``Secure`` refresh cookie depends on the scheme being right.
    """
    if not app.config.get("USE_PROXYFIX", False):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)

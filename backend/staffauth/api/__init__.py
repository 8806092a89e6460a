"""HTTP surface: versioned blueprints under ``API_BASE_PREFIX``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def _join(*parts: str) -> str:
    return "/" + "/".join(p.strip("/") for p in parts if p.strip("/"))


def mount(app: Flask, root: str, blueprints: Iterable[tuple[Blueprint, str]]) -> None:
    """Register each ``(blueprint, sub_prefix)`` under ``root``.

    An empty sub-prefix mounts the blueprint at ``root`` itself.
    """
    for blueprint, sub_prefix in blueprints:
        app.register_blueprint(blueprint, url_prefix=_join(root, sub_prefix))


def init_app(app: Flask) -> None:
    from staffauth.api import v1

    mount(app, _join(app.config.get("API_BASE_PREFIX", "/api"), v1.API_VERSION), v1.BLUEPRINTS)


__all__ = ["init_app", "mount"]

"""Liveness check with database and cache status."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from staffauth.api.deps import envelope, services, timing
from staffauth.core.extensions import db

bp = Blueprint("health", __name__)

log = logging.getLogger(__name__)


def _database_ok() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        log.exception("healthcheck.db_error")
        db.session.rollback()
        return False
    return True


@bp.get("/health")
@timing
def healthcheck():
    """Always 200 while the process serves; dependency status is reported in ``data``."""

    database = _database_ok()
    cache = services().cache_store.ping()
    return envelope(
        "API is healthy",
        {
            "status": "ok" if database else "degraded",
            "db": "ok" if database else "fail",
            "cache": "ok" if cache else "degraded",
            "version": current_app.config.get("APP_VERSION", "dev"),
        },
    )

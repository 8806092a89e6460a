"""Flask extension singletons: SQLAlchemy and Alembic migrations."""

from __future__ import annotations

from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Conflict mapping reads ``uq_users_<column>`` off IntegrityError messages,
# so these names are part of the contract with the services.
NAMING_CONVENTION = {
    "pk": "pk_%(table_name)s",
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
}

db = SQLAlchemy(
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
    session_options={"autoflush": False},
)
migrate = Migrate(render_as_batch=True)


def init_app(app: Flask) -> None:
    """Bind the database and migrations to ``app``.

    Models are imported here so ``flask db`` sees the full metadata.
    """
    db.init_app(app)
    from staffauth import models  # noqa: F401

    migrate.init_app(app, db)

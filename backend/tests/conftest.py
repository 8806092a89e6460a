"""Pytest fixtures configuring the app and an isolated transactional database.

Each test runs inside a SAVEPOINT joined to an outer connection-level
transaction against an in-memory SQLite database, so data changes never leak
between cases even though services commit their units of work.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from staffauth.core import config as app_config
from staffauth.core.container import ServiceContainer, get_container
from staffauth.core.extensions import db as _db
from staffauth.factory import create_app


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy, not the pysqlite driver, control BEGIN so SAVEPOINTs nest."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    The app context stays pushed for the whole session so services can reach
    ``db.session`` and the service container outside of requests.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(app_config.TestingConfig)
    app.logger.setLevel("WARNING")
    with app.app_context():
        yield app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session."""
    _enable_sqlite_savepoints(_db.engine)
    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a session whose commits only release a per-test SAVEPOINT.

    ``db.session`` is swapped for the duration of the test so units of work,
    repositories and factories all share it.
    """
    outer = connection.begin()
    SessionFactory = sessionmaker(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
    )
    scoped = scoped_session(SessionFactory)

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        outer.rollback()


@pytest.fixture()
def container(app, session) -> ServiceContainer:
    """Service container of the test app with an empty cache."""
    services = get_container(app)
    services.cache_store.invalidate_prefix("")
    return services


@pytest.fixture()
def client(app, container):
    """Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    if "session" not in request.fixturenames:
        yield
        return
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)

"""Refresh-token rotation racing against a committed writer on another connection.

These cases run against a file-backed SQLite database instead of the shared
SAVEPOINT fixture: each thread needs its own connection and its own real
transaction so one writer can commit while the other still holds stale state.
"""

from __future__ import annotations

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from staffauth.core.extensions import db
from staffauth.models.user import User, UserRole
from staffauth.repositories.user import UserRepository
from staffauth.services.auth.registry import RefreshTokenRegistry

TOKEN = "rt-contended"


@pytest.fixture()
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'registry-race.db'}",
        connect_args={"timeout": 5, "check_same_thread": False},
    )
    db.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def threaded_session(app, file_engine, monkeypatch):
    """Point ``db.session`` at a thread-local session over the file database."""
    scoped = scoped_session(sessionmaker(bind=file_engine))
    monkeypatch.setattr(db, "session", scoped)
    try:
        yield scoped
    finally:
        scoped.remove()


@pytest.fixture()
def user_id(file_engine) -> int:
    with Session(file_engine) as s:
        user = User(
            first_name="Rae",
            last_name="Contend",
            email="race@example.com",
            employee_id="RACE01",
            phone_number="+15550001111",
            password_hash="not-used",
            role=UserRole.USER,
            is_active=True,
            refresh_tokens=[TOKEN, "rt-other"],
        )
        s.add(user)
        s.commit()
        return user.id


def _interleave_after_first_load(monkeypatch, writer):
    """Run ``writer`` to completion right after the first ``get_for_update`` returns."""
    load = UserRepository.get_for_update
    loads = []

    def get_for_update(self, pk):
        user = load(self, pk)
        loads.append(threading.current_thread().name)
        if len(loads) == 1:
            worker = threading.Thread(target=writer, name="writer")
            worker.start()
            worker.join(timeout=10)
        return user

    monkeypatch.setattr(UserRepository, "get_for_update", get_for_update)
    return loads


def test_two_rotations_of_one_token_yield_exactly_one_success(
    app, threaded_session, file_engine, user_id, monkeypatch, caplog
):
    registry = RefreshTokenRegistry()
    results = {}

    def rival_rotation():
        with app.app_context():
            results["writer"] = registry.remove(user_id, TOKEN)
        threaded_session.remove()

    loads = _interleave_after_first_load(monkeypatch, rival_rotation)

    results["main"] = registry.remove(user_id, TOKEN)

    assert sorted(results.values()) == [False, True]
    assert results["writer"] is True
    assert results["main"] is False
    # first attempt, the writer's own load, then the retry on fresh state
    assert loads == ["MainThread", "writer", "MainThread"]
    assert any("registry.concurrent_update" in r.getMessage() for r in caplog.records)

    with Session(file_engine) as s:
        stored = s.get(User, user_id)
        assert stored.refresh_tokens == ["rt-other"]
        assert stored.version_id == 2


def test_concurrent_add_and_remove_both_land(app, threaded_session, file_engine, user_id, monkeypatch):
    registry = RefreshTokenRegistry()

    def rival_login():
        with app.app_context():
            registry.add(user_id, "rt-new-session")
        threaded_session.remove()

    _interleave_after_first_load(monkeypatch, rival_login)

    assert registry.remove(user_id, TOKEN) is True

    with Session(file_engine) as s:
        stored = s.get(User, user_id)
        assert stored.refresh_tokens == ["rt-other", "rt-new-session"]

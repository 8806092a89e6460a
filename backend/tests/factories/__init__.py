"""Factory Boy base bound to the per-test transactional session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holds the session the ``session`` fixture hands to factories."""

    _current = None

    @classmethod
    def set(cls, session):
        cls._current = session

    @classmethod
    def get(cls):
        if cls._current is None:
            raise RuntimeError("No factory session bound; request the 'session' fixture.")
        return cls._current


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        abstract = True
        # Resolved per instance, so each test's session is picked up
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"

"""Units of work over the Flask-scoped SQLAlchemy session."""

from __future__ import annotations

import logging

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction, scoped_session

from staffauth.core.extensions import db
from staffauth.repositories import UserRepository
from staffauth.uow.base import UnitOfWork

log = logging.getLogger(__name__)

# First keyword of statements a read-only scope refuses to send
_WRITE_VERBS = frozenset(
    {"insert", "update", "delete", "merge", "replace", "create", "alter", "drop", "truncate"}
)
# Dialects understanding ``SET TRANSACTION READ ONLY``
_READ_ONLY_DIALECTS = ("postgresql", "mysql", "mariadb")


class _SessionScope(UnitOfWork):
    def __init__(self) -> None:
        self.session: Session = db.session
        self.users = UserRepository(session=self.session)


class SQLAlchemyUnitOfWork(_SessionScope):
    """Read-write scope: commits on a clean exit, rolls back otherwise."""

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on its first statement
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except SQLAlchemyError:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(_SessionScope):
    """
    Read-only scope that refuses writes and always discards its transaction.

    Two guards are installed for the duration of the block: a session
    ``before_flush`` hook rejects pending ORM changes and a connection
    ``before_cursor_execute`` hook rejects DML/DDL text. On PostgreSQL and
    MySQL the transaction is additionally declared ``READ ONLY``.

    If the session is already inside a transaction (an enclosing scope or a
    test fixture) the guards still apply, but that transaction is neither
    re-declared nor rolled back.

    :param enforce_db_readonly: Issue ``SET TRANSACTION READ ONLY`` where supported.
    """

    def __init__(self, *, enforce_db_readonly: bool = True) -> None:
        super().__init__()
        self.enforce_db_readonly = enforce_db_readonly
        self._owned: SessionTransaction | None = None
        self._connection: Connection | None = None
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # scoped_session does not proxy in_transaction(); use this thread's Session
        session = self.session
        self._guarded = session() if isinstance(session, scoped_session) else session
        if not self._guarded.in_transaction():
            self._owned = self._guarded.begin()
        self._connection = self._guarded.connection()

        event.listen(self._guarded, "before_flush", self._refuse_flush)
        event.listen(self._connection, "before_cursor_execute", self._refuse_statement)

        if (
            self._owned is not None
            and self.enforce_db_readonly
            and self._connection.dialect.name in _READ_ONLY_DIALECTS
        ):
            try:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
            except SQLAlchemyError as exc:
                log.warning("uow.read_only_directive_failed: %s", exc)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owned is not None:
                self._owned.rollback()
        finally:
            if self._guarded is not None:
                event.remove(self._guarded, "before_flush", self._refuse_flush)
            if self._connection is not None:
                event.remove(self._connection, "before_cursor_execute", self._refuse_statement)
            self._owned = None
            self._connection = None
            self._guarded = None

    def commit(self) -> None:
        """
        :raises RuntimeError: Always; read-only scopes never commit.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------ guards ------------------------------

    def _refuse_flush(self, session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: ORM flush blocked (pending changes).")

    def _refuse_statement(self, conn, cursor, statement, parameters, context, executemany) -> None:
        verb = statement.lstrip().split(None, 1)[0].lower() if statement else ""
        if verb in _WRITE_VERBS:
            raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {verb.upper()}")

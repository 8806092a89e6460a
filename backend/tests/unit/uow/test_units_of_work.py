import pytest
from sqlalchemy import text

from staffauth.models.user import User
from staffauth.uow import SQLAlchemyReadOnlyUnitOfWork as ROuow
from staffauth.uow import SQLAlchemyUnitOfWork as RWuow
from tests.factories.user import UserFactory


class TestSQLAlchemyUnitOfWork:
    def test_commits_on_clean_exit(self, session):
        with RWuow() as uow:
            user = UserFactory.build()
            uow.users.add(user)
            user_id = user.id

        session.expire_all()
        assert session.get(User, user_id) is not None

    def test_rolls_back_on_error(self, session):
        employee_id = "ROLLBACK1"
        with pytest.raises(RuntimeError), RWuow() as uow:
            uow.users.add(UserFactory.build(employee_id=employee_id))
            raise RuntimeError("boom")

        with RWuow() as uow:
            assert uow.users.find_by_employee_id(employee_id) is None


class TestSQLAlchemyReadOnlyUnitOfWork:
    def test_blocks_orm_flush_writes(self, session):
        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            uow.session.add(UserFactory.build())
            uow.session.flush()

    def test_blocks_core_dml(self, session):
        with ROuow() as uow, pytest.raises(RuntimeError, match="SQL statement blocked"):
            uow.session.execute(text("DELETE FROM users"))

    def test_allows_reads(self, session):
        with RWuow() as uow:
            uow.users.add(UserFactory.build())

        with ROuow() as uow:
            assert uow.users.count() >= 1

    def test_disallows_commit(self, session):
        with ROuow() as uow, pytest.raises(RuntimeError, match="does not allow commit"):
            uow.commit()

    def test_changes_never_persist(self, session):
        with RWuow() as uow:
            user = UserFactory.build()
            uow.users.add(user)
            user_id = user.id
            original_email = user.email

        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            u = uow.users.get(user_id)
            u.email = "mutated-in-ro@example.com"
            uow.session.flush()

        with RWuow() as uow:
            assert uow.users.get(user_id).email == original_email

    def test_opens_and_discards_its_own_transaction(self, session):
        session.commit()
        assert not session().in_transaction()

        with ROuow() as uow:
            assert session().in_transaction()
            assert uow.users.count() == 0

        assert not session().in_transaction()

    def test_joins_an_enclosing_transaction_without_ending_it(self, session):
        user = UserFactory()
        session.flush()

        with ROuow() as uow:
            assert uow.users.get(user.id) is user

        assert session().in_transaction()
        assert session.get(User, user.id) is user

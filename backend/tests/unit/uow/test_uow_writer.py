"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from tests.factories.user import UserFactory
from tokenlife.models import RefreshToken, User
from tokenlife.services._shared.base import BaseService
from tokenlife.services._shared.errors import StoreUnavailableError
from tokenlife.uow import SQLAlchemyUnitOfWork


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we create a user via repo inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            u = UserFactory.build()  # build = no persist
            uow.users.add(u)

        after = db.session.query(User).count()
        assert after == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(User).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            u = UserFactory.build()
            uow.users.add(u)
            raise RuntimeError("boom")

        after = db.session.query(User).count()
        assert after == initial

    def test_rollback_discards_rows_already_flushed(self, app, db, session):
        """
        GIVEN a writer UoW whose repository flushed a refresh record
        WHEN a later statement in the same block fails
        THEN the flushed row is gone too.
        """
        from tests.factories.refresh_token import RefreshTokenFactory

        record = RefreshTokenFactory.build()
        record_id = record.id

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.refresh_tokens.insert(record)
            assert uow.refresh_tokens.get(record_id) is not None
            raise RuntimeError("lost the race")

        assert db.session.get(RefreshToken, record_id) is None

    def test_store_guard_maps_operational_errors(self, app, db, session):
        """
        Driver-level outages surface as StoreUnavailableError, not as raw
        SQLAlchemy exceptions.
        """
        with pytest.raises(StoreUnavailableError) as excinfo, BaseService().store_guard():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        assert excinfo.value.store == "database"

"""
Unit tests for SQLAlchemyReadOnlyUnitOfWork, the scope ``is_valid`` and claim
lookups run in.

SQLite has no ``SET TRANSACTION READ ONLY``; only the ORM and cursor guards
are exercised here.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from tests.factories.refresh_token import RefreshTokenFactory
from tokenlife.models.refresh_token import RefreshToken
from tokenlife.uow import (
    SQLAlchemyReadOnlyUnitOfWork as ROuow,
)
from tokenlife.uow import (
    SQLAlchemyUnitOfWork as RWuow,
)


class TestSQLAlchemyReadOnlyUnitOfWork:
    def test_blocks_orm_flush_writes(self, app, db):
        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            uow.session.add(RefreshTokenFactory.build())
            uow.session.flush()

    def test_blocks_conditional_revoke(self, app, db):
        """A validity check can never revoke a record, even by accident."""
        with ROuow() as uow, pytest.raises(RuntimeError, match="SQL statement blocked"):
            uow.refresh_tokens.mark_revoked("x", now=datetime.now(UTC))

    def test_allows_lookups(self, app, db):
        record = RefreshTokenFactory.build()
        with RWuow() as uow:
            uow.refresh_tokens.insert(record)

        with ROuow() as uow:
            found = uow.refresh_tokens.find_live_by_hash(record.token_hash)
            assert found is not None and found.id == record.id
            assert uow.refresh_tokens.find_by_hash("0" * 64) is None

    def test_disallows_commit(self, app, db):
        with ROuow() as uow, pytest.raises(RuntimeError, match="does not allow commit"):
            uow.commit()

    def test_mutations_do_not_persist(self, app, db):
        record = RefreshTokenFactory.build()
        with RWuow() as uow:
            uow.refresh_tokens.insert(record)
            record_id = record.id

        with ROuow() as uow, pytest.raises(RuntimeError, match="ORM flush blocked"):
            loaded = uow.session.get(RefreshToken, record_id)
            loaded.revoked = True
            uow.session.flush()

        with RWuow() as uow:
            assert uow.session.get(RefreshToken, record_id).revoked is False

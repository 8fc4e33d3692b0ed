# tests/unit/services/test_token_cleanup.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from tests.factories.refresh_token import RefreshTokenFactory
from tokenlife.models import RefreshToken
from tokenlife.repositories.refresh_token import RefreshTokenRepository
from tokenlife.services.tokens.cleanup import TokenCleanupService


@pytest.fixture()
def cleanup(fake_clock) -> TokenCleanupService:
    return TokenCleanupService(
        revocation_retention=timedelta(hours=12),
        batch_size=100,
        max_batches=10,
        clock=fake_clock,
    )


def remaining_ids(session) -> set[str]:
    session.expire_all()
    return {r.id for r in session.query(RefreshToken).all()}


def test_deletes_expired_and_stale_revoked_rows_only(cleanup, fake_clock, session):
    now = fake_clock()
    live = RefreshTokenFactory(now=now - timedelta(days=1))
    sliding_expired = RefreshTokenFactory(now=now - timedelta(days=31))
    absolute_expired = RefreshTokenFactory(
        now=now - timedelta(days=5), absolute_expires_at=now - timedelta(minutes=1)
    )
    recently_revoked = RefreshTokenFactory(
        now=now - timedelta(days=1), revoked=True, updated_at=now - timedelta(hours=1)
    )
    stale_revoked = RefreshTokenFactory(
        now=now - timedelta(days=1), revoked=True, updated_at=now - timedelta(hours=13)
    )
    session.commit()
    kept = {live.id, recently_revoked.id}
    purged = {sliding_expired.id, absolute_expired.id, stale_revoked.id}

    report = cleanup.run_once()

    assert report.deleted == 3
    assert report.failed is False
    assert report.exhausted is False
    ids = remaining_ids(session)
    assert ids == kept
    assert not ids & purged


def test_row_expiring_exactly_now_is_eligible(cleanup, fake_clock, session):
    now = fake_clock()
    boundary = RefreshTokenFactory(now=now - timedelta(days=30))
    assert boundary.sliding_expires_at == now
    session.commit()

    assert cleanup.run_once().deleted == 1


def test_revoked_rows_are_kept_for_the_retention_period(cleanup, fake_clock, session):
    now = fake_clock()
    revoked_id = RefreshTokenFactory(now=now, revoked=True, updated_at=now).id
    session.commit()

    assert cleanup.run_once().deleted == 0

    fake_clock.advance(hours=12, seconds=1)
    assert cleanup.run_once().deleted == 1
    assert revoked_id not in remaining_ids(session)


def test_run_is_bounded_and_resumes(fake_clock, session):
    now = fake_clock()
    for _ in range(5):
        RefreshTokenFactory(now=now - timedelta(days=40))
    session.commit()
    service = TokenCleanupService(
        revocation_retention=timedelta(hours=12), batch_size=2, max_batches=2, clock=fake_clock
    )

    first = service.run_once()
    assert (first.deleted, first.batches, first.exhausted) == (4, 2, True)
    assert len(remaining_ids(session)) == 1

    second = service.run_once()
    assert (second.deleted, second.exhausted) == (1, False)
    assert remaining_ids(session) == set()


def test_explicit_now_overrides_the_clock(cleanup, fake_clock, session):
    now = fake_clock()
    RefreshTokenFactory(now=now)
    session.commit()

    assert cleanup.run_once().deleted == 0
    assert cleanup.run_once(now=now + timedelta(days=31)).deleted == 1


def test_store_failure_is_reported_not_raised(cleanup, session, monkeypatch, caplog):
    def boom(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(RefreshTokenRepository, "find_expired_or_stale_revoked_ids", boom)

    report = cleanup.run_once()

    assert report.failed is True
    assert report.deleted == 0
    assert "Refresh token cleanup failed" in caplog.text

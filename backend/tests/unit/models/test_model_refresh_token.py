# tests/unit/models/test_model_refresh_token.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, StatementError

from tests.factories.refresh_token import RefreshTokenFactory
from tokenlife.models import RefreshToken

NOW = datetime(2030, 1, 1, tzinfo=UTC)


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (timedelta(days=29), ()),
        (timedelta(days=30), ("sliding",)),
        (timedelta(days=90), ("sliding", "absolute")),
    ],
)
def test_expired_horizons(offset, expected):
    record = RefreshToken(
        sliding_expires_at=NOW + timedelta(days=30),
        absolute_expires_at=NOW + timedelta(days=90),
    )
    assert record.expired_horizons(NOW + offset) == expected


def test_rotated_out_requires_successor():
    assert RefreshToken(revoked=True, replaced_by="x").rotated_out is True
    assert RefreshToken(revoked=True, replaced_by=None).rotated_out is False
    assert RefreshToken(revoked=False, replaced_by=None).rotated_out is False


def test_timestamps_round_trip_as_aware_utc(session):
    record = RefreshTokenFactory(now=NOW)
    session.commit()
    session.expire_all()

    loaded = session.get(RefreshToken, record.id)
    assert loaded.issued_at.tzinfo is not None
    assert loaded.issued_at == NOW


def test_naive_datetimes_are_rejected(session):
    with pytest.raises(StatementError):
        RefreshTokenFactory(issued_at=datetime(2030, 1, 1))
    session.rollback()


def test_token_hash_is_unique(session):
    first = RefreshTokenFactory(now=NOW)
    with pytest.raises(IntegrityError):
        RefreshTokenFactory(now=NOW, token_hash=first.token_hash)
    session.rollback()

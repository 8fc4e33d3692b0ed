# tests/unit/infra/test_jwt_token_codec.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from freezegun import freeze_time

from tokenlife.infra.jwt.token_codec import JWTTokenCodec
from tokenlife.services._shared.errors import (
    CredentialExpiredError,
    MalformedCredentialError,
    ReauthenticationRequired,
)
from tokenlife.services._shared.ports import TokenKind

T0 = datetime(2030, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def codec() -> JWTTokenCodec:
    return JWTTokenCodec()


def _forge(app, **claims) -> str:
    return jwt.encode(claims, app.config["JWT_SECRET_KEY"], algorithm="HS256")


# -------------------------------- Issue ----------------------------------- #
def test_access_credential_carries_roles_and_kind(codec):
    raw = codec.issue("subject-1", {"roles": ["ROLE_USER"]}, timedelta(minutes=15), kind=TokenKind.ACCESS)

    claims = codec.verify(raw)
    assert claims["sub"] == "subject-1"
    assert claims["type"] == "access"
    assert claims["roles"] == ["ROLE_USER"]
    assert codec.kind_of(raw) is TokenKind.ACCESS


def test_refresh_credential_is_distinguishable_from_access(codec):
    raw = codec.issue("subject-1", {}, timedelta(days=30), kind=TokenKind.REFRESH)

    assert codec.kind_of(raw) is TokenKind.REFRESH
    assert "roles" not in codec.verify(raw)


def test_two_credentials_for_same_subject_and_instant_differ(codec):
    with freeze_time(T0):
        first = codec.issue("s", {}, timedelta(days=1), kind=TokenKind.REFRESH)
        second = codec.issue("s", {}, timedelta(days=1), kind=TokenKind.REFRESH)
    assert first != second


def test_expires_at_matches_ttl(codec):
    with freeze_time(T0):
        raw = codec.issue("s", {}, timedelta(minutes=15), kind=TokenKind.ACCESS)
        assert codec.expires_at(raw) == T0 + timedelta(minutes=15)


# -------------------------------- Verify ---------------------------------- #
def test_expired_credential_raises_expired(codec):
    with freeze_time(T0) as frozen:
        raw = codec.issue("s", {}, timedelta(minutes=15), kind=TokenKind.ACCESS)
        frozen.move_to(T0 + timedelta(minutes=15))
        with pytest.raises(CredentialExpiredError) as excinfo:
            codec.verify(raw)
    assert excinfo.value.horizon == "signature"


def test_credential_valid_one_second_before_expiry(codec):
    with freeze_time(T0) as frozen:
        raw = codec.issue("s", {}, timedelta(minutes=15), kind=TokenKind.ACCESS)
        frozen.move_to(T0 + timedelta(minutes=15) - timedelta(seconds=1))
        assert codec.verify(raw)["sub"] == "s"


def test_tampered_signature_is_malformed(codec):
    raw = codec.issue("s", {}, timedelta(minutes=5), kind=TokenKind.ACCESS)
    header, payload, signature = raw.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]

    with pytest.raises(MalformedCredentialError):
        codec.verify(".".join([header, payload, flipped]))


def test_foreign_key_is_malformed(app, codec):
    now = datetime.now(UTC)
    raw = jwt.encode(
        {"sub": "s", "type": "refresh", "jti": "x", "exp": now + timedelta(minutes=5)},
        "another-secret-that-is-also-32-bytes-long",
        algorithm="HS256",
    )
    with pytest.raises(MalformedCredentialError):
        codec.verify(raw)


def test_unknown_kind_is_malformed(app, codec):
    raw = _forge(
        app,
        sub="s",
        jti="x",
        type="id",
        exp=datetime.now(UTC) + timedelta(minutes=5),
    )
    with pytest.raises(MalformedCredentialError):
        codec.verify(raw)


def test_missing_subject_is_malformed(app, codec):
    raw = _forge(app, jti="x", type="access", exp=datetime.now(UTC) + timedelta(minutes=5))
    with pytest.raises(MalformedCredentialError):
        codec.verify(raw)


@pytest.mark.parametrize("raw", ["", "not-a-jwt", "a.b.c", None])
def test_garbage_is_malformed(codec, raw):
    with pytest.raises(MalformedCredentialError):
        codec.verify(raw)


def test_all_codec_failures_mean_sign_in_again(codec):
    """Callers only need to catch one type to force re-authentication."""
    assert issubclass(MalformedCredentialError, ReauthenticationRequired)
    assert issubclass(CredentialExpiredError, ReauthenticationRequired)

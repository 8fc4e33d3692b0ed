# tests/unit/services/test_auth_service.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time
from sqlalchemy.exc import OperationalError

from tests.factories.user import UserFactory
from tests.helpers.utils import not_raises
from tokenlife.models import RoleName, User, UserStatus
from tokenlife.repositories.refresh_token import RefreshTokenRepository
from tokenlife.services._shared.errors import (
    AccountDisabledError,
    AccountLockedError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrRevokedError,
    StoreUnavailableError,
)
from tokenlife.services.auth.dto import LoginIn, LogoutIn, LogoutOut, RegisterIn
from tokenlife.services.auth.service import AuthService
from tokenlife.services.tokens.dto import TokenPair

T0 = datetime(2030, 5, 5, 10, 0, 0, tzinfo=UTC)


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service(engine) -> AuthService:
    """AuthService wired to the application's token engine."""
    return AuthService(
        rotation=engine.rotation,
        codec=engine.codec,
        revocation_cache=engine.revocation_cache,
    )


# -------------------------------- Login ----------------------------------- #
def test_login_issues_pair_and_records_last_login(service, session):
    user = UserFactory(email="a@example.com", password="s3cret!")

    with freeze_time(T0):
        pair = service.login(LoginIn(email="A@Example.com ", password="s3cret!"))
        # The credential is minted at T0; PyJWT rejects an ``iat`` in the future.
        assert service.rotation.is_valid(pair.refresh_token)

    assert isinstance(pair, TokenPair)
    session.expire_all()
    assert session.get(User, user.id).last_login_at == T0


def test_login_wrong_password(service):
    UserFactory(email="b@example.com", password="right")

    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(email="b@example.com", password="wrong"))


def test_login_unknown_email(service):
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(email="missing@example.com", password="x"))


@pytest.mark.parametrize(
    ("status", "error"),
    [(UserStatus.PENDING_APPROVAL, AccountDisabledError), (UserStatus.BANNED, AccountLockedError)],
)
def test_login_unavailable_account(service, status, error):
    UserFactory(email="c@example.com", password="pw", status=status)

    with pytest.raises(error):
        service.login(LoginIn(email="c@example.com", password="pw"))


# -------------------------------- Logout ---------------------------------- #
def test_logout_revokes_refresh_and_denies_access(service):
    UserFactory(email="d@example.com", password="pw")
    pair = service.login(LoginIn(email="d@example.com", password="pw"))

    outcome = service.logout(LogoutIn(access_token=pair.access_token, refresh_token=pair.refresh_token))

    assert outcome == LogoutOut(refresh_revoked=True, access_denied=True)
    assert service.denylist.contains(pair.access_token) is True
    assert service.rotation.is_valid(pair.refresh_token) is False


def test_logout_denies_access_only_for_its_remaining_lifetime(service):
    UserFactory(email="e@example.com", password="pw")
    with freeze_time(T0) as frozen:
        pair = service.login(LoginIn(email="e@example.com", password="pw"))
        frozen.move_to(T0 + timedelta(minutes=10))
        service.logout(LogoutIn(access_token=pair.access_token))

        frozen.move_to(T0 + timedelta(minutes=14, seconds=59))
        assert service.denylist.contains(pair.access_token) is True
        frozen.move_to(T0 + timedelta(minutes=15))
        assert service.denylist.contains(pair.access_token) is False


def test_logout_with_nothing_or_garbage_never_raises(service):
    with not_raises(Exception):
        empty = service.logout(LogoutIn())
        junk = service.logout(LogoutIn(access_token="junk", refresh_token="junk"))

    assert empty == LogoutOut(False, False)
    assert junk == LogoutOut(False, False)


def test_logout_does_not_deny_refresh_credentials(service):
    UserFactory(email="f@example.com", password="pw")
    pair = service.login(LoginIn(email="f@example.com", password="pw"))

    outcome = service.logout(LogoutIn(access_token=pair.refresh_token))

    assert outcome.access_denied is False
    assert service.denylist.count() == 0


def test_logout_swallows_denylist_outage(service, monkeypatch, caplog):
    UserFactory(email="g@example.com", password="pw")
    pair = service.login(LoginIn(email="g@example.com", password="pw"))

    def unavailable(raw, ttl):
        raise StoreUnavailableError("denylist")

    monkeypatch.setattr(service.denylist, "add", unavailable)

    outcome = service.logout(LogoutIn(access_token=pair.access_token, refresh_token=pair.refresh_token))

    assert outcome == LogoutOut(refresh_revoked=True, access_denied=False)
    assert "Denylist write failed" in caplog.text


def test_logout_swallows_database_outage(service, monkeypatch):
    UserFactory(email="h@example.com", password="pw")
    pair = service.login(LoginIn(email="h@example.com", password="pw"))

    def boom(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(RefreshTokenRepository, "find_live_by_hash", boom)

    outcome = service.logout(LogoutIn(access_token=pair.access_token, refresh_token=pair.refresh_token))

    assert outcome == LogoutOut(refresh_revoked=False, access_denied=True)


def test_logout_all_revokes_every_session(service):
    UserFactory(email="i@example.com", password="pw")
    first = service.login(LoginIn(email="i@example.com", password="pw"))
    second = service.login(LoginIn(email="i@example.com", password="pw"))
    subject_id = service.codec.verify(first.access_token)["sub"]

    revoked = service.logout_all(subject_id, access_token=second.access_token)

    assert revoked == 2
    assert service.rotation.sessions_for(subject_id) == []
    assert service.denylist.contains(second.access_token) is True


# ------------------------------- Identity --------------------------------- #
def test_whoami_reads_fresh_identity(service):
    user = UserFactory(
        email="j@example.com", password="pw", roles=[RoleName.ROLE_USER, RoleName.ROLE_ADMIN]
    )
    service.login(LoginIn(email="j@example.com", password="pw"))

    identity = service.whoami(user.id)

    assert identity.email == "j@example.com"
    assert identity.status == "ACTIVE"
    assert identity.roles == ("ROLE_ADMIN", "ROLE_USER")
    assert identity.active_sessions == 1


def test_whoami_unknown_subject(service):
    with pytest.raises(InvalidOrRevokedError):
        service.whoami("00000000-0000-0000-0000-000000000000")


# ---------------------------- Registration -------------------------------- #
def test_register_creates_pending_user_with_default_role(service, session):
    out = service.register(
        RegisterIn(email=" New@Example.com", username="newbie", password="s3cret!!")
    )

    assert out.email == "new@example.com"
    assert out.status == UserStatus.PENDING_APPROVAL.value
    session.expire_all()
    user = session.get(User, out.id)
    assert user.role_names == [RoleName.ROLE_USER.value]
    assert user.verify_password("s3cret!!")
    assert user.last_login_at is None


def test_registered_user_cannot_sign_in_until_activated(service, session):
    service.register(RegisterIn(email="wait@example.com", username="waiting", password="s3cret!!"))

    with pytest.raises(AccountDisabledError):
        service.login(LoginIn(email="wait@example.com", password="s3cret!!"))

    session.query(User).filter_by(email="wait@example.com").update(
        {"status": UserStatus.ACTIVE}
    )
    session.commit()
    pair = service.login(LoginIn(email="wait@example.com", password="s3cret!!"))
    assert service.rotation.is_valid(pair.refresh_token)


@pytest.mark.parametrize(
    "email, username",
    [("TAKEN@example.com", "someone-else"), ("other@example.com", "taken")],
)
def test_register_rejects_duplicates(service, session, email, username):
    UserFactory(email="taken@example.com", username="taken")
    session.commit()

    with pytest.raises(ConflictError):
        service.register(RegisterIn(email=email, username=username, password="s3cret!!"))

    assert session.query(User).count() == 1

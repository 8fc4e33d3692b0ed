from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from tokenlife.models import RoleName, User, UserStatus
from tokenlife.services._shared.base import BaseService, ServiceContext
from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrRevokedError,
    ReauthenticationRequired,
    ServiceError,
)
from tokenlife.services._shared.ports import RevocationCache, TokenCodec, TokenKind
from tokenlife.services.auth.dto import (
    IdentityOut,
    LoginIn,
    LogoutIn,
    LogoutOut,
    RegisteredOut,
    RegisterIn,
)
from tokenlife.services.tokens.dto import TokenPair
from tokenlife.services.tokens.rotation import RotationEngine

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Session lifecycle as seen by a client: login, logout, logout everywhere.

    Credential checks and identity reads happen here; everything about
    refresh records is delegated to :class:`RotationEngine` and early
    access-credential revocation to the :class:`RevocationCache`.
    """

    def __init__(
        self,
        *,
        rotation: RotationEngine,
        codec: TokenCodec,
        revocation_cache: RevocationCache,
        clock: Clock = system_clock,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.rotation = rotation
        self.codec = codec
        self.denylist = revocation_cache
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPair:
        """
        Verify email and password, then start a new refresh chain.

        :raises InvalidCredentialsError: Unknown email or wrong password.
        :raises AccountDisabledError: Account not active.
        :raises AccountLockedError: Account suspended or banned.
        """
        with self.store_guard(), self.ro_uow() as uow:
            user = uow.users.authenticate(dto.email, dto.password)
            if user is None:
                raise InvalidCredentialsError()
            subject_id = user.id

        pair = self.rotation.issue_initial(
            subject_id,
            device_info=dto.device_info,
            source_address=dto.source_address,
        )

        with self.store_guard(), self.rw_uow() as uow:
            user = uow.users.get(subject_id)
            if user is not None:
                user.last_login_at = self._clock()
        return pair

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> RegisteredOut:
        """
        Create an account awaiting approval.

        The new user holds ``ROLE_USER`` but cannot sign in until an operator
        activates it; no session is started here.

        :raises ConflictError: Email or username already in use.
        :raises StoreUnavailableError: Database unreachable.
        """
        with self.store_guard(), self.rw_uow() as uow:
            if uow.users.exists_by_email(dto.email):
                raise ConflictError("User", "email already in use")
            if uow.users.exists_by_username(dto.username):
                raise ConflictError("User", "username already in use")

            user = User(
                email=dto.email,
                username=dto.username.strip(),
                status=UserStatus.PENDING_APPROVAL,
            )
            user.password = dto.password
            user.roles = [uow.roles.ensure(RoleName.ROLE_USER)]
            try:
                uow.users.add(user)
            except IntegrityError as exc:
                # Lost a race with a concurrent registration.
                raise ConflictError("User", "email or username already in use") from exc

            out = RegisteredOut(
                id=user.id,
                email=user.email,
                username=user.username,
                status=user.status.value,
            )

        log.info("User registered", extra={"subject_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> LogoutOut:
        """
        Best-effort logout; never raises.

        The refresh record is revoked and the access credential denied for
        its remaining natural lifetime. Failures of either step are logged at
        WARNING and otherwise ignored.
        """
        refresh_revoked = False
        if dto.refresh_token:
            refresh_revoked = self.rotation.revoke_one(dto.refresh_token)

        access_denied = False
        if dto.access_token:
            access_denied = self._deny_access(dto.access_token)

        return LogoutOut(refresh_revoked=refresh_revoked, access_denied=access_denied)

    def _deny_access(self, raw: str) -> bool:
        try:
            if self.codec.kind_of(raw) is not TokenKind.ACCESS:
                return False
            remaining = self.codec.expires_at(raw) - self._clock()
        except ReauthenticationRequired:
            # Expired or forged: nothing worth denying.
            return False
        if remaining.total_seconds() <= 0:
            return False
        try:
            self.denylist.add(raw, remaining)
        except ServiceError:
            log.warning("Denylist write failed during logout; ignoring", exc_info=True)
            return False
        return True

    def logout_all(self, subject_id: str, access_token: str | None = None) -> int:
        """
        Revoke every refresh credential of ``subject_id``.

        The presented access credential is denied as well; other outstanding
        access credentials expire on their own within the access TTL.

        :returns: Number of refresh records revoked.
        """
        count = self.rotation.revoke_all_for_subject(subject_id)
        if access_token:
            self._deny_access(access_token)
        return count

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def whoami(self, subject_id: str) -> IdentityOut:
        """
        Fresh identity read for the authenticated subject.

        :raises InvalidOrRevokedError: The subject no longer exists.
        """
        with self.store_guard(), self.ro_uow() as uow:
            user = uow.users.get(subject_id)
            if user is None:
                raise InvalidOrRevokedError()
            active = uow.refresh_tokens.count_live_for_subject(subject_id, self._clock())
            return IdentityOut(
                id=user.id,
                email=user.email,
                username=user.username,
                status=user.status.value,
                roles=tuple(user.role_names),
                active_sessions=active,
            )

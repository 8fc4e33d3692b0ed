"""Refresh-credential state machine: issue, rotate, revoke, validate.

A chain starts at login and moves one link per rotation::

    Live ──refresh──▶ RotatedOut   (revoked, replaced_by = successor)
    Live ──revoke───▶ Revoked      (revoked, no successor)
    Live ──time─────▶ Expired      (implicit; fails validation)

Every record of a chain shares ``family_id`` and ``absolute_expires_at``;
``sliding_expires_at`` is reset only by minting a successor.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from tokenlife.models.base import new_id
from tokenlife.models.refresh_token import RefreshToken
from tokenlife.repositories.user import SubjectClaims
from tokenlife.services._shared.base import BaseService, ServiceContext
from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.errors import (
    AccountDisabledError,
    AccountLockedError,
    InvalidOrRevokedError,
    MalformedCredentialError,
    ReauthenticationRequired,
    ServiceError,
    TokenExpiredError,
)
from tokenlife.services._shared.hashing import hash_token
from tokenlife.services._shared.ports import RefreshTokenStore, TokenCodec, TokenKind
from tokenlife.services.tokens.dto import SessionView, TokenLifetimes, TokenPair

log = logging.getLogger(__name__)

DEVICE_INFO_MAX = 500
SOURCE_ADDRESS_MAX = 45


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value[:limit] or None


class RotationEngine(BaseService):
    """
    Issue and rotate refresh credentials with replay rejection.

    Parameters
    ----------
    codec: TokenCodec
        Mints and verifies signed credentials.
    lifetimes: TokenLifetimes
        Access TTL, both refresh horizons and family-revocation switch.
    clock: Clock
        Source of "now" for every timestamp written or compared.

    Notes
    -----
    ``refresh`` is a single read-write unit of work. The parent is revoked by
    a conditional update after the successor is inserted; if another request
    revoked it first, the whole unit of work is rolled back and the loser gets
    :class:`InvalidOrRevokedError`. At most one successor per record can
    ever be committed.

    Replaying a rotated-out credential revokes its chain, except within
    ``reuse_grace`` of the rotation while the successor is still live: that
    is a lost race, rejected without touching the chain.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        lifetimes: TokenLifetimes,
        clock: Clock = system_clock,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.codec = codec
        self.lifetimes = lifetimes
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_initial(
        self,
        subject_id: str,
        device_info: str | None = None,
        source_address: str | None = None,
    ) -> TokenPair:
        """
        Start a new chain for ``subject_id`` and return its first pair.

        :raises InvalidOrRevokedError: Unknown subject.
        :raises AccountDisabledError: Subject is not active.
        :raises AccountLockedError: Subject is suspended or banned.
        :raises StoreUnavailableError: Database unreachable.
        """
        with self.store_guard(), self.rw_uow() as uow:
            now = self._clock()
            claims = self._require_claims(uow.users.get_subject_claims(subject_id))
            pair, token_hash = self._mint(subject_id, claims, now, self.absolute_deadline(now))

            record_id = new_id()
            uow.refresh_tokens.insert(
                RefreshToken(
                    id=record_id,
                    subject_id=subject_id,
                    token_hash=token_hash,
                    issued_at=now,
                    sliding_expires_at=now + self.lifetimes.sliding_window,
                    absolute_expires_at=self.absolute_deadline(now),
                    revoked=False,
                    family_id=record_id,
                    device_info=_clip(device_info, DEVICE_INFO_MAX),
                    source_address=_clip(source_address, SOURCE_ADDRESS_MAX),
                    created_at=now,
                    updated_at=now,
                )
            )

        log.info(
            "Refresh chain started",
            extra={
                "subject_id": subject_id,
                "family_id": record_id,
                "source_address": _clip(source_address, SOURCE_ADDRESS_MAX),
            },
        )
        return pair

    def absolute_deadline(self, issued_at: datetime) -> datetime:
        return issued_at + self.lifetimes.absolute_lifetime

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def refresh(
        self,
        raw_refresh: str,
        device_info: str | None = None,
        source_address: str | None = None,
    ) -> TokenPair:
        """
        Exchange a live refresh credential for a new pair.

        :raises MalformedCredentialError: Bad signature or not a refresh credential.
        :raises TokenExpiredError: Past the signed, sliding or absolute horizon.
        :raises InvalidOrRevokedError: Unknown, rotated-out, revoked, subject
            gone, or another request rotated it concurrently.
        :raises AccountDisabledError: Subject no longer active.
        :raises AccountLockedError: Subject suspended or banned.
        :raises StoreUnavailableError: Database unreachable.
        """
        self._verify_refresh(raw_refresh)
        token_hash = hash_token(raw_refresh)

        pair: TokenPair | None = None
        with self.store_guard(), self.rw_uow() as uow:
            now = self._clock()
            store = uow.refresh_tokens
            record = store.find_live_by_hash(token_hash, for_update=True)
            if record is None:
                # Leave the block normally so a family revocation commits.
                self._on_unknown_or_revoked(store, token_hash, now)
            else:
                pair = self._rotate(uow, record, now, device_info, source_address)

        if pair is None:
            raise InvalidOrRevokedError()
        return pair

    def _rotate(
        self,
        uow,
        parent: RefreshToken,
        now: datetime,
        device_info: str | None,
        source_address: str | None,
    ) -> TokenPair:
        self._ensure_not_expired(parent, now)

        claims = self._require_claims(uow.users.get_subject_claims(parent.subject_id))
        pair, token_hash = self._mint(parent.subject_id, claims, now, parent.absolute_expires_at)

        child = uow.refresh_tokens.insert(
            RefreshToken(
                id=new_id(),
                subject_id=parent.subject_id,
                token_hash=token_hash,
                issued_at=now,
                sliding_expires_at=now + self.lifetimes.sliding_window,
                absolute_expires_at=parent.absolute_expires_at,
                revoked=False,
                family_id=parent.family_id,
                device_info=_clip(device_info, DEVICE_INFO_MAX) or parent.device_info,
                source_address=_clip(source_address, SOURCE_ADDRESS_MAX) or parent.source_address,
                created_at=now,
                updated_at=now,
            )
        )

        if not uow.refresh_tokens.mark_revoked(parent.id, now=now, replaced_by=child.id):
            log.warning(
                "Rotation lost to a concurrent request",
                extra={"subject_id": parent.subject_id, "record_id": parent.id},
            )
            raise InvalidOrRevokedError()

        log.info(
            "Refresh credential rotated",
            extra={
                "subject_id": parent.subject_id,
                "family_id": parent.family_id,
                "record_id": child.id,
                "source_address": child.source_address,
            },
        )
        return pair

    def _on_unknown_or_revoked(
        self, store: RefreshTokenStore, token_hash: str, now: datetime
    ) -> None:
        record = store.find_by_hash(token_hash)
        if record is None or not record.rotated_out:
            return
        extra = {"subject_id": record.subject_id, "family_id": record.family_id}
        if not self.lifetimes.reuse_revokes_family:
            log.warning("Rotated-out refresh credential replayed", extra=extra)
            return
        if self._within_reuse_grace(store, record, now):
            log.warning(
                "Rotated-out refresh credential replayed within the grace window; chain kept",
                extra=extra,
            )
            return
        revoked = store.revoke_family(record.family_id, now=now)
        log.warning(
            "Rotated-out refresh credential replayed; revoked %d live record(s) of its family",
            revoked,
            extra=extra,
        )

    def _within_reuse_grace(
        self, store: RefreshTokenStore, record: RefreshToken, now: datetime
    ) -> bool:
        """Whether ``record`` was rotated moments ago into a still-live successor.

        That is what a request which lost a rotation race looks like.
        """
        grace = self.lifetimes.reuse_grace
        if grace <= timedelta(0) or record.replaced_by is None:
            return False
        successor = store.get(record.replaced_by)
        if successor is None or successor.revoked:
            return False
        return now - successor.issued_at < grace

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke_one(self, raw_refresh: str) -> bool:
        """
        Terminally revoke one refresh credential. Idempotent, never raises.

        Works on expired credentials too: only the hash is looked at.

        :returns: ``True`` if a live record was revoked by this call.
        """
        if not raw_refresh:
            return False
        try:
            with self.store_guard(), self.rw_uow() as uow:
                now = self._clock()
                record = uow.refresh_tokens.find_live_by_hash(hash_token(raw_refresh))
                if record is None:
                    return False
                revoked = uow.refresh_tokens.mark_revoked(record.id, now=now)
                subject_id = record.subject_id
        except (ServiceError, SQLAlchemyError):
            log.warning("Refresh revocation failed; ignoring", exc_info=True)
            return False

        if revoked:
            log.info("Refresh credential revoked", extra={"subject_id": subject_id})
        return revoked

    def revoke_all_for_subject(self, subject_id: str) -> int:
        """
        Terminally revoke every live refresh credential of ``subject_id``.

        :returns: Number of records revoked.
        :raises StoreUnavailableError: Database unreachable.
        """
        with self.store_guard(), self.rw_uow() as uow:
            count = uow.refresh_tokens.revoke_all_for_subject(subject_id, now=self._clock())
        log.info(
            "Revoked %d refresh credential(s) for subject", count, extra={"subject_id": subject_id}
        )
        return count

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def is_valid(self, raw_refresh: str) -> bool:
        """
        Read-only validity check with the same rules as ``refresh``.

        :raises StoreUnavailableError: Database unreachable; only this propagates.
        """
        try:
            self._verify_refresh(raw_refresh)
        except ReauthenticationRequired:
            return False

        with self.store_guard(), self.ro_uow() as uow:
            record = uow.refresh_tokens.find_live_by_hash(hash_token(raw_refresh))
            if record is None:
                return False
            return not record.expired_horizons(self._clock())

    def sessions_for(self, subject_id: str) -> list[SessionView]:
        """Live (non-revoked, non-expired) sessions of ``subject_id``, newest first."""
        with self.store_guard(), self.ro_uow() as uow:
            records = uow.refresh_tokens.list_live_for_subject(subject_id, self._clock())
            return [
                SessionView(
                    id=r.id,
                    issued_at=r.issued_at,
                    sliding_expires_at=r.sliding_expires_at,
                    absolute_expires_at=r.absolute_expires_at,
                    device_info=r.device_info,
                    source_address=r.source_address,
                )
                for r in records
            ]

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _verify_refresh(self, raw: str) -> None:
        claims = self.codec.verify(raw)
        if claims.get("type") != TokenKind.REFRESH.value:
            raise MalformedCredentialError("Refresh credential required")

    def _ensure_not_expired(self, record: RefreshToken, now: datetime) -> None:
        horizons = record.expired_horizons(now)
        if horizons:
            horizon = "+".join(horizons)
            log.info(
                "Refresh credential expired",
                extra={"subject_id": record.subject_id, "record_id": record.id, "horizon": horizon},
            )
            raise TokenExpiredError(horizon)

    @staticmethod
    def _require_claims(claims: SubjectClaims | None) -> SubjectClaims:
        if claims is None:
            raise InvalidOrRevokedError()
        if claims.locked:
            raise AccountLockedError()
        if not claims.enabled:
            raise AccountDisabledError()
        return claims

    def _mint(
        self,
        subject_id: str,
        claims: SubjectClaims,
        now: datetime,
        absolute_expires_at: datetime,
    ) -> tuple[TokenPair, str]:
        """Mint both credentials; return the pair and the refresh hash."""
        access = self.codec.issue(
            subject_id,
            {"roles": list(claims.roles)},
            self.lifetimes.access_ttl,
            kind=TokenKind.ACCESS,
        )
        refresh_ttl = min(self.lifetimes.sliding_window, absolute_expires_at - now)
        refresh = self.codec.issue(subject_id, {}, refresh_ttl, kind=TokenKind.REFRESH)
        pair = TokenPair(
            access_token=access,
            refresh_token=refresh,
            expires_in=int(self.lifetimes.access_ttl.total_seconds()),
        )
        return pair, hash_token(refresh)

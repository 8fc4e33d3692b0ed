"""Refresh-token repository: the query contract of the rotation engine."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

from sqlalchemy import and_, delete, func, or_, select, update

from tokenlife.models.refresh_token import RefreshToken
from tokenlife.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    State transitions are expressed as conditional bulk ``UPDATE`` statements
    so that two concurrent writers can never both flip the same record.
    Transactions are owned by the calling service's Unit of Work.
    """

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "subject_id": RefreshToken.subject_id,
            "family_id": RefreshToken.family_id,
            "revoked": RefreshToken.revoked,
        }

    # ------------------------------ Writes ------------------------------

    def insert(self, record: RefreshToken) -> RefreshToken:
        """Persist a new record and flush so its id is usable immediately."""
        return self.add(record)

    def mark_revoked(
        self,
        record_id: str,
        *,
        now: datetime,
        replaced_by: str | None = None,
    ) -> bool:
        """Flip ``revoked`` on a still-live record.

        Issues ``UPDATE ... WHERE id = :id AND revoked = false``; the affected
        row count tells whether *this* call performed the transition.

        :param record_id: Record to revoke.
        :param now: Instant written to ``updated_at``.
        :param replaced_by: Successor id when revocation is caused by rotation.
        :returns: ``True`` if the record was live and is now revoked.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, replaced_by=replaced_by, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return bool(result.rowcount)

    def revoke_all_for_subject(self, subject_id: str, *, now: datetime) -> int:
        """Terminally revoke every live record of ``subject_id``.

        :returns: Number of records revoked by this call.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.subject_id == subject_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def revoke_family(self, family_id: str, *, now: datetime) -> int:
        """Terminally revoke every live record descending from one login."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.family_id == family_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_by_ids(self, ids: Sequence[str]) -> int:
        """Hard-delete the given records.

        :returns: Number of rows removed.
        """
        if not ids:
            return 0
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.id.in_(list(ids)))
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    # ------------------------------ Reads -------------------------------

    def find_live_by_hash(self, token_hash: str, *, for_update: bool = False) -> RefreshToken | None:
        """Return the non-revoked record for ``token_hash``.

        Revoked rows are never returned even though they still exist.

        :param for_update: Lock the row (``SELECT ... FOR UPDATE``) where the
            dialect supports it.
        """
        stmt = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked.is_(False),
        )
        if for_update:
            stmt = stmt.with_for_update()
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def find_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Return the record for ``token_hash`` regardless of its state.

        Used for replay detection only; never to authorize anything.
        """
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def find_expired_or_stale_revoked_ids(
        self,
        now: datetime,
        revocation_cutoff: datetime,
        limit: int,
    ) -> list[str]:
        """Return up to ``limit`` ids eligible for garbage collection.

        Eligible rows are past either expiry horizon, or revoked and last
        touched before ``revocation_cutoff``.
        """
        stmt = (
            select(RefreshToken.id)
            .where(
                or_(
                    RefreshToken.sliding_expires_at <= now,
                    RefreshToken.absolute_expires_at <= now,
                    and_(
                        RefreshToken.revoked.is_(True),
                        RefreshToken.updated_at < revocation_cutoff,
                    ),
                )
            )
            .order_by(RefreshToken.id)
            .limit(int(limit))
        )
        return list(self.session.execute(stmt).scalars().all())

    def _live_for_subject(self, subject_id: str, now: datetime):
        return and_(
            RefreshToken.subject_id == subject_id,
            RefreshToken.revoked.is_(False),
            RefreshToken.sliding_expires_at > now,
            RefreshToken.absolute_expires_at > now,
        )

    def list_live_for_subject(self, subject_id: str, now: datetime) -> list[RefreshToken]:
        """Return the subject's usable sessions, newest first."""
        stmt = (
            select(RefreshToken)
            .where(self._live_for_subject(subject_id, now))
            .order_by(RefreshToken.issued_at.desc(), RefreshToken.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def count_live_for_subject(self, subject_id: str, now: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(RefreshToken)
            .where(self._live_for_subject(subject_id, now))
        )
        return int(self.session.execute(stmt).scalar_one())

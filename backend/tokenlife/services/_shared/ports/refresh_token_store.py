from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tokenlife.models.refresh_token import RefreshToken


class RefreshTokenStore(Protocol):
    """
    Durable store of refresh-credential records, keyed by credential hash.

    :class:`~tokenlife.repositories.refresh_token.RefreshTokenRepository` is
    the production implementation. Every call runs inside the caller's unit
    of work; none of them commits.

    ``mark_revoked`` MUST be conditional on the record still being live and
    report whether it performed the transition; rotation correctness under
    concurrency depends on it.
    """

    def insert(self, record: RefreshToken) -> RefreshToken: ...

    def find_live_by_hash(
        self, token_hash: str, *, for_update: bool = False
    ) -> RefreshToken | None: ...

    def find_by_hash(self, token_hash: str) -> RefreshToken | None: ...

    def get(self, record_id: str) -> RefreshToken | None: ...
    def mark_revoked(
        self, record_id: str, *, now: datetime, replaced_by: str | None = None
    ) -> bool: ...

    def revoke_all_for_subject(self, subject_id: str, *, now: datetime) -> int: ...

    def revoke_family(self, family_id: str, *, now: datetime) -> int: ...

    def find_expired_or_stale_revoked_ids(
        self, now: datetime, revocation_cutoff: datetime, limit: int
    ) -> list[str]: ...

    def delete_by_ids(self, ids: Sequence[str]) -> int: ...

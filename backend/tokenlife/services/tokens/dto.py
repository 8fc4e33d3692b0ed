from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

# --------------------------- Configuration -------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenLifetimes:
    """
    Lifetimes governing issuance, rotation and cleanup.

    :param access_ttl: Access credential lifetime.
    :param sliding_window: Refresh validity without rotation; reset on rotation.
    :param absolute_lifetime: Ceiling for a whole rotation chain.
    :param revocation_retention: How long revoked records are kept.
    :param reuse_revokes_family: Revoke the whole chain when a rotated-out
        credential is presented again.
    :param reuse_grace: A replay within this long of the rotation, while the
        successor is still live, is rejected without revoking the chain. Two
        requests racing on the same credential must not burn the winner.
    """

    access_ttl: timedelta = timedelta(minutes=15)
    sliding_window: timedelta = timedelta(days=30)
    absolute_lifetime: timedelta = timedelta(days=90)
    revocation_retention: timedelta = timedelta(hours=12)
    reuse_revokes_family: bool = True
    reuse_grace: timedelta = timedelta(seconds=10)

    @classmethod
    def from_config(cls, config: Any) -> TokenLifetimes:
        """Build from a Flask config mapping (durations in seconds)."""
        return cls(
            access_ttl=timedelta(seconds=int(config["ACCESS_TOKEN_TTL"])),
            sliding_window=timedelta(seconds=int(config["REFRESH_SLIDING_WINDOW"])),
            absolute_lifetime=timedelta(seconds=int(config["REFRESH_ABSOLUTE_LIFETIME"])),
            revocation_retention=timedelta(seconds=int(config["REFRESH_REVOCATION_RETENTION"])),
            reuse_revokes_family=bool(config.get("REFRESH_REUSE_REVOKES_FAMILY", True)),
            reuse_grace=timedelta(seconds=int(config.get("REFRESH_REUSE_GRACE", 10))),
        )


# ------------------------------ Outputs ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Raw credentials handed to the caller. Never persisted.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param expires_in: Access credential lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class SessionView:
    """Read-model of one live refresh record (no hash, no raw value)."""

    id: str
    issued_at: datetime
    sliding_expires_at: datetime
    absolute_expires_at: datetime
    device_info: str | None
    source_address: str | None


@dataclass(frozen=True, slots=True)
class CleanupReport:
    """
    Outcome of one garbage-collection run.

    :param deleted: Rows removed.
    :param batches: Batches executed (including a final short one).
    :param exhausted: ``True`` when the run stopped at the batch bound with
        rows possibly left for the next run.
    :param failed: ``True`` when the run aborted on an error.
    """

    deleted: int
    batches: int
    exhausted: bool = False
    failed: bool = False

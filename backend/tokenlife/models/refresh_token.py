"""Persisted refresh-credential records.

Only the SHA-256 hash of a credential is stored; the raw value never reaches
the database. Records sharing a ``family_id`` form one rotation chain.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from tokenlife.core.extensions import db

from .base import ReprMixin, TimestampMixin, UTCDateTime, UUIDPKMixin


class RefreshToken(UUIDPKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    One refresh credential in a rotation chain.

    Fields
    ------
    subject_id : str
        Owning identity. Flat identifier, no ORM relationship.
    token_hash : str
        Lowercase hex SHA-256 of the raw credential. Unique.
    issued_at : datetime
        Creation instant of this particular credential.
    sliding_expires_at : datetime
        ``issued_at + sliding window``; reset only by minting a successor.
    absolute_expires_at : datetime
        Ceiling fixed at first login and copied unchanged along the chain.
    revoked : bool
        One-way flag.
    replaced_by : str | None
        Successor id; set only when revocation was caused by rotation.
    family_id : str
        Shared by every record descending from the same login.
    device_info, source_address : str | None
        Client metadata captured at issuance or last rotation.
    """

    __tablename__ = "refresh_tokens"

    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    sliding_expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    absolute_expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    replaced_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    family_id: Mapped[str] = mapped_column(String(36), nullable=False)
    device_info: Mapped[str | None] = mapped_column(String(500), nullable=True)
    source_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
        Index("ix_refresh_tokens_subject_id", "subject_id"),
        Index("ix_refresh_tokens_family_id", "family_id"),
        Index("ix_refresh_tokens_sliding_expires_at", "sliding_expires_at"),
        Index("ix_refresh_tokens_absolute_expires_at", "absolute_expires_at"),
    )

    def expired_horizons(self, now: datetime) -> tuple[str, ...]:
        """Return which expiry horizons have passed at ``now`` (empty if none).

        A credential is expired at exactly its expiry instant.
        """
        horizons: list[str] = []
        if now >= self.sliding_expires_at:
            horizons.append("sliding")
        if now >= self.absolute_expires_at:
            horizons.append("absolute")
        return tuple(horizons)

    @property
    def rotated_out(self) -> bool:
        return self.revoked and self.replaced_by is not None

"""Role model and the association table linking roles to users."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, String, Table
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from tokenlife.core.extensions import db

from .base import ReprMixin


class RoleName(str, Enum):
    """Authorization roles carried in access credentials."""

    ROLE_USER = "ROLE_USER"
    ROLE_MODERATOR = "ROLE_MODERATOR"
    ROLE_ADMIN = "ROLE_ADMIN"


user_roles = Table(
    "user_roles",
    db.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(ReprMixin, db.Model):
    """Named authorization role. Seeded once; rarely changes."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[RoleName] = mapped_column(
        SAEnum(RoleName, name="enum_role_name", native_enum=True, create_constraint=True),
        nullable=False,
        unique=True,
    )

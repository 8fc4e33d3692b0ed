"""Idempotent database seed helpers for local development environments."""

from __future__ import annotations

import logging
from typing import Any, cast

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import select
from sqlalchemy.orm import Session

from tokenlife.models.role import Role, RoleName
from tokenlife.models.user import User, UserStatus

LOGGER = logging.getLogger(__name__)

USER_FIXTURES: list[dict[str, Any]] = [
    {
        "email": "admin@example.com",
        "username": "admin",
        "password": "adminPass123!",
        "status": UserStatus.ACTIVE,
        "roles": (RoleName.ROLE_USER, RoleName.ROLE_ADMIN),
    },
    {
        "email": "moderator@example.com",
        "username": "moderator",
        "password": "modPass123!",
        "status": UserStatus.ACTIVE,
        "roles": (RoleName.ROLE_USER, RoleName.ROLE_MODERATOR),
    },
    {
        "email": "jamie.lee@example.com",
        "username": "jamielee",
        "password": "strongPass123",
        "status": UserStatus.ACTIVE,
        "roles": (RoleName.ROLE_USER,),
    },
    {
        "email": "pending@example.com",
        "username": "pending",
        "password": "pendingPass123",
        "status": UserStatus.PENDING_APPROVAL,
        "roles": (RoleName.ROLE_USER,),
    },
    {
        "email": "suspended@example.com",
        "username": "suspended",
        "password": "suspendedPass123",
        "status": UserStatus.SUSPENDED,
        "roles": (RoleName.ROLE_USER,),
    },
]


def _session(database: SQLAlchemy) -> Session:
    """Return the current SQLAlchemy session."""
    return cast(Session, database.session)


def _touch(summary: dict[str, dict[str, int]], table: str, created: bool) -> None:
    """Update summary counters for the given table."""
    entry = summary.setdefault(table, {"created": 0, "existing": 0})
    if created:
        entry["created"] += 1
    else:
        entry["existing"] += 1


def seed_roles(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Create every :class:`RoleName` row."""
    if verbose:
        LOGGER.info("Seeding roles...")
    session = _session(database)
    summary: dict[str, dict[str, int]] = {}
    for name in RoleName:
        role = session.execute(select(Role).filter_by(name=name)).scalar_one_or_none()
        created = role is None
        if created:
            session.add(Role(name=name))
        _touch(summary, "roles", created)
    session.commit()
    return summary


def seed_users(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Create demo accounts covering every status, with their roles."""
    if verbose:
        LOGGER.info("Seeding users...")
    session = _session(database)
    summary: dict[str, dict[str, int]] = {}
    roles = {role.name: role for role in session.execute(select(Role)).scalars()}

    for fixture in USER_FIXTURES:
        email = str(fixture["email"]).strip().lower()
        user = session.execute(select(User).filter_by(email=email)).scalar_one_or_none()
        created = user is None
        if user is None:
            user = User(email=email, username=str(fixture["username"]))
            user.password = str(fixture["password"])
            session.add(user)
        user.status = fixture["status"]
        missing = [name for name in fixture["roles"] if name not in roles]
        if missing:
            raise RuntimeError(f"Roles {missing} missing; run seed_roles first")
        user.roles = [roles[name] for name in fixture["roles"]]
        session.flush()
        _touch(summary, "users", created)

    session.commit()
    return summary


def run_all(database: SQLAlchemy, *, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Run all seeders in the correct foreign-key order."""
    if verbose:
        LOGGER.info("Running full seed pipeline...")
    combined: dict[str, dict[str, int]] = {}
    for func in (seed_roles, seed_users):
        result = func(database, verbose=verbose)
        for table, counters in result.items():
            entry = combined.setdefault(table, {"created": 0, "existing": 0})
            entry["created"] += counters.get("created", 0)
            entry["existing"] += counters.get("existing", 0)
    return combined


__all__ = ["USER_FIXTURES", "run_all", "seed_roles", "seed_users"]

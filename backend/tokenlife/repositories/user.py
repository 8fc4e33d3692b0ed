"""User and role repositories: the identity collaborator of the token engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from sqlalchemy import select

from tokenlife.models.role import Role, RoleName
from tokenlife.models.user import User, UserStatus
from tokenlife.repositories.base import BaseRepository


@dataclass(frozen=True, slots=True)
class SubjectClaims:
    """Current authorization facts about a subject.

    :param roles: Role names in stable (sorted) order.
    :param enabled: ``True`` when the account may hold sessions.
    :param locked: ``True`` when the account is suspended or banned.
    """

    roles: tuple[str, ...]
    enabled: bool
    locked: bool


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER mints or verifies credentials; it only answers identity questions.
    """

    model = User

    def _filterable_fields(self):
        return {
            "email": User.email,
            "username": User.username,
            "status": User.status,
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username.strip())
        return bool(self.session.execute(stmt).first())

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        :returns: Authenticated user or ``None`` when credentials fail.
        """
        user = self.get_by_email(email)
        if not user or not user.verify_password(password):
            return None
        return user

    # ---------------------------- Claims ----------------------------

    def get_subject_claims(self, subject_id: str) -> SubjectClaims | None:
        """Return fresh roles and account flags for ``subject_id``.

        Always queries the database; callers rely on this to pick up role or
        status changes at the next rotation.

        :param subject_id: Identity primary key.
        :returns: Claims, or ``None`` when the subject no longer exists.
        """
        stmt = select(User).where(User.id == subject_id).execution_options(populate_existing=True)
        user = self.session.execute(stmt).scalars().first()
        if user is None:
            return None
        return SubjectClaims(
            roles=tuple(user.role_names),
            enabled=user.status == UserStatus.ACTIVE,
            locked=user.status in (UserStatus.SUSPENDED, UserStatus.BANNED),
        )


class RoleRepository(BaseRepository[Role]):
    """Persistence-only repository for :class:`Role`."""

    model = Role

    def get_by_name(self, name: RoleName) -> Role | None:
        stmt = select(Role).where(Role.name == name)
        return cast(Role | None, self.session.execute(stmt).scalars().first())

    def ensure(self, name: RoleName) -> Role:
        """Return the role named ``name``, creating it when missing."""
        role = self.get_by_name(name)
        if role is None:
            role = self.add(Role(name=name))
        return role

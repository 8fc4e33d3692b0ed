"""Factory Boy definition for :class:`tokenlife.models.user.User`."""

from __future__ import annotations

import factory

from tests.factories import BaseFactory, SQLAlchemySession
from tokenlife.models.role import Role, RoleName
from tokenlife.models.user import User, UserStatus


def get_or_create_role(name: RoleName) -> Role:
    """Return the persisted role ``name``; roles are unique per name."""
    session = SQLAlchemySession.get()
    role = session.query(Role).filter_by(name=name).one_or_none()
    if role is None:
        role = Role(name=name)
        session.add(role)
        session.flush()
    return role


class UserFactory(BaseFactory):
    """
    Build persisted :class:`tokenlife.models.user.User` instances.

    Notes
    -----
    - ``roles`` accepts an iterable of :class:`RoleName`; defaults to
      ``ROLE_USER`` only.
    - The password defaults to ``Passw0rd!`` and is hashed by the model setter.
    """

    class Meta:
        model = User

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    username = factory.Sequence(lambda n: f"user{n}")
    status = UserStatus.ACTIVE
    password_hash = factory.LazyFunction(lambda: "")  # set via postgen

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        value = extracted or "Passw0rd!"
        obj.password = value

    @factory.post_generation
    def roles(obj, create, extracted, **kwargs):
        names = (RoleName.ROLE_USER,) if extracted is None else tuple(extracted)
        if not create:
            return
        obj.roles = [get_or_create_role(name) for name in names]
        SQLAlchemySession.get().flush()

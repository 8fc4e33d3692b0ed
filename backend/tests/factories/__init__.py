"""Factory Boy base wired to the per-test SAVEPOINT session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder for the session the ``session`` fixture installs for each test."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        """Return the session factories persist into.

        Raises
        ------
        RuntimeError
            If a factory runs outside the autouse ``_factories_session``
            fixture, e.g. at module import time.
        """
        if cls._session is None:
            raise RuntimeError("Factories session not set. Did you pass the 'session' fixture?")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Flush-only persistence; the test decides when to commit its SAVEPOINT."""

    class Meta:
        abstract = True
        # Resolved lazily so every test gets its own scoped session.
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"

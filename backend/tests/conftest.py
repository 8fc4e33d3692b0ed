"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Units of work
under test commit and roll back their own nested SAVEPOINT; the outer
transaction is discarded after every test.
"""

from __future__ import annotations

import os
from datetime import timedelta

import fakeredis
import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from tokenlife.core.config import TestingConfig
from tokenlife.core.extensions import db as _db  # Flask-SQLAlchemy instance
from tokenlife.factory import create_app  # application factory under test
from tokenlife.infra.jwt.token_codec import JWTTokenCodec
from tokenlife.services.tokens.dto import TokenLifetimes
from tokenlife.services.tokens.engine import get_token_engine
from tokenlife.services.tokens.rotation import RotationEngine


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Never talks to Redis; the denylist falls back to the in-process cache.
    - Keeps the cleanup thread stopped; tests drive it by hand.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-with-at-least-32-bytes!!"
    USE_PROXYFIX = False


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
    scoped = scoped_session(SessionFactory)

    # 3) SAVEPOINT per test
    nested = connection.begin_nested()

    # 4) Re-create SAVEPOINT when the previous nested transaction ends
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # 5) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Token engine -------------------------------------------------------------
@pytest.fixture()
def engine(app):
    """The application's token engine with an empty denylist."""
    token_engine = get_token_engine()
    token_engine.revocation_cache.clear()
    yield token_engine
    token_engine.revocation_cache.clear()


@pytest.fixture()
def rotation(engine) -> RotationEngine:
    """Rotation engine using the configured 15m / 30d / 90d lifetimes."""
    return engine.rotation


@pytest.fixture()
def make_rotation():
    """Build a rotation engine with custom lifetimes and clock."""

    def _make(**overrides) -> RotationEngine:
        clock = overrides.pop("clock", None)
        lifetimes = TokenLifetimes(**overrides)
        kwargs = {"clock": clock} if clock is not None else {}
        return RotationEngine(codec=JWTTokenCodec(), lifetimes=lifetimes, **kwargs)

    return _make


@pytest.fixture()
def redis_client():
    """In-process Redis double speaking the real protocol."""
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server)


@pytest.fixture()
def client(app, session):
    """Flask test client sharing the transactional session."""
    return app.test_client()


class FakeClock:
    """Manually advanced clock for components that accept one."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def fake_clock():
    from datetime import UTC, datetime

    return FakeClock(datetime(2030, 1, 1, tzinfo=UTC))


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield

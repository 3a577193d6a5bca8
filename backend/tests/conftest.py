"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases.

No application context stays pushed between tests: every test-client request
gets its own context (and its own ``flask.g``). Service-level tests that need
``current_app`` ask for :func:`app_ctx` explicitly.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from cloudstorage.core.config import TestingConfig
from cloudstorage.core.container import EXTENSION_KEY, build_services
from cloudstorage.core.extensions import db as _db
from cloudstorage.core.extensions import limiter
from cloudstorage.factory import create_app
from cloudstorage.services._shared.ports import InMemoryBlobStore, RecordingMailer


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig)
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
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(app, db):
    """Keep a dedicated connection open for the whole session.

    In-memory SQLite runs on a single static connection, so this is the
    same database the tables were created in.
    """
    with app.app_context():
        conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(app, db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Thread-scoped session bound to the shared connection; everything it
        commits is rolled back with the outer transaction after the test.

    Notes
    -----
    The connection sits inside a SAVEPOINT, so the session joins it in
    ``create_savepoint`` mode: each ``commit()`` only releases the session's
    own SAVEPOINT and the outer transaction keeps the data until teardown.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) SAVEPOINT the session will nest into
    connection.begin_nested()

    # 3) Scoped session bound to the connection
    SessionFactory = sessionmaker(
        bind=connection, autoflush=False, join_transaction_mode="create_savepoint"
    )
    scoped = scoped_session(SessionFactory)

    # 4) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    with app.app_context():
        original_session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture
def app_ctx(app):
    """Push an application context for tests calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def blobs():
    return InMemoryBlobStore()


@pytest.fixture
def services(app, session, mailer, blobs):
    """
    Install a fresh service graph for one test.

    Mail goes to a :class:`RecordingMailer` and blobs to a private
    in-memory store; the original graph is restored afterwards.
    """
    original = app.extensions[EXTENSION_KEY]
    graph = build_services(app, mailer=mailer, blobs=blobs)
    app.extensions[EXTENSION_KEY] = graph
    try:
        yield graph
    finally:
        app.extensions[EXTENSION_KEY] = original


@pytest.fixture
def client(app, services):
    """Test client talking to the per-test service graph."""
    limiter.reset()
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
    SQLAlchemySession.set(None)

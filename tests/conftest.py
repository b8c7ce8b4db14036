"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tasktrack.core.config import Settings
from tasktrack.db.session import init_db
from tasktrack.db.seed import seed_permissions


@pytest.fixture
def test_settings():
    """Settings for tests: console logging only, auditing on."""
    return Settings(
        file_logging=False,
        log_level="WARNING",
        audit_enabled=True,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by the app and the test session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Database session with the permission matrix seeded."""
    session = session_factory()
    seed_permissions(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, test_settings, db_session):
    """API test client bound to the test database.

    Data created through ``db_session`` must be committed before a request;
    the app's sessions share the single in-memory connection.
    """
    from tasktrack.api.main import create_app

    app = create_app(session_factory=session_factory, settings=test_settings)
    with TestClient(app) as test_client:
        yield test_client

"""Engine and session factory for TaskTrack."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tasktrack.core.config import get_settings
from tasktrack.db.base import Base


def make_engine(database_url: str):
    """Create an engine, relaxing SQLite's same-thread check for the threadpool."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, future=True)


engine = make_engine(get_settings().database_url)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(bind=None) -> None:
    """Create all tables. Used by local development and tests."""
    # Import models so they register on Base.metadata
    import tasktrack.db.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from the
`DATABASE_URL` setting (a local SQLite file by default) and provides
small helpers used by the application, the scripts and the tests.
"""

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(url, echo=False, connect_args=connect_args)
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_foreign_keys)
    return eng


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on FK enforcement so ON DELETE CASCADE works on SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = _make_engine(settings.DATABASE_URL)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and lightweight
    scripts; production deployments should rely on a proper migration
    tool (alembic) instead.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table known to the metadata. Used by the test-suite."""
    from . import models  # noqa: F401
    SQLModel.metadata.drop_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session

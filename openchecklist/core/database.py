"""Database configuration and session management.

SQLite is the default backend for local use. The engine enables WAL mode
and foreign key enforcement on every SQLite connection; other dialects
(e.g. PostgreSQL via DATABASE_URL) are used as configured.

Multi-statement writes go through ``transaction()`` so that a checklist,
its items and its features are committed together or not at all.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import event as sa_event
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlmodel import Session, SQLModel, create_engine

from openchecklist.core.config import settings
from openchecklist.core.errors import Invalid, StorageUnavailable

logger = logging.getLogger(__name__)

is_sqlite = settings.database_url.startswith("sqlite")

# FastAPI may hand a session to a different worker thread than the one
# that opened the SQLite connection.
connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    # Item and feature rows must reference an existing checklist.
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if is_sqlite:
    sa_event.listen(engine, "connect", set_sqlite_pragma)


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session


@contextmanager
def storage_guard() -> Iterator[None]:
    """Surface driver-level connection failures as StorageUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Storage unavailable: {e}")
        raise StorageUnavailable("Database is unavailable") from e


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing at all.

    Any exception rolls the session back before it propagates, so readers
    never observe a partially written aggregate.
    """
    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        logger.error(f"Transaction rolled back, storage unavailable: {e}")
        raise StorageUnavailable("Database is unavailable") from e
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Transaction rolled back, integrity error: {e.orig}")
        raise Invalid("Data violates a database constraint") from e
    except BaseException:
        session.rollback()
        raise

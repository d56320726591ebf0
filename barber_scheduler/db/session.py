import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from barber_scheduler.core.config import DEFAULT_DATABASE_URL
from barber_scheduler.core.exceptions import InternalError, SchedulingError

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

# Internal lazy globals
_engine: Optional[Engine] = None
_SessionLocal = None
_database_url: Optional[str] = None
_configured_url: Optional[str] = None


def configure(database_url: Optional[str]) -> None:
    """Pin the URL used by the lazy engine; ``None`` reverts to DATABASE_URL."""
    global _configured_url
    _configured_url = database_url


def _enable_sqlite_write_serialization(engine: Engine) -> None:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE, and pysqlite defers BEGIN until the
    first write, so two bookings could both pass the conflict scan. Taking the
    reserved lock up front serializes check-then-insert sequences.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own transaction handling so the "begin" hook owns it
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """Create an engine configured for the target backend."""
    url = make_url(database_url)

    if url.drivername.startswith("postgres"):
        return create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={
                "application_name": "barber_scheduler",
                "connect_timeout": 10,
            },
            echo=False,
        )

    if url.drivername.startswith("sqlite"):
        if url.database in (None, "", ":memory:"):
            # Single shared in-memory database so DDL persists across sessions
            engine = create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
        _enable_sqlite_write_serialization(engine)
        return engine

    return create_engine(database_url, echo=False)


def get_engine() -> Engine:
    """Return a cached engine, creating it on first call.

    The URL set by ``configure`` wins over DATABASE_URL; a changed URL
    disposes the previous engine.
    """
    global _engine, _database_url, _SessionLocal
    database_url = _configured_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if _engine is None or _database_url != database_url:
        if _engine is not None:
            _engine.dispose()
        _engine = build_engine(database_url)
        _database_url = database_url
        _SessionLocal = None
        logger.info(
            "Database engine created",
            extra={"context": {"dialect": _engine.dialect.name}},
        )
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return _SessionLocal


def SessionLocal() -> Session:
    """Calling SessionLocal() returns a new Session bound to the lazy engine."""
    return get_sessionmaker()()


def create_tables(engine: Optional[Engine] = None) -> None:
    """Create all tables on the given engine (defaults to the lazy engine)."""
    # Import models so Base.metadata is populated
    from barber_scheduler.db import base  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


@contextmanager
def transaction_scope(session: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any failure.

    Domain errors propagate unchanged; storage errors become ``InternalError``
    so callers can tell them apart from scheduling rejections.
    """
    try:
        yield session
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "Database transaction failed",
            exc_info=True,
            extra={"context": {"error_type": type(e).__name__}},
        )
        raise InternalError("Database operation failed") from e
    except Exception:
        session.rollback()
        raise

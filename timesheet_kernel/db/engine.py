"""
Module: timesheet_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and session factory,
    and the commit-or-rollback ``session_scope`` helper.
Architecture position: Kernel > DB.  Imports only db/base.py and (lazily)
    the models package to register tables.

Invariants enforced:
    - Services never commit.  Whoever opens the session decides when the
      unit of work ends; ``session_scope()`` is the standard way to do so.
    - PostgreSQL runs at READ COMMITTED on a pre-pinged QueuePool.
    - SQLite (tests, local runs) shares one connection through StaticPool,
      so an in-memory database survives across sessions.  pysqlite's own
      transaction handling is switched off so SAVEPOINTs nest correctly.

Failure modes:
    - RuntimeError from any accessor called before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from timesheet_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _postgres_engine(
    url: URL,
    echo: bool,
    pool_size: int,
    max_overflow: int,
    pool_pre_ping: bool,
    pool_timeout: int,
    pool_recycle: int,
) -> Engine:
    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def _sqlite_engine(url: URL, echo: bool) -> Engine:
    engine = create_engine(
        url,
        echo=echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Autocommit at the driver; SQLAlchemy emits BEGIN itself below
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Calling it again replaces the previous engine without disposing it;
    call reset_engine() first when that matters.

    Args:
        database_url: ``postgresql://...`` in production, ``sqlite://`` for tests.
        echo: Log every SQL statement.
        pool_size, max_overflow, pool_pre_ping, pool_timeout, pool_recycle:
            QueuePool settings; ignored for SQLite.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        engine = _sqlite_engine(url, echo)
    else:
        engine = _postgres_engine(
            url, echo, pool_size, max_overflow,
            pool_pre_ping, pool_timeout, pool_recycle,
        )

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "database": url.database,
            "pool_size": pool_size,
            "echo": echo,
        },
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    """A new Session bound to the current engine.  The caller closes it."""
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on normal exit, roll back and re-raise on error.

    Usage:
        with session_scope() as session:
            TransitionExecutor(session).apply_transition(...)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata() -> MetaData:
    from timesheet_kernel.db.base import Base

    # Importing the package registers every model on Base.metadata
    import timesheet_kernel.models  # noqa: F401

    return Base.metadata


def create_tables() -> None:
    """Create every table that does not exist yet."""
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every table.  Tests and local resets only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

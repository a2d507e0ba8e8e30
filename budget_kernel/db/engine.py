"""
Module: budget_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    startup connectivity retry, and transactional scope utilities.  Single
    point of database connection configuration for the process.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/ or domain/ (create_tables imports models).

Invariants enforced:
    - PostgreSQL is the production backend (SELECT ... FOR UPDATE and
      statement_timeout require it).  Tests bind their own SQLite engines.
    - Session isolation level is READ COMMITTED with explicit row-level
      locking (FOR UPDATE) for the payroll run.
    - Connection pooling via QueuePool with pre-ping to handle stale connections.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called before
      init_engine_from_url().
    - DatabaseConnectError if connect_with_retry() exhausts its attempts.
"""

import atexit
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from budget_kernel.exceptions import DatabaseConnectError
from budget_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_POSTGRES_DRIVER = "postgresql+psycopg2"


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 3600,
    connect_timeout: int = 5,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a PostgreSQL database URL.

    Postconditions: Module-level _engine and _SessionFactory are initialized.
        A second call overwrites the first.

    Args:
        database_url: PostgreSQL connection URL.
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection before giving up.
        pool_recycle: Seconds after which a connection is recycled.
        connect_timeout: libpq connect timeout in seconds.

    A bare ``postgresql://`` URL is pinned to the psycopg2 driver.
    """
    global _engine, _SessionFactory

    if not database_url:
        raise ValueError("DATABASE_URL is required")

    url = make_url(database_url)
    if url.drivername == "postgresql":
        url = url.set(drivername=_POSTGRES_DRIVER)

    _engine = create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
        connect_args={"connect_timeout": connect_timeout},
    )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "echo": echo,
        },
    )

    return _engine


def connect_with_retry(
    database_url: str,
    retries: int = 10,
    interval: float = 0.5,
    **engine_kwargs,
) -> Engine:
    """
    Initialize the engine and ping until the database answers.

    Retries up to ``retries`` times, sleeping ``interval`` seconds between
    attempts.  Non-positive arguments fall back to one attempt / 0.5 s.

    Raises:
        DatabaseConnectError: If every attempt fails.
    """
    if retries < 1:
        retries = 1
    if interval <= 0:
        interval = 0.5

    engine = init_engine_from_url(database_url, **engine_kwargs)

    last_error: Exception | None = None
    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("database_connected", extra={"attempt": attempt})
            return engine
        except SQLAlchemyError as exc:
            last_error = exc
            logger.warning(
                "database_connect_retry",
                extra={"attempt": attempt, "max_attempts": retries, "error": str(exc)},
            )
            if attempt < retries:
                time.sleep(interval)

    reset_engine()
    raise DatabaseConnectError(retries, str(last_error))


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory; each thread creates its own sessions from it.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed and the exception
        is re-raised.

    Usage:
        with session_scope() as session:
            store = LedgerStore(session)
            ...
    """
    factory = session_factory or get_session_factory()
    session = factory()
    logger.debug("transaction_started")
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


def create_tables(engine: Engine | None = None) -> None:
    """Create all tables defined by the kernel models (idempotent)."""
    from budget_kernel.db.base import Base
    import budget_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from budget_kernel.db.base import Base
    import budget_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test cleanup)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        try:
            _engine.dispose()
        except SQLAlchemyError:
            logger.warning("engine_dispose_failed", exc_info=True)


atexit.register(_atexit_dispose)

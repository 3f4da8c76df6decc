"""
Module: expense_kernel.db.engine
Responsibility: Build the process-wide engine and session factory, and hand
    out transactional sessions to the lifecycle service and the scripts.
Architecture position: Kernel > DB.  Imports db/base.py and, lazily, the
    model package so every table is registered before create/drop.

Invariants enforced:
    - PostgreSQL (psycopg2) runs on a pre-pinged QueuePool at READ COMMITTED;
      ``statement_timeout_ms`` caps every query a routing lookup issues.
    - SQLite is accepted for tests and demos; an in-memory URL shares one
      connection through StaticPool so every session sees the same schema.

Failure modes:
    - ValueError from init_engine_from_url() for any dialect other than
      PostgreSQL or SQLite; the existing engine is left in place.
    - RuntimeError from get_engine()/get_session() before
      init_engine_from_url().

Audit relevance:
    session_scope() commits a submission's status change and its Pending
    approval record together, or rolls both back.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from expense_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."
SUPPORTED_DIALECTS = ("postgresql", "sqlite")


def _sqlite_options(url: URL) -> dict[str, Any]:
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def _postgres_options(
    pool_size: int,
    max_overflow: int,
    pool_timeout: int,
    pool_recycle: int,
    statement_timeout_ms: int | None,
) -> dict[str, Any]:
    connect_args: dict[str, str] = {}
    if statement_timeout_ms is not None:
        connect_args["options"] = f"-c statement_timeout={int(statement_timeout_ms)}"
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_timeout": pool_timeout,
        "pool_recycle": pool_recycle,
        "isolation_level": "READ COMMITTED",
        "connect_args": connect_args,
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    statement_timeout_ms: int | None = None,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    A second call replaces the first.  Pool settings and
    ``statement_timeout_ms`` only apply to PostgreSQL.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect not in SUPPORTED_DIALECTS:
        raise ValueError(
            f"Unsupported database dialect '{dialect}'; "
            f"expected one of: {', '.join(SUPPORTED_DIALECTS)}"
        )

    if dialect == "sqlite":
        options = _sqlite_options(url)
    else:
        options = _postgres_options(
            pool_size, max_overflow, pool_timeout, pool_recycle, statement_timeout_ms,
        )

    _engine = create_engine(url, echo=echo, **options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "database": url.database,
            "pooled": dialect != "sqlite",
            "statement_timeout_ms": statement_timeout_ms,
        },
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """New session from the process-wide factory."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

    Usage:
        with session_scope() as session:
            ClaimService(session).submit_claim(claim_id, employee_id)
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


def create_tables() -> None:
    """Create every expense table on the current engine."""
    from expense_kernel.db.base import Base
    import expense_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from expense_kernel.db.base import Base
    import expense_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

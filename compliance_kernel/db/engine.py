"""
Module: compliance_kernel.db.engine
Responsibility: Process-wide engine and session factory for the compliance
    tables, plus the commit/rollback scope used by command-line tools.
Architecture position: Kernel > DB.  Services never call into this module;
    they receive a ``Session`` from whoever owns the transaction.

Backends:
    - PostgreSQL (``postgresql+psycopg://...``): QueuePool with pre-ping,
      READ COMMITTED.  Optimistic task versions make stronger isolation
      unnecessary.
    - SQLite (tests, local previews): one shared connection through
      StaticPool so an in-memory database survives across sessions.

Failure modes:
    - RuntimeError from the accessors before ``init_engine_from_url``.
"""

import atexit
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from compliance_kernel.logging_config import configure_logging, get_logger

if TYPE_CHECKING:
    from compliance_config.schema import ComplianceConfig

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _engine_kwargs(backend: str, pool_size: int, max_overflow: int) -> dict:
    if backend == "sqlite":
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the engine and session factory.  Replaces any previous engine.

    Args:
        database_url: SQLAlchemy URL.
        echo: Log every SQL statement.
        pool_size: Pooled connections (PostgreSQL only).
        max_overflow: Extra connections beyond ``pool_size`` (PostgreSQL only).
    """
    global _engine, _SessionFactory

    reset_engine()
    backend = make_url(database_url).get_backend_name()
    _engine = create_engine(
        database_url,
        echo=echo,
        **_engine_kwargs(backend, pool_size, max_overflow),
    )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"backend": backend, "echo": echo})
    return _engine


def init_engine_from_config(config: "ComplianceConfig") -> Engine:
    """Engine for a ``ComplianceConfig`` (``database_url``, ``echo_sql``)."""
    return init_engine_from_url(config.database_url, echo=config.echo_sql)


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, roll back and re-raise otherwise.

    Usage:
        with session_scope() as session:
            ActivityService(session).create_activity(...)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the activity, task and movement tables if missing."""
    from compliance_kernel.db.base import Base
    import compliance_kernel.models  # noqa: F401  registers tables

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every compliance table.  Tests and local resets only."""
    from compliance_kernel.db.base import Base
    import compliance_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)

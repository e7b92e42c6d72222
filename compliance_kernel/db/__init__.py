"""Database layer: declarative base, column types, engine and sessions."""

from compliance_kernel.db.base import Base, TrackedBase, UUIDString
from compliance_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_config,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "init_engine_from_config",
    "get_engine",
    "get_session",
    "get_session_factory",
    "is_postgres",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "UUIDString",
]

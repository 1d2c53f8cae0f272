"""Database layer - engine, base classes, and error classification."""

from ledger_kernel.db.base import Base, TimestampedBase
from ledger_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    make_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "TimestampedBase",
    "build_engine",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "make_session_factory",
    "session_scope",
]

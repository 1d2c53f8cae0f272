"""
Module: ledger_kernel.db.errors
Responsibility: Classify SQLAlchemy exceptions for the transaction layer:
    which unique constraint an IntegrityError violated, and whether a
    storage error is transient and worth retrying.
Architecture position: Kernel > DB.  May import from db/base.py only.

PostgreSQL reports the constraint name directly (psycopg2 ``diag``).  SQLite
reports only the column list ("UNIQUE constraint failed: t.a, t.b"), which
is matched against the named unique constraints in Base.metadata.
"""

from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from ledger_kernel.db.base import Base

_SQLITE_UNIQUE_PREFIX = "UNIQUE constraint failed:"


def violated_constraint(exc: IntegrityError) -> str | None:
    """Name of the unique constraint behind ``exc``, or None if unknown."""
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name

    message = str(exc.orig)
    if _SQLITE_UNIQUE_PREFIX not in message:
        return None
    columns = message.split(_SQLITE_UNIQUE_PREFIX, 1)[1].strip()

    for table in Base.metadata.tables.values():
        for constraint in table.constraints:
            if not isinstance(constraint, UniqueConstraint) or not constraint.name:
                continue
            signature = ", ".join(f"{table.name}.{col.name}" for col in constraint.columns)
            if signature == columns:
                return constraint.name
    return None


def is_transient(exc: BaseException) -> bool:
    """
    True for failures that may succeed on a fresh transaction: lost
    connections, deadlocks, lock and busy timeouts.
    """
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, OperationalError)

"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the opaque string primary key convention, the type annotation map for
    consistent column types, and the TimestampedBase mixin.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Opaque identifiers: every row has a String(36) primary key.  Services
      assign it from the injected IdGenerator; the uuid4 default is only a
      fallback for rows built outside a service.
    - Integer money: int maps to BigInteger.  Amounts are minor currency
      units and NEVER floats.
    - Timestamps: datetime maps to DateTime(timezone=True).
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_uuid_str() -> str:
    """Default primary key factory."""
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Guarantees:
        - id is an opaque string of at most 36 characters.
        - int maps to BigInteger, date to Date, datetime to a
          timezone-aware DateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        date: Date,
        int: BigInteger,
        str: String(255),
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_uuid_str,
    )


class TimestampedBase(Base):
    """
    Abstract base with creation and modification timestamps.

    Services stamp both columns from the injected clock; the server defaults
    cover rows inserted by other means.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def touch(self, now: datetime) -> None:
        """Stamp updated_at with a clock-supplied instant."""
        self.updated_at = now

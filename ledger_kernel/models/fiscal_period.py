"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal periods -- the windows journal
    entries are attributed to and eventually closed.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (company_id, display_name) unique (uq_period_company_name).
    - (company_id, starts_on, ends_on) unique (uq_period_company_range).
    - starts_on <= ends_on and target_close <= ends_on (check constraints).
    - Status moves open -> closed only; close() refuses a closed period.
"""

from datetime import date
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase


class PeriodStatus(str, Enum):
    """Lifecycle status of a period.  OPEN -> CLOSED, one way."""

    OPEN = "open"
    CLOSED = "closed"


class Period(TimestampedBase):
    """A contiguous, non-overlapping fiscal window for one company."""

    __tablename__ = "periods"

    __table_args__ = (
        UniqueConstraint("company_id", "display_name", name="uq_period_company_name"),
        UniqueConstraint("company_id", "starts_on", "ends_on", name="uq_period_company_range"),
        CheckConstraint("starts_on <= ends_on", name="ck_period_range_ordered"),
        CheckConstraint("target_close <= ends_on", name="ck_period_target_close"),
        Index("idx_period_company_starts", "company_id", "starts_on"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    # "Jan 2024" or "Q1 2024"
    display_name: Mapped[str] = mapped_column(String(20), nullable=False)

    # Inclusive bounds, date only
    starts_on: Mapped[date] = mapped_column(Date, nullable=False)

    ends_on: Mapped[date] = mapped_column(Date, nullable=False)

    target_close: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(10),
        nullable=False,
        default=PeriodStatus.OPEN,
    )

    def __repr__(self) -> str:
        return f"<Period {self.display_name}: {self.status}>"

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        return self.starts_on <= check_date <= self.ends_on

    def close(self) -> None:
        """
        Transition to CLOSED.

        Raises: ValueError if the period is already closed.
        """
        if self.is_closed:
            raise ValueError(f"Period {self.display_name} is already closed")
        self.status = PeriodStatus.CLOSED

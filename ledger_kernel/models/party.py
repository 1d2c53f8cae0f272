"""
Module: ledger_kernel.models.party
Responsibility: ORM persistence for counterparties (vendors and customers).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (company_id, display_name, active) unique per vendor and per customer.
    - Rows are derived from values of the company's "Vendor" and "Customer"
      dimensions by DimensionService.sync_counterparties; the active flag
      mirrors the source value.
"""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase


class Vendor(TimestampedBase):
    """A supplier the company buys from."""

    __tablename__ = "vendors"

    __table_args__ = (
        UniqueConstraint("company_id", "display_name", "active", name="uq_vendor_company_name"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Vendor {self.display_name}>"


class Customer(TimestampedBase):
    """A party the company sells to."""

    __tablename__ = "customers"

    __table_args__ = (
        UniqueConstraint("company_id", "display_name", "active", name="uq_customer_company_name"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Customer {self.display_name}>"

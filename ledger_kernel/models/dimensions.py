"""
Module: ledger_kernel.models.dimensions
Responsibility: ORM persistence for company-scoped categorical dimensions
    (Department, Location, Vendor, ...), their values, and the tags that
    attach one value of a dimension to a journal line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (company_id, name, active, source) unique per dimension.
    - (journal_line_id, dimension_id) unique per tag (uq_line_dimension): a
      line carries at most one value of any dimension.  DimensionService
      raises DuplicateDimensionError before the constraint is reached.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class DimensionSource(str, Enum):
    """System a dimension was defined in."""

    QBO = "QBO"
    AVISE = "Avise"
    AVISE_SYSTEM = "AviseSystem"
    CODAT_SANDBOX = "CodatSandbox"
    XERO = "Xero"
    ORACLE_NETSUITE = "OracleNetSuite"


VENDOR_DIMENSION = "Vendor"
CUSTOMER_DIMENSION = "Customer"


class Dimension(Base):
    """One named taxonomy of a company."""

    __tablename__ = "dimensions"

    __table_args__ = (
        UniqueConstraint("company_id", "name", "active", "source", name="uq_dimension_name"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(36), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    source: Mapped[DimensionSource] = mapped_column(
        String(20), nullable=False, default=DimensionSource.AVISE
    )

    def __repr__(self) -> str:
        return f"<Dimension {self.name}>"


class DimensionValue(Base):
    """A member of a dimension.  Values are soft-deactivated, never removed."""

    __tablename__ = "dimension_values"

    __table_args__ = (
        Index("idx_dimension_value_dimension", "dimension_id"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    dimension_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("dimensions.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Denormalized dimension name
    dimension_name: Mapped[str] = mapped_column(String(36), nullable=False)

    value: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<DimensionValue {self.dimension_name}={self.value}>"


class JournalLineDimension(Base):
    """Tag associating a journal line with one value of one dimension."""

    __tablename__ = "journal_line_dimensions"

    __table_args__ = (
        UniqueConstraint("journal_line_id", "dimension_id", name="uq_line_dimension"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    journal_line_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("journal_lines.id", ondelete="CASCADE"),
        nullable=False,
    )

    dimension_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("dimensions.id", ondelete="CASCADE"),
        nullable=False,
    )

    dimension_value_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("dimension_values.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Denormalized dimension name and value
    name: Mapped[str] = mapped_column(String(36), nullable=False)

    value: Mapped[str] = mapped_column(String(255), nullable=False)

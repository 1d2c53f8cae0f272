"""
Module: ledger_kernel.models.organization
Responsibility: ORM persistence for tenants: organizations, the companies they
    own, and the users who author journal entries and tasks.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ enums only.

Invariants enforced:
    - (organization_id, name) unique per company (uq_company_org_name).
    - (company_id, email) unique per user (uq_user_company_email).
    - Deleting an organization cascades to its companies, and a company to
      everything it owns.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase
from ledger_kernel.domain.calendar import BasePeriod


class Platform(str, Enum):
    """Source system a company's books come from."""

    QBO = "QBO"
    AVISE = "Avise"
    CODAT_SANDBOX = "CodatSandbox"
    XERO = "Xero"
    ORACLE_NETSUITE = "OracleNetSuite"


class UserStatus(str, Enum):
    ACCEPTED = "Accepted"
    PENDING = "Pending"
    DISABLED = "Disabled"


class Organization(TimestampedBase):
    """Top-level tenant grouping.  The id is a stable slug of the name."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Organization {self.id}>"


class Company(TimestampedBase):
    """
    An accounting entity.

    base_period drives period generation.  The fiscal-year start fields
    annotate the company only; they do not shift period boundaries.
    """

    __tablename__ = "companies"

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_company_org_name"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    platform: Mapped[Platform] = mapped_column(String(20), nullable=False)

    base_period: Mapped[BasePeriod] = mapped_column(String(10), nullable=False)

    fiscal_year_start_month: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    fiscal_year_start_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    multi_currency_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    home_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    def __repr__(self) -> str:
        return f"<Company {self.id}: {self.name}>"


class User(TimestampedBase):
    """A person acting on a company's books."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_user_company_email"),
        Index("idx_user_company", "company_id"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[UserStatus] = mapped_column(
        String(10), nullable=False, default=UserStatus.PENDING
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"

"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the per-company chart of accounts -- the
    target of every journal line.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ enums only.

Invariants enforced:
    - (company_id, fully_qualified_name, active) unique
      (uq_account_company_fqn_active): a name is unique among active
      accounts and, separately, among inactive ones.
    - Hierarchy rules (child matches parent classification/type/subtype, no
      active child of an inactive parent, no cycles) are enforced by
      AccountService at write time, not by this model.

Failure modes:
    - IntegrityError on a duplicate (company, fqn, active) triple; the
      service layer translates it to ConflictError.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase
from ledger_kernel.domain.chart import (
    AccountClassification,
    AccountSubType,
    AccountType,
    SpecialUseType,
)
from ledger_kernel.models.organization import Platform

FQN_SEPARATOR = ":"


class Account(TimestampedBase):
    """
    Chart of accounts node.

    The tree is an arena: parent_account_id is a nullable self reference and
    traversal is done by repeated lookup, never through embedded objects.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "fully_qualified_name",
            "active",
            name="uq_account_company_fqn_active",
        ),
        Index("idx_account_company", "company_id"),
        Index("idx_account_parent", "parent_account_id"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    parent_account_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=True,
    )

    # Source system and its identifier for this account, if imported
    platform: Mapped[Platform] = mapped_column(String(20), nullable=False)

    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    fully_qualified_name: Mapped[str] = mapped_column(String(1024), nullable=False)

    # Display name
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    classification: Mapped[AccountClassification] = mapped_column(String(20), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(40), nullable=False)

    account_sub_type: Mapped[AccountSubType] = mapped_column(String(40), nullable=False)

    special_use_type: Mapped[SpecialUseType | None] = mapped_column(String(40), nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Account {self.fully_qualified_name} ({'active' if self.active else 'inactive'})>"

    def qualified_child_name(self, child_name: str) -> str:
        return f"{self.fully_qualified_name}{FQN_SEPARATOR}{child_name}"

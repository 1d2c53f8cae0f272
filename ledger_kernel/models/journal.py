"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - (company_id, display_id) unique (uq_journal_entry_display_id).  The
      value itself comes from SequenceService's locked per-company counter.
    - Balance law (sum of line amounts == 0 for Scheduled/Posted entries with
      lines) is enforced by JournalService before flush.
    - Amounts are signed integers in minor currency units.

Failure modes:
    - IntegrityError on a duplicate display id (translated to ConflictError
      and retried by the orchestrator).
"""

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TimestampedBase

if TYPE_CHECKING:
    from ledger_kernel.models.dimensions import JournalLineDimension


class JournalEntryStatus(str, Enum):
    """
    Status of a journal entry.

    Draft -> Scheduled -> Posted is the expected path, but any
    caller-directed transition is accepted.  The balance law applies
    whenever the status is Scheduled or Posted.
    """

    DRAFT = "Draft"
    SCHEDULED = "Scheduled"
    POSTED = "Posted"

    @property
    def requires_balance(self) -> bool:
        return self in (JournalEntryStatus.SCHEDULED, JournalEntryStatus.POSTED)


class EntryType(str, Enum):
    """Transaction kinds of the source accounting systems."""

    JOURNAL_ENTRY = "JournalEntry"
    INVOICE = "Invoice"
    BILL = "Bill"
    PAYMENT = "Payment"
    BILL_PAYMENT = "BillPayment"
    DEPOSIT = "Deposit"
    TRANSFER = "Transfer"
    EXPENSE = "Expense"
    SALES_RECEIPT = "SalesReceipt"
    CREDIT_MEMO = "CreditMemo"
    VENDOR_CREDIT = "VendorCredit"
    REFUND_RECEIPT = "RefundReceipt"
    CHECK = "Check"
    CREDIT_CARD_PAYMENT = "CreditCardPayment"
    ADJUSTMENT = "Adjustment"


class JournalEntry(TimestampedBase):
    """
    Journal entry header -- one accounting transaction.

    ``deleted`` is a soft-delete flag orthogonal to status.  Deleted entries
    are excluded from every aggregation and exempt from the balance law.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("company_id", "display_id", name="uq_journal_entry_display_id"),
        Index("idx_journal_entry_company_date", "company_id", "transaction_date"),
        Index("idx_journal_entry_period", "period_id"),
    )

    # Human-facing transaction number, strictly increasing per company
    display_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    entry_type: Mapped[EntryType] = mapped_column(String(40), nullable=False)

    transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    period_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("periods.id", ondelete="CASCADE"),
        nullable=True,
    )

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10),
        nullable=False,
        default=JournalEntryStatus.POSTED,
    )

    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    description: Mapped[str] = mapped_column(String(4000), nullable=False, default="")

    created_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    updated_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_no",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry #{self.display_id} {self.status}>"


class JournalLine(Base):
    """One signed debit/credit component of an entry."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_journal_line_entry", "journal_entry_id"),
        Index("idx_journal_line_account", "account_id"),
    )

    # Denormalized from the entry for query locality
    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    journal_entry_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Position within the entry
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=True,
    )

    description: Mapped[str] = mapped_column(String(4000), nullable=False, default="")

    # Minor currency units; positive and negative cancel within an entry
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    dimension_tags: Mapped[list["JournalLineDimension"]] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<JournalLine {self.line_no}: {self.amount}>"

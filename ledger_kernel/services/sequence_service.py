"""
SequenceService -- per-company display-id allocation via locked counter rows.

Responsibility:
    Provides the strictly increasing, human-facing transaction numbers
    (display ids) of each company's journal entries.  Uses a dedicated
    counter row per company with row-level locking
    (``SELECT ... FOR UPDATE``) so concurrent entry creation for one company
    serializes on that row.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalService.create_entry; counter rows are created by
    CompanyService.create_company.

Invariants enforced:
    - Display-id monotonicity: the locked counter row is the sole source of
      the next value.  The aggregate-max-plus-one pattern is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.
    - Backstop: uq_journal_entry_display_id rejects any duplicate that
      slips past the lock (e.g. a backend that ignores FOR UPDATE).  The
      orchestrator retries the whole operation on that violation.

Failure modes:
    - IntegrityError: concurrent creation of a missing counter row
      (handled via savepoint rollback and re-read).
"""

from sqlalchemy import BigInteger, ForeignKey, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class CompanySequence(Base):
    """
    Display-id counter table.

    One row per company holding the last display id handed out.
    """

    __tablename__ = "company_sequences"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for allocating display ids.

    Guarantees:
        - Strictly increasing per company via locked counter row.
        - Gap-free under normal operation; a rolled back transaction
          returns its value.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def initialize_company(self, company_id: str) -> None:
        """Create the counter row for a new company (idempotent)."""
        existing = self._session.execute(
            select(CompanySequence).where(CompanySequence.company_id == company_id)
        ).scalar_one_or_none()
        if existing is None:
            self._session.add(CompanySequence(company_id=company_id, current_value=0))
            self._session.flush()

    def _locked_counter(self, company_id: str) -> CompanySequence | None:
        return self._session.execute(
            select(CompanySequence)
            .where(CompanySequence.company_id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_display_id(self, company_id: str) -> int:
        """
        Allocate the next display id for ``company_id``.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously committed for this company.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(company_id)

        if counter is None:
            # Companies created outside CompanyService have no counter yet
            savepoint = self._session.begin_nested()
            try:
                counter = CompanySequence(company_id=company_id, current_value=0)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"company_id": company_id},
                )
                savepoint.rollback()
                counter = self._locked_counter(company_id)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "display_id_allocated",
            extra={"company_id": company_id, "display_id": counter.current_value},
        )
        return counter.current_value

    def current_value(self, company_id: str) -> int | None:
        """Last allocated display id, or None if the company has no counter."""
        counter = self._session.execute(
            select(CompanySequence).where(CompanySequence.company_id == company_id)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

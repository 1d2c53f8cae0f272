"""
PeriodService -- fiscal period generation and close.

Responsibility:
    Persists the period windows derived by domain.calendar for a company's
    cadence, closes periods, and answers period lookups.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the orchestrator for period generation and close, and by
    JournalService to resolve an entry's period.

Invariants enforced:
    - Period tiling: generated periods are contiguous calendar months or
      quarters with no overlap.
    - Idempotent generation: windows colliding with an existing
      (company, display_name) or (company, starts_on, ends_on) row are
      skipped, so re-running a range adds nothing.
    - Status at generation is closed for windows that ended before today
      (injected clock), open otherwise.
    - open -> closed only, serialized with ``SELECT ... FOR UPDATE``.
    - Returns frozen ``PeriodInfo`` DTOs, never ORM entities.

Failure modes:
    - ValidationError: start_year after end_year.
    - NotFoundError: unknown company or period.
    - InvalidTransitionError: closing a closed period.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.calendar import (
    DEFAULT_TARGET_CLOSE_OFFSET_DAYS,
    BasePeriod,
    build_windows,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import PeriodInfo
from ledger_kernel.domain.ids import IdGenerator
from ledger_kernel.exceptions import InvalidTransitionError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import Period, PeriodStatus
from ledger_kernel.models.organization import Company
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService):
    """
    Service for managing fiscal periods.

    Contract:
        Lifecycle methods (generate, close) flush within the caller's
        transaction and return ``PeriodInfo`` DTOs.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT check entry statuses when closing, and does not block
          postings into closed periods.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        target_close_offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS,
    ):
        super().__init__(session, clock, id_generator)
        self._offset_days = target_close_offset_days

    def generate_periods(self, company_id: str, start_year: int, end_year: int) -> list[PeriodInfo]:
        """
        Create the company's periods for ``start_year..end_year`` inclusive.

        Returns:
            Every period of the company within those years, ordered by
            starts_on, including rows that already existed.

        Raises:
            ValidationError: start_year > end_year.
            NotFoundError: Unknown company.
        """
        if start_year > end_year:
            raise ValidationError(
                f"start_year ({start_year}) is after end_year ({end_year})",
                field="start_year",
            )
        company = self._require(Company, company_id)
        cadence = BasePeriod(company.base_period)

        windows = build_windows(cadence, start_year, end_year, self._offset_days)

        existing = self.session.execute(
            select(Period.display_name, Period.starts_on, Period.ends_on).where(
                Period.company_id == company_id
            )
        ).all()
        taken_names = {row.display_name for row in existing}
        taken_ranges = {(row.starts_on, row.ends_on) for row in existing}

        today = self._clock.today()
        now = self._clock.now_utc()
        created = []
        for window in windows:
            if window.display_name in taken_names:
                continue
            if (window.starts_on, window.ends_on) in taken_ranges:
                continue
            created.append(
                Period(
                    id=self._ids.new_id(),
                    company_id=company_id,
                    display_name=window.display_name,
                    starts_on=window.starts_on,
                    ends_on=window.ends_on,
                    target_close=window.target_close,
                    status=PeriodStatus.CLOSED if window.ends_on < today else PeriodStatus.OPEN,
                    created_at=now,
                    updated_at=now,
                )
            )

        self.session.add_all(created)
        self._flush(f"periods {start_year}-{end_year} for company {company_id}")

        logger.info(
            "periods_generated",
            extra={
                "company_id": company_id,
                "base_period": cadence.value,
                "start_year": start_year,
                "end_year": end_year,
                "created_count": len(created),
                "skipped_count": len(windows) - len(created),
            },
        )
        return self.list_periods(
            company_id, starts_on=date(start_year, 1, 1), ends_on=date(end_year, 12, 31)
        )

    def close_period(self, period_id: str) -> PeriodInfo:
        """
        Close an open period.

        Uses SELECT FOR UPDATE so concurrent closes serialize; the loser
        sees the committed status and gets InvalidTransitionError.

        Raises:
            NotFoundError: Unknown period.
            InvalidTransitionError: Period already closed.
        """
        period = self._require(Period, period_id, for_update=True)

        if period.is_closed:
            logger.warning("period_already_closed", extra={"period_id": period_id})
            raise InvalidTransitionError(
                "Period", period_id, PeriodStatus.CLOSED.value, PeriodStatus.CLOSED.value
            )

        period.close()
        period.touch(self._clock.now_utc())
        self._flush(f"close of period {period.display_name}")

        logger.info(
            "period_closed",
            extra={
                "company_id": period.company_id,
                "period_id": period_id,
                "display_name": period.display_name,
            },
        )
        return PeriodInfo.from_model(period)

    def get_period(self, period_id: str) -> PeriodInfo:
        return PeriodInfo.from_model(self._require(Period, period_id))

    def list_periods(
        self,
        company_id: str,
        starts_on: date | None = None,
        ends_on: date | None = None,
    ) -> list[PeriodInfo]:
        """Periods of a company lying within the optional bounds, by starts_on."""
        stmt = select(Period).where(Period.company_id == company_id)
        if starts_on is not None:
            stmt = stmt.where(Period.starts_on >= starts_on)
        if ends_on is not None:
            stmt = stmt.where(Period.ends_on <= ends_on)
        rows = self.session.execute(stmt.order_by(Period.starts_on)).scalars()
        return [PeriodInfo.from_model(row) for row in rows]

    def period_for_date(self, company_id: str, day: date) -> PeriodInfo | None:
        """The company period containing ``day``, if one exists."""
        period = self.session.execute(
            select(Period).where(
                Period.company_id == company_id,
                Period.starts_on <= day,
                Period.ends_on >= day,
            )
        ).scalars().first()
        return PeriodInfo.from_model(period) if period is not None else None

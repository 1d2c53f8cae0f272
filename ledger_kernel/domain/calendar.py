"""
Calendar -- fiscal period window derivation.

Responsibility:
    Pure computation of the period windows a company's cadence produces for
    a span of years: boundaries, display names and business-day adjusted
    target-close dates.  Persistence and status assignment happen in
    PeriodService; nothing here touches the database or a clock.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Rules:
    - Month cadence yields 12 windows per year, Quarter cadence 4
      (months 1-3, 4-6, 7-9, 10-12).
    - Windows are calendar months/quarters.  The company's fiscal-year
      start does not shift them.
    - target_close is the nearest weekday on or before
      ``ends_on - offset_days``.  Weekends are the only non-business days.
"""

import calendar as _stdlib_calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

DEFAULT_TARGET_CLOSE_OFFSET_DAYS = 7

# Fixed English abbreviations; strftime("%b") would follow the process locale.
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_SATURDAY = 5


class BasePeriod(str, Enum):
    """Reporting cadence of a company."""

    MONTH = "Month"
    QUARTER = "Quarter"

    @property
    def periods_per_year(self) -> int:
        return 12 if self is BasePeriod.MONTH else 4


@dataclass(frozen=True)
class PeriodWindow:
    """One derived period, before persistence."""

    display_name: str
    starts_on: date
    ends_on: date
    target_close: date

    def contains(self, day: date) -> bool:
        return self.starts_on <= day <= self.ends_on


def is_business_day(day: date) -> bool:
    return day.weekday() < _SATURDAY


def nearest_previous_business_day(day: date) -> date:
    """Return ``day`` if it is a weekday, otherwise the closest weekday before it."""
    while not is_business_day(day):
        day -= timedelta(days=1)
    return day


def target_close_for(ends_on: date, offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS) -> date:
    return nearest_previous_business_day(ends_on - timedelta(days=offset_days))


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, _stdlib_calendar.monthrange(year, month)[1])


def month_window(year: int, month: int, offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS) -> PeriodWindow:
    ends_on = last_day_of_month(year, month)
    return PeriodWindow(
        display_name=f"{MONTH_ABBREVIATIONS[month - 1]} {year}",
        starts_on=date(year, month, 1),
        ends_on=ends_on,
        target_close=target_close_for(ends_on, offset_days),
    )


def quarter_window(year: int, quarter: int, offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS) -> PeriodWindow:
    if not 1 <= quarter <= 4:
        raise ValueError(f"quarter must be 1-4, got {quarter}")
    start_month = (quarter - 1) * 3 + 1
    ends_on = last_day_of_month(year, start_month + 2)
    return PeriodWindow(
        display_name=f"Q{quarter} {year}",
        starts_on=date(year, start_month, 1),
        ends_on=ends_on,
        target_close=target_close_for(ends_on, offset_days),
    )


def build_windows(
    base_period: BasePeriod | str,
    start_year: int,
    end_year: int,
    offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS,
) -> list[PeriodWindow]:
    """
    Derive every window for ``start_year..end_year`` inclusive, ordered by
    starts_on.

    Raises:
        ValueError: if start_year > end_year.
    """
    if start_year > end_year:
        raise ValueError(f"start_year ({start_year}) is after end_year ({end_year})")

    cadence = BasePeriod(base_period)
    windows: list[PeriodWindow] = []
    for year in range(start_year, end_year + 1):
        if cadence is BasePeriod.MONTH:
            windows.extend(month_window(year, m, offset_days) for m in range(1, 13))
        else:
            windows.extend(quarter_window(year, q, offset_days) for q in range(1, 5))
    return windows


def validate_fiscal_year_start(month: int, day: int) -> None:
    """
    Check a fiscal-year start month/day pair.

    February 29 is rejected because it does not exist every year.

    Raises:
        ValueError: if the pair does not name a day every year has.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"fiscal_year_start_month must be 1-12, got {month}")
    # A non-leap reference year
    max_day = _stdlib_calendar.monthrange(2023, month)[1]
    if not 1 <= day <= max_day:
        raise ValueError(
            f"fiscal_year_start_day must be 1-{max_day} for month {month}, got {day}"
        )

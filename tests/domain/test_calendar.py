"""
Period window derivation (ledger_kernel/domain/calendar.py).

Verifies:
- Month and quarter cadences tile each year with no gaps or overlaps
- Display names are fixed English abbreviations
- target_close is the nearest weekday on or before ends_on - offset
"""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.calendar import (
    BasePeriod,
    build_windows,
    is_business_day,
    month_window,
    nearest_previous_business_day,
    quarter_window,
    target_close_for,
    validate_fiscal_year_start,
)


class TestMonthWindows:

    def test_twelve_windows_per_year(self):
        windows = build_windows(BasePeriod.MONTH, 2024, 2024)
        assert len(windows) == 12
        assert [w.display_name for w in windows[:3]] == ["Jan 2024", "Feb 2024", "Mar 2024"]

    def test_march_2024_target_close_rolls_back_from_sunday(self):
        """2024-03-24 is a Sunday, so the target close is Friday 2024-03-22."""
        march = build_windows("Month", 2024, 2024)[2]

        assert march.display_name == "Mar 2024"
        assert march.starts_on == date(2024, 3, 1)
        assert march.ends_on == date(2024, 3, 31)
        assert march.target_close == date(2024, 3, 22)

    def test_leap_february(self):
        window = month_window(2024, 2)
        assert window.ends_on == date(2024, 2, 29)
        assert month_window(2023, 2).ends_on == date(2023, 2, 28)

    def test_custom_offset(self):
        window = month_window(2024, 1, offset_days=0)
        # 2024-01-31 is a Wednesday
        assert window.target_close == date(2024, 1, 31)


class TestQuarterWindows:

    def test_four_windows_per_year(self):
        windows = build_windows(BasePeriod.QUARTER, 2025, 2025)
        assert [w.display_name for w in windows] == ["Q1 2025", "Q2 2025", "Q3 2025", "Q4 2025"]
        assert windows[0].starts_on == date(2025, 1, 1)
        assert windows[0].ends_on == date(2025, 3, 31)
        assert windows[3].ends_on == date(2025, 12, 31)

    def test_quarter_out_of_range(self):
        with pytest.raises(ValueError):
            quarter_window(2025, 5)


class TestBuildWindows:

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError, match="after end_year"):
            build_windows(BasePeriod.MONTH, 2025, 2024)

    def test_multi_year_span_ordered(self):
        windows = build_windows(BasePeriod.QUARTER, 2023, 2025)
        assert len(windows) == 12
        assert windows == sorted(windows, key=lambda w: w.starts_on)

    @given(
        cadence=st.sampled_from(list(BasePeriod)),
        start_year=st.integers(min_value=1990, max_value=2090),
        span=st.integers(min_value=0, max_value=3),
        offset=st.integers(min_value=0, max_value=20),
    )
    @settings(max_examples=100)
    def test_windows_tile_the_years(self, cadence, start_year, span, offset):
        end_year = start_year + span
        windows = build_windows(cadence, start_year, end_year, offset)

        assert len(windows) == cadence.periods_per_year * (span + 1)
        assert windows[0].starts_on == date(start_year, 1, 1)
        assert windows[-1].ends_on == date(end_year, 12, 31)
        for previous, current in zip(windows, windows[1:]):
            assert current.starts_on == previous.ends_on + timedelta(days=1)

        for window in windows:
            assert window.starts_on <= window.ends_on
            assert window.target_close <= window.ends_on - timedelta(days=offset)
            assert is_business_day(window.target_close)
            # Nearest: never more than two days of weekend skipped
            assert (window.ends_on - timedelta(days=offset)) - window.target_close <= timedelta(days=2)


class TestBusinessDays:

    def test_weekday_is_kept(self):
        assert nearest_previous_business_day(date(2024, 3, 20)) == date(2024, 3, 20)

    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2024, 3, 23), date(2024, 3, 22)),  # Saturday
            (date(2024, 3, 24), date(2024, 3, 22)),  # Sunday
        ],
    )
    def test_weekend_rolls_back_to_friday(self, day, expected):
        assert nearest_previous_business_day(day) == expected

    def test_target_close_default_offset_is_seven_days(self):
        assert target_close_for(date(2024, 3, 31)) == date(2024, 3, 22)


class TestFiscalYearStart:

    @pytest.mark.parametrize("month, day", [(1, 1), (4, 30), (12, 31), (2, 28)])
    def test_valid(self, month, day):
        validate_fiscal_year_start(month, day)

    @pytest.mark.parametrize("month, day", [(0, 1), (13, 1), (2, 29), (4, 31), (6, 0)])
    def test_invalid(self, month, day):
        with pytest.raises(ValueError):
            validate_fiscal_year_start(month, day)

"""
Balances and trial balances (ledger_kernel/selectors/ledger_selector.py).

Only Posted, non-deleted entries that belong to a period count.
"""

import pytest
from sqlalchemy import update

from ledger_kernel.exceptions import NotFoundError, TrialBalanceMismatchError, ValidationError
from ledger_kernel.models.journal import JournalEntryStatus, JournalLine
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from tests.conftest import CASH


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


class TestAccountBalance:

    def test_cumulative_through_period(self, selector, post_entry, chart, periods):
        post_entry([(chart.cash.id, 100), (chart.sales.id, -100)], period_id=periods["Jan 2024"].id)
        post_entry([(chart.cash.id, 50), (chart.sales.id, -50)], period_id=periods["Mar 2024"].id)

        assert selector.account_balance(chart.cash.id, periods["Jan 2024"].id) == 100
        assert selector.account_balance(chart.cash.id, periods["Feb 2024"].id) == 100
        assert selector.account_balance(chart.cash.id, periods["Mar 2024"].id) == 150
        assert selector.account_balance(chart.sales.id, periods["Mar 2024"].id) == -150

    def test_account_without_lines(self, selector, chart, periods):
        assert selector.account_balance(chart.rent.id, periods["Dec 2024"].id) == 0

    def test_draft_excluded(self, selector, post_entry, chart, periods):
        post_entry(
            [(chart.cash.id, 70)],
            period_id=periods["Mar 2024"].id,
            status=JournalEntryStatus.DRAFT,
        )
        assert selector.account_balance(chart.cash.id, periods["Mar 2024"].id) == 0

    def test_scheduled_excluded(self, selector, post_entry, chart, periods):
        scheduled = post_entry(
            [(chart.cash.id, 70), (chart.sales.id, -70)], period_id=periods["Aug 2024"].id
        )
        assert scheduled.status is JournalEntryStatus.SCHEDULED
        assert selector.account_balance(chart.cash.id, periods["Dec 2024"].id) == 0

    def test_deleted_excluded(self, selector, journal_service, post_entry, chart, periods, user):
        entry = post_entry(
            [(chart.cash.id, 40), (chart.sales.id, -40)], period_id=periods["Apr 2024"].id
        )
        journal_service.soft_delete_entry(entry.id, user.id)
        assert selector.account_balance(chart.cash.id, periods["Apr 2024"].id) == 0

    def test_entry_without_period_excluded(self, selector, post_entry, chart, periods):
        post_entry([(chart.cash.id, 40), (chart.sales.id, -40)])
        assert selector.account_balance(chart.cash.id, periods["Dec 2024"].id) == 0

    def test_include_descendants(self, selector, make_account, post_entry, chart, periods):
        petty = make_account(CASH, "Petty Cash", parent_id=chart.cash.id)
        drawer = make_account(CASH, "Drawer", parent_id=petty.id)
        march = periods["Mar 2024"].id
        post_entry([(chart.cash.id, 100), (petty.id, 20), (drawer.id, 5), (chart.sales.id, -125)], period_id=march)

        assert selector.account_balance(chart.cash.id, march) == 100
        assert selector.account_balance(chart.cash.id, march, include_descendants=True) == 125
        assert selector.account_balance(petty.id, march, include_descendants=True) == 25

    def test_period_of_other_company(self, selector, period_service, quarterly_company, chart):
        foreign = period_service.generate_periods(quarterly_company.id, 2024, 2024)[0]
        with pytest.raises(ValidationError) as exc_info:
            selector.account_balance(chart.cash.id, foreign.id)
        assert exc_info.value.field == "as_of_period_id"

    def test_unknown_account(self, selector, periods):
        with pytest.raises(NotFoundError):
            selector.account_balance("missing", periods["Jan 2024"].id)


class TestTrialBalance:

    def test_period_balances_net_to_zero(self, selector, company, post_entry, chart, periods):
        march = periods["Mar 2024"].id
        post_entry([(chart.cash.id, 100), (chart.sales.id, -100)], period_id=march)
        post_entry([(chart.rent.id, 30), (chart.cash.id, -30)], period_id=march)
        post_entry([(chart.cash.id, 999), (chart.sales.id, -999)], period_id=periods["Feb 2024"].id)

        balances = selector.trial_balance(company.id, march)

        assert balances == {chart.cash.id: 70, chart.sales.id: -100, chart.rent.id: 30}
        assert sum(balances.values()) == 0

    def test_zero_net_account_still_listed(self, selector, company, post_entry, chart, periods):
        march = periods["Mar 2024"].id
        post_entry([(chart.cash.id, 10), (chart.receivables.id, -10)], period_id=march)
        post_entry([(chart.receivables.id, 10), (chart.cash.id, -10)], period_id=march)

        assert selector.trial_balance(company.id, march) == {
            chart.cash.id: 0,
            chart.receivables.id: 0,
        }

    def test_unassigned_lines_grouped_under_none(self, selector, company, post_entry, chart, periods):
        march = periods["Mar 2024"].id
        post_entry([(chart.cash.id, 100), (None, -100)], period_id=march)

        assert selector.trial_balance(company.id, march) == {chart.cash.id: 100, None: -100}

    def test_empty_period(self, selector, company, periods):
        assert selector.trial_balance(company.id, periods["Jan 2024"].id) == {}

    def test_mismatch_raises(self, selector, session, company, post_entry, chart, periods):
        march = periods["Mar 2024"].id
        entry = post_entry([(chart.cash.id, 100), (chart.sales.id, -100)], period_id=march)
        session.execute(
            update(JournalLine).where(JournalLine.id == entry.lines[0].id).values(amount=150)
        )

        with pytest.raises(TrialBalanceMismatchError) as exc_info:
            selector.trial_balance(company.id, march)
        assert exc_info.value.total == 50
        assert exc_info.value.code == "TRIAL_BALANCE_MISMATCH"

    def test_period_of_other_company(self, selector, quarterly_company, periods):
        with pytest.raises(ValidationError):
            selector.trial_balance(quarterly_company.id, periods["Jan 2024"].id)

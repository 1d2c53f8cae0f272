"""
Journal entry write path (ledger_kernel/services/journal_service.py).

Verifies:
- Balance law for Scheduled/Posted entries; Draft exempt
- Future-period entries forced to Scheduled
- Active-account rule for present and future dated lines only
- Display ids strictly increasing per company
- Update re-validation and soft delete
"""

from datetime import date, datetime, timezone

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.dtos import EntryPatch, JournalLineInput
from ledger_kernel.exceptions import (
    InactiveAccountError,
    InvalidTransitionError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger_kernel.models.journal import EntryType, JournalEntryStatus
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from tests.conftest import CASH, SALES


def _lines(*legs):
    return [JournalLineInput(amount=amount, account_id=account_id) for account_id, amount in legs]


class TestCreateEntry:

    def test_balanced_posted_entry(self, journal_service, company, user, chart, periods):
        entry = journal_service.create_entry(
            company.id,
            EntryType.JOURNAL_ENTRY,
            _lines((chart.cash.id, 1000), (chart.sales.id, -1000)),
            user.id,
            transaction_date=date(2024, 6, 10),
            period_id=periods["Jun 2024"].id,
            status=JournalEntryStatus.POSTED,
            description="June sale",
        )

        assert entry.status is JournalEntryStatus.POSTED
        assert entry.display_id == 1
        assert entry.is_balanced
        assert [line.line_no for line in entry.lines] == [1, 2]
        assert [line.amount for line in entry.lines] == [1000, -1000]
        assert entry.created_by_id == user.id
        assert not entry.deleted

    def test_unbalanced_posted_entry_rejected(self, journal_service, company, user, chart, periods):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            journal_service.create_entry(
                company.id,
                EntryType.JOURNAL_ENTRY,
                _lines((chart.cash.id, 1000), (chart.sales.id, -900)),
                user.id,
                period_id=periods["Jun 2024"].id,
                status="Posted",
            )
        assert exc_info.value.discrepancy == 100
        assert exc_info.value.code == "UNBALANCED_ENTRY"

    def test_status_defaults_to_posted(self, post_entry, chart):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        assert entry.status is JournalEntryStatus.POSTED
        assert entry.period_id is None

    def test_draft_may_be_unbalanced(self, post_entry, chart):
        draft = post_entry([(chart.cash.id, 1000)], status=JournalEntryStatus.DRAFT)
        assert draft.status is JournalEntryStatus.DRAFT
        assert draft.total == 1000

    def test_draft_without_lines(self, post_entry):
        draft = post_entry([], status="Draft")
        assert draft.lines == ()

    def test_posted_without_lines_is_accepted(self, post_entry):
        entry = post_entry([])
        assert entry.status is JournalEntryStatus.POSTED
        assert entry.total == 0

    def test_scheduled_must_balance(self, post_entry, chart):
        with pytest.raises(UnbalancedEntryError):
            post_entry([(chart.cash.id, 10), (chart.sales.id, -9)], status="Scheduled")

    def test_future_period_forces_scheduled(self, post_entry, chart, periods, captured_logs):
        entry = post_entry(
            [(chart.cash.id, 10), (chart.sales.id, -10)],
            period_id=periods["Jul 2024"].id,
            status=JournalEntryStatus.POSTED,
        )
        assert entry.status is JournalEntryStatus.SCHEDULED
        assert any(r["message"] == "entry_status_forced_scheduled" for r in captured_logs())

    def test_future_period_draft_forced_scheduled_then_balanced(self, post_entry, chart, periods):
        with pytest.raises(UnbalancedEntryError):
            post_entry(
                [(chart.cash.id, 10)],
                period_id=periods["Aug 2024"].id,
                status=JournalEntryStatus.DRAFT,
            )

    def test_current_period_keeps_requested_status(self, post_entry, chart, periods):
        entry = post_entry(
            [(chart.cash.id, 10), (chart.sales.id, -10)],
            period_id=periods["Jun 2024"].id,
            status="Draft",
        )
        assert entry.status is JournalEntryStatus.DRAFT

    def test_unassigned_line_allowed(self, post_entry, chart):
        entry = post_entry([(None, 700), (chart.cash.id, -700)])
        assert entry.lines[0].account_id is None

    def test_display_ids_increase_per_company(
        self, journal_service, company_service, post_entry, chart, quarterly_company
    ):
        first = post_entry([(chart.cash.id, 1), (chart.sales.id, -1)])
        second = post_entry([(chart.cash.id, 2), (chart.sales.id, -2)])
        other_user = company_service.create_user(quarterly_company.id, "q@acme.test", "Q")
        other = journal_service.create_entry(quarterly_company.id, "Invoice", [], other_user.id)

        assert (first.display_id, second.display_id) == (1, 2)
        assert other.display_id == 1

    def test_unknown_account(self, post_entry):
        with pytest.raises(NotFoundError) as exc_info:
            post_entry([("missing", 1), ("missing", -1)])
        assert exc_info.value.entity == "Account"

    def test_account_of_other_company(self, post_entry, make_account, quarterly_company):
        foreign = make_account(CASH, "Cash", company_id=quarterly_company.id)
        with pytest.raises(ValidationError):
            post_entry([(foreign.id, 1), (foreign.id, -1)])

    def test_period_of_other_company(self, post_entry, chart, period_service, quarterly_company):
        q1 = period_service.generate_periods(quarterly_company.id, 2024, 2024)[0]
        with pytest.raises(ValidationError) as exc_info:
            post_entry([(chart.cash.id, 1), (chart.sales.id, -1)], period_id=q1.id)
        assert exc_info.value.field == "period_id"

    def test_user_of_other_company(self, journal_service, company_service, company, quarterly_company):
        outsider = company_service.create_user(quarterly_company.id, "out@acme.test", "Outsider")
        with pytest.raises(ValidationError) as exc_info:
            journal_service.create_entry(company.id, "JournalEntry", [], outsider.id)
        assert exc_info.value.field == "created_by_id"

    def test_bad_entry_type(self, journal_service, company, user):
        with pytest.raises(ValidationError) as exc_info:
            journal_service.create_entry(company.id, "Gift", [], user.id)
        assert exc_info.value.field == "entry_type"

    def test_failed_create_does_not_consume_display_id(self, post_entry, chart):
        with pytest.raises(UnbalancedEntryError):
            post_entry([(chart.cash.id, 1)])
        entry = post_entry([(chart.cash.id, 1), (chart.sales.id, -1)])
        assert entry.display_id == 1

    @given(amounts=st.lists(st.integers(min_value=-10**12, max_value=10**12), min_size=1, max_size=8))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_balance_law(self, post_entry, chart, amounts):
        legs = [(chart.cash.id, amount) for amount in amounts]
        if sum(amounts) == 0:
            assert post_entry(legs).is_balanced
        else:
            with pytest.raises(UnbalancedEntryError) as exc_info:
                post_entry(legs)
            assert exc_info.value.discrepancy == sum(amounts)


class TestInactiveAccounts:

    def test_past_dated_entry_on_deactivated_account(
        self, session, clock, ids, company_service, organization
    ):
        """
        Quarterly company, Q1 2025, now = 2025-03-10.  An account deactivated
        on 2025-03-01 still takes an entry dated 2025-02-15 but not one
        dated 2025-04-01.
        """
        clock.set_time(datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc))
        company = company_service.create_company(organization.id, "Q Co", "QBO", "Quarter", "USD")
        user = company_service.create_user(company.id, "q@q.test", "Q User")
        accounts = AccountService(session, clock, ids)
        cash = accounts.create_account(company.id, *CASH, "Cash")
        sales = accounts.create_account(company.id, *SALES, "Sales")
        q1 = PeriodService(session, clock, ids).generate_periods(company.id, 2025, 2025)[0]

        clock.set_time(datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))
        accounts.deactivate_account(cash.id)

        clock.set_time(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))
        journal = JournalService(session, clock, ids)
        legs = _lines((cash.id, 1000), (sales.id, -1000))

        historical = journal.create_entry(
            company.id, "JournalEntry", legs, user.id,
            transaction_date=date(2025, 2, 15), period_id=q1.id,
        )
        assert historical.status is JournalEntryStatus.POSTED

        with pytest.raises(InactiveAccountError) as exc_info:
            journal.create_entry(
                company.id, "JournalEntry", legs, user.id,
                transaction_date=date(2025, 4, 1), period_id=q1.id,
            )
        assert exc_info.value.account_id == cash.id

    def test_today_counts_as_present(self, post_entry, chart, account_service, clock):
        account_service.deactivate_account(chart.cash.id)
        with pytest.raises(InactiveAccountError):
            post_entry(
                [(chart.cash.id, 1), (chart.sales.id, -1)],
                transaction_date=clock.today(),
            )

    def test_undated_entry_accepts_inactive_account(self, post_entry, chart, account_service):
        account_service.deactivate_account(chart.cash.id)

        entry = post_entry([(chart.cash.id, 1), (chart.sales.id, -1)])

        assert entry.transaction_date is None
        assert entry.status is JournalEntryStatus.POSTED
        assert entry.display_id is not None

    def test_error_message_names_the_date(self):
        dated = InactiveAccountError("acct-1", "2024-06-15")
        undated = InactiveAccountError("acct-1")

        assert "dated 2024-06-15" in str(dated)
        assert str(undated) == "Account acct-1 is inactive"
        assert "None" not in str(undated)


class TestUpdateEntry:

    def test_update_description_and_stamp(self, journal_service, post_entry, chart, user, clock):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        clock.advance(3600)

        updated = journal_service.update_entry(entry.id, EntryPatch(description="Fixed memo"), user.id)

        assert updated.description == "Fixed memo"
        assert updated.updated_by_id == user.id
        assert updated.updated_at > entry.updated_at
        assert updated.display_id == entry.display_id
        assert [line.id for line in updated.lines] == [line.id for line in entry.lines]

    def test_replace_lines(self, journal_service, post_entry, chart, user):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        updated = journal_service.update_entry(
            entry.id,
            EntryPatch(lines=_lines((chart.receivables.id, 8), (chart.sales.id, -3), (chart.sales.id, -5))),
            user.id,
        )
        assert [line.amount for line in updated.lines] == [8, -3, -5]
        assert [line.line_no for line in updated.lines] == [1, 2, 3]

    def test_unbalanced_replacement_rejected(self, journal_service, post_entry, chart, user):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        with pytest.raises(UnbalancedEntryError) as exc_info:
            journal_service.update_entry(entry.id, EntryPatch(lines=_lines((chart.cash.id, 5))), user.id)
        assert exc_info.value.entry_id == entry.id

    def test_draft_to_posted_requires_balance(self, journal_service, post_entry, chart, user):
        draft = post_entry([(chart.cash.id, 5)], status="Draft")
        with pytest.raises(UnbalancedEntryError):
            journal_service.update_entry(draft.id, EntryPatch(status="Posted"), user.id)

        fixed = journal_service.update_entry(
            draft.id,
            EntryPatch(status="Posted", lines=_lines((chart.cash.id, 5), (chart.sales.id, -5))),
            user.id,
        )
        assert fixed.status is JournalEntryStatus.POSTED

    def test_moving_into_future_period_forces_scheduled(
        self, journal_service, post_entry, chart, user, periods
    ):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)], period_id=periods["Jun 2024"].id)
        moved = journal_service.update_entry(entry.id, EntryPatch(period_id=periods["Sep 2024"].id), user.id)
        assert moved.status is JournalEntryStatus.SCHEDULED

    def test_clear_period(self, journal_service, post_entry, chart, user, periods):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)], period_id=periods["Jun 2024"].id)
        cleared = journal_service.update_entry(entry.id, EntryPatch(period_id=None), user.id)
        assert cleared.period_id is None


class TestSoftDelete:

    def test_soft_delete(self, journal_service, post_entry, chart, user):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        deleted = journal_service.soft_delete_entry(entry.id, user.id)

        assert deleted.deleted
        assert deleted.status is JournalEntryStatus.POSTED
        assert journal_service.get_entry(entry.id).deleted

    def test_delete_twice_rejected(self, journal_service, post_entry, chart, user):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        journal_service.soft_delete_entry(entry.id, user.id)
        with pytest.raises(InvalidTransitionError):
            journal_service.soft_delete_entry(entry.id, user.id)

    def test_update_after_delete_rejected(self, journal_service, post_entry, chart, user):
        entry = post_entry([(chart.cash.id, 5), (chart.sales.id, -5)])
        journal_service.soft_delete_entry(entry.id, user.id)
        with pytest.raises(InvalidTransitionError) as exc_info:
            journal_service.update_entry(entry.id, EntryPatch(description="x"), user.id)
        assert exc_info.value.to_status == "updated"

    def test_unknown_entry(self, journal_service, user):
        with pytest.raises(NotFoundError):
            journal_service.soft_delete_entry("missing", user.id)

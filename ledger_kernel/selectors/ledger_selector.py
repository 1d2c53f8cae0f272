"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: cumulative account balances and
    per-period trial balances.  The ledger is a derived view over posted
    journal lines; no balance is stored anywhere.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/dtos and selectors/.  MUST NOT import from services/.

Invariants enforced:
    - Only lines of Posted, non-deleted entries count.  Draft and Scheduled
      entries and soft-deleted entries are invisible to every balance.
    - Trial balance zero-sum: the balances of one period total zero.  A
      non-zero total raises TrialBalanceMismatchError instead of returning
      a wrong report.

Failure modes:
    - NotFoundError: unknown account or period.
    - ValidationError: account and period belong to different companies.
    - TrialBalanceMismatchError: a period's lines do not net to zero.
"""

from sqlalchemy import func, select

from ledger_kernel.exceptions import NotFoundError, TrialBalanceMismatchError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_period import Period
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


class LedgerSelector(BaseSelector):
    """Balance queries over posted journal lines."""

    def _posted_lines(self, *columns):
        return (
            select(*columns)
            .select_from(JournalLine)
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .where(
                JournalEntry.status == JournalEntryStatus.POSTED,
                JournalEntry.deleted.is_(False),
            )
        )

    def account_balance(
        self,
        account_id: str,
        as_of_period_id: str,
        include_descendants: bool = False,
    ) -> int:
        """
        Cumulative signed balance of an account up to and including a period.

        Sums the account's lines of every Posted, non-deleted entry whose
        period ends on or before the target period's end.  Entries without a
        period are not counted.  With ``include_descendants`` the lines of
        every account below it are added in.
        """
        account = self.session.get(Account, account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        period = self.session.get(Period, as_of_period_id)
        if period is None:
            raise NotFoundError("Period", as_of_period_id)
        if period.company_id != account.company_id:
            raise ValidationError(
                f"Period {as_of_period_id} belongs to another company",
                field="as_of_period_id",
            )

        account_ids = [account_id]
        if include_descendants:
            account_ids.extend(AccountSelector(self.session).descendant_ids(account_id))

        stmt = (
            self._posted_lines(func.coalesce(func.sum(JournalLine.amount), 0))
            .join(Period, Period.id == JournalEntry.period_id)
            .where(
                JournalLine.account_id.in_(account_ids),
                Period.company_id == account.company_id,
                Period.ends_on <= period.ends_on,
            )
        )
        return int(self.session.execute(stmt).scalar_one())

    def trial_balance(self, company_id: str, period_id: str) -> dict[str | None, int]:
        """
        Per-account balances of one period (not cumulative).

        Every account touched by a Posted, non-deleted line of the period
        appears, even if its lines net to zero.  Lines without an account
        are grouped under None.

        Raises:
            TrialBalanceMismatchError: The balances do not total zero.
        """
        period = self.session.get(Period, period_id)
        if period is None:
            raise NotFoundError("Period", period_id)
        if period.company_id != company_id:
            raise ValidationError(
                f"Period {period_id} belongs to another company", field="period_id"
            )

        stmt = (
            self._posted_lines(JournalLine.account_id, func.sum(JournalLine.amount))
            .where(
                JournalEntry.company_id == company_id,
                JournalEntry.period_id == period_id,
            )
            .group_by(JournalLine.account_id)
        )
        balances = {
            account_id: int(total) for account_id, total in self.session.execute(stmt).all()
        }

        total = sum(balances.values())
        if total != 0:
            logger.error(
                "trial_balance_mismatch",
                extra={"company_id": company_id, "period_id": period_id, "total": total},
            )
            raise TrialBalanceMismatchError(company_id, period_id, total)
        return balances

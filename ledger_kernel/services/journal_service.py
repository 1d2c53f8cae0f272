"""
JournalService -- validation and persistence of journal entries.

Responsibility:
    The write path for journal entries: resolves the entry's period and
    status, enforces the balance law and account rules, allocates the
    display id, and persists the entry, its lines and their dimension tags
    in the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by LedgerOrchestrator, which owns the transaction and retries
    display-id conflicts.

Invariants enforced:
    - Balance law: an entry whose status is Scheduled or Posted and that
      has lines sums to zero.  Draft entries may be unbalanced or empty.
    - Future period: an entry whose period starts after today (injected
      clock) is Scheduled whatever the caller asked for.
    - Account rules: every line account exists in the entry's company and,
      for entries dated today or later, is active.  Undated and back-dated
      entries accept inactive accounts.
    - Period and users belong to the entry's company.
    - Display ids come from SequenceService's locked counter row.
    - All-or-nothing: nothing is flushed before every check has passed,
      and any later failure aborts the caller's transaction.

Failure modes:
    - NotFoundError: unknown company, user, period, account or entry.
    - ValidationError: cross-company reference or malformed input.
    - UnbalancedEntryError: non-zero line sum, carrying the discrepancy.
    - InactiveAccountError: present or future dated line on an inactive
      account.
    - InvalidTransitionError: update or delete of a soft-deleted entry.
    - ConflictError: display-id collision (retried by the orchestrator).
"""

from collections.abc import Sequence
from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import coerce_enum
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import EntryPatch, JournalEntryInfo, JournalLineInput
from ledger_kernel.domain.ids import IdGenerator
from ledger_kernel.exceptions import (
    InactiveAccountError,
    InvalidTransitionError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.dimensions import DimensionValue
from ledger_kernel.models.fiscal_period import Period
from ledger_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
)
from ledger_kernel.models.organization import Company, User
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.dimension_service import DimensionService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")


class JournalService(BaseService):
    """
    Service for creating, updating and soft-deleting journal entries.

    Guarantees:
        - Returns frozen JournalEntryInfo DTOs with lines in line order.
        - Posted entries remain editable; every edit is re-validated and
          stamped with updated_by and updated_at.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT reject entries dated outside their period or posted into
          closed periods.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        super().__init__(session, clock, id_generator)
        self._sequences = SequenceService(session)
        self._dimensions = DimensionService(session, self._clock, self._ids)

    def create_entry(
        self,
        company_id: str,
        entry_type: EntryType | str,
        lines: Sequence[JournalLineInput],
        created_by_id: str,
        transaction_date: date | None = None,
        period_id: str | None = None,
        status: JournalEntryStatus | str | None = None,
        description: str = "",
    ) -> JournalEntryInfo:
        """
        Validate and persist a new journal entry.

        Pipeline:
            1. Resolve the period and derive the status.
            2. Balance law (Scheduled/Posted with lines).
            3. Account existence, company and activity.
            4. Allocate the display id from the locked counter.
            5. Persist entry, lines and dimension tags.

        Raises:
            See module docstring.
        """
        self._require(Company, company_id)
        self._require_user(created_by_id, company_id, "created_by_id")
        entry_type = coerce_enum(EntryType, entry_type, "entry_type")
        lines = tuple(lines)

        period = self._resolve_period(period_id, company_id)
        status = self._derive_status(period, status)
        self._check_balance(status, lines)
        self._check_accounts(company_id, lines, transaction_date)

        display_id = self._sequences.next_display_id(company_id)

        now = self._clock.now_utc()
        entry = JournalEntry(
            id=self._ids.new_id(),
            display_id=display_id,
            company_id=company_id,
            entry_type=entry_type,
            transaction_date=transaction_date,
            period_id=period_id,
            status=status,
            deleted=False,
            description=description or "",
            created_by_id=created_by_id,
            created_at=now,
            updated_at=now,
        )
        entry.lines = self._build_lines(company_id, lines)
        self.session.add(entry)
        self._flush(f"journal entry #{display_id}")
        self._apply_tags(entry, lines)

        logger.info(
            "entry_created",
            extra={
                "company_id": company_id,
                "entry_id": entry.id,
                "display_id": display_id,
                "entry_type": entry_type.value,
                "status": status.value,
                "line_count": len(lines),
            },
        )
        return JournalEntryInfo.from_model(entry)

    def update_entry(
        self,
        entry_id: str,
        patch: EntryPatch,
        updated_by_id: str,
    ) -> JournalEntryInfo:
        """
        Apply ``patch`` and re-validate the resulting entry.

        The same rules as create_entry apply to the result: future-period
        status forcing, the balance law and the account rules.  A patch with
        lines replaces every existing line and its tags.

        Raises:
            InvalidTransitionError: The entry is soft-deleted.
            See module docstring for the rest.
        """
        entry = self._require(JournalEntry, entry_id, for_update=True)
        current_status = JournalEntryStatus(entry.status)
        if entry.deleted:
            raise InvalidTransitionError("JournalEntry", entry_id, "deleted", "updated")
        self._require_user(updated_by_id, entry.company_id, "updated_by_id")

        entry_type = (
            coerce_enum(EntryType, patch.entry_type, "entry_type")
            if patch.is_set("entry_type")
            else EntryType(entry.entry_type)
        )
        transaction_date = (
            patch.transaction_date if patch.is_set("transaction_date") else entry.transaction_date
        )
        period_id = patch.period_id if patch.is_set("period_id") else entry.period_id
        period = self._resolve_period(period_id, entry.company_id)
        status = self._derive_status(
            period, patch.status if patch.is_set("status") else current_status
        )

        if patch.is_set("lines"):
            lines = patch.lines
        else:
            lines = tuple(
                JournalLineInput(
                    amount=line.amount,
                    account_id=line.account_id,
                    description=line.description,
                )
                for line in entry.lines
            )
        self._check_balance(status, lines, entry_id=entry_id)
        self._check_accounts(entry.company_id, lines, transaction_date)

        entry.entry_type = entry_type
        entry.transaction_date = transaction_date
        entry.period_id = period_id
        entry.status = status
        if patch.is_set("description"):
            entry.description = patch.description or ""
        if patch.is_set("lines"):
            entry.lines = self._build_lines(entry.company_id, lines)
        entry.updated_by_id = updated_by_id
        entry.touch(self._clock.now_utc())
        self._flush(f"journal entry #{entry.display_id}")
        if patch.is_set("lines"):
            self._apply_tags(entry, lines)

        logger.info(
            "entry_updated",
            extra={
                "company_id": entry.company_id,
                "entry_id": entry_id,
                "display_id": entry.display_id,
                "from_status": current_status.value,
                "to_status": status.value,
                "lines_replaced": patch.is_set("lines"),
            },
        )
        return JournalEntryInfo.from_model(entry)

    def soft_delete_entry(self, entry_id: str, deleted_by_id: str) -> JournalEntryInfo:
        """
        Flag an entry as deleted.  It drops out of every balance and is
        exempt from the balance law from then on.

        Raises:
            NotFoundError: Unknown entry or user.
            InvalidTransitionError: Already deleted.
        """
        entry = self._require(JournalEntry, entry_id, for_update=True)
        if entry.deleted:
            raise InvalidTransitionError("JournalEntry", entry_id, "deleted", "deleted")
        self._require_user(deleted_by_id, entry.company_id, "deleted_by_id")

        entry.deleted = True
        entry.updated_by_id = deleted_by_id
        entry.touch(self._clock.now_utc())
        self._flush(f"journal entry #{entry.display_id}")

        logger.info(
            "entry_soft_deleted",
            extra={
                "company_id": entry.company_id,
                "entry_id": entry_id,
                "display_id": entry.display_id,
            },
        )
        return JournalEntryInfo.from_model(entry)

    def get_entry(self, entry_id: str) -> JournalEntryInfo:
        return JournalEntryInfo.from_model(self._require(JournalEntry, entry_id))

    # ------------------------------------------------------------------
    # Validation steps
    # ------------------------------------------------------------------

    def _require_user(self, user_id: str, company_id: str, field: str) -> User:
        user = self._require(User, user_id)
        if user.company_id != company_id:
            raise ValidationError(f"User {user_id} belongs to another company", field=field)
        return user

    def _resolve_period(self, period_id: str | None, company_id: str) -> Period | None:
        if period_id is None:
            return None
        period = self._require(Period, period_id)
        if period.company_id != company_id:
            raise ValidationError(
                f"Period {period_id} belongs to another company", field="period_id"
            )
        return period

    def _derive_status(
        self,
        period: Period | None,
        requested: JournalEntryStatus | str | None,
    ) -> JournalEntryStatus:
        status = (
            JournalEntryStatus.POSTED
            if requested is None
            else coerce_enum(JournalEntryStatus, requested, "status")
        )
        if period is not None and period.starts_on > self._clock.today():
            if status is not JournalEntryStatus.SCHEDULED:
                logger.debug(
                    "entry_status_forced_scheduled",
                    extra={"period_id": period.id, "requested_status": status.value},
                )
            return JournalEntryStatus.SCHEDULED
        return status

    def _check_balance(
        self,
        status: JournalEntryStatus,
        lines: Sequence[JournalLineInput],
        entry_id: str | None = None,
    ) -> None:
        if not status.requires_balance or not lines:
            return
        total = sum(line.amount for line in lines)
        if total != 0:
            logger.warning(
                "entry_unbalanced",
                extra={"entry_id": entry_id, "discrepancy": total, "status": status.value},
            )
            raise UnbalancedEntryError(total, entry_id)

    def _check_accounts(
        self,
        company_id: str,
        lines: Sequence[JournalLineInput],
        transaction_date: date | None,
    ) -> None:
        requires_active = transaction_date is not None and transaction_date >= self._clock.today()
        account_ids = dict.fromkeys(line.account_id for line in lines if line.account_id)
        for account_id in account_ids:
            account = self.session.get(Account, account_id)
            if account is None:
                raise NotFoundError("Account", account_id)
            if account.company_id != company_id:
                raise ValidationError(
                    f"Account {account_id} belongs to another company", field="account_id"
                )
            if requires_active and not account.active:
                logger.warning(
                    "entry_inactive_account",
                    extra={
                        "account_id": account_id,
                        "transaction_date": transaction_date,
                    },
                )
                raise InactiveAccountError(account_id, transaction_date.isoformat())

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _build_lines(
        self,
        company_id: str,
        lines: Sequence[JournalLineInput],
    ) -> list[JournalLine]:
        return [
            JournalLine(
                id=self._ids.new_id(),
                company_id=company_id,
                line_no=index,
                account_id=line.account_id,
                description=line.description or "",
                amount=line.amount,
            )
            for index, line in enumerate(lines, start=1)
        ]

    def _apply_tags(self, entry: JournalEntry, lines: Sequence[JournalLineInput]) -> None:
        for line, requested in zip(entry.lines, lines):
            for value_id in requested.dimension_value_ids:
                value = self._require(DimensionValue, value_id)
                self._dimensions.tag_line(line.id, value.dimension_id, value_id)

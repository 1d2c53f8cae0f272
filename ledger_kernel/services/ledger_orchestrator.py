"""
LedgerOrchestrator -- transaction boundary for every ledger operation.

Responsibility:
    The public entry point of the kernel.  Each operation opens a session,
    runs the services it needs, and commits, or rolls back on any error so
    nothing partial is ever visible.  On top of that boundary it provides
    bounded retries and cooperative cancellation.

Architecture position:
    Kernel > Services -- the only component that commits.

Invariants enforced:
    - Atomicity: one operation, one transaction.  Services only flush.
    - Display-id race: a violation of uq_journal_entry_display_id rolls the
      whole operation back and re-runs it, up to
      ``RetryPolicy.display_id_max_retries`` times, before the
      ConflictError surfaces.  Concurrent period generation gets the same
      treatment for the period uniqueness constraints.
    - Transient storage failures (OperationalError, invalidated
      connections) are retried with exponential backoff up to
      ``RetryPolicy.storage_max_retries`` times, then surface as
      StorageUnavailableError.
    - Cancellation: the token is checked before work starts, between the
      steps of multi-step operations, and before commit.  A cancelled
      operation is rolled back and raises OperationCancelledError.

Failure modes:
    - Every typed LedgerError raised by a service propagates unchanged
      after rollback.
"""

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import TypeVar
from uuid import uuid4

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.errors import is_transient, violated_constraint
from ledger_kernel.domain.calendar import DEFAULT_TARGET_CLOSE_OFFSET_DAYS, BasePeriod
from ledger_kernel.domain.chart import AccountClassification, AccountSubType, AccountType, SpecialUseType
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    CompanyInfo,
    CounterpartySyncResult,
    DimensionInfo,
    DimensionValueInfo,
    EntryPatch,
    JournalEntryInfo,
    JournalLineInput,
    LineTagInfo,
    OrganizationInfo,
    PeriodInfo,
    TaskInfo,
    UserInfo,
)
from ledger_kernel.domain.ids import IdGenerator, UUIDGenerator
from ledger_kernel.exceptions import (
    ConflictError,
    OperationCancelledError,
    StorageUnavailableError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.dimensions import DimensionSource
from ledger_kernel.models.journal import EntryType, JournalEntryStatus
from ledger_kernel.models.organization import Platform, UserStatus
from ledger_kernel.models.task import Frequency, TaskStatus, TaskType
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.company_service import CompanyService
from ledger_kernel.services.dimension_service import DimensionService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.task_service import TaskService

logger = get_logger("services.orchestrator")

T = TypeVar("T")

DISPLAY_ID_CONSTRAINTS = frozenset({"uq_journal_entry_display_id"})
PERIOD_CONSTRAINTS = frozenset({"uq_period_company_name", "uq_period_company_range"})


@dataclass(frozen=True)
class RetryPolicy:
    """Retry limits of the transaction boundary."""

    display_id_max_retries: int = 3
    storage_max_retries: int = 3
    storage_backoff_seconds: float = 0.05

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based): base * 2**(attempt-1)."""
        return self.storage_backoff_seconds * (2 ** (attempt - 1))


class CancellationToken:
    """
    Cooperative cancellation handle.

    ``cancel()`` may be called from any thread.  With ``timeout_seconds``
    the token also counts as cancelled once that much monotonic time has
    passed since it was created.
    """

    def __init__(self, timeout_seconds: float | None = None):
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCancelledError(operation)


class LedgerOrchestrator:
    """
    Facade running kernel services inside managed transactions.

    Contract:
        Every public method is one atomic operation returning DTOs.  The
        optional ``cancel`` argument aborts the operation cleanly.

    Usage:
        orchestrator = LedgerOrchestrator(make_session_factory(engine))
        entry = orchestrator.create_entry(company_id, EntryType.JOURNAL_ENTRY,
                                          lines, created_by_id=user_id)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        retry_policy: RetryPolicy | None = None,
        target_close_offset_days: int = DEFAULT_TARGET_CLOSE_OFFSET_DAYS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUIDGenerator()
        self._policy = retry_policy or RetryPolicy()
        self._offset_days = target_close_offset_days
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[Session], T],
        *,
        cancel: CancellationToken | None = None,
        retry_on: frozenset[str] = frozenset(),
        company_id: str | None = None,
        actor_id: str | None = None,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=operation,
            company_id=company_id,
            actor_id=actor_id,
        ):
            conflict_retries = 0
            storage_retries = 0
            t0 = time.monotonic()
            while True:
                session = self._session_factory()
                try:
                    self._checkpoint(cancel, operation)
                    result = work(session)
                    self._checkpoint(cancel, operation)
                    session.commit()
                except (ConflictError, IntegrityError) as exc:
                    session.rollback()
                    constraint = (
                        exc.constraint if isinstance(exc, ConflictError) else violated_constraint(exc)
                    )
                    if (
                        constraint in retry_on
                        and conflict_retries < self._policy.display_id_max_retries
                    ):
                        conflict_retries += 1
                        logger.warning(
                            "operation_conflict_retry",
                            extra={"constraint": constraint, "attempt": conflict_retries},
                        )
                        continue
                    logger.warning(
                        "operation_rolled_back",
                        extra={"constraint": constraint, "conflict_retries": conflict_retries},
                        exc_info=True,
                    )
                    if isinstance(exc, IntegrityError):
                        raise ConflictError(
                            f"{operation} violated uniqueness rule {constraint or 'unknown'}",
                            constraint=constraint,
                        ) from exc
                    raise
                except DBAPIError as exc:
                    session.rollback()
                    if not is_transient(exc):
                        logger.warning("operation_rolled_back", exc_info=True)
                        raise
                    if storage_retries < self._policy.storage_max_retries:
                        storage_retries += 1
                        delay = self._policy.backoff(storage_retries)
                        logger.warning(
                            "storage_retry",
                            extra={
                                "attempt": storage_retries,
                                "delay_seconds": delay,
                                "reason": str(exc.orig),
                            },
                        )
                        self._sleep(delay)
                        continue
                    logger.error(
                        "storage_unavailable",
                        extra={"attempts": storage_retries + 1},
                        exc_info=True,
                    )
                    raise StorageUnavailableError(
                        operation, storage_retries + 1, str(exc.orig)
                    ) from exc
                except Exception:
                    session.rollback()
                    logger.warning("operation_rolled_back", exc_info=True)
                    raise
                finally:
                    session.close()

                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.info(
                    "operation_completed",
                    extra={
                        "duration_ms": duration_ms,
                        "conflict_retries": conflict_retries,
                        "storage_retries": storage_retries,
                    },
                )
                return result

    @staticmethod
    def _checkpoint(cancel: CancellationToken | None, operation: str) -> None:
        if cancel is not None:
            cancel.raise_if_cancelled(operation)

    def _accounts(self, session: Session) -> AccountService:
        return AccountService(session, self._clock, self._ids)

    def _periods(self, session: Session) -> PeriodService:
        return PeriodService(session, self._clock, self._ids, self._offset_days)

    def _journal(self, session: Session) -> JournalService:
        return JournalService(session, self._clock, self._ids)

    def _dimensions(self, session: Session) -> DimensionService:
        return DimensionService(session, self._clock, self._ids)

    # ------------------------------------------------------------------
    # Tenant setup
    # ------------------------------------------------------------------

    def create_organization(
        self,
        full_name: str,
        org_id: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> OrganizationInfo:
        return self._run(
            "create_organization",
            lambda s: CompanyService(s, self._clock, self._ids).create_organization(
                full_name, org_id=org_id
            ),
            cancel=cancel,
        )

    def create_company(
        self,
        organization_id: str,
        name: str,
        platform: Platform | str,
        base_period: BasePeriod | str,
        home_currency: str,
        timezone: str = "UTC",
        fiscal_year_start_month: int = 1,
        fiscal_year_start_day: int = 1,
        multi_currency_enabled: bool = False,
        cancel: CancellationToken | None = None,
    ) -> CompanyInfo:
        return self._run(
            "create_company",
            lambda s: CompanyService(s, self._clock, self._ids).create_company(
                organization_id,
                name,
                platform,
                base_period,
                home_currency,
                timezone=timezone,
                fiscal_year_start_month=fiscal_year_start_month,
                fiscal_year_start_day=fiscal_year_start_day,
                multi_currency_enabled=multi_currency_enabled,
            ),
            cancel=cancel,
        )

    def create_user(
        self,
        company_id: str,
        email: str,
        full_name: str,
        is_admin: bool = False,
        status: UserStatus | str = UserStatus.PENDING,
        cancel: CancellationToken | None = None,
    ) -> UserInfo:
        return self._run(
            "create_user",
            lambda s: CompanyService(s, self._clock, self._ids).create_user(
                company_id, email, full_name, is_admin=is_admin, status=status
            ),
            cancel=cancel,
            company_id=company_id,
        )

    def onboard_company(
        self,
        organization_id: str,
        name: str,
        platform: Platform | str,
        base_period: BasePeriod | str,
        home_currency: str,
        admin_email: str,
        admin_name: str,
        start_year: int,
        end_year: int,
        multi_currency_enabled: bool = False,
        cancel: CancellationToken | None = None,
    ) -> tuple[CompanyInfo, UserInfo, list[PeriodInfo]]:
        """
        Create a company, its first admin and its periods in one transaction.

        The cancellation token is checked between the three steps.
        """

        def work(session: Session) -> tuple[CompanyInfo, UserInfo, list[PeriodInfo]]:
            companies = CompanyService(session, self._clock, self._ids)
            company = companies.create_company(
                organization_id,
                name,
                platform,
                base_period,
                home_currency,
                multi_currency_enabled=multi_currency_enabled,
            )
            self._checkpoint(cancel, "onboard_company")
            admin = companies.create_user(
                company.id, admin_email, admin_name, is_admin=True, status=UserStatus.ACCEPTED
            )
            self._checkpoint(cancel, "onboard_company")
            periods = self._periods(session).generate_periods(company.id, start_year, end_year)
            return company, admin, periods

        return self._run("onboard_company", work, cancel=cancel)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(
        self,
        company_id: str,
        classification: AccountClassification | str,
        account_type: AccountType | str,
        account_sub_type: AccountSubType | str,
        name: str,
        parent_id: str | None = None,
        currency: str | None = None,
        special_use_type: SpecialUseType | str | None = None,
        platform: Platform | str | None = None,
        source_id: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AccountInfo:
        return self._run(
            "create_account",
            lambda s: self._accounts(s).create_account(
                company_id,
                classification,
                account_type,
                account_sub_type,
                name,
                parent_id=parent_id,
                currency=currency,
                special_use_type=special_use_type,
                platform=platform,
                source_id=source_id,
            ),
            cancel=cancel,
            company_id=company_id,
        )

    def deactivate_account(
        self, account_id: str, cancel: CancellationToken | None = None
    ) -> list[AccountInfo]:
        return self._run(
            "deactivate_account",
            lambda s: self._accounts(s).deactivate_account(account_id),
            cancel=cancel,
        )

    def activate_account(
        self, account_id: str, cancel: CancellationToken | None = None
    ) -> AccountInfo:
        return self._run(
            "activate_account",
            lambda s: self._accounts(s).activate_account(account_id),
            cancel=cancel,
        )

    def reparent_account(
        self,
        account_id: str,
        new_parent_id: str | None,
        cancel: CancellationToken | None = None,
    ) -> AccountInfo:
        return self._run(
            "reparent_account",
            lambda s: self._accounts(s).reparent_account(account_id, new_parent_id),
            cancel=cancel,
        )

    def get_account(self, account_id: str) -> AccountInfo:
        return self._run("get_account", lambda s: self._accounts(s).get_account(account_id))

    def resolve_chain(self, account_id: str) -> list[AccountInfo]:
        return self._run("resolve_chain", lambda s: self._accounts(s).resolve_chain(account_id))

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    def generate_periods(
        self,
        company_id: str,
        start_year: int,
        end_year: int,
        cancel: CancellationToken | None = None,
    ) -> list[PeriodInfo]:
        return self._run(
            "generate_periods",
            lambda s: self._periods(s).generate_periods(company_id, start_year, end_year),
            cancel=cancel,
            retry_on=PERIOD_CONSTRAINTS,
            company_id=company_id,
        )

    def close_period(self, period_id: str, cancel: CancellationToken | None = None) -> PeriodInfo:
        return self._run(
            "close_period",
            lambda s: self._periods(s).close_period(period_id),
            cancel=cancel,
        )

    def list_periods(self, company_id: str) -> list[PeriodInfo]:
        return self._run(
            "list_periods",
            lambda s: self._periods(s).list_periods(company_id),
            company_id=company_id,
        )

    def period_for_date(self, company_id: str, day: date) -> PeriodInfo | None:
        return self._run(
            "period_for_date",
            lambda s: self._periods(s).period_for_date(company_id, day),
            company_id=company_id,
        )

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

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
        cancel: CancellationToken | None = None,
    ) -> JournalEntryInfo:
        lines = tuple(lines)
        return self._run(
            "create_entry",
            lambda s: self._journal(s).create_entry(
                company_id,
                entry_type,
                lines,
                created_by_id,
                transaction_date=transaction_date,
                period_id=period_id,
                status=status,
                description=description,
            ),
            cancel=cancel,
            retry_on=DISPLAY_ID_CONSTRAINTS,
            company_id=company_id,
            actor_id=created_by_id,
        )

    def update_entry(
        self,
        entry_id: str,
        patch: EntryPatch,
        updated_by_id: str,
        cancel: CancellationToken | None = None,
    ) -> JournalEntryInfo:
        return self._run(
            "update_entry",
            lambda s: self._journal(s).update_entry(entry_id, patch, updated_by_id),
            cancel=cancel,
            actor_id=updated_by_id,
        )

    def soft_delete_entry(
        self,
        entry_id: str,
        deleted_by_id: str,
        cancel: CancellationToken | None = None,
    ) -> JournalEntryInfo:
        return self._run(
            "soft_delete_entry",
            lambda s: self._journal(s).soft_delete_entry(entry_id, deleted_by_id),
            cancel=cancel,
            actor_id=deleted_by_id,
        )

    def get_entry(self, entry_id: str) -> JournalEntryInfo:
        return self._run("get_entry", lambda s: self._journal(s).get_entry(entry_id))

    # ------------------------------------------------------------------
    # Ledger queries
    # ------------------------------------------------------------------

    def account_balance(
        self,
        account_id: str,
        as_of_period_id: str,
        include_descendants: bool = False,
    ) -> int:
        return self._run(
            "account_balance",
            lambda s: LedgerSelector(s).account_balance(
                account_id, as_of_period_id, include_descendants=include_descendants
            ),
        )

    def trial_balance(self, company_id: str, period_id: str) -> dict[str | None, int]:
        return self._run(
            "trial_balance",
            lambda s: LedgerSelector(s).trial_balance(company_id, period_id),
            company_id=company_id,
        )

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def create_dimension(
        self,
        company_id: str,
        name: str,
        source: DimensionSource | str = DimensionSource.AVISE,
    ) -> DimensionInfo:
        return self._run(
            "create_dimension",
            lambda s: self._dimensions(s).create_dimension(company_id, name, source=source),
            company_id=company_id,
        )

    def add_dimension_value(
        self,
        dimension_id: str,
        value: str,
        description: str | None = None,
    ) -> DimensionValueInfo:
        return self._run(
            "add_dimension_value",
            lambda s: self._dimensions(s).add_value(dimension_id, value, description=description),
        )

    def deactivate_dimension_value(self, dimension_value_id: str) -> DimensionValueInfo:
        return self._run(
            "deactivate_dimension_value",
            lambda s: self._dimensions(s).deactivate_value(dimension_value_id),
        )

    def tag_line(
        self,
        line_id: str,
        dimension_id: str,
        dimension_value_id: str,
        cancel: CancellationToken | None = None,
    ) -> LineTagInfo:
        return self._run(
            "tag_line",
            lambda s: self._dimensions(s).tag_line(line_id, dimension_id, dimension_value_id),
            cancel=cancel,
        )

    def sync_counterparties(self, company_id: str) -> CounterpartySyncResult:
        return self._run(
            "sync_counterparties",
            lambda s: self._dimensions(s).sync_counterparties(company_id),
            company_id=company_id,
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self,
        company_id: str,
        title: str,
        task_type: TaskType | str,
        due_date: date,
        created_by_id: str,
        description: str = "",
        frequency: Frequency | str | None = None,
        assigned_to_id: str | None = None,
        reviewer_id: str | None = None,
        category: str | None = None,
    ) -> TaskInfo:
        return self._run(
            "create_task",
            lambda s: TaskService(s, self._clock, self._ids).create_task(
                company_id,
                title,
                task_type,
                due_date,
                created_by_id,
                description=description,
                frequency=frequency,
                assigned_to_id=assigned_to_id,
                reviewer_id=reviewer_id,
                category=category,
            ),
            company_id=company_id,
            actor_id=created_by_id,
        )

    def advance_task(
        self,
        task_id: str,
        to_status: TaskStatus | str,
        actor_id: str,
        resolution: str | None = None,
    ) -> TaskInfo:
        return self._run(
            "advance_task",
            lambda s: TaskService(s, self._clock, self._ids).advance_task(
                task_id, to_status, actor_id, resolution=resolution
            ),
            actor_id=actor_id,
        )

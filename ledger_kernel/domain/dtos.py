"""
DTOs -- immutable data transfer objects for the kernel boundary.

Responsibility:
    Defines the frozen structures services accept (JournalLineInput,
    EntryPatch) and return (OrganizationInfo, CompanyInfo, AccountInfo,
    PeriodInfo, JournalEntryInfo, ...).  Callers never receive ORM
    instances, so nothing they hold can be lazily reloaded or mutated
    outside a transaction.

Architecture position:
    Kernel > Domain.  from_model() class methods are boundary converters
    invoked only from services and selectors.

Invariants enforced:
    - JournalLineInput amounts are integers (minor units), never floats.
    - Status and enum fields are always coerced to their enum type, since
      values read back from the database are plain strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from ledger_kernel.domain.calendar import BasePeriod
from ledger_kernel.domain.chart import (
    AccountClassification,
    AccountSubType,
    AccountType,
    SpecialUseType,
)
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.models.dimensions import DimensionSource
from ledger_kernel.models.fiscal_period import PeriodStatus
from ledger_kernel.models.journal import EntryType, JournalEntryStatus
from ledger_kernel.models.organization import Platform, UserStatus
from ledger_kernel.models.task import Frequency, TaskStatus, TaskType

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.dimensions import (
        Dimension,
        DimensionValue,
        JournalLineDimension,
    )
    from ledger_kernel.models.fiscal_period import Period
    from ledger_kernel.models.journal import JournalEntry, JournalLine
    from ledger_kernel.models.organization import Company, Organization, User
    from ledger_kernel.models.task import Task


# =============================================================================
# Tenants
# =============================================================================


@dataclass(frozen=True)
class OrganizationInfo:
    id: str
    full_name: str

    @classmethod
    def from_model(cls, model: Organization) -> OrganizationInfo:
        return cls(id=model.id, full_name=model.full_name)


@dataclass(frozen=True)
class CompanyInfo:
    """Snapshot of a company's accounting configuration."""

    id: str
    organization_id: str
    name: str
    timezone: str
    platform: Platform
    base_period: BasePeriod
    fiscal_year_start_month: int
    fiscal_year_start_day: int
    multi_currency_enabled: bool
    home_currency: str

    @classmethod
    def from_model(cls, model: Company) -> CompanyInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            name=model.name,
            timezone=model.timezone,
            platform=Platform(model.platform),
            base_period=BasePeriod(model.base_period),
            fiscal_year_start_month=model.fiscal_year_start_month,
            fiscal_year_start_day=model.fiscal_year_start_day,
            multi_currency_enabled=model.multi_currency_enabled,
            home_currency=model.home_currency,
        )


@dataclass(frozen=True)
class UserInfo:
    id: str
    company_id: str
    email: str
    full_name: str
    is_admin: bool
    status: UserStatus

    @classmethod
    def from_model(cls, model: User) -> UserInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            email=model.email,
            full_name=model.full_name,
            is_admin=model.is_admin,
            status=UserStatus(model.status),
        )


# =============================================================================
# Chart of accounts and periods
# =============================================================================


@dataclass(frozen=True)
class AccountInfo:
    """
    Immutable snapshot of an account.

    parent_account_id is the only link to the tree; callers walk it through
    AccountService.resolve_chain, never through nested objects.
    """

    id: str
    company_id: str
    name: str
    fully_qualified_name: str
    classification: AccountClassification
    account_type: AccountType
    account_sub_type: AccountSubType
    currency: str
    active: bool
    platform: Platform
    parent_account_id: str | None = None
    special_use_type: SpecialUseType | None = None
    source_id: str | None = None

    @classmethod
    def from_model(cls, model: Account) -> AccountInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            name=model.name,
            fully_qualified_name=model.fully_qualified_name,
            classification=AccountClassification(model.classification),
            account_type=AccountType(model.account_type),
            account_sub_type=AccountSubType(model.account_sub_type),
            currency=model.currency,
            active=model.active,
            platform=Platform(model.platform),
            parent_account_id=model.parent_account_id,
            special_use_type=(
                SpecialUseType(model.special_use_type)
                if model.special_use_type is not None
                else None
            ),
            source_id=model.source_id,
        )


@dataclass(frozen=True)
class PeriodInfo:
    id: str
    company_id: str
    display_name: str
    starts_on: date
    ends_on: date
    target_close: date
    status: PeriodStatus

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        return self.starts_on <= check_date <= self.ends_on

    @classmethod
    def from_model(cls, model: Period) -> PeriodInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            display_name=model.display_name,
            starts_on=model.starts_on,
            ends_on=model.ends_on,
            target_close=model.target_close,
            status=PeriodStatus(model.status),
        )


# =============================================================================
# Journal
# =============================================================================


@dataclass(frozen=True)
class JournalLineInput:
    """
    One requested journal line.

    Contract:
        amount is a signed integer in minor currency units.  account_id may
        be None (an unassigned line).  dimension_value_ids lists the
        dimension values to tag the line with, at most one per dimension.
    """

    amount: int
    account_id: str | None = None
    description: str = ""
    dimension_value_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError(
                f"Line amount must be an integer number of minor units, got {self.amount!r}",
                field="amount",
            )
        if not isinstance(self.dimension_value_ids, tuple):
            object.__setattr__(self, "dimension_value_ids", tuple(self.dimension_value_ids))


@dataclass(frozen=True)
class JournalLineInfo:
    id: str
    line_no: int
    account_id: str | None
    description: str
    amount: int
    dimension_value_ids: tuple[str, ...] = ()

    @classmethod
    def from_model(cls, model: JournalLine) -> JournalLineInfo:
        return cls(
            id=model.id,
            line_no=model.line_no,
            account_id=model.account_id,
            description=model.description,
            amount=model.amount,
            dimension_value_ids=tuple(
                sorted(tag.dimension_value_id for tag in model.dimension_tags)
            ),
        )


@dataclass(frozen=True)
class JournalEntryInfo:
    """Immutable snapshot of a journal entry and its lines, in line order."""

    id: str
    company_id: str
    display_id: int
    entry_type: EntryType
    status: JournalEntryStatus
    deleted: bool
    description: str
    created_by_id: str
    created_at: datetime
    updated_at: datetime
    transaction_date: date | None = None
    period_id: str | None = None
    updated_by_id: str | None = None
    lines: tuple[JournalLineInfo, ...] = ()

    @property
    def total(self) -> int:
        return sum(line.amount for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total == 0

    @classmethod
    def from_model(cls, model: JournalEntry) -> JournalEntryInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            display_id=model.display_id,
            entry_type=EntryType(model.entry_type),
            status=JournalEntryStatus(model.status),
            deleted=model.deleted,
            description=model.description,
            created_by_id=model.created_by_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
            transaction_date=model.transaction_date,
            period_id=model.period_id,
            updated_by_id=model.updated_by_id,
            lines=tuple(JournalLineInfo.from_model(line) for line in model.lines),
        )


class _Unset:
    """Marker for EntryPatch fields the caller left alone."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class EntryPatch:
    """
    Partial update of a journal entry.

    Fields left at UNSET keep their current value.  transaction_date and
    period_id may be set to None to clear them.  lines, when given, replaces
    the whole line set.
    """

    description: str = UNSET
    entry_type: EntryType | str = UNSET
    transaction_date: date | None = UNSET
    period_id: str | None = UNSET
    status: JournalEntryStatus | str = UNSET
    lines: tuple[JournalLineInput, ...] = UNSET

    def __post_init__(self) -> None:
        if self.lines is not UNSET and not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET


# =============================================================================
# Dimensions and counterparties
# =============================================================================


@dataclass(frozen=True)
class DimensionInfo:
    id: str
    company_id: str
    name: str
    source: DimensionSource
    active: bool

    @classmethod
    def from_model(cls, model: Dimension) -> DimensionInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            name=model.name,
            source=DimensionSource(model.source),
            active=model.active,
        )


@dataclass(frozen=True)
class DimensionValueInfo:
    id: str
    company_id: str
    dimension_id: str
    dimension_name: str
    value: str
    active: bool
    description: str | None = None

    @classmethod
    def from_model(cls, model: DimensionValue) -> DimensionValueInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            dimension_id=model.dimension_id,
            dimension_name=model.dimension_name,
            value=model.value,
            active=model.active,
            description=model.description,
        )


@dataclass(frozen=True)
class LineTagInfo:
    id: str
    journal_line_id: str
    dimension_id: str
    dimension_value_id: str
    name: str
    value: str

    @classmethod
    def from_model(cls, model: JournalLineDimension) -> LineTagInfo:
        return cls(
            id=model.id,
            journal_line_id=model.journal_line_id,
            dimension_id=model.dimension_id,
            dimension_value_id=model.dimension_value_id,
            name=model.name,
            value=model.value,
        )


@dataclass(frozen=True)
class CounterpartySyncResult:
    """Row counts changed by one counterparty sync."""

    vendors_created: int = 0
    vendors_updated: int = 0
    customers_created: int = 0
    customers_updated: int = 0

    @property
    def changed(self) -> int:
        return (
            self.vendors_created
            + self.vendors_updated
            + self.customers_created
            + self.customers_updated
        )


# =============================================================================
# Tasks
# =============================================================================


@dataclass(frozen=True)
class TaskInfo:
    id: str
    company_id: str
    title: str
    description: str
    task_type: TaskType
    due_date: date
    status: TaskStatus
    created_by_id: str
    frequency: Frequency | None = None
    assigned_to_id: str | None = None
    reviewer_id: str | None = None
    category: str | None = None
    completed_on: date | None = None
    resolution: str | None = None

    @classmethod
    def from_model(cls, model: Task) -> TaskInfo:
        return cls(
            id=model.id,
            company_id=model.company_id,
            title=model.title,
            description=model.description,
            task_type=TaskType(model.task_type),
            due_date=model.due_date,
            status=TaskStatus(model.status),
            created_by_id=model.created_by_id,
            frequency=Frequency(model.frequency) if model.frequency is not None else None,
            assigned_to_id=model.assigned_to_id,
            reviewer_id=model.reviewer_id,
            category=model.category,
            completed_on=model.completed_on,
            resolution=model.resolution,
        )

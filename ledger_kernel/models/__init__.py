"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import FQN_SEPARATOR, Account
from ledger_kernel.models.dimensions import (
    CUSTOMER_DIMENSION,
    VENDOR_DIMENSION,
    Dimension,
    DimensionSource,
    DimensionValue,
    JournalLineDimension,
)
from ledger_kernel.models.fiscal_period import Period, PeriodStatus
from ledger_kernel.models.journal import (
    EntryType,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
)
from ledger_kernel.models.organization import (
    Company,
    Organization,
    Platform,
    User,
    UserStatus,
)
from ledger_kernel.models.party import Customer, Vendor
from ledger_kernel.models.task import Frequency, Task, TaskStatus, TaskType

__all__ = [
    "Account",
    "Company",
    "CUSTOMER_DIMENSION",
    "Customer",
    "Dimension",
    "DimensionSource",
    "DimensionValue",
    "EntryType",
    "FQN_SEPARATOR",
    "Frequency",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "JournalLineDimension",
    "Organization",
    "Period",
    "PeriodStatus",
    "Platform",
    "Task",
    "TaskStatus",
    "TaskType",
    "User",
    "UserStatus",
    "VENDOR_DIMENSION",
    "Vendor",
]

"""
Pure domain layer.

Enums, calendar arithmetic, currency codes and the frozen DTOs crossing the
kernel boundary.  Nothing here opens a session; time and identifiers are
injected through Clock and IdGenerator.
"""

from ledger_kernel.domain.calendar import BasePeriod, PeriodWindow, build_windows
from ledger_kernel.domain.chart import (
    AccountClassification,
    AccountSubType,
    AccountType,
    SpecialUseType,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    UNSET,
    AccountInfo,
    CompanyInfo,
    CounterpartySyncResult,
    DimensionInfo,
    DimensionValueInfo,
    EntryPatch,
    JournalEntryInfo,
    JournalLineInfo,
    JournalLineInput,
    LineTagInfo,
    OrganizationInfo,
    PeriodInfo,
    TaskInfo,
    UserInfo,
)
from ledger_kernel.domain.ids import IdGenerator, SequentialIdGenerator, UUIDGenerator

__all__ = [
    "AccountClassification",
    "AccountInfo",
    "AccountSubType",
    "AccountType",
    "BasePeriod",
    "Clock",
    "CompanyInfo",
    "CounterpartySyncResult",
    "DeterministicClock",
    "DimensionInfo",
    "DimensionValueInfo",
    "EntryPatch",
    "IdGenerator",
    "JournalEntryInfo",
    "JournalLineInfo",
    "JournalLineInput",
    "LineTagInfo",
    "OrganizationInfo",
    "PeriodInfo",
    "PeriodWindow",
    "SequentialIdGenerator",
    "SpecialUseType",
    "SystemClock",
    "TaskInfo",
    "UNSET",
    "UUIDGenerator",
    "UserInfo",
    "build_windows",
]

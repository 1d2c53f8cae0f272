"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.company_service import CompanyService
from ledger_kernel.services.dimension_service import DimensionService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.ledger_orchestrator import (
    CancellationToken,
    LedgerOrchestrator,
    RetryPolicy,
)
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.sequence_service import CompanySequence, SequenceService
from ledger_kernel.services.task_service import TaskService

__all__ = [
    "AccountService",
    "CancellationToken",
    "CompanySequence",
    "CompanyService",
    "DimensionService",
    "JournalService",
    "LedgerOrchestrator",
    "PeriodService",
    "RetryPolicy",
    "SequenceService",
    "TaskService",
]

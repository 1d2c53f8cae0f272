"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (tables created from the models)
- Deterministic clock and id generator
- Service fixtures bound to one session
- Tenant and chart-of-accounts builders
- Structured log capture

Sessions from the ``session`` fixture and the orchestrator share the single
connection of the in-memory database, so a test uses one or the other.
Orchestrator tests set up their data through the orchestrator itself.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from types import SimpleNamespace

import pytest

from ledger_kernel.db.engine import build_engine, create_tables, make_session_factory
from ledger_kernel.domain.calendar import BasePeriod
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import JournalLineInput
from ledger_kernel.domain.ids import SequentialIdGenerator
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.journal import EntryType
from ledger_kernel.models.organization import Platform, UserStatus
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.company_service import CompanyService
from ledger_kernel.services.dimension_service import DimensionService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.task_service import TaskService

# "Now" for most tests: mid-June 2024, a Saturday
TEST_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

CASH = ("Asset", "CurrentAsset", "Cash")
RECEIVABLES = ("Asset", "CurrentAsset", "AccountsReceivable")
EQUIPMENT = ("Asset", "FixedAsset", "Equipment")
SALES = ("Income", "OperatingRevenue", "SalesRevenue")
RENT = ("Expense", "IndirectExpense", "Rent")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.create_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with every ledger table."""
    eng = build_engine("sqlite:///:memory:")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """One session for the whole test; rolled back at teardown."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def ids():
    return SequentialIdGenerator("test")


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def company_service(session, clock, ids):
    return CompanyService(session, clock, ids)


@pytest.fixture
def account_service(session, clock, ids):
    return AccountService(session, clock, ids)


@pytest.fixture
def period_service(session, clock, ids):
    return PeriodService(session, clock, ids)


@pytest.fixture
def journal_service(session, clock, ids):
    return JournalService(session, clock, ids)


@pytest.fixture
def dimension_service(session, clock, ids):
    return DimensionService(session, clock, ids)


@pytest.fixture
def task_service(session, clock, ids):
    return TaskService(session, clock, ids)


@pytest.fixture
def orchestrator(session_factory, clock, ids):
    """Orchestrator whose backoff sleeps are recorded instead of slept."""
    sleeps: list[float] = []
    orch = LedgerOrchestrator(session_factory, clock=clock, id_generator=ids, sleep=sleeps.append)
    orch.recorded_sleeps = sleeps
    return orch


# =============================================================================
# Tenants and chart of accounts
# =============================================================================


@pytest.fixture
def organization(company_service):
    return company_service.create_organization("Acme Holdings")


@pytest.fixture
def company(company_service, organization):
    """Monthly, single-currency USD company."""
    return company_service.create_company(
        organization.id,
        "Acme Operating",
        Platform.AVISE,
        BasePeriod.MONTH,
        "USD",
    )


@pytest.fixture
def quarterly_company(company_service, organization):
    return company_service.create_company(
        organization.id,
        "Acme Quarterly",
        Platform.QBO,
        BasePeriod.QUARTER,
        "USD",
    )


@pytest.fixture
def user(company_service, company):
    return company_service.create_user(
        company.id, "Controller@Acme.test", "Casey Controller",
        is_admin=True, status=UserStatus.ACCEPTED,
    )


@pytest.fixture
def make_account(account_service, company):
    """Factory: make_account(CASH, "Cash", parent_id=None, company_id=None)."""

    def _make(kind, name, parent_id=None, company_id=None, **kwargs):
        classification, account_type, sub_type = kind
        return account_service.create_account(
            company_id or company.id,
            classification,
            account_type,
            sub_type,
            name,
            parent_id=parent_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def chart(make_account):
    """A small chart: cash, receivables, sales and rent."""
    return SimpleNamespace(
        cash=make_account(CASH, "Cash"),
        receivables=make_account(RECEIVABLES, "Receivables"),
        sales=make_account(SALES, "Sales"),
        rent=make_account(RENT, "Rent"),
    )


@pytest.fixture
def periods(period_service, company):
    """Monthly 2024 periods keyed by display name ("Jan 2024", ...)."""
    return {p.display_name: p for p in period_service.generate_periods(company.id, 2024, 2024)}


@pytest.fixture
def post_entry(journal_service, company, user):
    """Factory: post_entry([(account_id, amount), ...], period_id=..., **kwargs)."""

    def _post(legs, entry_type=EntryType.JOURNAL_ENTRY, **kwargs):
        lines = [JournalLineInput(amount=amount, account_id=account_id) for account_id, amount in legs]
        return journal_service.create_entry(company.id, entry_type, lines, user.id, **kwargs)

    return _post


# =============================================================================
# Orchestrator-built tenant
# =============================================================================


@pytest.fixture
def ledger(orchestrator):
    """
    Monthly USD company with a user, 2024 periods and two accounts, all
    created through the orchestrator.
    """
    org = orchestrator.create_organization("Orchestrated Org")
    company = orchestrator.create_company(org.id, "Orchestrated Co", "Avise", "Month", "USD")
    user = orchestrator.create_user(company.id, "ops@orchestrated.test", "Ops User")
    periods = {p.display_name: p for p in orchestrator.generate_periods(company.id, 2024, 2024)}
    cash = orchestrator.create_account(company.id, *CASH, "Cash")
    sales = orchestrator.create_account(company.id, *SALES, "Sales")
    return SimpleNamespace(
        organization=org, company=company, user=user, periods=periods, cash=cash, sales=sales
    )

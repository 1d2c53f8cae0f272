"""
Config -> Kernel bridges.

Functions that turn ``LedgerSettings`` into kernel objects.  They live here
(the producer) because the kernel never imports ledger_config.

Usage:
    from ledger_config import get_settings
    from ledger_config.bridges import build_orchestrator

    settings = get_settings()
    orchestrator = build_orchestrator(settings)
"""

from __future__ import annotations

import logging

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import build_engine, create_tables, make_session_factory
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.ids import IdGenerator
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator, RetryPolicy


def build_retry_policy(settings: LedgerSettings) -> RetryPolicy:
    return RetryPolicy(
        display_id_max_retries=settings.display_id_max_retries,
        storage_max_retries=settings.storage_max_retries,
        storage_backoff_seconds=settings.storage_backoff_seconds,
    )


def build_orchestrator(
    settings: LedgerSettings,
    clock: Clock | None = None,
    id_generator: IdGenerator | None = None,
    create_schema: bool = False,
) -> LedgerOrchestrator:
    """
    Configure logging, build an engine and return an orchestrator bound to it.

    With ``create_schema`` the ledger tables are created if missing.
    """
    configure_logging(level=getattr(logging, settings.log_level))
    engine = build_engine(
        settings.database_url,
        echo=settings.echo,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )
    if create_schema:
        create_tables(engine)
    return LedgerOrchestrator(
        make_session_factory(engine),
        clock=clock,
        id_generator=id_generator,
        retry_policy=build_retry_policy(settings),
        target_close_offset_days=settings.target_close_offset_days,
    )

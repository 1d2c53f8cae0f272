"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (LedgerOrchestrator, session_scope, or test harness) owns
      commit/rollback.
    - Time and identifiers come from the injected Clock and IdGenerator.

Failure modes:
    - NotFoundError from ``_require`` for a missing row.
    - ConflictError from ``_flush`` when a named unique constraint is
      violated.  The session must then be rolled back by the caller.
"""

from abc import ABC
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.db.errors import violated_constraint
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.ids import IdGenerator, UUIDGenerator
from ledger_kernel.exceptions import ConflictError, NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide aggregate queries -- those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._ids = id_generator or UUIDGenerator()

    def _require(
        self,
        model: type[ModelType],
        entity_id: str,
        for_update: bool = False,
    ) -> ModelType:
        """Load a row by primary key or raise NotFoundError."""
        if for_update:
            row = self.session.execute(
                select(model)
                .where(model.id == entity_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        else:
            row = self.session.get(model, entity_id)
        if row is None:
            raise NotFoundError(model.__name__, entity_id)
        return row

    def _flush(self, what: str) -> None:
        """Flush pending changes, translating unique violations to ConflictError."""
        try:
            self.session.flush()
        except IntegrityError as exc:
            constraint = violated_constraint(exc)
            raise ConflictError(
                f"Cannot save {what}: uniqueness rule {constraint or 'unknown'} violated",
                constraint=constraint,
            ) from exc

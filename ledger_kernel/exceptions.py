"""
Typed exception hierarchy for the ledger kernel.

Every failure the kernel reports is a subclass of ``LedgerError`` carrying a
machine-readable ``code`` class attribute and its context as plain
attributes, so callers (the REST layer, tests, log formatters) can act on the
type and the data rather than on message text.

    LedgerError (base)
    |
    +-- ValidationError            VALIDATION_FAILED
    +-- NotFoundError              NOT_FOUND
    +-- ConflictError              CONFLICT
    +-- UnbalancedEntryError       UNBALANCED_ENTRY
    +-- InactiveAccountError       ACCOUNT_INACTIVE
    +-- InvalidTransitionError     INVALID_TRANSITION
    +-- CycleDetectedError         CYCLE_DETECTED
    +-- DuplicateDimensionError    DUPLICATE_DIMENSION
    +-- TrialBalanceMismatchError  TRIAL_BALANCE_MISMATCH
    +-- StorageUnavailableError    STORAGE_UNAVAILABLE
    +-- OperationCancelledError    OPERATION_CANCELLED

Retry policy by kind:
    - ConflictError raised for a display-id race is retried internally by
      the orchestrator a bounded number of times before it surfaces.
    - Transient storage errors are retried with backoff and surface as
      StorageUnavailableError once attempts are exhausted.
    - Everything else is a logical problem and is surfaced verbatim.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


class ValidationError(LedgerError):
    """Input is malformed or semantically illegal."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(LedgerError):
    """A referenced record does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConflictError(LedgerError):
    """A uniqueness rule would be violated."""

    code: str = "CONFLICT"

    def __init__(self, message: str, constraint: str | None = None):
        self.constraint = constraint
        super().__init__(message)


class UnbalancedEntryError(LedgerError):
    """The signed line amounts of a journal entry do not sum to zero."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, discrepancy: int, entry_id: str | None = None):
        self.discrepancy = discrepancy
        self.entry_id = entry_id
        super().__init__(
            f"Unbalanced entry: line amounts sum to {discrepancy}, expected 0"
        )


class InactiveAccountError(LedgerError):
    """A present or future dated line targets an inactive account."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str, transaction_date: str | None = None):
        self.account_id = account_id
        self.transaction_date = transaction_date
        if transaction_date is None:
            message = f"Account {account_id} is inactive"
        else:
            message = (
                f"Account {account_id} is inactive and cannot be used for a "
                f"transaction dated {transaction_date}"
            )
        super().__init__(message)


class InvalidTransitionError(LedgerError):
    """A status change is not permitted from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity: str, entity_id: str, from_status: str, to_status: str):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"{entity} {entity_id} cannot transition from {from_status} to {to_status}"
        )


class CycleDetectedError(LedgerError):
    """Walking an account's parent chain revisited an account."""

    code: str = "CYCLE_DETECTED"

    def __init__(self, account_id: str, chain: list[str]):
        self.account_id = account_id
        self.chain = chain
        super().__init__(
            f"Cycle detected in parent chain of account {account_id}: "
            + " -> ".join(chain)
        )


class DuplicateDimensionError(LedgerError):
    """A line already carries a different value for the same dimension."""

    code: str = "DUPLICATE_DIMENSION"

    def __init__(
        self,
        journal_line_id: str,
        dimension_id: str,
        existing_value_id: str,
        requested_value_id: str,
    ):
        self.journal_line_id = journal_line_id
        self.dimension_id = dimension_id
        self.existing_value_id = existing_value_id
        self.requested_value_id = requested_value_id
        super().__init__(
            f"Line {journal_line_id} is already tagged with value "
            f"{existing_value_id} for dimension {dimension_id}"
        )


class TrialBalanceMismatchError(LedgerError):
    """A period's trial balance does not net to zero."""

    code: str = "TRIAL_BALANCE_MISMATCH"

    def __init__(self, company_id: str, period_id: str, total: int):
        self.company_id = company_id
        self.period_id = period_id
        self.total = total
        super().__init__(
            f"Trial balance for period {period_id} of company {company_id} "
            f"totals {total}, expected 0"
        )


class StorageUnavailableError(LedgerError):
    """Transient storage failures persisted after all retries."""

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, operation: str, attempts: int, reason: str):
        self.operation = operation
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Storage unavailable for {operation} after {attempts} attempt(s): {reason}"
        )


class OperationCancelledError(LedgerError):
    """The caller cancelled the operation; its transaction was rolled back."""

    code: str = "OPERATION_CANCELLED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Operation {operation} was cancelled")

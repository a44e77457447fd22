"""Ledger error taxonomy.

Every failure the ledger engine reports to its callers is one of these.
The API layer maps each kind to an HTTP status (see ``app.main``).
"""


class LedgerError(Exception):
    """Base class for ledger failures."""

    kind = "ledger_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LedgerValidationError(LedgerError):
    """Caller input violates a business rule. Raised before any write."""

    kind = "validation_error"


class NotFoundError(LedgerError):
    """Referenced order or payment does not exist at transaction time."""

    kind = "not_found"


class PreconditionFailedError(LedgerError):
    """A stateful precondition does not hold (e.g. deleting a paid order)."""

    kind = "precondition_failed"


class TransientConflictError(LedgerError):
    """Retry budget exhausted under contention. Safe to retry the whole call."""

    kind = "transient_conflict"


class StorageFailureError(LedgerError):
    """Underlying store unavailable or failed; nothing was committed."""

    kind = "storage_failure"

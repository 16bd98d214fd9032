"""
Error taxonomy for the ledger.

Services raise one of three terminal errors and backends raise
StorageError. None of them is retried internally; the caller corrects
the input (or its view of the world) and resubmits.
"""


class LedgerError(Exception):
    """Base exception for all ledger operations."""
    pass


class NotFoundError(LedgerError, LookupError):
    """Referenced entity does not exist in the caller's accessible scope."""
    pass


class ValidationError(LedgerError, ValueError):
    """Input violates a ledger invariant."""
    pass


class AuthorizationError(LedgerError, PermissionError):
    """Resolved entity belongs to a different owner than the caller."""
    pass


class StorageError(LedgerError):
    """Storage backend could not complete a read or write."""
    pass

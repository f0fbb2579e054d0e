# ledger/errors.py
"""
Error taxonomy for ledger operations.

Every error carries one human-readable message; the HTTP layer maps each
class to a status code in ledger.main.
"""


class LedgerError(Exception):
    """Base class for all ledger failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed or missing input (empty item list, zero-sum allocation...)."""


class NotFoundError(LedgerError):
    """A referenced customer, order, invoice or payment does not exist."""


class ConflictError(LedgerError):
    """A write was refused because of the current state of related rows."""


class StoreError(LedgerError):
    """The backing database failed to read or write."""

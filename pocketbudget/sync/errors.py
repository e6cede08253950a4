"""Exceptions raised by synchronizer mutations."""

from typing import Optional

from pocketbudget.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class AuthRequiredError(LedgerError):
    """A mutation was attempted with no signed-in user. Nothing was written."""
    pass


class LedgerValidationError(LedgerError):
    """Input was rejected before any remote call."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class RemoteWriteError(LedgerError):
    """
    A store call failed.

    The operation is treated as not applied; local mirrors change only
    when a later snapshot says so.
    """

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"Failed to {operation}: {cause}")
        self.operation = operation
        self.cause = cause

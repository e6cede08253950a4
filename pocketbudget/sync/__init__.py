"""Ledger synchronization package."""

from pocketbudget.sync.errors import (
    AuthRequiredError,
    LedgerError,
    LedgerValidationError,
    RemoteWriteError,
)
from pocketbudget.sync.session import (
    LedgerPaths,
    LedgerSession,
    SessionState,
    records_from_snapshot,
)
from pocketbudget.sync.synchronizer import (
    CategoryCascade,
    SummaryRepair,
    Synchronizer,
)

__all__ = [
    "AuthRequiredError",
    "CategoryCascade",
    "LedgerError",
    "LedgerPaths",
    "LedgerSession",
    "LedgerValidationError",
    "RemoteWriteError",
    "SessionState",
    "SummaryRepair",
    "Synchronizer",
    "records_from_snapshot",
]

"""
Data Models Package

This package contains all Pydantic models used in Pocket Budget.
Every record read from or written to the tree store conforms to these schemas.
"""

from pocketbudget.models.ledger import (
    BudgetGoal,
    BudgetGoalInput,
    BudgetPeriod,
    Category,
    CategoryIcon,
    CategoryInput,
    CategoryKind,
    ErrorKind,
    OperationResult,
    Summary,
    Transaction,
    TransactionInput,
    TransactionType,
    ValidationIssue,
)
from pocketbudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Notification,
    NotificationVariant,
)
from pocketbudget.models.defaults import DEFAULT_CATEGORIES

__all__ = [
    # Ledger models
    "BudgetGoal",
    "BudgetGoalInput",
    "BudgetPeriod",
    "Category",
    "CategoryIcon",
    "CategoryInput",
    "CategoryKind",
    "ErrorKind",
    "OperationResult",
    "Summary",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "ValidationIssue",
    "DEFAULT_CATEGORIES",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "Notification",
    "NotificationVariant",
]

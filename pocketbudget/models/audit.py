"""
Audit and Notification Models

DESIGN DECISION: Every mutation of a user's ledger produces an audit
event, whether it succeeded or failed. Failures that the user should
see additionally produce a Notification, which the UI renders as a
toast.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each mutation protocol of the synchronizer has its own event type.
    """
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_SYNCED = "session_synced"
    SESSION_STOPPED = "session_stopped"
    CATEGORIES_SEEDED = "categories_seeded"
    SUMMARY_INITIALIZED = "summary_initialized"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Budget goals
    BUDGET_GOAL_ADDED = "budget_goal_added"
    BUDGET_GOAL_UPDATED = "budget_goal_updated"
    BUDGET_GOAL_DELETED = "budget_goal_deleted"
    BUDGETS_RECALCULATED = "budgets_recalculated"

    # Consistency
    SUMMARY_DRIFT_DETECTED = "summary_drift_detected"
    SUMMARY_REPAIRED = "summary_repaired"

    # Failures
    AUTH_REQUIRED = "auth_required"
    VALIDATION_FAILED = "validation_failed"
    REMOTE_WRITE_FAILED = "remote_write_failed"
    SUBSCRIPTION_FAILED = "subscription_failed"

    # Payments
    PAYMENT_INTENT_CREATED = "payment_intent_created"
    PAYMENT_INTENT_FAILED = "payment_intent_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose ledger, and which record
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the ledger the event relates to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category', 'budget_goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store key of the entity this event relates to"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A short user-facing message (rendered as a toast by the UI)."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = Field(default_factory=_utcnow)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(user_id, tx_id, "expense", "75.50")
        event = AuditEventBuilder.remote_write_failed(user_id, "add transaction", str(e))
    """

    @staticmethod
    def session_started(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            user_id=user_id,
            description="Ledger session started",
        )

    @staticmethod
    def session_synced(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_SYNCED,
            user_id=user_id,
            description="Summary snapshot received, session synced",
        )

    @staticmethod
    def session_stopped(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STOPPED,
            user_id=user_id,
            description="Ledger session stopped",
        )

    @staticmethod
    def categories_seeded(user_id: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_SEEDED,
            user_id=user_id,
            entity_type="category",
            description=f"Seeded {count} default categories",
            details={"count": count},
        )

    @staticmethod
    def summary_initialized(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_INITIALIZED,
            user_id=user_id,
            entity_type="summary",
            description="Zeroed summary written",
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        user_id: str,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        action = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} {action}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def budgets_recalculated(user_id: str, changed: dict[str, str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_RECALCULATED,
            user_id=user_id,
            entity_type="budget_goal",
            description=f"Recalculated spent amount for {len(changed)} budget goal(s)",
            details={"spent_amounts": changed},
        )

    @staticmethod
    def summary_drift_detected(user_id: str, stored: dict, expected: dict) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_DRIFT_DETECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="summary",
            description="Stored summary disagrees with transactions",
            details={"stored": stored, "expected": expected},
        )

    @staticmethod
    def summary_repaired(user_id: str, before: dict, after: dict) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_REPAIRED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="summary",
            description="Summary recomputed from transactions",
            details={"before": before, "after": after},
        )

    @staticmethod
    def auth_required(operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_REQUIRED,
            severity=AuditSeverity.WARNING,
            description=f"{operation} attempted without a signed-in user",
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: Optional[str],
        operation: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            description=f"Validation failed for {operation}",
            details={"operation": operation, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def remote_write_failed(
        user_id: Optional[str],
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Remote store call failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def subscription_failed(
        user_id: Optional[str],
        path: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Subscription error on {path}",
            error_message=error_message,
            details={"path": path},
        )

    @staticmethod
    def payment_intent(amount: int, currency: str, error_message: Optional[str] = None) -> AuditEvent:
        if error_message:
            return AuditEvent(
                event_type=AuditEventType.PAYMENT_INTENT_FAILED,
                severity=AuditSeverity.ERROR,
                entity_type="payment_intent",
                description="Payment intent could not be created",
                error_message=error_message,
                details={"amount": amount, "currency": currency},
            )
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_INTENT_CREATED,
            entity_type="payment_intent",
            description="Payment intent created",
            details={"amount": amount, "currency": currency},
            is_user_action=True,
        )

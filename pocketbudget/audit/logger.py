"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged, successful or not.
This provides:
1. Traceability of how the summary reached its current value
2. Debugging capability for drift between summary and transactions
3. A record of every failed remote write

The audit logger:
- Writes structured JSON through structlog
- Gracefully handles failures (doesn't crash the session if logging fails)
- Tags every event with the owning user id
"""

from typing import Optional

import structlog

from pocketbudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Every event goes to the structured local log. The last max_events
    events are also kept in memory, oldest first, so a session can show
    its own history.
    """

    def __init__(self, max_events: int = 500):
        self._logger = structlog.get_logger("pocketbudget.audit")
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def events_of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [event for event in self._events if event.event_type == event_type]

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the local log write failed; never raises.
        """
        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]

        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
        return True

    def log_entity_changed(
        self,
        event_type: AuditEventType,
        user_id: str,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log a successful add/update/delete."""
        self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        ))

    def log_auth_required(self, operation: str) -> None:
        self.log(AuditEventBuilder.auth_required(operation))

    def log_validation_failed(
        self,
        user_id: Optional[str],
        operation: str,
        issues: list[dict],
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            operation=operation,
            issues=issues,
        ))

    def log_remote_write_failed(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.remote_write_failed(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
        ))

    def log_subscription_failed(
        self,
        user_id: Optional[str],
        path: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.subscription_failed(
            user_id=user_id,
            path=path,
            error_message=error_message,
        ))

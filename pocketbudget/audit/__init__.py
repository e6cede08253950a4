"""Audit logging and notification package."""

from pocketbudget.audit.logger import AuditLogger
from pocketbudget.audit.notifier import Notifier

__all__ = ["AuditLogger", "Notifier"]

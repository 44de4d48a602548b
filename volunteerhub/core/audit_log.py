"""
Audit logging for coordination events (memberships, approvals, ratings).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, asdict
import json
import logging


class AuditEventType(Enum):
    """Types of coordination events to audit."""
    # Account events
    ACCOUNT_REGISTERED = "account_registered"
    ACCOUNT_ACTIVATED = "account_activated"
    ACCOUNT_DEACTIVATED = "account_deactivated"

    # Membership events
    MEMBERSHIP_JOINED = "membership_joined"
    MEMBERSHIP_LEFT = "membership_left"
    LEADER_ASSIGNED = "leader_assigned"
    LEADER_CLEARED = "leader_cleared"

    # Activity events
    ACTIVITY_LOGGED = "activity_logged"
    ACTIVITY_APPROVED = "activity_approved"
    ACTIVITY_REJECTED = "activity_rejected"
    POINTS_RECONCILED = "points_reconciled"

    # Feedback events
    RATING_CREATED = "rating_created"

    # Security events
    PERMISSION_DENIED = "permission_denied"
    RULE_VIOLATION = "rule_violation"


class AuditEventSeverity(Enum):
    """Severity levels for audit events."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class AuditEvent:
    """Represents a coordination audit event."""
    event_type: AuditEventType
    severity: AuditEventSeverity
    timestamp: datetime
    user_id: Optional[int] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    success: bool = True
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging."""
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["severity"] = self.severity.value
        data["timestamp"] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class AuditLogger:
    """
    Audit logger for coordination events.
    Events are kept in memory and mirrored to the standard logger.
    """

    def __init__(self, app_name: str = "volunteerhub", max_events: int = 10000):
        self.app_name = app_name
        self.max_events = max_events
        self.logger = logging.getLogger(f"{app_name}.audit")
        self._events: List[AuditEvent] = []

    def log_event(self, event: AuditEvent) -> None:
        """
        Log an audit event.

        Args:
            event: The audit event to log
        """
        self._events.append(event)
        if len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]

        log_level = {
            AuditEventSeverity.INFO: logging.INFO,
            AuditEventSeverity.WARNING: logging.WARNING,
            AuditEventSeverity.ERROR: logging.ERROR,
            AuditEventSeverity.CRITICAL: logging.CRITICAL,
        }.get(event.severity, logging.INFO)

        self.logger.log(log_level, event.to_json())

    def log_violation(
        self,
        operation: str,
        kind: str,
        message: str,
        user_id: Optional[int] = None,
    ) -> None:
        """Log a rejected request."""
        event_type = (
            AuditEventType.PERMISSION_DENIED
            if kind == "unauthorized"
            else AuditEventType.RULE_VIOLATION
        )
        self.log_event(
            AuditEvent(
                event_type=event_type,
                severity=AuditEventSeverity.WARNING,
                timestamp=datetime.now(timezone.utc),
                user_id=user_id,
                details={"operation": operation, "kind": kind},
                success=False,
                error_message=message,
            )
        )

    def get_events(
        self,
        user_id: Optional[int] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        limit: int = 100
    ) -> List[AuditEvent]:
        """
        Retrieve audit events with filters.

        Args:
            user_id: Filter by user ID
            event_type: Filter by event type
            start_time: Filter events after this time
            limit: Maximum number of events to return

        Returns:
            List of audit events
        """
        filtered_events = self._events

        if user_id is not None:
            filtered_events = [e for e in filtered_events if e.user_id == user_id]

        if event_type is not None:
            filtered_events = [e for e in filtered_events if e.event_type == event_type]

        if start_time is not None:
            filtered_events = [e for e in filtered_events if e.timestamp >= start_time]

        return filtered_events[-limit:]

    def clear(self) -> None:
        self._events.clear()


# ============================================================
# TRANSACTION-SCOPED EVENTS
# ============================================================

# Events raised inside a transaction are parked on the session and only
# written once the coordinator has committed.
PENDING_EVENTS_KEY = "pending_audit_events"


def queue_event(
    db,
    event_type: AuditEventType,
    user_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Park an event on the session until commit."""
    db.info.setdefault(PENDING_EVENTS_KEY, []).append(
        AuditEvent(
            event_type=event_type,
            severity=AuditEventSeverity.INFO,
            timestamp=datetime.now(timezone.utc),
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )
    )


def flush_queued_events(db, audit_logger: "AuditLogger") -> int:
    events = db.info.pop(PENDING_EVENTS_KEY, [])
    for event in events:
        audit_logger.log_event(event)
    return len(events)


def discard_queued_events(db) -> None:
    db.info.pop(PENDING_EVENTS_KEY, None)


# Global audit logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get or create the audit logger instance."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger

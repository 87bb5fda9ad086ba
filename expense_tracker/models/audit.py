"""
Audit Models for Expense Tracker

Every write to the ledger emits an audit event. Events are the only
externally observable trail of what happened:
1. Who registered, and under which name
2. Which expense was recorded, with its id and label
3. Which off-ledger settlement was notarized, between whom, for how much

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_tracker.models.ledger import Expense, Person, Settlement, utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Registry
    PERSON_REGISTERED = "person_registered"
    PERSON_UPDATED = "person_updated"

    # Ledger
    EXPENSE_ADDED = "expense_added"

    # Settlement
    DEBT_SETTLED = "debt_settled"

    # Rejections and failures
    OPERATION_REJECTED = "operation_rejected"
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


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
    Every committed write creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'person', 'expense', 'settlement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Identity, expense id or settlement id the event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one caller request)"
    )

    description: str = Field(
        ...,
        description="Human-readable description of what happened"
    )

    # Event payload (identity + name, expense id + label, from/to/amount)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """JSON-safe dict for structlog: UUIDs, enums and datetimes become strings."""
        return self.model_dump(mode="json")

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_code, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.person_registered(person, correlation_id)
        event = AuditEventBuilder.expense_added(expense, correlation_id)
    """

    @staticmethod
    def person_registered(
        person: Person,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_REGISTERED,
            entity_type="person",
            entity_id=person.identity,
            correlation_id=correlation_id,
            description=f"Person registered: {person.name}",
            details={
                "identity": person.identity,
                "name": person.name,
            },
        )

    @staticmethod
    def person_updated(
        person: Person,
        previous_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_UPDATED,
            entity_type="person",
            entity_id=person.identity,
            correlation_id=correlation_id,
            description=f"Person renamed: {previous_name} -> {person.name}",
            details={
                "identity": person.identity,
                "name": person.name,
                "previous_name": previous_name,
            },
        )

    @staticmethod
    def expense_added(
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=str(expense.id),
            correlation_id=correlation_id,
            description=f"Expense #{expense.id} added: {expense.label}",
            details={
                "expense_id": expense.id,
                "label": expense.label,
                "participant_count": len(expense.participants),
            },
        )

    @staticmethod
    def debt_settled(
        settlement: Settlement,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_SETTLED,
            entity_type="settlement",
            entity_id=str(settlement.settlement_id),
            correlation_id=correlation_id,
            description=(
                f"Settlement notarized: {settlement.from_identity} -> "
                f"{settlement.to_identity} ({settlement.amount})"
            ),
            details={
                "from": settlement.from_identity,
                "to": settlement.to_identity,
                "amount": str(settlement.amount),
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        reason: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {reason}",
            details={"operation": operation, **(details or {})},
            error_code=reason,
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

"""
Audit Logger

DESIGN DECISION: Every committed write is announced here.
The audit trail is the outward notification channel of the ledger:
PersonRegistered, PersonUpdated, ExpenseAdded and DebtSettled all
flow through this logger.

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (a lost event never rolls back a write)
- Supports correlation IDs to trace related events
"""

from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.models.ledger import Expense, Person, Settlement
from expense_tracker.services.storage import AuditStorageInterface


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


# structlog method used for each audit severity
_LOG_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Announces ledger events.

    Every event goes to the structlog stream first and is then appended
    to audit storage, when one is configured. Persisting is best-effort:
    the write that produced the event has already been committed.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted. None keeps them in the
                    structlog stream only.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit one event.

        Returns False only when storage rejected or failed the write.
        """
        emit = getattr(self._logger, _LOG_METHODS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_persist_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    async def _build_and_log(
        self,
        build: Callable[..., AuditEvent],
        **fields: Any,
    ) -> bool:
        """Build an event and log it. A build failure is logged, never raised."""
        try:
            event = build(**fields)
        except Exception as e:
            self._logger.error(
                "audit_event_build_failed",
                builder=build.__name__,
                error=str(e),
            )
            return False
        return await self.log(event)

    async def log_person_registered(
        self,
        person: Person,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log PersonRegistered."""
        await self._build_and_log(
            AuditEventBuilder.person_registered,
            person=person,
            correlation_id=correlation_id,
        )

    async def log_person_updated(
        self,
        person: Person,
        previous_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log PersonUpdated."""
        await self._build_and_log(
            AuditEventBuilder.person_updated,
            person=person,
            previous_name=previous_name,
            correlation_id=correlation_id,
        )

    async def log_expense_added(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log ExpenseAdded."""
        await self._build_and_log(
            AuditEventBuilder.expense_added,
            expense=expense,
            correlation_id=correlation_id,
        )

    async def log_debt_settled(
        self,
        settlement: Settlement,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log DebtSettled."""
        await self._build_and_log(
            AuditEventBuilder.debt_settled,
            settlement=settlement,
            correlation_id=correlation_id,
        )

    async def log_operation_rejected(
        self,
        operation: str,
        reason: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write rejected by validation."""
        await self._build_and_log(
            AuditEventBuilder.operation_rejected,
            operation=operation,
            reason=reason,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage backend failure."""
        await self._build_and_log(
            AuditEventBuilder.storage_error,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self._build_and_log(
            AuditEventBuilder.system_error,
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller request and pass it
    through every write the request makes.
    """
    return uuid4()

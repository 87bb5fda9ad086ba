"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in memory for tests and short-lived sessions
2. Persist to Google Sheets (or a real database later)
3. Keep ledger rules decoupled from storage implementation

Storage does no validation and no id assignment - that belongs to the
ledger components, which call storage only after a write is accepted.
Each write method must commit all of its data or none of it.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent, AuditEventType
from expense_tracker.models.ledger import Expense, Identity, Person


class PersonStorageInterface(ABC):
    """
    Abstract interface for the identity -> Person table.

    Implementations must remember insertion order: ``list_identities``
    returns identities in first-registration order.
    """

    @abstractmethod
    async def add_person(self, person: Person) -> bool:
        """
        Store a newly registered person.

        Raises:
            DuplicateError: If the identity is already stored
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_person(self, person: Person) -> bool:
        """
        Overwrite a stored person (name change).

        Raises:
            NotFoundError: If the identity is not stored
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_person(self, identity: Identity) -> Optional[Person]:
        """Return the person for an identity, or None."""
        pass

    @abstractmethod
    async def list_identities(self) -> list[Identity]:
        """Return all identities in registration order."""
        pass

    @abstractmethod
    async def count_people(self) -> int:
        pass


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for the append-only expense table.

    Expenses are never updated or deleted.
    """

    @abstractmethod
    async def append_expense(self, expense: Expense) -> bool:
        """
        Append an expense record.

        The record's id must equal the current count.

        Raises:
            DuplicateError: If the id is not the next one in sequence
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Return the expense with this id, or None."""
        pass

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """Return every expense in id order."""
        pass

    @abstractmethod
    async def count_expenses(self) -> int:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_type(
        self,
        event_type: AuditEventType,
    ) -> list[AuditEvent]:
        """Get all events of one type, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

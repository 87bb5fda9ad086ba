"""
In-Memory Storage Implementation

The default backend. Each write is a single dict/list operation, so a
reader never sees a half-written person or expense.
"""

from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent, AuditEventType
from expense_tracker.models.ledger import Expense, Identity, Person
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    PersonStorageInterface,
)


class InMemoryPersonStorage(PersonStorageInterface):
    """Identity -> Person map plus a separate registration-order index."""

    def __init__(self):
        self._people: dict[Identity, Person] = {}
        self._order: list[Identity] = []

    async def add_person(self, person: Person) -> bool:
        if person.identity in self._people:
            raise DuplicateError(f"Person already stored: {person.identity}")
        self._people[person.identity] = person.model_copy()
        self._order.append(person.identity)
        return True

    async def update_person(self, person: Person) -> bool:
        if person.identity not in self._people:
            raise NotFoundError(f"Person not found: {person.identity}")
        self._people[person.identity] = person.model_copy()
        return True

    async def get_person(self, identity: Identity) -> Optional[Person]:
        person = self._people.get(identity)
        return person.model_copy() if person else None

    async def list_identities(self) -> list[Identity]:
        return list(self._order)

    async def count_people(self) -> int:
        return len(self._order)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """
    Append-only list of frozen expense records; list index == expense id.

    Reads hand out deep copies, since the amount maps are plain dicts.
    """

    def __init__(self):
        self._expenses: list[Expense] = []

    async def append_expense(self, expense: Expense) -> bool:
        if expense.id != len(self._expenses):
            raise DuplicateError(
                f"Expense id {expense.id} out of sequence "
                f"(next id is {len(self._expenses)})"
            )
        self._expenses.append(expense.model_copy(deep=True))
        return True

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        if 0 <= expense_id < len(self._expenses):
            return self._expenses[expense_id].model_copy(deep=True)
        return None

    async def list_expenses(self) -> list[Expense]:
        return [e.model_copy(deep=True) for e in self._expenses]

    async def count_expenses(self) -> int:
        return len(self._expenses)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-process audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_type(
        self,
        event_type: AuditEventType,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.event_type == event_type]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

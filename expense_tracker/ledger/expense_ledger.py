"""
Expense Ledger

Append-only store of expense records. Each expense lists its
participants in the order supplied, with what each of them paid and
what each of them owes.

GUARANTEES:
- Ids are dense and 0-based: the n-th committed expense has id n-1
- A committed expense never changes and is never removed
- add_expense either commits a complete record or nothing
- Paid/owed for an identity that is not a participant read as zero
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import ExpenseNotFoundError, NoExpensesError
from expense_tracker.models.ledger import Expense, ExpenseInfo, Identity, utc_now
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
)
from expense_tracker.validation import LedgerValidator, to_amount


logger = structlog.get_logger(__name__)


class ExpenseLedger:
    """
    The append-only expense log.

    Participants are not required to be registered; the ledger only
    checks that none of them is the null identity.
    """

    def __init__(
        self,
        storage: Optional[ExpenseStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        write_lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage or InMemoryExpenseStorage()
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._write_lock = write_lock or asyncio.Lock()
        self._clock = clock

    async def add_expense(
        self,
        label: str,
        participants: Sequence[Identity],
        paid: Sequence[Any],
        owed: Sequence[Any],
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Record an expense and return its id.

        paid[i] and owed[i] belong to participants[i]. If an identity
        appears more than once, its last paid/owed entry is kept.

        Raises:
            InvalidInputError: Empty label or participants, length
                mismatch, null participant, invalid or negative amount
        """
        participants = list(participants)
        paid = list(paid)
        owed = list(owed)

        result = self._validator.validate_expense(label, participants, paid, owed)
        self._validator.raise_for_errors(result)
        for issue in result.warnings:
            logger.warning(
                "expense_validation_warning",
                field=issue.field,
                issue_type=issue.issue_type,
                message=issue.message,
            )

        amounts_paid: dict[Identity, Decimal] = {}
        amounts_owed: dict[Identity, Decimal] = {}
        for identity, paid_value, owed_value in zip(participants, paid, owed):
            amounts_paid[identity] = to_amount(paid_value)
            amounts_owed[identity] = to_amount(owed_value)

        async with self._write_lock:
            expense = Expense(
                id=await self._storage.count_expenses(),
                label=label.strip(),
                created_at=self._clock(),
                participants=tuple(participants),
                amounts_paid=amounts_paid,
                amounts_owed=amounts_owed,
            )
            await self._storage.append_expense(expense)

            if self._audit_logger:
                await self._audit_logger.log_expense_added(expense, correlation_id)

        return expense.id

    async def get_expense_record(self, expense_id: int) -> Expense:
        """
        Full expense record.

        Raises:
            ExpenseNotFoundError: Id out of range
        """
        expense = None
        if isinstance(expense_id, int) and expense_id >= 0:
            expense = await self._storage.get_expense(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(f"No expense with id {expense_id}")
        return expense

    async def get_expense(self, expense_id: int) -> ExpenseInfo:
        """(id, label, timestamp) of an expense."""
        return (await self.get_expense_record(expense_id)).info()

    async def get_participants(self, expense_id: int) -> list[Identity]:
        """Participants in supplied order, duplicates included."""
        return list((await self.get_expense_record(expense_id)).participants)

    async def get_amount_paid(self, expense_id: int, identity: Identity) -> Decimal:
        return (await self.get_expense_record(expense_id)).amount_paid(identity)

    async def get_amount_owed(self, expense_id: int, identity: Identity) -> Decimal:
        return (await self.get_expense_record(expense_id)).amount_owed(identity)

    async def list_expenses(self) -> list[Expense]:
        """Every expense, in id order."""
        return await self._storage.list_expenses()

    async def count(self) -> int:
        return await self._storage.count_expenses()

    async def last_label(self) -> str:
        """
        Label of the most recent expense.

        Raises:
            NoExpensesError: Ledger is empty
        """
        count = await self._storage.count_expenses()
        if count == 0:
            raise NoExpensesError("No expenses recorded yet")
        return (await self.get_expense_record(count - 1)).label

"""
Main Orchestrator for Expense Tracker

This module ties the components together behind one facade and defines
the operation surface callers use:
1. Identity (register, update_name, get_name, get_profile, ...)
2. Expenses (add_expense, get_expense_info, get_participants, ...)
3. Balances (net_balance, balance_sheet)
4. Settlement (settle)

DESIGN DECISION: The orchestrator enforces the boundaries:
- All writes share ONE lock, so every write is applied in a single
  global order and expense ids stay gapless
- Caller-bound operations take the caller's identity explicitly
- Every rejected write is audited before the error reaches the caller
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Optional, Sequence
from uuid import UUID

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import LedgerSettings, get_settings
from expense_tracker.errors import LedgerError
from expense_tracker.ledger import ExpenseLedger
from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import (
    Expense,
    ExpenseInfo,
    Identity,
    Person,
    PersonBalance,
    PersonProfile,
    Settlement,
    utc_now,
)
from expense_tracker.queries import BalanceCalculator
from expense_tracker.registry import IdentityRegistry
from expense_tracker.services.storage import (
    AuditStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsPersonStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryPersonStorage,
    PersonStorageInterface,
    StorageError,
)
from expense_tracker.settlement import SettlementNotifier
from expense_tracker.validation import LedgerValidator


class ExpenseTracker:
    """
    Facade over IdentityRegistry, ExpenseLedger, BalanceCalculator and
    SettlementNotifier.

    All four components share one validator, one audit logger and one
    write lock.
    """

    def __init__(
        self,
        person_storage: Optional[PersonStorageInterface] = None,
        expense_storage: Optional[ExpenseStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._validator = LedgerValidator(settings)
        self._audit_logger = audit_logger or AuditLogger(InMemoryAuditStorage())
        write_lock = asyncio.Lock()

        self.registry = IdentityRegistry(
            storage=person_storage or InMemoryPersonStorage(),
            audit_logger=self._audit_logger,
            validator=self._validator,
            write_lock=write_lock,
            clock=clock,
        )
        self.ledger = ExpenseLedger(
            storage=expense_storage or InMemoryExpenseStorage(),
            audit_logger=self._audit_logger,
            validator=self._validator,
            write_lock=write_lock,
            clock=clock,
        )
        self.balances = BalanceCalculator(self.ledger, self.registry)
        self.notifier = SettlementNotifier(
            audit_logger=self._audit_logger,
            validator=self._validator,
            write_lock=write_lock,
            clock=clock,
        )

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @asynccontextmanager
    async def _audited_write(
        self,
        operation: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AsyncIterator[None]:
        try:
            yield
        except LedgerError as e:
            await self._audit_logger.log_operation_rejected(
                operation=operation,
                reason=e.reason,
                error_message=e.message,
                details=details,
                correlation_id=correlation_id,
            )
            raise
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        except Exception as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
            raise

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    async def register(
        self,
        caller: Identity,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        correlation_id = correlation_id or create_correlation_id()
        async with self._audited_write("register", correlation_id, {"identity": caller}):
            return await self.registry.register(caller, name, correlation_id)

    async def update_name(
        self,
        caller: Identity,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        correlation_id = correlation_id or create_correlation_id()
        async with self._audited_write("update_name", correlation_id, {"identity": caller}):
            return await self.registry.update_name(caller, new_name, correlation_id)

    async def is_registered(self, identity: Identity) -> bool:
        return await self.registry.is_registered(identity)

    async def get_name(self, caller: Identity) -> str:
        """The caller's own name. Raises NotRegisteredError."""
        return await self.registry.get_name(caller)

    async def get_profile(self, identity: Identity) -> PersonProfile:
        return await self.registry.get_profile(identity)

    async def total_registered(self) -> int:
        return await self.registry.count()

    async def list_all_people(self) -> list[Identity]:
        return await self.registry.list_all()

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    async def add_expense(
        self,
        label: str,
        participants: Sequence[Identity],
        paid: Sequence[Any],
        owed: Sequence[Any],
        correlation_id: Optional[UUID] = None,
    ) -> int:
        correlation_id = correlation_id or create_correlation_id()
        async with self._audited_write("add_expense", correlation_id, {"label": label}):
            return await self.ledger.add_expense(
                label, participants, paid, owed, correlation_id
            )

    async def get_expense_info(self, expense_id: int) -> ExpenseInfo:
        return await self.ledger.get_expense(expense_id)

    async def get_participants(self, expense_id: int) -> list[Identity]:
        return await self.ledger.get_participants(expense_id)

    async def get_amount_paid(self, expense_id: int, identity: Identity) -> Decimal:
        return await self.ledger.get_amount_paid(expense_id, identity)

    async def get_amount_owed(self, expense_id: int, identity: Identity) -> Decimal:
        return await self.ledger.get_amount_owed(expense_id, identity)

    async def expense_count(self) -> int:
        return await self.ledger.count()

    async def last_expense_label(self) -> str:
        return await self.ledger.last_label()

    async def list_expenses(self) -> list[Expense]:
        return await self.ledger.list_expenses()

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def net_balance(self, identity: Identity) -> Decimal:
        return await self.balances.net_balance(identity)

    async def balance_sheet(self) -> list[PersonBalance]:
        return await self.balances.balance_sheet()

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def settle(
        self,
        caller: Identity,
        to: Identity,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Settlement:
        """Notarize that ``caller`` paid ``to`` off-ledger. Balances do not change."""
        correlation_id = correlation_id or create_correlation_id()
        async with self._audited_write(
            "settle", correlation_id, {"from": caller, "to": to}
        ):
            return await self.notifier.settle(caller, to, amount, correlation_id)

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    async def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent audit events, newest first (empty without audit storage)."""
        storage: Optional[AuditStorageInterface] = self._audit_logger.storage
        if storage is None:
            return []
        return await storage.get_recent_events(limit)


def create_app_components(
    use_storage: bool = True,
    settings: Optional[LedgerSettings] = None,
) -> tuple[ExpenseTracker, Optional[GoogleSheetsClient]]:
    """
    Factory function to build a configured ExpenseTracker.

    Args:
        use_storage: Whether to honour the configured storage backend.
                    Set to False to force in-memory storage.
        settings: Ledger settings; loaded from the environment if None.

    Returns:
        (tracker, sheets_client) - sheets_client is None unless the
        Google Sheets backend is in use.

    Raises:
        ConnectionError: Google Sheets backend selected but unreachable
    """
    settings = settings or get_settings().ledger
    sheets_client = None

    if use_storage and settings.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        # Fail at startup, not on the first write
        sheets_client.get_spreadsheet()
        person_storage = GoogleSheetsPersonStorage(sheets_client)
        expense_storage = GoogleSheetsExpenseStorage(sheets_client)
        audit_storage = GoogleSheetsAuditStorage(sheets_client)
    else:
        person_storage = InMemoryPersonStorage()
        expense_storage = InMemoryExpenseStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage if settings.audit_enabled else None)

    tracker = ExpenseTracker(
        person_storage=person_storage,
        expense_storage=expense_storage,
        audit_logger=audit_logger,
        settings=settings,
    )
    return tracker, sheets_client

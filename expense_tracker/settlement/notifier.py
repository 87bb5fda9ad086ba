"""
Settlement Notifier

Notarizes that one identity paid another outside the ledger.
The only effect is a DebtSettled audit event: no expense is written,
no balance changes and no value is moved or held.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

from expense_tracker.audit import AuditLogger
from expense_tracker.errors import InvalidRecipientError
from expense_tracker.models.ledger import Identity, Settlement, utc_now
from expense_tracker.validation import LedgerValidator, to_amount


class SettlementNotifier:
    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        write_lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or LedgerValidator()
        self._write_lock = write_lock or asyncio.Lock()
        self._clock = clock

    async def settle(
        self,
        from_identity: Identity,
        to_identity: Identity,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Settlement:
        """
        Record an off-ledger payment from ``from_identity`` to ``to_identity``.

        Raises:
            InvalidRecipientError: Recipient is the null identity or the payer
            InvalidInputError: Amount is not a non-negative number
        """
        if self._validator.is_null_identity(to_identity):
            raise InvalidRecipientError("Settlement recipient cannot be the null identity")
        if to_identity == from_identity:
            raise InvalidRecipientError("Cannot settle a debt with yourself")
        self._validator.raise_for_errors(
            self._validator.validate_settlement(from_identity, to_identity, amount)
        )

        async with self._write_lock:
            settlement = Settlement(
                from_identity=from_identity,
                to_identity=to_identity,
                amount=to_amount(amount),
                settled_at=self._clock(),
            )
            await self._audit_logger.log_debt_settled(settlement, correlation_id)

        return settlement

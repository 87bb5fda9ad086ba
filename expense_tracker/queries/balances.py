"""
Balance Calculation

DESIGN DECISION: Balances are DERIVED, never stored.
Every call scans the full expense log and sums paid minus owed.
There is no running total that could drift from the ledger.

Settlements are not part of the sum - they notarize payments made
outside the ledger and never change a balance.
"""

from decimal import Decimal

from expense_tracker.ledger import ExpenseLedger
from expense_tracker.models.ledger import ZERO, Identity, PersonBalance
from expense_tracker.registry import IdentityRegistry


class BalanceCalculator:
    """
    Read-only view over the expense ledger.

    GUARANTEES:
    - Never mutates the ledger or the registry
    - Never fails: unknown identities simply have a zero balance
    """

    def __init__(self, ledger: ExpenseLedger, registry: IdentityRegistry):
        self._ledger = ledger
        self._registry = registry

    async def net_balance(self, identity: Identity) -> Decimal:
        """
        Sum over every expense of paid minus owed for ``identity``.

        Positive: the identity is owed money. Negative: it owes money.
        Registration is not required.
        """
        total = ZERO
        for expense in await self._ledger.list_expenses():
            total += expense.net_for(identity)
        return total

    async def balance_sheet(self) -> list[PersonBalance]:
        """Every registered person with their net balance, in registration order."""
        expenses = await self._ledger.list_expenses()
        sheet = []
        for identity in await self._registry.list_all():
            person = await self._registry.get_person(identity)
            net = ZERO
            for expense in expenses:
                net += expense.net_for(identity)
            sheet.append(PersonBalance(
                identity=identity,
                name=person.name if person else "",
                net_balance=net,
            ))
        return sheet

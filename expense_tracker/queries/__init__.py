"""Balance query package."""

from expense_tracker.queries.balances import BalanceCalculator

__all__ = ["BalanceCalculator"]

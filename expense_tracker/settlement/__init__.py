"""Settlement notification package."""

from expense_tracker.settlement.notifier import SettlementNotifier

__all__ = ["SettlementNotifier"]

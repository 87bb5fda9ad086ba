"""Write validation package."""

from expense_tracker.validation.validator import LedgerValidator, to_amount

__all__ = ["LedgerValidator", "to_amount"]

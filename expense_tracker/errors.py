"""
Ledger Errors

Every failure a caller can provoke is a validation failure, detected
before anything is written. The operation is rejected in full and all
previously committed state stays valid.

Each error carries a short machine-readable ``reason`` alongside the
human-readable message.
"""

from typing import Optional

from expense_tracker.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for rejected ledger operations."""

    reason = "rejected"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(LedgerError):
    """Input failed validation (empty name/label, length mismatch, null participant, ...)."""

    reason = "invalid_input"

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []
        if self.issues:
            self.reason = self.issues[0].issue_type


class AlreadyRegisteredError(LedgerError):
    """Identity is already registered."""

    reason = "already_registered"


class NotRegisteredError(LedgerError):
    """Identity is not registered."""

    reason = "not_registered"


class ExpenseNotFoundError(LedgerError):
    """Expense id is out of range."""

    reason = "expense_not_found"


class NoExpensesError(LedgerError):
    """The ledger holds no expenses yet."""

    reason = "no_expenses"


class InvalidRecipientError(LedgerError):
    """Settlement recipient is the null identity or the payer themselves."""

    reason = "invalid_recipient"

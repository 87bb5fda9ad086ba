"""
Write Validation

DESIGN DECISION: Every write is validated in full BEFORE anything is
stored. Validation collects every issue it finds instead of stopping at
the first, so the caller gets one complete, descriptive rejection.

Severity:
- error   -> the write is rejected, nothing is stored
- warning -> the write goes through, the issue is logged

IMPORTANT: Validation NEVER silently fixes issues.
Whitespace around names and labels is the only thing trimmed.
"""

from collections import Counter
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from expense_tracker.config import LedgerSettings, get_settings
from expense_tracker.errors import InvalidInputError
from expense_tracker.models.ledger import Identity, ValidationIssue, ValidationResult


def to_amount(value: Any) -> Decimal:
    """
    Convert a caller-supplied amount to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its
    binary approximation.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Not an amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    return amount


class LedgerValidator:
    """Validates registry, ledger and settlement writes."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    @property
    def null_identity(self) -> Identity:
        return self._settings.null_identity

    def is_null_identity(self, identity: Optional[Identity]) -> bool:
        """True for None, blank strings and the configured zero identity."""
        if identity is None or not str(identity).strip():
            return True
        return str(identity).strip().lower() == self._settings.null_identity

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _check_name(self, name: Any, field: str, issues: list[ValidationIssue]) -> None:
        if not isinstance(name, str) or not name.strip():
            issues.append(ValidationIssue(
                field=field,
                issue_type="empty_name",
                message="Name must not be empty",
                severity="error",
            ))

    def validate_registration(self, identity: Identity, name: Any) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if self.is_null_identity(identity):
            issues.append(ValidationIssue(
                field="identity",
                issue_type="null_identity",
                message="Cannot register the null identity",
                severity="error",
            ))
        self._check_name(name, "name", issues)
        return ValidationResult(operation="register", issues=issues)

    def validate_name_update(self, new_name: Any) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_name(new_name, "new_name", issues)
        return ValidationResult(operation="update_name", issues=issues)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _check_amounts(
        self,
        field: str,
        amounts: Sequence[Any],
        issues: list[ValidationIssue],
    ) -> None:
        for idx, value in enumerate(amounts):
            try:
                amount = to_amount(value)
            except ValueError:
                issues.append(ValidationIssue(
                    field=f"{field}[{idx}]",
                    issue_type="invalid_amount",
                    message=f"{value!r} is not a valid amount",
                    severity="error",
                ))
                continue
            if amount < 0:
                issues.append(ValidationIssue(
                    field=f"{field}[{idx}]",
                    issue_type="negative_amount",
                    message=f"Amount cannot be negative ({amount})",
                    severity="error",
                ))

    def validate_expense(
        self,
        label: Any,
        participants: Sequence[Identity],
        paid: Sequence[Any],
        owed: Sequence[Any],
    ) -> ValidationResult:
        """
        Validate an add_expense request.

        Checks:
        - Label present
        - At least one participant
        - participants, paid and owed have the same length
        - No null participant
        - Amounts are non-negative numbers
        - Duplicate participants (warning, or error when configured)
        """
        issues: list[ValidationIssue] = []

        if not isinstance(label, str) or not label.strip():
            issues.append(ValidationIssue(
                field="label",
                issue_type="empty_label",
                message="Expense label must not be empty",
                severity="error",
            ))

        if not participants:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="no_participants",
                message="An expense needs at least one participant",
                severity="error",
            ))
        elif not (len(participants) == len(paid) == len(owed)):
            issues.append(ValidationIssue(
                field="participants",
                issue_type="length_mismatch",
                message=(
                    f"participants, paid and owed must have the same length "
                    f"(got {len(participants)}, {len(paid)}, {len(owed)})"
                ),
                severity="error",
            ))

        for idx, identity in enumerate(participants):
            if self.is_null_identity(identity):
                issues.append(ValidationIssue(
                    field=f"participants[{idx}]",
                    issue_type="null_participant",
                    message="Participant cannot be the null identity",
                    severity="error",
                ))

        self._check_amounts("paid", paid, issues)
        self._check_amounts("owed", owed, issues)

        duplicates = sorted(
            str(identity) for identity, n in Counter(participants).items() if n > 1
        )
        if duplicates:
            reject = self._settings.reject_duplicate_participants
            issues.append(ValidationIssue(
                field="participants",
                issue_type="duplicate_participant",
                message=(
                    f"Participants listed more than once: {', '.join(duplicates)}"
                    + ("" if reject else " (the last entry for each wins)")
                ),
                severity="error" if reject else "warning",
            ))

        return ValidationResult(operation="add_expense", issues=issues)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def validate_settlement(
        self,
        from_identity: Identity,
        to_identity: Identity,
        amount: Any,
    ) -> ValidationResult:
        """Recipient checks live in SettlementNotifier; this covers the amount."""
        issues: list[ValidationIssue] = []
        self._check_amounts("amount", [amount], issues)
        return ValidationResult(operation="settle", issues=issues)

    # ------------------------------------------------------------------

    @staticmethod
    def raise_for_errors(result: ValidationResult) -> None:
        """
        Raise InvalidInputError if the result holds any error.

        The message lists every error, the first one first.
        """
        if not result.has_errors:
            return
        errors = [i for i in result.issues if i.severity == "error"]
        message = "; ".join(issue.message for issue in errors)
        raise InvalidInputError(f"{result.operation} rejected: {message}", errors)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if not result.issues:
            return "✅ All checks passed."
        lines = []
        for issue in result.issues:
            icon = "❌" if issue.severity == "error" else "⚠️"
            lines.append(f"{icon} {issue.field}: {issue.message}")
        return "\n".join(lines)

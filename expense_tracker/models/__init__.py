"""
Data Models Package

This package contains all Pydantic models used by the expense tracker.
All data flowing through the ledger must conform to these schemas.
"""

from expense_tracker.models.ledger import (
    ZERO,
    Expense,
    ExpenseInfo,
    Identity,
    Person,
    PersonBalance,
    PersonProfile,
    Settlement,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ZERO",
    "Expense",
    "ExpenseInfo",
    "Identity",
    "Person",
    "PersonBalance",
    "PersonProfile",
    "Settlement",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

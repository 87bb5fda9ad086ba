"""
Core Data Models for Expense Tracker

These models define the strict schemas for everything the ledger stores.
They are designed to:
1. Enforce type safety at runtime
2. Be immutable once committed (expenses are frozen)
3. Be serializable for storage and logging

DESIGN DECISION: Amounts are Decimal, never float.
Net balances are sums of many differences and must not drift.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from expense_tracker.config.settings import ZERO_ADDRESS


# Identities are opaque keys (e.g. wallet addresses)
Identity = str

ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PEOPLE
# =============================================================================

class Person(BaseModel):
    """
    A registered participant.

    One Person per identity. The identity never changes; the name can be
    updated any number of times. People are never deleted.
    """

    identity: Identity = Field(
        ...,
        min_length=1,
        description="Opaque unique participant key"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    registered_at: datetime = Field(
        default_factory=utc_now,
        description="When the identity was first registered"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last name change"
    )

    def profile(self) -> "PersonProfile":
        return PersonProfile(name=self.name, identity=self.identity)


class PersonProfile(BaseModel):
    """
    Public (name, identity) view of a person.

    The zero value - empty name, null identity - stands for
    "not registered" and is returned instead of failing.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    identity: Identity = ZERO_ADDRESS

    @classmethod
    def empty(cls, null_identity: Identity = ZERO_ADDRESS) -> "PersonProfile":
        return cls(name="", identity=null_identity)

    @property
    def is_empty(self) -> bool:
        return not self.name


class PersonBalance(BaseModel):
    """A registered person together with their current net position."""

    identity: Identity
    name: str
    net_balance: Decimal = Field(
        ...,
        description="Paid minus owed across all expenses (positive = is owed)"
    )

    @property
    def is_owed(self) -> bool:
        return self.net_balance > 0

    @property
    def owes(self) -> bool:
        return self.net_balance < 0


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseInfo(BaseModel):
    """Basic (id, label, timestamp) view of an expense."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    label: str
    timestamp: datetime


class Expense(BaseModel):
    """
    A committed expense record.

    CRITICAL: Expenses are append-only. Once created, no field changes
    and the record is never removed.

    Participants keep the order (and duplicates) they were supplied in.
    The paid/owed maps are keyed by identity, so a duplicated identity
    holds only the last amounts supplied for it.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        ge=0,
        description="Sequential id, dense from 0"
    )
    label: str = Field(
        ...,
        min_length=1,
        description="What the expense was for"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the expense was recorded"
    )
    participants: tuple[Identity, ...] = Field(
        ...,
        min_length=1,
        description="Participant identities in the order supplied"
    )
    amounts_paid: dict[Identity, Decimal] = Field(default_factory=dict)
    amounts_owed: dict[Identity, Decimal] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_amount_keys(self) -> 'Expense':
        """Every amount must belong to a listed participant."""
        listed = set(self.participants)
        stray = (set(self.amounts_paid) | set(self.amounts_owed)) - listed
        if stray:
            raise ValueError(f"Amounts recorded for non-participants: {sorted(stray)}")
        return self

    def amount_paid(self, identity: Identity) -> Decimal:
        return self.amounts_paid.get(identity, ZERO)

    def amount_owed(self, identity: Identity) -> Decimal:
        return self.amounts_owed.get(identity, ZERO)

    def net_for(self, identity: Identity) -> Decimal:
        """Paid minus owed for one identity in this expense."""
        return self.amount_paid(identity) - self.amount_owed(identity)

    def info(self) -> ExpenseInfo:
        return ExpenseInfo(id=self.id, label=self.label, timestamp=self.created_at)


# =============================================================================
# SETTLEMENTS
# =============================================================================

class Settlement(BaseModel):
    """
    A notarized off-ledger payment between two identities.

    Settlements never touch expense records or balances.
    """
    model_config = ConfigDict(frozen=True)

    settlement_id: UUID = Field(default_factory=uuid4)
    from_identity: Identity
    to_identity: Identity
    amount: Decimal = Field(..., ge=0)
    settled_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'empty', 'length_mismatch', 'null_identity')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one write operation.

    Errors reject the operation; warnings are logged and let it through.
    """

    operation: str = Field(
        ...,
        description="Operation being validated (e.g. 'add_expense')"
    )
    validated_at: datetime = Field(
        default_factory=utc_now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def first_error(self) -> Optional[ValidationIssue]:
        return next((i for i in self.issues if i.severity == "error"), None)

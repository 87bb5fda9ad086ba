"""Shared fixtures for the expense tracker test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.config import LedgerSettings
from expense_tracker.orchestrator import ExpenseTracker
from expense_tracker.services.storage import InMemoryAuditStorage
from expense_tracker.validation import LedgerValidator


ALICE = "0xA11CE00000000000000000000000000000000001"
BOB = "0xB0B0000000000000000000000000000000000002"
CAROL = "0xCA401000000000000000000000000000000000003"
NULL = "0x0000000000000000000000000000000000000000"


class StepClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self):
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def validator(settings) -> LedgerValidator:
    return LedgerValidator(settings)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def tracker(audit_logger, settings) -> ExpenseTracker:
    return ExpenseTracker(
        audit_logger=audit_logger,
        settings=settings,
        clock=StepClock(),
    )

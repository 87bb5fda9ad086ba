"""Tests for the append-only expense ledger."""

import asyncio

import pytest
from decimal import Decimal

from expense_tracker.config import LedgerSettings
from expense_tracker.errors import ExpenseNotFoundError, InvalidInputError, NoExpensesError
from expense_tracker.ledger import ExpenseLedger
from expense_tracker.models.audit import AuditEventType
from expense_tracker.validation import LedgerValidator

from tests.conftest import ALICE, BOB, CAROL, NULL, StepClock


@pytest.fixture
def ledger(audit_logger, validator) -> ExpenseLedger:
    return ExpenseLedger(
        audit_logger=audit_logger,
        validator=validator,
        clock=StepClock(),
    )


class TestAddExpense:
    """Tests for ExpenseLedger.add_expense."""

    @pytest.mark.asyncio
    async def test_first_expense_gets_id_zero(self, ledger):
        expense_id = await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])
        assert expense_id == 0
        assert await ledger.count() == 1

    @pytest.mark.asyncio
    async def test_ids_are_sequential(self, ledger):
        ids = [
            await ledger.add_expense(f"item {n}", [ALICE], [n], [n])
            for n in range(4)
        ]
        assert ids == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_records_amounts(self, ledger):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])
        assert await ledger.get_amount_paid(0, ALICE) == Decimal("100")
        assert await ledger.get_amount_owed(0, BOB) == Decimal("100")
        assert await ledger.get_amount_paid(0, BOB) == Decimal("0")

    @pytest.mark.asyncio
    async def test_non_participant_reads_zero(self, ledger):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])
        assert await ledger.get_amount_paid(0, CAROL) == Decimal("0")
        assert await ledger.get_amount_owed(0, CAROL) == Decimal("0")

    @pytest.mark.asyncio
    async def test_participants_need_not_be_registered(self, ledger):
        expense_id = await ledger.add_expense("taxi", [CAROL], [30], [30])
        assert await ledger.get_participants(expense_id) == [CAROL]

    @pytest.mark.asyncio
    async def test_length_mismatch_leaves_ledger_unchanged(self, ledger):
        with pytest.raises(InvalidInputError) as exc_info:
            await ledger.add_expense("x", [ALICE, BOB], [10], [0, 10])
        assert exc_info.value.reason == "length_mismatch"
        assert await ledger.count() == 0

    @pytest.mark.asyncio
    async def test_null_participant_rejected(self, ledger):
        with pytest.raises(InvalidInputError):
            await ledger.add_expense("x", [ALICE, NULL], [10, 0], [0, 10])
        assert await ledger.count() == 0

    @pytest.mark.asyncio
    async def test_empty_label_rejected(self, ledger):
        with pytest.raises(InvalidInputError):
            await ledger.add_expense("   ", [ALICE], [10], [10])

    @pytest.mark.asyncio
    async def test_no_participants_rejected(self, ledger):
        with pytest.raises(InvalidInputError):
            await ledger.add_expense("x", [], [], [])

    @pytest.mark.asyncio
    async def test_rejection_does_not_consume_an_id(self, ledger):
        await ledger.add_expense("a", [ALICE], [1], [1])
        with pytest.raises(InvalidInputError):
            await ledger.add_expense("b", [ALICE], [-1], [1])
        assert await ledger.add_expense("c", [ALICE], [1], [1]) == 1

    @pytest.mark.asyncio
    async def test_duplicate_participant_last_entry_wins(self, ledger):
        expense_id = await ledger.add_expense(
            "dinner", [ALICE, BOB, ALICE], [10, 0, 30], [5, 20, 15]
        )
        assert await ledger.get_participants(expense_id) == [ALICE, BOB, ALICE]
        assert await ledger.get_amount_paid(expense_id, ALICE) == Decimal("30")
        assert await ledger.get_amount_owed(expense_id, ALICE) == Decimal("15")

    @pytest.mark.asyncio
    async def test_duplicate_participant_rejected_when_configured(self, audit_logger):
        ledger = ExpenseLedger(
            audit_logger=audit_logger,
            validator=LedgerValidator(LedgerSettings(reject_duplicate_participants=True)),
        )
        with pytest.raises(InvalidInputError) as exc_info:
            await ledger.add_expense("dinner", [ALICE, ALICE], [10, 30], [5, 15])
        assert exc_info.value.reason == "duplicate_participant"
        assert await ledger.count() == 0

    @pytest.mark.asyncio
    async def test_emits_expense_added(self, ledger, audit_storage):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])
        events = await audit_storage.get_events_by_type(AuditEventType.EXPENSE_ADDED)
        assert len(events) == 1
        assert events[0].details["expense_id"] == 0
        assert events[0].details["label"] == "lunch"

    @pytest.mark.asyncio
    async def test_concurrent_adds_get_dense_ids(self, ledger):
        ids = await asyncio.gather(*[
            ledger.add_expense(f"item {n}", [ALICE, BOB], [n, 0], [0, n])
            for n in range(20)
        ])
        assert sorted(ids) == list(range(20))
        expenses = await ledger.list_expenses()
        assert [e.id for e in expenses] == list(range(20))


class TestExpenseQueries:
    """Tests for expense lookups."""

    @pytest.mark.asyncio
    async def test_get_expense_info(self, ledger):
        await ledger.add_expense("  lunch ", [ALICE], [10], [10])
        info = await ledger.get_expense(0)
        assert info.id == 0
        assert info.label == "lunch"
        assert info.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", [1, -1, 99])
    async def test_out_of_range_ids(self, ledger, bad_id):
        await ledger.add_expense("lunch", [ALICE], [10], [10])
        with pytest.raises(ExpenseNotFoundError):
            await ledger.get_expense(bad_id)
        with pytest.raises(ExpenseNotFoundError):
            await ledger.get_participants(bad_id)
        with pytest.raises(ExpenseNotFoundError):
            await ledger.get_amount_paid(bad_id, ALICE)

    @pytest.mark.asyncio
    async def test_empty_ledger_lookup_fails(self, ledger):
        with pytest.raises(ExpenseNotFoundError):
            await ledger.get_expense_record(0)

    @pytest.mark.asyncio
    async def test_last_label(self, ledger):
        await ledger.add_expense("lunch", [ALICE], [10], [10])
        await ledger.add_expense("taxi", [BOB], [5], [5])
        assert await ledger.last_label() == "taxi"

    @pytest.mark.asyncio
    async def test_last_label_on_empty_ledger(self, ledger):
        with pytest.raises(NoExpensesError):
            await ledger.last_label()

    @pytest.mark.asyncio
    async def test_reads_are_repeatable(self, ledger):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])
        first = await ledger.get_expense_record(0)
        second = await ledger.get_expense_record(0)
        assert first == second


class TestCommittedRecords:
    """Committed expenses cannot be changed through returned records."""

    @pytest.mark.asyncio
    async def test_long_label(self, ledger, audit_storage):
        label = "L" * 600
        expense_id = await ledger.add_expense(label, [ALICE, BOB], [100, 0], [0, 100])
        assert (await ledger.get_expense(expense_id)).label == label
        assert await ledger.count() == 1

        events = await audit_storage.get_events_by_type(AuditEventType.EXPENSE_ADDED)
        assert events[0].details["label"] == label

    @pytest.mark.asyncio
    async def test_mutating_listed_record_does_not_change_ledger(self, ledger):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])

        record = (await ledger.list_expenses())[0]
        record.amounts_paid[ALICE] = Decimal("999")
        record.amounts_owed[BOB] = Decimal("0")

        assert await ledger.get_amount_paid(0, ALICE) == Decimal("100")
        assert await ledger.get_amount_owed(0, BOB) == Decimal("100")

    @pytest.mark.asyncio
    async def test_mutating_fetched_record_does_not_change_ledger(self, ledger):
        await ledger.add_expense("lunch", [ALICE, BOB], [100, 0], [0, 100])

        record = await ledger.get_expense_record(0)
        record.amounts_paid.clear()

        assert await ledger.get_amount_paid(0, ALICE) == Decimal("100")
        assert (await ledger.get_expense_record(0)).amounts_paid == {
            ALICE: Decimal("100"),
            BOB: Decimal("0"),
        }

"""
Tests for the Google Sheets storage backend.

Worksheets are replaced by an in-process fake, so nothing here talks
to Google.
"""

from unittest.mock import MagicMock

import gspread
import pytest
from decimal import Decimal

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder, AuditEventType
from expense_tracker.models.ledger import Person
from expense_tracker.orchestrator import ExpenseTracker
from expense_tracker.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsPersonStorage,
    NotFoundError,
)
from expense_tracker.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    EXPENSE_COLUMNS,
    PEOPLE_COLUMNS,
)

from tests.conftest import ALICE, BOB, StepClock


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header: list[str]):
        self.rows = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(range_name.split(":")[0][1:])
        self.rows[row_number - 1] = [str(v) for v in values[0]]


class FakeSheetsClient:
    def __init__(self):
        self.people = FakeWorksheet(PEOPLE_COLUMNS)
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_people_sheet(self):
        return self.people

    def get_expenses_sheet(self):
        return self.expenses

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets() -> FakeSheetsClient:
    return FakeSheetsClient()


@pytest.fixture
def sheets_tracker(sheets, settings) -> ExpenseTracker:
    return ExpenseTracker(
        person_storage=GoogleSheetsPersonStorage(sheets),
        expense_storage=GoogleSheetsExpenseStorage(sheets),
        audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets)),
        settings=settings,
        clock=StepClock(),
    )


class TestPersonSheet:
    """Tests for GoogleSheetsPersonStorage."""

    @pytest.mark.asyncio
    async def test_add_and_get_person(self, sheets):
        storage = GoogleSheetsPersonStorage(sheets)
        person = Person(identity=ALICE, name="Alice")
        await storage.add_person(person)

        assert sheets.people.rows[1][:2] == [ALICE, "Alice"]
        assert await storage.get_person(ALICE) == person
        assert await storage.get_person(BOB) is None

    @pytest.mark.asyncio
    async def test_duplicate_person(self, sheets):
        storage = GoogleSheetsPersonStorage(sheets)
        await storage.add_person(Person(identity=ALICE, name="Alice"))
        with pytest.raises(DuplicateError):
            await storage.add_person(Person(identity=ALICE, name="Alice"))
        assert len(sheets.people.rows) == 2

    @pytest.mark.asyncio
    async def test_update_rewrites_row_in_place(self, sheets):
        storage = GoogleSheetsPersonStorage(sheets)
        await storage.add_person(Person(identity=ALICE, name="Alice"))
        await storage.add_person(Person(identity=BOB, name="Bob"))

        person = await storage.get_person(ALICE)
        await storage.update_person(person.model_copy(update={"name": "Alicia"}))

        assert sheets.people.rows[1][1] == "Alicia"
        assert await storage.list_identities() == [ALICE, BOB]

    @pytest.mark.asyncio
    async def test_update_missing_person(self, sheets):
        storage = GoogleSheetsPersonStorage(sheets)
        with pytest.raises(NotFoundError):
            await storage.update_person(Person(identity=BOB, name="Bob"))


class TestExpenseSheet:
    """Tests for GoogleSheetsExpenseStorage."""

    @pytest.mark.asyncio
    async def test_one_row_per_expense(self, sheets_tracker, sheets):
        await sheets_tracker.add_expense("lunch", [ALICE, BOB], ["12.50", 0], [0, "12.50"])
        assert len(sheets.expenses.rows) == 2
        row = sheets.expenses.rows[1]
        assert row[0] == "0"
        assert row[1] == "lunch"

    @pytest.mark.asyncio
    async def test_amounts_survive_the_sheet(self, sheets_tracker):
        await sheets_tracker.add_expense("lunch", [ALICE, BOB], ["12.50", 0], [0, "12.50"])
        expense = (await sheets_tracker.list_expenses())[0]
        assert expense.participants == (ALICE, BOB)
        assert expense.amount_paid(ALICE) == Decimal("12.50")
        assert await sheets_tracker.net_balance(BOB) == Decimal("-12.50")

    @pytest.mark.asyncio
    async def test_ids_follow_row_order(self, sheets_tracker):
        for label in ("a", "b", "c"):
            await sheets_tracker.add_expense(label, [ALICE], [1], [1])
        assert await sheets_tracker.expense_count() == 3
        assert (await sheets_tracker.get_expense_info(2)).label == "c"
        assert await sheets_tracker.last_expense_label() == "c"

    @pytest.mark.asyncio
    async def test_out_of_sequence_id_rejected(self, sheets_tracker, sheets):
        await sheets_tracker.add_expense("a", [ALICE], [1], [1])
        storage = GoogleSheetsExpenseStorage(sheets)
        stale = (await storage.list_expenses())[0]
        with pytest.raises(DuplicateError):
            await storage.append_expense(stale)


class TestAuditSheet:
    """Tests for GoogleSheetsAuditStorage."""

    @pytest.mark.asyncio
    async def test_events_round_trip(self, sheets_tracker, sheets):
        await sheets_tracker.register(ALICE, "Alice")
        await sheets_tracker.settle(BOB, ALICE, 5)

        assert len(sheets.audit.rows) == 3
        events = await sheets_tracker.recent_events()
        assert {e.event_type for e in events} == {
            AuditEventType.PERSON_REGISTERED,
            AuditEventType.DEBT_SETTLED,
        }

    @pytest.mark.asyncio
    async def test_unreadable_rows_are_skipped(self, sheets):
        storage = GoogleSheetsAuditStorage(sheets)
        sheets.audit.rows.append(["not-a-uuid", "yesterday", "???"])
        event = AuditEventBuilder.system_error("test", "boom")
        assert await storage.append_event(event)

        events = await storage.get_events_by_type(AuditEventType.SYSTEM_ERROR)
        assert [e.event_id for e in events] == [event.event_id]


class TestSheetsClient:
    """Tests for worksheet creation in GoogleSheetsClient."""

    def test_missing_worksheet_is_created_with_header(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "credentials.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")

        client = GoogleSheetsClient()
        spreadsheet = MagicMock()
        spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("People")
        client._spreadsheet = spreadsheet

        sheet = client.get_people_sheet()

        spreadsheet.add_worksheet.assert_called_once_with(
            title="People", rows=1000, cols=len(PEOPLE_COLUMNS)
        )
        sheet.append_row.assert_called_once_with(PEOPLE_COLUMNS)

    def test_existing_worksheet_is_reused(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "credentials.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")

        client = GoogleSheetsClient()
        spreadsheet = MagicMock()
        client._spreadsheet = spreadsheet

        assert client.get_expenses_sheet() is spreadsheet.worksheet.return_value
        spreadsheet.add_worksheet.assert_not_called()

"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. Participants can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions: each expense is written as ONE row (participants and
  amounts JSON-serialized) so a single append_row commits it atomically
- Limited query capabilities (we scan rows in Python)
- Row order is the source of truth for both expense ids and
  registration order, so rows are only ever appended, never sorted

The implementation follows the abstract interface, so the ledger does not
know which backend it runs on.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.ledger import Expense, Identity, Person
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    PersonStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column mappings for People sheet
PEOPLE_COLUMNS = [
    "identity",
    "name",
    "registered_at",
    "updated_at",
]

# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "label",
    "created_at",
    "participants_json",
    "paid_json",
    "owed_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
]

# Ledger-rule errors are final; only transport failures are worth retrying
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_people_sheet(self) -> gspread.Worksheet:
        """Get or create the People worksheet."""
        return self._get_or_create_sheet(
            self._settings.people_sheet_name, PEOPLE_COLUMNS, rows=1000
        )

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsPersonStorage(PersonStorageInterface):
    """
    Google Sheets implementation of the people table.

    One person per row; row order is registration order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _person_to_row(self, person: Person) -> list:
        return [
            person.identity,
            person.name,
            person.registered_at.isoformat(),
            person.updated_at.isoformat(),
        ]

    def _row_to_person(self, row: list) -> Person:
        return Person(
            identity=_safe_get(row, 0),
            name=_safe_get(row, 1),
            registered_at=datetime.fromisoformat(_safe_get(row, 2)),
            updated_at=datetime.fromisoformat(_safe_get(row, 3)),
        )

    def _data_rows(self) -> list[list]:
        sheet = self._client.get_people_sheet()
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    @sheets_retry
    async def add_person(self, person: Person) -> bool:
        """Append a person row."""
        try:
            if any(row[0] == person.identity for row in self._data_rows()):
                raise DuplicateError(f"Person already stored: {person.identity}")
            sheet = self._client.get_people_sheet()
            sheet.append_row(self._person_to_row(person), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save person: {e}")

    @sheets_retry
    async def update_person(self, person: Person) -> bool:
        """Rewrite a person row in a single range update."""
        try:
            sheet = self._client.get_people_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == person.identity:
                    sheet.update(
                        range_name=f"A{idx}:D{idx}",
                        values=[self._person_to_row(person)],
                        value_input_option="RAW",
                    )
                    return True

            raise NotFoundError(f"Person not found: {person.identity}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update person: {e}")

    async def get_person(self, identity: Identity) -> Optional[Person]:
        try:
            for row in self._data_rows():
                if row[0] == identity:
                    return self._row_to_person(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get person: {e}")

    async def list_identities(self) -> list[Identity]:
        try:
            return [row[0] for row in self._data_rows()]
        except Exception as e:
            raise StorageError(f"Failed to list people: {e}")

    async def count_people(self) -> int:
        return len(await self.list_identities())


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of the append-only expense table.

    Row N (after the header) holds expense id N.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: Expense) -> list:
        return [
            str(expense.id),
            expense.label,
            expense.created_at.isoformat(),
            json.dumps(list(expense.participants)),
            json.dumps({k: str(v) for k, v in expense.amounts_paid.items()}),
            json.dumps({k: str(v) for k, v in expense.amounts_owed.items()}),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        paid = json.loads(_safe_get(row, 4, "{}"))
        owed = json.loads(_safe_get(row, 5, "{}"))
        return Expense(
            id=int(_safe_get(row, 0)),
            label=_safe_get(row, 1),
            created_at=datetime.fromisoformat(_safe_get(row, 2)),
            participants=tuple(json.loads(_safe_get(row, 3, "[]"))),
            amounts_paid={k: Decimal(v) for k, v in paid.items()},
            amounts_owed={k: Decimal(v) for k, v in owed.items()},
        )

    def _data_rows(self) -> list[list]:
        sheet = self._client.get_expenses_sheet()
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    @sheets_retry
    async def append_expense(self, expense: Expense) -> bool:
        """Append an expense as a single row."""
        try:
            next_id = len(self._data_rows())
            if expense.id != next_id:
                raise DuplicateError(
                    f"Expense id {expense.id} out of sequence (next id is {next_id})"
                )
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        try:
            rows = self._data_rows()
            if 0 <= expense_id < len(rows):
                return self._row_to_expense(rows[expense_id])
            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def list_expenses(self) -> list[Expense]:
        try:
            return [self._row_to_expense(row) for row in self._data_rows()]
        except Exception as e:
            # A skipped row would shift every later expense id
            raise StorageError(f"Failed to list expenses: {e}")

    async def count_expenses(self) -> int:
        try:
            return len(self._data_rows())
        except Exception as e:
            raise StorageError(f"Failed to count expenses: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_code=_safe_get(row, 9) or None,
            error_message=_safe_get(row, 10) or None,
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                logger.warning("audit_row_unreadable", event_id=row[0])
        return events

    @sheets_retry
    async def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the ledger write that triggered it
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events() if e.correlation_id == correlation_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_type(
        self,
        event_type: AuditEventType,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.event_type == event_type]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

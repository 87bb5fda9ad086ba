"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsPersonStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryPersonStorage,
    NotFoundError,
    PersonStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsPersonStorage",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryPersonStorage",
    "NotFoundError",
    "PersonStorageInterface",
    "StorageError",
]

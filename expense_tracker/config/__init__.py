"""Configuration package."""

from expense_tracker.config.settings import (
    ZERO_ADDRESS,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    get_settings,
)

__all__ = [
    "ZERO_ADDRESS",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
]

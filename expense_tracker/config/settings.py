"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger runs with no configuration at all (in-memory storage);
Google Sheets settings are only loaded when that backend is selected.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    people_sheet_name: str = Field(
        default="People",
        description="Name of the sheet for registered people"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for the expense log"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Core ledger settings.

    Every field has a default so the ledger works out of the box.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Where people, expenses and audit events are stored"
    )
    null_identity: str = Field(
        default=ZERO_ADDRESS,
        min_length=1,
        description="Identity value treated as 'no participant'"
    )
    reject_duplicate_participants: bool = Field(
        default=False,
        description=(
            "Reject an expense that lists the same identity twice "
            "instead of letting the later entry win"
        )
    )
    audit_enabled: bool = Field(
        default=True,
        description="Persist audit events (local structlog output is always on)"
    )

    @field_validator('null_identity')
    @classmethod
    def normalize_null_identity(cls, v: str) -> str:
        return v.strip().lower()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily so a memory-backed ledger needs no Sheets credentials

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()

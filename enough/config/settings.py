"""
Configuration Management for Enough

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backend and write policy are in
use, and ensures bad values are rejected at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BalanceSettings(BaseSettings):
    """Defaults used before any value has been persisted."""

    model_config = SettingsConfigDict(
        env_prefix="BALANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance assumed when nothing is stored yet"
    )
    default_daily_allowance: Decimal = Field(
        default=Decimal("10"),
        gt=0,
        description="Daily allowance assumed when nothing is stored yet"
    )
    currency_symbol: str = Field(
        default="€",
        max_length=5,
        description="Symbol shown next to amounts (display only)"
    )


class StorageSettings(BaseSettings):
    """Key-value storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json_file", "google_sheets"] = Field(
        default="json_file",
        description="Which storage backend to use"
    )
    json_path: str = Field(
        default="data/enough.json",
        description="File used by the json_file backend"
    )
    key_prefix: str = Field(
        default="enough_",
        description="Prefix for every stored key"
    )

    @field_validator('json_path')
    @classmethod
    def validate_json_path(cls, v: str) -> str:
        """Reject paths that point at a directory."""
        if Path(v).is_dir():
            raise ValueError(f"json_path must be a file, got directory: {v}")
        return v


class PersistenceSettings(BaseSettings):
    """How durable writes are performed."""

    model_config = SettingsConfigDict(
        env_prefix="PERSISTENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    strategy: Literal["best_effort", "retry"] = Field(
        default="best_effort",
        description="best_effort writes once; retry backs off and tries again"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per write for the retry strategy"
    )
    backoff_min_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Shortest wait between retries"
    )
    backoff_max_seconds: float = Field(
        default=8.0,
        ge=0.0,
        description="Longest wait between retries"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    balance_sheet_name: str = Field(
        default="Balance",
        description="Name of the key/value sheet"
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


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="json for machine-readable logs, console for humans"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Sub-settings are loaded lazily so Google Sheets can stay unconfigured
    # unless that backend is selected.

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def balance(self) -> BalanceSettings:
        return BalanceSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def persistence(self) -> PersistenceSettings:
        return PersistenceSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each section that failed.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    for name in ("app", "balance", "storage", "persistence"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results["storage"] and settings.storage.backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results

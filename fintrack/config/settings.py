"""
Configuration Management for FinTrack Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which backends the ledger can talk to and
ensures the settings are validated before any session starts.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

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
        description="ID of the spreadsheet holding the ledger tables"
    )

    # One worksheet per remote table
    profiles_sheet_name: str = Field(default="profiles")
    categories_sheet_name: str = Field(default="categories")
    monthly_stats_sheet_name: str = Field(default="monthly_stats")
    expenses_sheet_name: str = Field(default="expenses")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before starting a session."
            )
        return v

    def sheet_names(self) -> dict[str, str]:
        """Map remote table names to worksheet titles."""
        return {
            "profiles": self.profiles_sheet_name,
            "categories": self.categories_sheet_name,
            "monthly_stats": self.monthly_stats_sheet_name,
            "expenses": self.expenses_sheet_name,
        }


class LedgerSettings(BaseSettings):
    """
    Main ledger settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_",
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
        description="Enable debug logging"
    )

    # Backends
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Remote store implementation to use"
    )
    preferences_path: str = Field(
        default="~/.fintrack/preferences.json",
        description="File holding last active profile / month choices"
    )

    # Defaults for new data
    default_profile_name: str = Field(
        default="My Profile",
        min_length=1,
        description="Name of the profile created for a brand new user"
    )
    default_currency: str = Field(
        default="$",
        min_length=1,
        max_length=8,
        description="Currency symbol used when none is given"
    )
    default_category_color: str = Field(
        default="#6e8899",
        pattern="^#[0-9a-fA-F]{6}$",
        description="Color for categories created without one"
    )

    # Aggregations
    trend_months: int = Field(
        default=6,
        ge=1,
        le=36,
        description="Months shown by the monthly trend"
    )

    @property
    def preferences_file(self) -> Path:
        """Preferences path with the user directory expanded."""
        return Path(self.preferences_path).expanduser()


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    return results

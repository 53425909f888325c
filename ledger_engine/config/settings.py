"""
Configuration Management for the Ledger Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable policy lives here (page sizes, amount
brackets, heat map thresholds). Components receive settings by injection
and fall back to get_settings() when none is given.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PagingSettings(BaseSettings):
    """Page size policy for the transaction list."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_PAGING_",
        extra="ignore"
    )

    default_page_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Page size for month-scoped browsing"
    )
    day_page_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Page size when a single day is selected (avoids paging)"
    )
    search_page_size: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Page size while a keyword search is active"
    )


class DisplaySettings(BaseSettings):
    """Presentation policy that the engine derives view models from."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_DISPLAY_",
        extra="ignore"
    )

    currency_symbol: str = Field(
        default="¥",
        max_length=4,
        description="Symbol prefixed to formatted amounts"
    )
    # Upper bounds of the amount brackets; the last bracket is open-ended
    amount_bracket_bounds: list[Decimal] = Field(
        default_factory=lambda: [Decimal("50"), Decimal("200"), Decimal("1000")],
        description="Ascending upper bounds of the amount brackets"
    )
    # Upper bounds of heat levels 1..3; anything at or above the last is level 4
    heat_level_bounds: list[Decimal] = Field(
        default_factory=lambda: [Decimal("100"), Decimal("500"), Decimal("1000")],
        description="Ascending daily-total thresholds for the calendar heat map"
    )

    @field_validator("amount_bracket_bounds", "heat_level_bounds")
    @classmethod
    def validate_ascending(cls, v: list[Decimal]) -> list[Decimal]:
        """Bounds must be positive and strictly ascending."""
        if not v:
            raise ValueError("At least one bound is required")
        if v[0] <= 0:
            raise ValueError("Bounds must be positive")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Bounds must be strictly ascending")
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

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )


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

    @property
    def paging(self) -> PagingSettings:
        return PagingSettings()

    @property
    def display(self) -> DisplaySettings:
        return DisplaySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()

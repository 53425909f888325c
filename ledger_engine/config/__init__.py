"""Configuration package."""

from ledger_engine.config.settings import (
    AppSettings,
    DisplaySettings,
    PagingSettings,
    Settings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "DisplaySettings",
    "PagingSettings",
    "Settings",
    "get_settings",
]

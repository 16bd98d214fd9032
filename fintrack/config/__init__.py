"""Configuration package."""

from fintrack.config.settings import (
    LedgerSettings,
    LoggingSettings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "LedgerSettings",
    "LoggingSettings",
    "StorageSettings",
    "get_settings",
]

"""Configuration package."""

from family_finance.config.settings import (
    AppSettings,
    ExportSettings,
    OpenAISettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ExportSettings",
    "OpenAISettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]

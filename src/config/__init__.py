"""Configuration package."""

from src.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    ServerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

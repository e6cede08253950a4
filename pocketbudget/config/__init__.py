"""Configuration package."""

from pocketbudget.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    StoreSettings,
    StripeSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StoreSettings",
    "StripeSettings",
    "get_settings",
    "validate_all_settings",
]

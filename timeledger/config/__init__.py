"""Configuration package."""

from timeledger.config.settings import (
    AppSettings,
    RateSettings,
    Settings,
    TransferSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RateSettings",
    "Settings",
    "TransferSettings",
    "get_settings",
    "validate_all_settings",
]

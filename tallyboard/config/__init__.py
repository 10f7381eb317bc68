"""Configuration package."""

from tallyboard.config.settings import (
    AppSettings,
    ImageTransport,
    Settings,
    StorageSettings,
    UploadServerSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ImageTransport",
    "Settings",
    "StorageSettings",
    "UploadServerSettings",
    "get_settings",
    "validate_all_settings",
]

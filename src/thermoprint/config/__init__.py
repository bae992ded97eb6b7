"""Configuration for thermoprint."""

from thermoprint.config.settings import PrinterSettings, ReceiptSettings, Settings, get_settings

__all__ = [
    "PrinterSettings",
    "ReceiptSettings",
    "Settings",
    "get_settings",
]

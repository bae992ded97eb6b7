"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PrinterSettings(BaseSettings):
    """Bluetooth printer discovery and transport settings."""

    model_config = SettingsConfigDict(env_prefix="THERMOPRINT_PRINTER_", extra="ignore")

    # Standard ESC/POS BLE service
    primary_service_uuid: str = "000018f0-0000-1000-8000-00805f9b34fb"
    primary_characteristic_uuid: str = "00002af1-0000-1000-8000-00805f9b34fb"

    # Alternate service used by many cheap 58mm printers
    alternate_service_uuid: str = "0000ae30-0000-1000-8000-00805f9b34fb"
    alternate_characteristic_uuid: str = "0000ae01-0000-1000-8000-00805f9b34fb"

    name_prefixes: list[str] = Field(default=["Printer", "POS", "ESC"])

    # Host adapter (e.g. "hci0" on Linux), None for the system default
    adapter: Optional[str] = None

    # None leaves the timeout to the host transport
    discovery_timeout: Optional[float] = Field(default=None, gt=0)
    connect_timeout: Optional[float] = Field(default=None, gt=0)

    # Chunk size is capped at the largest single write the printers accept
    chunk_size: int = Field(default=512, gt=0, le=512)

    # Flow control (seconds)
    unacknowledged_delay: float = Field(default=0.005, ge=0)
    acknowledged_delay: float = Field(default=0.010, ge=0)
    fallback_delay: float = Field(default=0.020, ge=0)
    settle_delay: float = Field(default=0.3, ge=0)


class ReceiptSettings(BaseSettings):
    """Receipt layout settings (58mm paper)."""

    model_config = SettingsConfigDict(env_prefix="THERMOPRINT_RECEIPT_", extra="ignore")

    width: int = Field(default=32, ge=16)
    currency_symbol: str = "$"
    thousands_separator: str = "."
    codepage: Literal["cp437", "cp850", "cp858", "cp866"] = "cp850"
    default_footer: str = "Gracias por su compra"
    partial_cut: bool = False

    # IANA zone for printed times (e.g. "America/Bogota"), None for the host zone
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown timezone: {value}") from e
        return value


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="THERMOPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env: Literal["simulator", "hardware"] = "hardware"
    debug: bool = False

    # Nested settings
    printer: PrinterSettings = Field(default_factory=PrinterSettings)
    receipt: ReceiptSettings = Field(default_factory=ReceiptSettings)

    @property
    def is_simulator(self) -> bool:
        """Check if running against the simulated Bluetooth host."""
        return self.env == "simulator"

    @property
    def is_hardware(self) -> bool:
        """Check if running against a real Bluetooth adapter."""
        return self.env == "hardware"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

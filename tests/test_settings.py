"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from thermoprint.config.settings import PrinterSettings, ReceiptSettings, Settings, get_settings


class TestSettings:
    """Tests for the pydantic settings classes."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.is_hardware
        assert settings.printer.chunk_size == 512
        assert settings.printer.unacknowledged_delay == 0.005
        assert settings.printer.acknowledged_delay == 0.010
        assert settings.printer.fallback_delay == 0.020
        assert settings.printer.settle_delay == 0.3
        assert settings.printer.discovery_timeout is None
        assert settings.receipt.width == 32
        assert settings.receipt.codepage == "cp850"

    def test_printer_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMOPRINT_PRINTER_CHUNK_SIZE", "180")
        monkeypatch.setenv("THERMOPRINT_PRINTER_DISCOVERY_TIMEOUT", "15")
        monkeypatch.setenv("THERMOPRINT_PRINTER_NAME_PREFIXES", '["MTP", "RPP"]')
        settings = PrinterSettings()
        assert settings.chunk_size == 180
        assert settings.discovery_timeout == 15
        assert settings.name_prefixes == ["MTP", "RPP"]

    def test_receipt_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMOPRINT_RECEIPT_WIDTH", "48")
        monkeypatch.setenv("THERMOPRINT_RECEIPT_CURRENCY_SYMBOL", "€")
        settings = ReceiptSettings()
        assert settings.width == 48
        assert settings.currency_symbol == "€"

    def test_simulator_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMOPRINT_ENV", "simulator")
        assert Settings().is_simulator

    @pytest.mark.parametrize("field,value", [
        ("chunk_size", 0),
        ("chunk_size", 513),
        ("discovery_timeout", -1),
        ("settle_delay", -0.1),
    ])
    def test_invalid_printer_values(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            PrinterSettings(**{field: value})

    def test_chunk_size_upper_bound(self) -> None:
        assert PrinterSettings(chunk_size=512).chunk_size == 512

    def test_receipt_timezone(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert ReceiptSettings().timezone is None
        monkeypatch.setenv("THERMOPRINT_RECEIPT_TIMEZONE", "America/Bogota")
        assert ReceiptSettings().timezone == "America/Bogota"

    def test_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError):
            ReceiptSettings(timezone="America/Atlantis")

    def test_unsupported_codepage(self) -> None:
        with pytest.raises(ValidationError):
            ReceiptSettings(codepage="utf-8")

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

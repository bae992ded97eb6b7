"""Pytest configuration and fixtures."""

import os
from collections.abc import Iterator
from datetime import datetime

import pytest

from thermoprint.config.settings import PrinterSettings, ReceiptSettings, Settings, get_settings
from thermoprint.core.models import MerchantProfile, Sale, SaleItem
from thermoprint.simulator.mock_hardware import (
    SimulatedBluetoothHost,
    SimulatedCharacteristic,
    SimulatedDevice,
    SimulatedService,
)

PRIMARY_SERVICE = "000018f0-0000-1000-8000-00805f9b34fb"
PRIMARY_CHAR = "00002af1-0000-1000-8000-00805f9b34fb"
ALTERNATE_SERVICE = "0000ae30-0000-1000-8000-00805f9b34fb"
ALTERNATE_CHAR = "0000ae01-0000-1000-8000-00805f9b34fb"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep the developer's THERMOPRINT_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("THERMOPRINT_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def printer_settings() -> PrinterSettings:
    """Printer settings without flow-control delays."""
    return PrinterSettings(
        unacknowledged_delay=0,
        acknowledged_delay=0,
        fallback_delay=0,
        settle_delay=0,
    )


@pytest.fixture
def settings(printer_settings: PrinterSettings) -> Settings:
    return Settings(printer=printer_settings, receipt=ReceiptSettings())


@pytest.fixture
def merchant() -> MerchantProfile:
    return MerchantProfile(
        business_name="Panadería La Espiga",
        address="Calle 10 # 20-30",
        city="Medellín",
        phone="3001234567",
        email="ventas@laespiga.co",
        tax_id="900123456-7",
    )


@pytest.fixture
def simple_sale() -> Sale:
    """One item, quantity 2 at 15000, no discount."""
    return Sale(
        id="V-0001",
        timestamp=datetime(2024, 3, 15, 14, 30),
        cashier="Ana",
        items=[SaleItem(name="Pan de queso", quantity=2, unit_price=15000)],
        payment_method="Efectivo",
    )


@pytest.fixture
def sale_data() -> dict:
    """Sale in its JSON form."""
    return {
        "id": "V-0002",
        "timestamp": "2024-03-15T14:30:00Z",
        "cashier": "Ana",
        "items": [
            {"name": "Café", "quantity": 1, "unit_price": 4000},
            {
                "name": "Arepa",
                "quantity": 2,
                "unit_price": 5000,
                "toppings": [{"name": "Queso", "price": 1000, "quantity": 1}],
            },
        ],
        "payment_method": "Efectivo",
        "change": 1000,
    }


@pytest.fixture
def merchant_data() -> dict:
    return {"business_name": "Panadería La Espiga", "city": "Medellín"}


def make_printer(
    device_id: str = "AA:BB:CC:DD:EE:01",
    name: str = "Printer-58",
    service_uuid: str = PRIMARY_SERVICE,
    characteristic: SimulatedCharacteristic = None,
    **kwargs,
) -> SimulatedDevice:
    """Simulated printer with one service and one characteristic."""
    characteristic = characteristic or SimulatedCharacteristic(PRIMARY_CHAR)
    return SimulatedDevice(
        device_id=device_id,
        name=name,
        services=[SimulatedService(service_uuid, [characteristic])],
        **kwargs,
    )


@pytest.fixture
def printer() -> SimulatedDevice:
    return make_printer()


@pytest.fixture
def host(printer: SimulatedDevice) -> SimulatedBluetoothHost:
    return SimulatedBluetoothHost(devices=[printer])

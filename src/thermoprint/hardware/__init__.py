"""Bluetooth transport abstraction for thermoprint."""

from .base import (
    BluetoothDevice,
    BluetoothHost,
    CharacteristicProperties,
    DeviceFilter,
    GattCharacteristic,
    GattServer,
    GattService,
    HostError,
    HostNotFoundError,
    HostSecurityError,
    HostNetworkError,
    GattOperationError,
    HostNotSupportedError,
    HostDisconnectedError,
)

__all__ = [
    # Base classes
    "BluetoothDevice",
    "BluetoothHost",
    "CharacteristicProperties",
    "DeviceFilter",
    "GattCharacteristic",
    "GattServer",
    "GattService",
    # Host errors
    "HostError",
    "HostNotFoundError",
    "HostSecurityError",
    "HostNetworkError",
    "GattOperationError",
    "HostNotSupportedError",
    "HostDisconnectedError",
]

"""Mock hardware implementations for the simulator."""

from .bluetooth import (
    SimulatedBluetoothHost,
    SimulatedCharacteristic,
    SimulatedDevice,
    SimulatedServer,
    SimulatedService,
)

__all__ = [
    "SimulatedBluetoothHost",
    "SimulatedCharacteristic",
    "SimulatedDevice",
    "SimulatedServer",
    "SimulatedService",
]

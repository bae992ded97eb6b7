"""Receipt printer negotiation and transmission."""

from thermoprint.hardware.printer.negotiator import (
    CapabilityNegotiator,
    NegotiatedConnection,
    WriteMode,
    resolve_first,
)
from thermoprint.hardware.printer.sender import ChunkSender, SendReport, chunk_stream
from thermoprint.hardware.printer.ble import BleakBluetoothHost

__all__ = [
    "CapabilityNegotiator",
    "NegotiatedConnection",
    "WriteMode",
    "resolve_first",
    "ChunkSender",
    "SendReport",
    "chunk_stream",
    "BleakBluetoothHost",
]

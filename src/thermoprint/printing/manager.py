"""Print manager for sale receipts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from thermoprint.config.settings import Settings, get_settings
from thermoprint.core.errors import (
    InvalidPrintRequestError,
    PrintError,
    UnsupportedTransportError,
    WriteFailedError,
)
from thermoprint.core.events import Event, EventBus, EventType
from thermoprint.core.models import MerchantProfile, PrinterIdentity, Sale
from thermoprint.hardware.base import BluetoothHost
from thermoprint.hardware.printer.ble import BleakBluetoothHost
from thermoprint.hardware.printer.negotiator import (
    CapabilityNegotiator,
    NegotiatedConnection,
    classify_host_error,
)
from thermoprint.hardware.printer.sender import ChunkSender, SendReport
from thermoprint.printing.receipt import ReceiptEncoder
from thermoprint.simulator.mock_hardware import SimulatedBluetoothHost

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Recibo impreso correctamente"
DEFAULT_PRINTER_NAME = "Impresora Bluetooth"
UNNAMED_DEVICE = "Dispositivo sin nombre"


@dataclass
class PrintResult:
    """Outcome of a successful print session."""

    success: bool
    message: str = SUCCESS_MESSAGE
    report: Optional[SendReport] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


def create_host(mock: bool = False, settings: Optional[Settings] = None) -> BluetoothHost:
    """Factory function to create the Bluetooth host.

    Args:
        mock: Force the simulated host
        settings: Application settings, defaults to get_settings()

    Returns:
        Bluetooth host instance
    """
    settings = settings or get_settings()
    if mock or settings.is_simulator:
        logger.info("Using simulated Bluetooth host")
        return SimulatedBluetoothHost.with_printer(settings=settings.printer)
    return BleakBluetoothHost(settings.printer)


class PrintManager:
    """Runs print sessions: negotiate, encode, send.

    Each call to print_receipt() is an independent session with its own
    connection. Concurrent sessions to the same printer must be
    serialized by the caller.
    """

    def __init__(
        self,
        host: BluetoothHost,
        settings: Optional[Settings] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._host = host
        self._event_bus = event_bus
        self._negotiator = CapabilityNegotiator(host, self._settings.printer)
        self._encoder = ReceiptEncoder(self._settings.receipt)
        self._sender = ChunkSender(self._settings.printer)

    @property
    def encoder(self) -> ReceiptEncoder:
        return self._encoder

    async def print_receipt(
        self,
        sale: Optional[Sale],
        merchant: Optional[MerchantProfile],
        saved_printer: Optional[PrinterIdentity] = None,
    ) -> PrintResult:
        """Print a sale receipt.

        Args:
            sale: The sale to print
            merchant: Business details for the header
            saved_printer: Previously paired printer, if the caller has one

        Returns:
            PrintResult with a message that can be shown to the cashier

        Raises:
            PrintError: Classified failure of any stage
        """
        connection: Optional[NegotiatedConnection] = None
        try:
            self._validate(sale, merchant)
            self._emit(EventType.PRINT_START, {"sale_id": sale.id})

            connection = await self._negotiator.connect(saved_printer)
            self._emit(EventType.PRINTER_CONNECTED, {
                "sale_id": sale.id,
                "device_id": connection.device.device_id,
                "write_mode": connection.write_mode.value,
            })

            data = self._encoder.encode(sale, merchant)

            def on_progress(sent: int, total: int) -> None:
                self._emit(EventType.PRINT_PROGRESS, {
                    "sale_id": sale.id,
                    "chunk": sent,
                    "total_chunks": total,
                })

            report = await self._sender.send(connection, data, on_progress=on_progress)

        except PrintError as e:
            await self._abort(connection, e)
            raise
        except Exception as e:
            error = classify_host_error(e) if connection is None else WriteFailedError()
            await self._abort(connection, error)
            raise error from e

        logger.info(f"Receipt {sale.id} printed ({report.bytes_sent} bytes)")
        self._emit(EventType.PRINT_COMPLETE, {
            "sale_id": sale.id,
            "chunks": report.chunks_sent,
            "bytes": report.bytes_sent,
        })
        # Leave the link open; closing early can truncate the printer's buffer
        return PrintResult(success=True, report=report)

    async def pair_printer(self) -> PrinterIdentity:
        """Select a printer interactively and return its identity for saving."""
        try:
            if not await self._host.is_available():
                raise UnsupportedTransportError()
            device = await self._host.request_device(
                self._negotiator.generic_filters(),
                self._settings.printer.discovery_timeout,
            )
        except PrintError:
            raise
        except Exception as e:
            raise classify_host_error(e) from e

        identity = PrinterIdentity(device_id=device.device_id, name=device.name or DEFAULT_PRINTER_NAME)
        logger.info(f"Paired printer {identity.name} ({identity.device_id})")
        return identity

    async def list_printers(self) -> list[PrinterIdentity]:
        """Devices the host already knows about."""
        try:
            if not await self._host.is_available():
                raise UnsupportedTransportError()
            devices = await self._host.get_devices()
        except PrintError:
            raise
        except Exception as e:
            raise classify_host_error(e) from e
        return [PrinterIdentity(device_id=d.device_id, name=d.name or UNNAMED_DEVICE) for d in devices]

    def preview(self, sale: Sale, merchant: MerchantProfile) -> str:
        """Plain-text rendering of the receipt, without touching the printer."""
        self._validate(sale, merchant)
        return self._encoder.build(sale, merchant).preview

    def _validate(self, sale: Optional[Sale], merchant: Optional[MerchantProfile]) -> None:
        if sale is None:
            raise InvalidPrintRequestError("Faltan los datos de la venta.")
        if merchant is None or not (merchant.business_name or "").strip():
            raise InvalidPrintRequestError("Faltan los datos del negocio.")

    async def _abort(self, connection: Optional[NegotiatedConnection], error: PrintError) -> None:
        logger.error(f"Print failed ({error.kind.value}): {error.message}")
        self._emit(EventType.PRINT_ERROR, error.to_dict())
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.warning(f"Disconnect after failed print also failed: {e}")

    def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self._event_bus:
            self._event_bus.emit(Event(event_type, data=data, source="print_manager"))


async def print_receipt(
    sale: Sale,
    merchant: MerchantProfile,
    saved_printer: Optional[PrinterIdentity] = None,
    settings: Optional[Settings] = None,
) -> PrintResult:
    """Print a receipt on the system's Bluetooth printer."""
    settings = settings or get_settings()
    manager = PrintManager(create_host(settings=settings), settings)
    return await manager.print_receipt(sale, merchant, saved_printer)

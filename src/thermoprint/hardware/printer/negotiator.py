"""Printer discovery and capability negotiation.

Finds the receipt printer, connects to it and works out which GATT
characteristic and write modes can be used to send it commands.

Every lookup here is a fallback chain (saved device, then selection by
name, then generic selection; primary UUID, then alternate UUID, then a
full scan), all run through resolve_first().
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Tuple, TypeVar

from thermoprint.config.settings import PrinterSettings
from thermoprint.core.errors import (
    CharacteristicUnsupportedError,
    ConnectionLostError,
    DeviceNotFoundError,
    PrintError,
    SecurityContextError,
    UnsupportedTransportError,
)
from thermoprint.core.models import PrinterIdentity
from thermoprint.hardware.base import (
    BluetoothDevice,
    BluetoothHost,
    DeviceFilter,
    GattCharacteristic,
    GattOperationError,
    GattServer,
    GattService,
    HostError,
    HostNotFoundError,
    HostSecurityError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attempt = Tuple[str, Callable[[], Awaitable[Optional[T]]]]


class WriteMode(Enum):
    """How a chunk is written to the characteristic."""

    ACKNOWLEDGED = "acknowledged"
    UNACKNOWLEDGED = "unacknowledged"

    @property
    def with_response(self) -> bool:
        return self is WriteMode.ACKNOWLEDGED


class FallbackExhausted(HostError):
    """Every alternative of a fallback chain failed."""

    def __init__(self, what: str, last_error: Optional[BaseException] = None):
        self.what = what
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"No {what} could be resolved{detail}")


async def resolve_first(
    what: str,
    attempts: Sequence[Attempt],
    fatal: Tuple[type, ...] = (HostSecurityError,),
) -> T:
    """Run attempts in order and return the first non-None result.

    Host errors move on to the next attempt; errors listed in `fatal`
    propagate immediately.

    Raises:
        FallbackExhausted: No attempt produced a result
    """
    last_error: Optional[BaseException] = None
    for label, attempt in attempts:
        try:
            result = await attempt()
        except fatal:
            raise
        except HostError as e:
            logger.debug(f"{what}: {label} failed ({e})")
            last_error = e
            continue
        if result is not None:
            logger.debug(f"{what}: resolved via {label}")
            return result
        logger.debug(f"{what}: {label} found nothing")
    raise FallbackExhausted(what, last_error)


@dataclass
class NegotiatedConnection:
    """A connected printer with a known writable characteristic.

    Owned exclusively by the print session that created it.
    """

    device: BluetoothDevice
    server: GattServer
    service_uuid: str
    characteristic: GattCharacteristic
    write_mode: WriteMode
    supported_modes: frozenset = field(default_factory=frozenset)

    @property
    def is_connected(self) -> bool:
        return self.server.is_connected

    def supports(self, mode: WriteMode) -> bool:
        return mode in self.supported_modes

    def alternate_mode(self, mode: WriteMode) -> Optional[WriteMode]:
        """The other write mode, if the characteristic supports it."""
        other = (
            WriteMode.ACKNOWLEDGED
            if mode is WriteMode.UNACKNOWLEDGED
            else WriteMode.UNACKNOWLEDGED
        )
        return other if self.supports(other) else None

    async def close(self) -> None:
        if self.server.is_connected:
            await self.server.disconnect()


def classify_host_error(error: Exception) -> PrintError:
    """Map a failure during discovery or connection to a print error."""
    if isinstance(error, PrintError):
        return error
    if isinstance(error, HostNotFoundError):
        logger.error(f"No printer selected: {error}")
        return DeviceNotFoundError()
    if isinstance(error, HostSecurityError):
        logger.error(f"Bluetooth not allowed: {error}")
        return SecurityContextError()
    logger.error(f"Printer negotiation failed: {error}")
    return ConnectionLostError(
        "Error de conexión con la impresora. Verifica que esté cerca y encendida."
    )


def supported_write_modes(characteristic: GattCharacteristic) -> frozenset:
    props = characteristic.properties
    modes = set()
    if props.write:
        modes.add(WriteMode.ACKNOWLEDGED)
    if props.write_without_response:
        modes.add(WriteMode.UNACKNOWLEDGED)
    return frozenset(modes)


class CapabilityNegotiator:
    """Obtains a connected, capability-known printer handle."""

    def __init__(self, host: BluetoothHost, settings: Optional[PrinterSettings] = None):
        self._host = host
        self._settings = settings or PrinterSettings()

    @property
    def service_uuids(self) -> Tuple[str, str]:
        return (self._settings.primary_service_uuid, self._settings.alternate_service_uuid)

    @property
    def characteristic_uuids(self) -> Tuple[str, str]:
        return (
            self._settings.primary_characteristic_uuid,
            self._settings.alternate_characteristic_uuid,
        )

    def generic_filters(self) -> list[DeviceFilter]:
        """Known printer services plus recognised name prefixes."""
        filters = [DeviceFilter(services=(uuid,)) for uuid in self.service_uuids]
        filters.extend(DeviceFilter(name_prefix=prefix) for prefix in self._settings.name_prefixes)
        return filters

    def named_filters(self, name: str) -> list[DeviceFilter]:
        filters = [DeviceFilter(name=name)]
        filters.extend(DeviceFilter(services=(uuid,)) for uuid in self.service_uuids)
        return filters

    async def connect(self, saved_printer: Optional[PrinterIdentity] = None) -> NegotiatedConnection:
        """Connect to the printer.

        Args:
            saved_printer: Previously paired printer, skips selection if found

        Returns:
            Negotiated connection with its default write mode

        Raises:
            PrintError: Classified negotiation failure
        """
        try:
            return await self._negotiate(saved_printer)
        except PrintError:
            raise
        except Exception as e:
            raise classify_host_error(e) from e

    async def select_device(self, saved_printer: Optional[PrinterIdentity] = None) -> BluetoothDevice:
        """Resolve the device to print to, without connecting."""
        if saved_printer and saved_printer.device_id:
            device = await self._find_saved(saved_printer)
            if device:
                logger.info(f"Using saved printer: {saved_printer.name or saved_printer.device_id}")
                return device
            logger.info("Saved printer not found, requesting selection")

        timeout = self._settings.discovery_timeout
        attempts: list[Attempt] = []
        if saved_printer and saved_printer.name:
            named = self.named_filters(saved_printer.name)
            attempts.append((
                f"name '{saved_printer.name}'",
                lambda: self._host.request_device(named, timeout),
            ))
        generic = self.generic_filters()
        attempts.append(("generic filters", lambda: self._host.request_device(generic, timeout)))

        try:
            return await resolve_first("printer device", attempts)
        except FallbackExhausted as e:
            # The generic selection runs last, so its error is the one to report
            if e.last_error is not None:
                raise e.last_error
            raise HostNotFoundError(str(e)) from e

    async def _find_saved(self, saved_printer: PrinterIdentity) -> Optional[BluetoothDevice]:
        try:
            return await self._host.get_device(saved_printer.device_id)
        except HostSecurityError:
            raise
        except HostError as e:
            logger.warning(f"Could not look up saved printer: {e}")
            return None

    async def _negotiate(self, saved_printer: Optional[PrinterIdentity]) -> NegotiatedConnection:
        if not await self._host.is_available():
            logger.error("No Bluetooth transport on this host")
            raise UnsupportedTransportError()

        device = await self.select_device(saved_printer)

        logger.info(f"Connecting to {device.name or device.device_id}")
        server = await self._host.connect(device)

        try:
            return await self._describe(device, server)
        except BaseException:
            try:
                await server.disconnect()
            except Exception as e:
                logger.warning(f"Disconnect after failed negotiation also failed: {e}")
            raise

    async def _describe(self, device: BluetoothDevice, server: GattServer) -> NegotiatedConnection:
        service, characteristic = await self._resolve_characteristic(server)

        modes = supported_write_modes(characteristic)
        if not modes:
            raise CharacteristicUnsupportedError()

        # Unacknowledged writes have no per-chunk round trip
        if WriteMode.UNACKNOWLEDGED in modes:
            default_mode = WriteMode.UNACKNOWLEDGED
        else:
            default_mode = WriteMode.ACKNOWLEDGED

        logger.info(
            f"Characteristic {characteristic.uuid} on service {service.uuid}: "
            f"modes={sorted(m.value for m in modes)}, default={default_mode.value}"
        )
        return NegotiatedConnection(
            device=device,
            server=server,
            service_uuid=service.uuid,
            characteristic=characteristic,
            write_mode=default_mode,
            supported_modes=modes,
        )

    async def _resolve_characteristic(
        self, server: GattServer
    ) -> Tuple[GattService, GattCharacteristic]:
        """Find the service and characteristic to write printer commands to."""
        primary, alternate = self.service_uuids
        service: Optional[GattService]
        try:
            service = await resolve_first("printer service", [
                ("primary service", lambda: server.get_primary_service(primary)),
                ("alternate service", lambda: server.get_primary_service(alternate)),
            ])
        except FallbackExhausted as e:
            logger.warning(f"{e}, scanning all services")
            service = None

        attempts: list[Attempt] = []
        if service is not None:
            known = service
            attempts.extend(
                (f"characteristic {uuid}", lambda uuid=uuid: self._known_characteristic(known, uuid))
                for uuid in self.characteristic_uuids
            )
        attempts.append(("writable scan", lambda: self._scan_writable(server)))

        try:
            return await resolve_first("printer characteristic", attempts)
        except FallbackExhausted as e:
            raise CharacteristicUnsupportedError(
                "No se pudo encontrar el servicio de impresión en la impresora."
            ) from e

    async def _known_characteristic(
        self, service: GattService, uuid: str
    ) -> Tuple[GattService, GattCharacteristic]:
        return service, await service.get_characteristic(uuid)

    async def _scan_writable(
        self, server: GattServer
    ) -> Optional[Tuple[GattService, GattCharacteristic]]:
        """First characteristic on any service that accepts writes."""
        for service in await server.get_primary_services():
            try:
                characteristics = await service.get_characteristics()
            except GattOperationError as e:
                logger.debug(f"Skipping service {service.uuid}: {e}")
                continue
            for characteristic in characteristics:
                if characteristic.properties.writable:
                    return service, characteristic
        return None

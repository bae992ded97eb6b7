"""Tests for printer discovery and capability negotiation."""

import pytest

from conftest import ALTERNATE_CHAR, ALTERNATE_SERVICE, PRIMARY_CHAR, PRIMARY_SERVICE, make_printer
from thermoprint.config.settings import PrinterSettings
from thermoprint.core.errors import (
    CharacteristicUnsupportedError,
    ConnectionLostError,
    DeviceNotFoundError,
    ErrorKind,
    SecurityContextError,
    UnsupportedTransportError,
)
from thermoprint.core.models import PrinterIdentity
from thermoprint.hardware.base import (
    GattOperationError,
    HostNetworkError,
    HostNotFoundError,
    HostSecurityError,
)
from thermoprint.hardware.printer.negotiator import (
    CapabilityNegotiator,
    FallbackExhausted,
    WriteMode,
    classify_host_error,
    resolve_first,
)
from thermoprint.simulator.mock_hardware import (
    SimulatedBluetoothHost,
    SimulatedCharacteristic,
    SimulatedDevice,
    SimulatedService,
)


def returning(value):
    async def attempt():
        return value
    return attempt


def raising(error: Exception):
    async def attempt():
        raise error
    return attempt


class TestResolveFirst:
    """Tests for the ordered fallback routine."""

    @pytest.mark.asyncio
    async def test_first_result_wins(self) -> None:
        result = await resolve_first("thing", [("a", returning(1)), ("b", returning(2))])
        assert result == 1

    @pytest.mark.asyncio
    async def test_host_errors_fall_through(self) -> None:
        result = await resolve_first("thing", [
            ("a", raising(GattOperationError("nope"))),
            ("b", returning(None)),
            ("c", returning("found")),
        ])
        assert result == "found"

    @pytest.mark.asyncio
    async def test_fatal_errors_propagate(self) -> None:
        later = []

        async def never():
            later.append(True)

        with pytest.raises(HostSecurityError):
            await resolve_first("thing", [("a", raising(HostSecurityError("blocked"))), ("b", never)])
        assert later == []

    @pytest.mark.asyncio
    async def test_non_host_errors_propagate(self) -> None:
        with pytest.raises(RuntimeError):
            await resolve_first("thing", [("a", raising(RuntimeError("bug"))), ("b", returning(1))])

    @pytest.mark.asyncio
    async def test_exhaustion_keeps_last_error(self) -> None:
        last = GattOperationError("second")
        with pytest.raises(FallbackExhausted) as exc_info:
            await resolve_first("thing", [("a", raising(GattOperationError("first"))), ("b", raising(last))])
        assert exc_info.value.last_error is last


class TestCharacteristicResolution:
    """Service and characteristic lookup on a connected printer."""

    @pytest.mark.asyncio
    async def test_standard_printer(self, host: SimulatedBluetoothHost, printer_settings: PrinterSettings) -> None:
        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.is_connected
        assert connection.service_uuid == PRIMARY_SERVICE
        assert connection.characteristic.uuid == PRIMARY_CHAR
        assert connection.write_mode is WriteMode.UNACKNOWLEDGED
        assert connection.supported_modes == {WriteMode.ACKNOWLEDGED, WriteMode.UNACKNOWLEDGED}

    @pytest.mark.asyncio
    async def test_acknowledged_only_defaults_to_acknowledged(self, printer_settings: PrinterSettings) -> None:
        characteristic = SimulatedCharacteristic(PRIMARY_CHAR, write_without_response=False)
        host = SimulatedBluetoothHost(devices=[make_printer(characteristic=characteristic)])

        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.write_mode is WriteMode.ACKNOWLEDGED
        assert connection.alternate_mode(WriteMode.ACKNOWLEDGED) is None

    @pytest.mark.asyncio
    async def test_alternate_service(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer(
            service_uuid=ALTERNATE_SERVICE,
            characteristic=SimulatedCharacteristic(ALTERNATE_CHAR),
        )
        host = SimulatedBluetoothHost(devices=[printer])

        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.service_uuid == ALTERNATE_SERVICE
        assert connection.characteristic.uuid == ALTERNATE_CHAR

    @pytest.mark.asyncio
    async def test_alternate_characteristic_on_primary_service(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer(characteristic=SimulatedCharacteristic(ALTERNATE_CHAR))
        host = SimulatedBluetoothHost(devices=[printer])

        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.service_uuid == PRIMARY_SERVICE
        assert connection.characteristic.uuid == ALTERNATE_CHAR

    @pytest.mark.asyncio
    async def test_scan_finds_first_writable(self, printer_settings: PrinterSettings) -> None:
        vendor_service = "49535343-fe7d-4ae5-8fa9-9fafd205e455"
        notify_only = SimulatedCharacteristic("49535343-1e4d-4bd9-ba61-23c647249616", write=False, write_without_response=False)
        writable = SimulatedCharacteristic("49535343-8841-43f4-a8d4-ecbe34729bb3", write=True, write_without_response=False)
        printer = SimulatedDevice(
            device_id="AA:BB:CC:DD:EE:02",
            name="Printer-X",
            services=[SimulatedService(vendor_service, [notify_only, writable])],
        )
        host = SimulatedBluetoothHost(devices=[printer])

        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.characteristic is writable
        assert connection.service_uuid == vendor_service

    @pytest.mark.asyncio
    async def test_no_writable_characteristic(self, printer_settings: PrinterSettings) -> None:
        read_only = SimulatedCharacteristic(PRIMARY_CHAR, write=False, write_without_response=False)
        printer = make_printer(characteristic=read_only)
        host = SimulatedBluetoothHost(devices=[printer])

        with pytest.raises(CharacteristicUnsupportedError) as exc_info:
            await CapabilityNegotiator(host, printer_settings).connect()

        assert exc_info.value.kind is ErrorKind.CHARACTERISTIC_UNSUPPORTED
        # The half-negotiated link is torn down
        assert not printer.connected
        assert printer.disconnect_count == 1

    @pytest.mark.asyncio
    async def test_no_services_at_all(self, printer_settings: PrinterSettings) -> None:
        printer = SimulatedDevice(device_id="AA", name="Printer-empty", advertised_services=[PRIMARY_SERVICE])
        host = SimulatedBluetoothHost(devices=[printer])

        with pytest.raises(CharacteristicUnsupportedError):
            await CapabilityNegotiator(host, printer_settings).connect()


class TestDeviceSelection:
    """Saved device lookup and filtered selection."""

    @pytest.mark.asyncio
    async def test_saved_printer_skips_selection(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer()
        host = SimulatedBluetoothHost(devices=[printer], known_ids=[printer.device_id])
        saved = PrinterIdentity(device_id=printer.device_id, name="Printer-58")

        connection = await CapabilityNegotiator(host, printer_settings).connect(saved)

        assert connection.device.device_id == printer.device_id
        assert host.requests == []

    @pytest.mark.asyncio
    async def test_unknown_saved_printer_uses_name_filter(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer()
        host = SimulatedBluetoothHost(devices=[printer])
        saved = PrinterIdentity(device_id="11:22:33:44:55:66", name="Printer-58")

        await CapabilityNegotiator(host, printer_settings).connect(saved)

        assert len(host.requests) == 1
        assert host.requests[0][0].name == "Printer-58"

    @pytest.mark.asyncio
    async def test_name_filter_failure_falls_back_to_generic(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer()
        host = SimulatedBluetoothHost(devices=[printer], request_errors=[HostNotFoundError("cancelled"), None])
        saved = PrinterIdentity(device_id="11:22:33:44:55:66", name="Old printer")
        negotiator = CapabilityNegotiator(host, printer_settings)

        connection = await negotiator.connect(saved)

        assert connection.device.device_id == printer.device_id
        assert len(host.requests) == 2
        assert host.requests[1] == negotiator.generic_filters()

    @pytest.mark.asyncio
    async def test_selection_by_name_prefix(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer(name="POS-5802DD", advertised_services=[])
        host = SimulatedBluetoothHost(devices=[printer])

        connection = await CapabilityNegotiator(host, printer_settings).connect()

        assert connection.device.name == "POS-5802DD"

    def test_generic_filters(self, printer_settings: PrinterSettings) -> None:
        filters = CapabilityNegotiator(SimulatedBluetoothHost(), printer_settings).generic_filters()
        services = [f.services for f in filters if f.services]
        prefixes = [f.name_prefix for f in filters if f.name_prefix]
        assert services == [(PRIMARY_SERVICE,), (ALTERNATE_SERVICE,)]
        assert prefixes == ["Printer", "POS", "ESC"]


class TestFailureClassification:
    """Negotiation failures reach the caller as PrintErrors."""

    @pytest.mark.asyncio
    async def test_no_transport(self, printer_settings: PrinterSettings) -> None:
        host = SimulatedBluetoothHost(devices=[make_printer()], available=False)
        with pytest.raises(UnsupportedTransportError):
            await CapabilityNegotiator(host, printer_settings).connect()

    @pytest.mark.asyncio
    async def test_insecure_context(self, printer_settings: PrinterSettings) -> None:
        host = SimulatedBluetoothHost(devices=[make_printer()], secure=False)
        with pytest.raises(SecurityContextError):
            await CapabilityNegotiator(host, printer_settings).connect()

    @pytest.mark.asyncio
    async def test_no_matching_device(self, printer_settings: PrinterSettings) -> None:
        speaker = SimulatedDevice(device_id="AA", name="JBL Flip", services=[])
        host = SimulatedBluetoothHost(devices=[speaker])
        with pytest.raises(DeviceNotFoundError):
            await CapabilityNegotiator(host, printer_settings).connect()

    @pytest.mark.asyncio
    async def test_connect_failure(self, printer_settings: PrinterSettings) -> None:
        printer = make_printer(connect_error=HostNetworkError("timeout"))
        host = SimulatedBluetoothHost(devices=[printer])
        with pytest.raises(ConnectionLostError):
            await CapabilityNegotiator(host, printer_settings).connect()

    @pytest.mark.asyncio
    async def test_discovery_failure(self, printer_settings: PrinterSettings) -> None:
        host = SimulatedBluetoothHost(devices=[make_printer()], request_errors=[HostNetworkError("adapter reset")])
        with pytest.raises(ConnectionLostError):
            await CapabilityNegotiator(host, printer_settings).connect()

    @pytest.mark.parametrize("error,expected", [
        (HostNotFoundError("x"), DeviceNotFoundError),
        (HostSecurityError("x"), SecurityContextError),
        (HostNetworkError("x"), ConnectionLostError),
        (RuntimeError("x"), ConnectionLostError),
    ])
    def test_classify_host_error(self, error: Exception, expected: type) -> None:
        assert isinstance(classify_host_error(error), expected)

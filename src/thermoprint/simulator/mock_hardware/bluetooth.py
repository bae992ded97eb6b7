"""
Simulated Bluetooth host for the simulator and tests.

Keeps devices, services and characteristics in memory and records every
write, so print sessions can be replayed and inspected without a
printer. Failures (rejected write modes, dropped links, failed lookups)
are injected per device.
"""

from typing import Optional, Sequence

from ...config.settings import PrinterSettings
from ...hardware.base import (
    BluetoothDevice,
    BluetoothHost,
    CharacteristicProperties,
    DeviceFilter,
    GattCharacteristic,
    GattOperationError,
    GattServer,
    GattService,
    HostDisconnectedError,
    HostNotFoundError,
    HostNotSupportedError,
    HostSecurityError,
)


class SimulatedCharacteristic(GattCharacteristic):
    """
    In-memory characteristic that records accepted writes.

    Attributes:
        writes: Accepted (data, with_response) pairs in order
        attempts: Number of write calls, accepted or not
        fail_writes: Error to raise on a given 1-based write attempt
        reject_mode: Write mode (with_response value) always refused
        disconnect_after: Drop the link after this many accepted writes
    """

    def __init__(
        self,
        uuid: str,
        write: bool = True,
        write_without_response: bool = True,
        fail_writes: Optional[dict[int, Exception]] = None,
        reject_mode: Optional[bool] = None,
        disconnect_after: Optional[int] = None,
    ) -> None:
        self._uuid = uuid
        self._properties = CharacteristicProperties(
            write=write,
            write_without_response=write_without_response,
        )
        self.fail_writes = dict(fail_writes or {})
        self.reject_mode = reject_mode
        self.disconnect_after = disconnect_after
        self.writes: list[tuple[bytes, bool]] = []
        self.attempts = 0
        self._device: Optional["SimulatedDevice"] = None

    @property
    def uuid(self) -> str:
        return self._uuid

    @property
    def properties(self) -> CharacteristicProperties:
        return self._properties

    @property
    def data(self) -> bytes:
        """Everything the printer received, in order."""
        return b"".join(data for data, _ in self.writes)

    async def write(self, data: bytes, with_response: bool) -> None:
        self.attempts += 1
        if self._device is not None and not self._device.connected:
            raise HostDisconnectedError("Device is not connected")

        error = self.fail_writes.get(self.attempts)
        if error is not None:
            raise error

        supported = self._properties.write if with_response else self._properties.write_without_response
        if not supported or with_response == self.reject_mode:
            mode = "write" if with_response else "write-without-response"
            raise HostNotSupportedError(f"{mode} not supported by {self._uuid}")

        self.writes.append((bytes(data), with_response))

        if self.disconnect_after is not None and len(self.writes) >= self.disconnect_after:
            if self._device is not None:
                self._device.connected = False


class SimulatedService(GattService):
    """In-memory GATT service."""

    def __init__(self, uuid: str, characteristics: Sequence[SimulatedCharacteristic] = ()) -> None:
        self._uuid = uuid
        self.characteristics = list(characteristics)

    @property
    def uuid(self) -> str:
        return self._uuid

    async def get_characteristic(self, uuid: str) -> GattCharacteristic:
        for characteristic in self.characteristics:
            if characteristic.uuid.lower() == uuid.lower():
                return characteristic
        raise GattOperationError(f"Characteristic {uuid} not found")

    async def get_characteristics(self) -> list[GattCharacteristic]:
        return list(self.characteristics)


class SimulatedDevice:
    """
    A simulated peripheral.

    Attributes:
        advertised_services: Service UUIDs in its advertisement, defaults
            to the UUIDs of its GATT services
        connect_error: Raised by the host when connecting to it
    """

    def __init__(
        self,
        device_id: str,
        name: Optional[str] = None,
        services: Sequence[SimulatedService] = (),
        advertised_services: Optional[Sequence[str]] = None,
        connect_error: Optional[Exception] = None,
    ) -> None:
        self.device_id = device_id
        self.name = name
        self.services = list(services)
        if advertised_services is None:
            advertised_services = [s.uuid for s in self.services]
        self.advertised_services = list(advertised_services)
        self.connect_error = connect_error
        self.connected = False
        self.connect_count = 0
        self.disconnect_count = 0

        for service in self.services:
            for characteristic in service.characteristics:
                characteristic._device = self

    def as_device(self) -> BluetoothDevice:
        return BluetoothDevice(device_id=self.device_id, name=self.name, handle=self)

    def matches(self, filters: Sequence[DeviceFilter]) -> bool:
        return any(f.matches(self.name, self.advertised_services) for f in filters)


class SimulatedServer(GattServer):
    """GATT server view of a connected simulated device."""

    def __init__(self, device: SimulatedDevice) -> None:
        self._device = device

    @property
    def is_connected(self) -> bool:
        return self._device.connected

    async def get_primary_service(self, uuid: str) -> GattService:
        for service in self._device.services:
            if service.uuid.lower() == uuid.lower():
                return service
        raise GattOperationError(f"Service {uuid} not found")

    async def get_primary_services(self) -> list[GattService]:
        return list(self._device.services)

    async def disconnect(self) -> None:
        if self._device.connected:
            self._device.connected = False
            self._device.disconnect_count += 1


class SimulatedBluetoothHost(BluetoothHost):
    """
    Simulated Bluetooth host.

    Device selection picks the first device matching any filter, like a
    user choosing the only printer in the picker. Selected devices
    become known to the host, so a later saved-device lookup finds them.

    Attributes:
        requests: Filter lists passed to every request_device call
        request_errors: Errors raised by successive request_device calls
            (None entries let that call proceed normally)
    """

    def __init__(
        self,
        devices: Sequence[SimulatedDevice] = (),
        known_ids: Sequence[str] = (),
        available: bool = True,
        secure: bool = True,
        request_errors: Sequence[Optional[Exception]] = (),
    ) -> None:
        self.devices = list(devices)
        self.known_ids = list(known_ids)
        self.available = available
        self.secure = secure
        self.request_errors = list(request_errors)
        self.requests: list[list[DeviceFilter]] = []

    @classmethod
    def with_printer(
        cls,
        name: str = "Printer-58",
        device_id: str = "SIM:00:00:00:00:01",
        settings: Optional[PrinterSettings] = None,
    ) -> "SimulatedBluetoothHost":
        """Host with a single printer exposing the standard printing service."""
        settings = settings or PrinterSettings()
        printer = SimulatedDevice(
            device_id=device_id,
            name=name,
            services=[
                SimulatedService(
                    settings.primary_service_uuid,
                    [SimulatedCharacteristic(settings.primary_characteristic_uuid)],
                ),
            ],
        )
        return cls(devices=[printer])

    def device(self, device_id: str) -> Optional[SimulatedDevice]:
        for device in self.devices:
            if device.device_id == device_id:
                return device
        return None

    async def is_available(self) -> bool:
        if not self.secure:
            raise HostSecurityError("Bluetooth is blocked in this context")
        return self.available

    async def get_devices(self) -> list[BluetoothDevice]:
        return [d.as_device() for d in self.devices if d.device_id in self.known_ids]

    async def request_device(
        self,
        filters: Sequence[DeviceFilter],
        timeout: Optional[float] = None,
    ) -> BluetoothDevice:
        self.requests.append(list(filters))
        if not self.secure:
            raise HostSecurityError("Bluetooth is blocked in this context")
        if self.request_errors:
            error = self.request_errors.pop(0)
            if error is not None:
                raise error

        for device in self.devices:
            if device.matches(filters):
                if device.device_id not in self.known_ids:
                    self.known_ids.append(device.device_id)
                return device.as_device()
        raise HostNotFoundError("No device selected")

    async def connect(self, device: BluetoothDevice) -> GattServer:
        simulated = device.handle if isinstance(device.handle, SimulatedDevice) else self.device(device.device_id)
        if simulated is None:
            raise HostNotFoundError(f"Unknown device {device.device_id}")
        if simulated.connect_error is not None:
            raise simulated.connect_error
        simulated.connected = True
        simulated.connect_count += 1
        return SimulatedServer(simulated)

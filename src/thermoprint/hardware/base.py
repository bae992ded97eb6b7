"""
Abstract base classes for the Bluetooth transport.

These interfaces define the contract that both the real BLE binding and
the simulator's in-memory implementation must follow. The negotiator and
sender only ever talk to these, so protocol logic can be tested without
hardware.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence


class HostError(Exception):
    """Failure reported by a Bluetooth host binding."""


class HostNotFoundError(HostError):
    """Device selection was cancelled, timed out or matched nothing."""


class HostSecurityError(HostError):
    """The execution context is not allowed to use Bluetooth."""


class HostNetworkError(HostError):
    """The link to the device could not be established."""


class GattOperationError(HostError):
    """A GATT lookup or write failed at the characteristic/operation level."""


class HostNotSupportedError(GattOperationError):
    """The requested GATT operation is not supported by the peer."""


class HostDisconnectedError(HostError):
    """The device dropped the connection."""


@dataclass(frozen=True)
class DeviceFilter:
    """One device-selection filter; a device matches if every set field matches."""

    name: Optional[str] = None
    name_prefix: Optional[str] = None
    services: tuple[str, ...] = ()

    def matches(self, name: Optional[str], service_uuids: Sequence[str]) -> bool:
        if self.name is not None and name != self.name:
            return False
        if self.name_prefix is not None and not (name or "").startswith(self.name_prefix):
            return False
        if self.services:
            advertised = {uuid.lower() for uuid in service_uuids}
            if not all(uuid.lower() in advertised for uuid in self.services):
                return False
        return True


@dataclass
class BluetoothDevice:
    """A device found by the host.

    Attributes:
        device_id: Stable identifier (MAC address or platform UUID)
        name: Advertised name, if any
        handle: Binding-specific device object
    """

    device_id: str
    name: Optional[str] = None
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class CharacteristicProperties:
    """Write capabilities of a characteristic."""

    write: bool = False
    write_without_response: bool = False

    @property
    def writable(self) -> bool:
        return self.write or self.write_without_response


class GattCharacteristic(ABC):
    """Abstract base class for a writable GATT characteristic."""

    @property
    @abstractmethod
    def uuid(self) -> str:
        ...

    @property
    @abstractmethod
    def properties(self) -> CharacteristicProperties:
        ...

    @abstractmethod
    async def write(self, data: bytes, with_response: bool) -> None:
        """
        Write a value.

        Args:
            data: Bytes to write (at most one transport write)
            with_response: True for an acknowledged write
        """
        ...


class GattService(ABC):
    """Abstract base class for a GATT service."""

    @property
    @abstractmethod
    def uuid(self) -> str:
        ...

    @abstractmethod
    async def get_characteristic(self, uuid: str) -> GattCharacteristic:
        """Get a characteristic by UUID. Raises GattOperationError if absent."""
        ...

    @abstractmethod
    async def get_characteristics(self) -> list[GattCharacteristic]:
        ...


class GattServer(ABC):
    """Abstract base class for a connected device's GATT server."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def get_primary_service(self, uuid: str) -> GattService:
        """Get a primary service by UUID. Raises GattOperationError if absent."""
        ...

    @abstractmethod
    async def get_primary_services(self) -> list[GattService]:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...


class BluetoothHost(ABC):
    """Abstract base class for the host's Bluetooth capability."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the host has a usable Bluetooth transport at all."""
        ...

    @abstractmethod
    async def get_devices(self) -> list[BluetoothDevice]:
        """Devices the host already knows about (paired or previously selected)."""
        ...

    @abstractmethod
    async def request_device(
        self,
        filters: Sequence[DeviceFilter],
        timeout: Optional[float] = None,
    ) -> BluetoothDevice:
        """
        Select a device matching any of the filters.

        Args:
            filters: Alternatives; a device matching one of them is accepted
            timeout: Seconds to wait, None for the host default

        Raises:
            HostNotFoundError: Nothing was selected
        """
        ...

    @abstractmethod
    async def connect(self, device: BluetoothDevice) -> GattServer:
        """Connect to a device's GATT server."""
        ...

    async def get_device(self, device_id: str) -> Optional[BluetoothDevice]:
        """Look up a known device by identifier."""
        for device in await self.get_devices():
            if device.device_id == device_id:
                return device
        return None

"""Bluetooth Low Energy binding for receipt printers.

Implements the transport interfaces in hardware.base on top of bleak, so
the same negotiation and sending code runs on Linux (BlueZ), macOS and
Windows.

bleak has no interactive device chooser: "selecting" a device means
scanning until an advertisement matches one of the filters.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.backends.service import BleakGATTService
from bleak.exc import BleakDeviceNotFoundError, BleakError

from thermoprint.config.settings import PrinterSettings
from thermoprint.hardware.base import (
    BluetoothDevice,
    BluetoothHost,
    CharacteristicProperties,
    DeviceFilter,
    GattCharacteristic,
    GattOperationError,
    GattServer,
    GattService,
    HostDisconnectedError,
    HostNetworkError,
    HostNotFoundError,
    HostSecurityError,
)

logger = logging.getLogger(__name__)

# Used when no discovery timeout is configured
DEFAULT_SCAN_TIMEOUT = 10.0


def _to_device(ble_device: BLEDevice) -> BluetoothDevice:
    return BluetoothDevice(device_id=ble_device.address, name=ble_device.name, handle=ble_device)


class BleakCharacteristic(GattCharacteristic):
    """A GATT characteristic reached through a BleakClient."""

    def __init__(self, client: BleakClient, characteristic: BleakGATTCharacteristic):
        self._client = client
        self._characteristic = characteristic

    @property
    def uuid(self) -> str:
        return self._characteristic.uuid

    @property
    def properties(self) -> CharacteristicProperties:
        props = self._characteristic.properties
        return CharacteristicProperties(
            write="write" in props,
            write_without_response="write-without-response" in props,
        )

    async def write(self, data: bytes, with_response: bool) -> None:
        try:
            await self._client.write_gatt_char(self._characteristic, data, response=with_response)
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            if not self._client.is_connected:
                raise HostDisconnectedError(str(e)) from e
            raise GattOperationError(str(e) or type(e).__name__) from e


class BleakService(GattService):
    """A GATT service reached through a BleakClient."""

    def __init__(self, client: BleakClient, service: BleakGATTService):
        self._client = client
        self._service = service

    @property
    def uuid(self) -> str:
        return self._service.uuid

    async def get_characteristic(self, uuid: str) -> GattCharacteristic:
        characteristic = self._service.get_characteristic(uuid)
        if characteristic is None:
            raise GattOperationError(f"Characteristic {uuid} not found on service {self.uuid}")
        return BleakCharacteristic(self._client, characteristic)

    async def get_characteristics(self) -> list[GattCharacteristic]:
        return [BleakCharacteristic(self._client, c) for c in self._service.characteristics]


class BleakGattServer(GattServer):
    """GATT server of a device connected with BleakClient."""

    def __init__(self, client: BleakClient):
        self._client = client

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    async def get_primary_service(self, uuid: str) -> GattService:
        try:
            service = self._client.services.get_service(uuid)
        except BleakError as e:
            raise GattOperationError(str(e)) from e
        if service is None:
            raise GattOperationError(f"Service {uuid} not found")
        return BleakService(self._client, service)

    async def get_primary_services(self) -> list[GattService]:
        try:
            services = list(self._client.services)
        except BleakError as e:
            raise GattOperationError(str(e)) from e
        return [BleakService(self._client, s) for s in services]

    async def disconnect(self) -> None:
        try:
            await self._client.disconnect()
        except BleakError as e:
            raise HostNetworkError(str(e)) from e
        logger.info("BLE printer disconnected")


class BleakBluetoothHost(BluetoothHost):
    """Bluetooth host backed by the system adapter through bleak."""

    def __init__(self, settings: Optional[PrinterSettings] = None):
        self._settings = settings or PrinterSettings()

    def _backend_kwargs(self) -> Dict[str, Any]:
        if self._settings.adapter:
            return {"adapter": self._settings.adapter}
        return {}

    @property
    def _scan_timeout(self) -> float:
        return self._settings.discovery_timeout or DEFAULT_SCAN_TIMEOUT

    async def is_available(self) -> bool:
        try:
            async with BleakScanner(**self._backend_kwargs()):
                pass
        except PermissionError as e:
            raise HostSecurityError(str(e)) from e
        except (BleakError, OSError) as e:
            logger.warning(f"Bluetooth adapter unavailable: {e}")
            return False
        return True

    async def get_devices(self) -> list[BluetoothDevice]:
        try:
            found = await BleakScanner.discover(timeout=self._scan_timeout, **self._backend_kwargs())
        except PermissionError as e:
            raise HostSecurityError(str(e)) from e
        except (BleakError, OSError) as e:
            raise HostNetworkError(str(e)) from e
        return [_to_device(d) for d in found]

    async def get_device(self, device_id: str) -> Optional[BluetoothDevice]:
        try:
            found = await BleakScanner.find_device_by_address(
                device_id, timeout=self._scan_timeout, **self._backend_kwargs()
            )
        except PermissionError as e:
            raise HostSecurityError(str(e)) from e
        except (BleakError, OSError) as e:
            raise HostNetworkError(str(e)) from e
        return _to_device(found) if found else None

    async def request_device(
        self,
        filters: Sequence[DeviceFilter],
        timeout: Optional[float] = None,
    ) -> BluetoothDevice:
        def matches(device: BLEDevice, adv: AdvertisementData) -> bool:
            name = adv.local_name or device.name
            return any(f.matches(name, adv.service_uuids) for f in filters)

        try:
            found = await BleakScanner.find_device_by_filter(
                matches, timeout=timeout or self._scan_timeout, **self._backend_kwargs()
            )
        except PermissionError as e:
            raise HostSecurityError(str(e)) from e
        except (BleakError, OSError) as e:
            raise HostNetworkError(str(e)) from e

        if found is None:
            raise HostNotFoundError("No printer advertising a matching name or service")
        logger.info(f"Found printer {found.name} ({found.address})")
        return _to_device(found)

    async def connect(self, device: BluetoothDevice) -> GattServer:
        kwargs = self._backend_kwargs()
        if self._settings.connect_timeout:
            kwargs["timeout"] = self._settings.connect_timeout

        client = BleakClient(device.handle or device.device_id, **kwargs)
        try:
            await client.connect()
        except BleakDeviceNotFoundError as e:
            raise HostNotFoundError(str(e)) from e
        except PermissionError as e:
            raise HostSecurityError(str(e)) from e
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            raise HostNetworkError(str(e) or type(e).__name__) from e

        logger.info(f"BLE printer connected: {device.device_id}")
        return BleakGattServer(client)

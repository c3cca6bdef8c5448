"""
Bluetooth Low Energy transport using the Bleak library.

BLE printers are not bonded the way classic ones are, so the "paired" set
is whatever a short scan can see. Payloads go to the first writable GATT
characteristic, split to fit the negotiated MTU.
"""

import asyncio
import logging
from typing import Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .base import Channel, DeviceDescriptor, TransportProvider

logger = logging.getLogger(__name__)


class BLEChannel(Channel):
    """GATT write characteristic presented as a byte stream."""

    # Default chunk size for BLE writes; used when the backend has no MTU
    DEFAULT_CHUNK_SIZE = 100

    def __init__(self, device: DeviceDescriptor, service_id: Optional[str] = None,
                 delay_ms: float = 10.0):
        super().__init__(device)
        self.service_id = service_id
        self.delay_ms = delay_ms
        self.client = BleakClient(device.address)
        self.write_char: Optional[str] = None

    async def connect(self) -> None:
        logger.info(f"Connecting to {self.device} over BLE")
        try:
            await self.client.connect()
        except BleakError as e:
            raise OSError(str(e)) from e

        self.write_char = self._find_write_characteristic()
        if self.write_char is None:
            raise OSError(f"{self.device.name} has no writable characteristic")
        logger.debug(f"Using write characteristic {self.write_char}")

    def _find_write_characteristic(self) -> Optional[str]:
        """Pick a writable characteristic, preferring the requested service."""
        fallback = None
        for service in self.client.services:
            for char in service.characteristics:
                props = char.properties
                if "write" not in props and "write-without-response" not in props:
                    continue
                if self.service_id and service.uuid.lower() == self.service_id.lower():
                    return char.uuid
                if fallback is None:
                    fallback = char.uuid
        return fallback

    @property
    def chunk_size(self) -> int:
        # MTU includes 3 bytes of ATT overhead
        mtu = getattr(self.client, "mtu_size", None)
        if mtu:
            return max(mtu - 3, self.DEFAULT_CHUNK_SIZE)
        return self.DEFAULT_CHUNK_SIZE

    async def write(self, data: bytes) -> int:
        if not self.is_connected or self.write_char is None:
            raise OSError("BLE client not connected")

        chunk_size = self.chunk_size
        total_chunks = (len(data) + chunk_size - 1) // chunk_size

        for i in range(0, len(data), chunk_size):
            chunk = data[i:i + chunk_size]
            try:
                await self.client.write_gatt_char(self.write_char, chunk, response=False)
            except BleakError as e:
                chunk_num = i // chunk_size + 1
                raise OSError(f"write failed at chunk {chunk_num}/{total_chunks}: {e}") from e

            # Small delay between chunks to avoid overwhelming the printer
            if self.delay_ms > 0 and i + chunk_size < len(data):
                await asyncio.sleep(self.delay_ms / 1000.0)

        logger.debug(f"Wrote {len(data)} bytes in {total_chunks} chunk(s)")
        return len(data)

    async def _release(self) -> None:
        if self.client.is_connected:
            try:
                await self.client.disconnect()
            except BleakError as e:
                logger.warning(f"Error while disconnecting from {self.device}: {e}")
        self.write_char = None
        logger.info(f"BLE channel to {self.device.address} closed")

    @property
    def is_connected(self) -> bool:
        return not self.closed and self.client.is_connected


class BLEProvider(TransportProvider):
    """Provider for printers reachable over Bluetooth Low Energy."""

    def __init__(self, scan_timeout: float = 5.0):
        self.scan_timeout = scan_timeout

    async def is_radio_enabled(self) -> bool:
        scanner = BleakScanner()
        try:
            await scanner.start()
        except (BleakError, OSError) as e:
            logger.warning(f"Bluetooth adapter unavailable: {e}")
            return False
        try:
            await scanner.stop()
        except BleakError as e:
            # The scan started, so the radio is up
            logger.warning(f"Error stopping BLE scanner: {e}")
        return True

    async def list_paired_devices(self) -> list[DeviceDescriptor]:
        devices = []
        try:
            found = await BleakScanner.discover(timeout=self.scan_timeout, return_adv=True)
        except BleakError as e:
            raise OSError(f"BLE scan failed: {e}") from e
        for device, adv_data in found.values():
            name = device.name or adv_data.local_name
            if not name:
                continue
            devices.append(DeviceDescriptor(
                name=name,
                address=device.address,
                service_ids=tuple(adv_data.service_uuids or ()),
            ))
        return devices

    def open_stream(self, device: DeviceDescriptor, service_id: str) -> Channel:
        return BLEChannel(device, service_id or None)

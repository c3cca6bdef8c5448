"""
Connection manager: find a paired printer by name and open a channel to it.

The paired set is read fresh on every attempt. There are no retries here;
callers retry by calling connect() again.
"""

import asyncio
import logging
from typing import Optional, Union

from .errors import (
    ConnectIOError,
    ConnectionFailure,
    DeviceNotFound,
    NotConnected,
    RadioUnavailable,
)
from .transport.base import SERIAL_PORT_SERVICE, Channel, DeviceDescriptor, TransportProvider

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0


def find_device(devices, device_name: str) -> Optional[DeviceDescriptor]:
    """Return the first device whose name equals device_name exactly."""
    for device in devices or ():
        if device is not None and device.name == device_name:
            return device
    return None


class ConnectionManager:
    """Opens channels to paired printers through a transport provider."""

    def __init__(self, provider: TransportProvider,
                 connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT):
        """
        Args:
            provider: Platform capability used for discovery and sockets
            connect_timeout: Seconds to wait for a connect, None to wait forever
        """
        self.provider = provider
        self.connect_timeout = connect_timeout

    async def _paired_devices(self) -> list[DeviceDescriptor]:
        """Check the radio and read the paired set.

        Raises:
            RadioUnavailable: If the adapter is missing or off
            ConnectIOError: If the provider fails while enumerating
        """
        try:
            enabled = await self.provider.is_radio_enabled()
        except OSError as e:
            raise ConnectIOError(f"could not query the Bluetooth adapter: {e}") from e
        if not enabled:
            raise RadioUnavailable()

        try:
            return await self.provider.list_paired_devices()
        except OSError as e:
            raise ConnectIOError(f"could not list paired devices: {e}") from e

    async def list_devices(self) -> list[DeviceDescriptor]:
        """Enumerate paired devices.

        Raises:
            RadioUnavailable: If the adapter is missing or off
            ConnectIOError: If the provider fails while enumerating
        """
        devices = await self._paired_devices()
        return [d for d in devices or () if d is not None]

    async def open(self, device_name: str) -> Channel:
        """Connect to the named device.

        Returns:
            An open channel, owned by the caller

        Raises:
            RadioUnavailable: Adapter missing or off
            DeviceNotFound: No paired device has this name
            ConnectIOError: Transport error or timeout while connecting
            NotConnected: Connect returned but the channel is not connected
        """
        devices = await self._paired_devices()

        device = find_device(devices, device_name)
        if device is None:
            raise DeviceNotFound(device_name)

        service_id = device.service_ids[0] if device.service_ids else SERIAL_PORT_SERVICE
        logger.info(f"Found {device}, connecting to service {service_id}")

        channel: Optional[Channel] = None
        try:
            channel = self.provider.open_stream(device, service_id)
            # Transport errors become ConnectIOError inside _connect, so a
            # TimeoutError reaching this point can only come from wait_for
            await asyncio.wait_for(self._connect(channel), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            await self._discard(channel)
            raise ConnectIOError(f"timed out after {self.connect_timeout}s")
        except OSError as e:
            await self._discard(channel)
            raise ConnectIOError(str(e) or type(e).__name__) from e
        except ConnectIOError:
            await self._discard(channel)
            raise

        if not channel.is_connected:
            await self._discard(channel)
            raise NotConnected(device_name)

        logger.info(f"Connected to {device}")
        return channel

    async def connect(self, device_name: str) -> Union[Channel, ConnectionFailure]:
        """Connect to the named device, returning the failure instead of raising.

        Returns:
            An open Channel on success, otherwise the ConnectionFailure
        """
        try:
            return await self.open(device_name)
        except ConnectionFailure as e:
            logger.warning(f"Connection to {device_name!r} failed: {e}")
            return e

    @staticmethod
    async def _connect(channel: Channel):
        try:
            await channel.connect()
        except OSError as e:
            raise ConnectIOError(str(e) or type(e).__name__) from e

    @staticmethod
    async def _discard(channel: Optional[Channel]):
        if channel is not None:
            try:
                await channel.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing failed channel: {e}")

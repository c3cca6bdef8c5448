"""Base classes shared by all transport providers."""

import abc
from dataclasses import dataclass

# Serial Port Profile, the service receipt printers advertise over RFCOMM
SERIAL_PORT_SERVICE = "00001101-0000-1000-8000-00805f9b34fb"


@dataclass(frozen=True)
class DeviceDescriptor:
    """A paired peripheral.

    Attributes:
        name: Human-readable device name (e.g., "MTP-2")
        address: Transport address (MAC on Linux, UUID for BLE on macOS)
        service_ids: Advertised service UUIDs, in the order offered
    """
    name: str
    address: str
    service_ids: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.name} [{self.address}]"


class Channel(metaclass=abc.ABCMeta):
    """An open byte stream to one device.

    A channel is used for a single job and then closed; it is never reopened.
    """

    def __init__(self, device: DeviceDescriptor):
        self.device = device
        self._closed = False

    @abc.abstractmethod
    async def connect(self) -> None:
        """Establish the underlying connection.

        Raises:
            OSError: On transport failure
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def write(self, data: bytes) -> int:
        """Write all of data to the stream.

        Returns:
            int: Number of bytes written

        Raises:
            OSError: On transport failure
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def _release(self) -> None:
        """Tear down the underlying connection."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def is_connected(self) -> bool:
        raise NotImplementedError

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Close the channel. Calling close on a closed channel does nothing."""
        if self._closed:
            return
        self._closed = True
        await self._release()


class TransportProvider(metaclass=abc.ABCMeta):
    """Platform capability the connection manager is built on."""

    @abc.abstractmethod
    async def is_radio_enabled(self) -> bool:
        """Return True if the adapter exists and is powered on."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_paired_devices(self) -> list[DeviceDescriptor]:
        """Return the current set of paired devices."""
        raise NotImplementedError

    @abc.abstractmethod
    def open_stream(self, device: DeviceDescriptor, service_id: str) -> Channel:
        """Create an unconnected channel to device for service_id."""
        raise NotImplementedError

"""
Classic Bluetooth (RFCOMM) transport for Linux/BlueZ.

Adapter state and the paired device set come from ``bluetoothctl``; the
byte stream is a plain RFCOMM socket driven through the asyncio loop.
"""

import asyncio
import logging
import re
import socket
from typing import Optional

from .base import SERIAL_PORT_SERVICE, Channel, DeviceDescriptor, TransportProvider

logger = logging.getLogger(__name__)

_DEVICE_LINE = re.compile(r"^Device\s+((?:[0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2})\s+(.*)$")
_UUID_LINE = re.compile(r"UUID:.*\(([0-9A-Fa-f-]{36})\)")
_CHANNEL_LINE = re.compile(r"Channel:\s*(\d+)")
_BASE_UUID = re.compile(r"^0000([0-9A-Fa-f]{4})-0000-1000-8000-00805f9b34fb$")


def parse_paired_devices(output: str) -> list[tuple[str, str]]:
    """Parse ``bluetoothctl devices`` output into (address, name) pairs."""
    devices = []
    for line in output.splitlines():
        match = _DEVICE_LINE.match(line.strip())
        if match:
            devices.append((match.group(1).upper(), match.group(2).strip()))
    return devices


def parse_service_ids(output: str) -> tuple[str, ...]:
    """Parse the UUID lines of ``bluetoothctl info`` output."""
    return tuple(m.group(1).lower() for m in _UUID_LINE.finditer(output))


def parse_powered(output: str) -> bool:
    """Return True if ``bluetoothctl show`` reports the adapter powered."""
    for line in output.splitlines():
        key, _, value = line.strip().partition(":")
        if key == "Powered":
            return value.strip() == "yes"
    return False


def parse_sdp_channel(output: str) -> Optional[int]:
    """Return the first RFCOMM channel in ``sdptool search`` output."""
    match = _CHANNEL_LINE.search(output)
    return int(match.group(1)) if match else None


class RFCOMMChannel(Channel):
    """RFCOMM stream socket to one device.

    The RFCOMM port is looked up over SDP for service_id when connecting.
    """

    def __init__(self, provider: "RFCOMMProvider", device: DeviceDescriptor,
                 service_id: str):
        super().__init__(device)
        self._provider = provider
        self.service_id = service_id
        self.port = provider.default_channel
        self._connected = False
        self._sock = socket.socket(
            socket.AF_BLUETOOTH,
            socket.SOCK_STREAM,
            socket.BTPROTO_RFCOMM,
        )
        self._sock.setblocking(False)

    async def connect(self) -> None:
        self.port = await self._provider.resolve_channel(self.device, self.service_id)
        loop = asyncio.get_running_loop()
        logger.info(f"Connecting to {self.device} on RFCOMM channel {self.port}")
        await loop.sock_connect(self._sock, (self.device.address, self.port))
        self._connected = True

    async def write(self, data: bytes) -> int:
        loop = asyncio.get_running_loop()
        await loop.sock_sendall(self._sock, data)
        logger.debug(f"Wrote {len(data)} bytes to {self.device.address}")
        return len(data)

    async def _release(self) -> None:
        self._connected = False
        self._sock.close()
        logger.info(f"RFCOMM channel to {self.device.address} closed")

    @property
    def is_connected(self) -> bool:
        if not self._connected or self.closed:
            return False
        try:
            self._sock.getpeername()
        except OSError:
            return False
        return True


class RFCOMMProvider(TransportProvider):
    """BlueZ-backed provider for classic Bluetooth printers."""

    COMMAND_TIMEOUT = 10.0

    def __init__(self, default_channel: int = 1):
        self.default_channel = default_channel

    async def _run(self, *args: str) -> tuple[int, str]:
        """Run a command and return (returncode, stdout)."""
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.COMMAND_TIMEOUT
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise OSError(f"{args[0]} timed out after {self.COMMAND_TIMEOUT}s")
        if proc.returncode != 0:
            logger.debug(f"{' '.join(args)} exited {proc.returncode}: {stderr.decode(errors='replace').strip()}")
        return proc.returncode, stdout.decode(errors="replace")

    async def is_radio_enabled(self) -> bool:
        try:
            returncode, output = await self._run("bluetoothctl", "show")
        except OSError as e:
            logger.warning(f"Cannot query Bluetooth adapter: {e}")
            return False
        return returncode == 0 and parse_powered(output)

    async def list_paired_devices(self) -> list[DeviceDescriptor]:
        returncode, output = await self._run("bluetoothctl", "devices", "Paired")
        if returncode != 0:
            # BlueZ before 5.65 only knows the older spelling
            returncode, output = await self._run("bluetoothctl", "paired-devices")

        devices = []
        for address, name in parse_paired_devices(output):
            _, info = await self._run("bluetoothctl", "info", address)
            devices.append(DeviceDescriptor(name, address, parse_service_ids(info)))
        logger.debug(f"Paired devices: {', '.join(str(d) for d in devices) or 'none'}")
        return devices

    async def resolve_channel(self, device: DeviceDescriptor, service_id: str) -> int:
        """Look up the RFCOMM channel for a service via SDP.

        Falls back to the default channel when sdptool is missing or the
        service id is not a 16-bit Bluetooth UUID.
        """
        match = _BASE_UUID.match(service_id)
        if not match:
            return self.default_channel
        try:
            _, output = await self._run(
                "sdptool", "search", "--bdaddr", device.address, f"0x{match.group(1)}"
            )
        except OSError as e:
            logger.debug(f"SDP lookup unavailable: {e}")
            return self.default_channel
        channel = parse_sdp_channel(output)
        return channel if channel is not None else self.default_channel

    def open_stream(self, device: DeviceDescriptor, service_id: str) -> Channel:
        if not hasattr(socket, "AF_BLUETOOTH"):
            raise OSError("RFCOMM sockets are not supported on this platform")
        return RFCOMMChannel(self, device, service_id or SERIAL_PORT_SERVICE)

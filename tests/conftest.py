"""
Pytest configuration for btreceipt tests.

Provides an in-memory transport provider and command-line options for
hardware tests.
"""

import pytest
import pytest_asyncio

from btreceipt.transport.base import Channel, DeviceDescriptor, TransportProvider

PRINTER_ADDRESS = "AA:BB:CC:DD:EE:FF"
SPP_UUID = "00001101-0000-1000-8000-00805f9b34fb"


class FakeChannel(Channel):
    """Channel that records writes instead of sending them."""

    def __init__(self, device, service_id=None, connect_error=None,
                 reports_connected=True, fail_on_write=None, write_error=None):
        super().__init__(device)
        self.service_id = service_id
        self.connect_error = connect_error
        self.reports_connected = reports_connected
        self.fail_on_write = fail_on_write
        self.write_error = write_error or OSError("Broken pipe")
        self.writes = []
        self.write_attempts = 0
        self.release_count = 0
        self._connected = False

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = self.reports_connected

    async def write(self, data):
        index = self.write_attempts
        self.write_attempts += 1
        if self.fail_on_write is not None and index == self.fail_on_write:
            raise self.write_error
        self.writes.append(bytes(data))
        return len(data)

    async def _release(self):
        self.release_count += 1
        self._connected = False

    @property
    def is_connected(self):
        return self._connected and not self.closed


class FakeProvider(TransportProvider):
    """Transport provider backed by a fixed device list."""

    def __init__(self, devices=None, radio_enabled=True, **channel_options):
        self.devices = list(devices or [])
        self.radio_enabled = radio_enabled
        self.channel_options = channel_options
        self.channels = []
        self.list_calls = 0

    async def is_radio_enabled(self):
        return self.radio_enabled

    async def list_paired_devices(self):
        self.list_calls += 1
        return list(self.devices)

    def open_stream(self, device, service_id):
        channel = FakeChannel(device, service_id, **self.channel_options)
        self.channels.append(channel)
        return channel


def mtp2(address=PRINTER_ADDRESS, service_ids=(SPP_UUID,)):
    return DeviceDescriptor("MTP-2", address, tuple(service_ids))


@pytest.fixture
def printer_device():
    return mtp2()


@pytest.fixture
def provider(printer_device):
    return FakeProvider([printer_device])


@pytest_asyncio.fixture
async def open_channel(printer_device):
    """A connected FakeChannel."""
    channel = FakeChannel(printer_device, SPP_UUID)
    await channel.connect()
    return channel


def pytest_addoption(parser):
    """Add command-line options for hardware tests."""
    parser.addoption(
        "--printer",
        action="store",
        default=None,
        help="Paired printer name for hardware tests",
    )


@pytest.fixture
def printer_name(request):
    """Get the printer name from command line."""
    name = request.config.getoption("--printer")
    if name is None:
        pytest.skip("No printer name provided (use --printer=NAME)")
    return name

"""Tests for the BlueZ RFCOMM transport."""

import socket
from unittest.mock import AsyncMock

import pytest

from btreceipt.transport import get_provider
from btreceipt.transport.base import SERIAL_PORT_SERVICE, DeviceDescriptor
from btreceipt.transport.rfcomm import (
    RFCOMMChannel,
    RFCOMMProvider,
    parse_paired_devices,
    parse_powered,
    parse_sdp_channel,
    parse_service_ids,
)

SHOW_OUTPUT = """\
Controller 00:1A:7D:DA:71:13 (public)
	Name: laptop
	Alias: laptop
	Powered: yes
	Discoverable: no
"""

DEVICES_OUTPUT = """\
Device 86:67:7A:12:34:56 MTP-2
Device 11:22:33:44:55:66 JBL Flip 5
"""

INFO_OUTPUT = """\
Device 86:67:7A:12:34:56 (public)
	Name: MTP-2
	Paired: yes
	UUID: Serial Port               (00001101-0000-1000-8000-00805f9b34fb)
	UUID: Generic Access Profile    (00001800-0000-1000-8000-00805f9b34fb)
"""

SDP_OUTPUT = """\
Searching for SP on 86:67:7A:12:34:56 ...
Service Name: SerialPort
Protocol Descriptor List:
  "L2CAP" (0x0100)
  "RFCOMM" (0x0003)
    Channel: 2
"""


class TestParsers:
    """Test bluetoothctl/sdptool output parsing."""

    def test_parse_powered(self):
        assert parse_powered(SHOW_OUTPUT) is True
        assert parse_powered(SHOW_OUTPUT.replace("Powered: yes", "Powered: no")) is False
        assert parse_powered("No default controller available") is False

    def test_parse_paired_devices(self):
        assert parse_paired_devices(DEVICES_OUTPUT) == [
            ("86:67:7A:12:34:56", "MTP-2"),
            ("11:22:33:44:55:66", "JBL Flip 5"),
        ]

    def test_parse_paired_devices_ignores_noise(self):
        output = "[bluetooth]# \nAgent registered\nDevice 86:67:7a:12:34:56 MTP-2\n"
        assert parse_paired_devices(output) == [("86:67:7A:12:34:56", "MTP-2")]

    def test_parse_service_ids_in_order(self):
        assert parse_service_ids(INFO_OUTPUT) == (
            "00001101-0000-1000-8000-00805f9b34fb",
            "00001800-0000-1000-8000-00805f9b34fb",
        )

    def test_parse_service_ids_none(self):
        assert parse_service_ids("Device 86:67:7A:12:34:56 (public)\n") == ()

    def test_parse_sdp_channel(self):
        assert parse_sdp_channel(SDP_OUTPUT) == 2
        assert parse_sdp_channel("Failed to connect to SDP server") is None


class TestRFCOMMProvider:
    """Test provider behaviour with bluetoothctl mocked out."""

    @pytest.mark.asyncio
    async def test_radio_enabled(self, mocker):
        provider = RFCOMMProvider()
        mocker.patch.object(provider, "_run", AsyncMock(return_value=(0, SHOW_OUTPUT)))
        assert await provider.is_radio_enabled() is True

    @pytest.mark.asyncio
    async def test_no_controller(self, mocker):
        provider = RFCOMMProvider()
        mocker.patch.object(
            provider, "_run", AsyncMock(return_value=(1, "No default controller available\n"))
        )
        assert await provider.is_radio_enabled() is False

    @pytest.mark.asyncio
    async def test_bluetoothctl_missing_means_no_radio(self, mocker):
        provider = RFCOMMProvider()
        mocker.patch.object(
            provider, "_run", AsyncMock(side_effect=FileNotFoundError("bluetoothctl"))
        )
        assert await provider.is_radio_enabled() is False

    @pytest.mark.asyncio
    async def test_list_paired_devices(self, mocker):
        provider = RFCOMMProvider()

        async def run(*args):
            if args[1] == "devices":
                return 0, DEVICES_OUTPUT
            if args[1] == "info" and args[2] == "86:67:7A:12:34:56":
                return 0, INFO_OUTPUT
            return 0, ""

        mocker.patch.object(provider, "_run", side_effect=run)
        devices = await provider.list_paired_devices()

        assert devices[0] == DeviceDescriptor(
            "MTP-2",
            "86:67:7A:12:34:56",
            (SERIAL_PORT_SERVICE, "00001800-0000-1000-8000-00805f9b34fb"),
        )
        assert devices[1].name == "JBL Flip 5"
        assert devices[1].service_ids == ()

    @pytest.mark.asyncio
    async def test_list_falls_back_to_old_command(self, mocker):
        provider = RFCOMMProvider()
        calls = []

        async def run(*args):
            calls.append(args)
            if args[1] == "devices":
                return 1, "Invalid command"
            if args[1] == "paired-devices":
                return 0, "Device 86:67:7A:12:34:56 MTP-2\n"
            return 0, ""

        mocker.patch.object(provider, "_run", side_effect=run)
        devices = await provider.list_paired_devices()

        assert [d.name for d in devices] == ["MTP-2"]
        assert ("bluetoothctl", "paired-devices") in calls

    @pytest.mark.asyncio
    async def test_resolve_channel_from_sdp(self, mocker):
        provider = RFCOMMProvider(default_channel=1)
        run = AsyncMock(return_value=(0, SDP_OUTPUT))
        mocker.patch.object(provider, "_run", run)

        channel = await provider.resolve_channel(
            DeviceDescriptor("MTP-2", "86:67:7A:12:34:56"), SERIAL_PORT_SERVICE
        )

        assert channel == 2
        run.assert_awaited_once_with(
            "sdptool", "search", "--bdaddr", "86:67:7A:12:34:56", "0x1101"
        )

    @pytest.mark.asyncio
    async def test_resolve_channel_falls_back(self, mocker):
        provider = RFCOMMProvider(default_channel=4)
        mocker.patch.object(provider, "_run", AsyncMock(side_effect=FileNotFoundError("sdptool")))
        device = DeviceDescriptor("MTP-2", "86:67:7A:12:34:56")

        assert await provider.resolve_channel(device, SERIAL_PORT_SERVICE) == 4
        # Vendor 128-bit UUIDs are not looked up at all
        assert await provider.resolve_channel(
            device, "49535343-fe7d-4ae5-8fa9-9fafd205e455"
        ) == 4

    def test_open_stream_without_bluetooth_sockets(self, monkeypatch):
        monkeypatch.delattr(socket, "AF_BLUETOOTH", raising=False)
        provider = RFCOMMProvider()
        with pytest.raises(OSError, match="not supported"):
            provider.open_stream(DeviceDescriptor("MTP-2", "86:67:7A:12:34:56"), "")

    @pytest.mark.skipif(not hasattr(socket, "AF_BLUETOOTH"), reason="No Bluetooth sockets")
    def test_open_stream_returns_unconnected_channel(self):
        provider = RFCOMMProvider()
        try:
            channel = provider.open_stream(DeviceDescriptor("MTP-2", "86:67:7A:12:34:56"), "")
        except OSError:
            pytest.skip("Kernel has no RFCOMM support")
        assert isinstance(channel, RFCOMMChannel)
        assert channel.service_id == SERIAL_PORT_SERVICE
        assert not channel.is_connected
        channel._sock.close()


class TestGetProvider:
    def test_known_types(self):
        assert isinstance(get_provider("rfcomm"), RFCOMMProvider)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown transport"):
            get_provider("usb")

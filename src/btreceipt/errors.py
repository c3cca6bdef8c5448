"""
Exception hierarchy for btreceipt.

Helpers raise these; the public entry points (connect, transfer, assemble,
print_files) catch them and hand them back to the caller as values.
"""

from typing import Optional


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


# --- Connection ---


class ConnectionFailure(PrinterError):
    """Could not obtain an open channel to the printer."""

    pass


class RadioUnavailable(ConnectionFailure):
    """Bluetooth adapter is missing or powered off."""

    def __init__(self, message: str = "Bluetooth is not turned on."):
        super().__init__(message)


class DeviceNotFound(ConnectionFailure):
    """No paired device carries the requested name."""

    def __init__(self, device_name: str):
        super().__init__(
            f"No paired device named {device_name!r}. Pair the printer first."
        )
        self.device_name = device_name


class ConnectIOError(ConnectionFailure):
    """Transport error while connecting."""

    def __init__(self, detail: str):
        super().__init__(
            "The device you are trying to connect to is turned off or "
            f"unavailable: {detail}"
        )
        self.detail = detail


class NotConnected(ConnectionFailure):
    """Connect returned cleanly but the channel reports itself disconnected."""

    def __init__(self, device_name: str):
        super().__init__(f"Unable to connect to Bluetooth device {device_name!r}.")
        self.device_name = device_name


# --- Transfer ---


class TransferIOError(PrinterError):
    """Write to the channel failed part-way through a job."""

    def __init__(self, payload_index: int, detail: str):
        super().__init__(f"Write failed at payload {payload_index}: {detail}")
        self.payload_index = payload_index
        self.detail = detail


# --- Job assembly ---


class StripFailure(PrinterError):
    """Colour strip could not complete for an image."""

    def __init__(self, detail: str, source: Optional[str] = None):
        where = f" for {source}" if source else ""
        super().__init__(f"Could not strip colour{where}: {detail}")
        self.detail = detail
        self.source = source


class AssemblyFailure(PrinterError):
    """A selected file could not be read or decoded."""

    def __init__(self, source: str, detail: str):
        super().__init__(f"Could not prepare {source}: {detail}")
        self.source = source
        self.detail = detail


class ConfigError(PrinterError):
    """Configuration file or value is invalid."""

    pass

"""Bluetooth receipt printer driver: connect, strip, stream."""

__version__ = "0.1.0"

from .config import Config, load_config, save_config
from .connection import ConnectionManager
from .errors import (
    AssemblyFailure,
    ConfigError,
    ConnectIOError,
    ConnectionFailure,
    DeviceNotFound,
    NotConnected,
    PrinterError,
    RadioUnavailable,
    StripFailure,
    TransferIOError,
)
from .image import ImageSizeError, strip_color
from .jobs import AssemblyResult, JobAssembler, JobKind, JobPayload, Receipt
from .printer import JobOutcome, ReceiptPrinter
from .transfer import TransferResult, transfer
from .transport import Channel, DeviceDescriptor, TransportProvider, get_provider

__all__ = [
    "ReceiptPrinter",
    "JobOutcome",
    "ConnectionManager",
    "transfer",
    "TransferResult",
    "JobAssembler",
    "AssemblyResult",
    "JobKind",
    "JobPayload",
    "Receipt",
    "strip_color",
    "ImageSizeError",
    "Config",
    "load_config",
    "save_config",
    "Channel",
    "DeviceDescriptor",
    "TransportProvider",
    "get_provider",
    "PrinterError",
    "ConnectionFailure",
    "RadioUnavailable",
    "DeviceNotFound",
    "ConnectIOError",
    "NotConnected",
    "TransferIOError",
    "StripFailure",
    "AssemblyFailure",
    "ConfigError",
]

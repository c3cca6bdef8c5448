"""
High-level printer interface.

Runs a whole job: assemble payloads, connect, stream, close. Every outcome,
good or bad, comes back as a JobOutcome for the caller to show the user.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .config import DEFAULT_PRINTER_NAME, Config
from .connection import DEFAULT_CONNECT_TIMEOUT, ConnectionManager
from .errors import AssemblyFailure, ConnectionFailure, PrinterError, StripFailure
from .jobs import FileSelection, JobAssembler, JobKind, JobPayload, Receipt
from .transfer import transfer
from .transport import TransportProvider, get_provider
from .transport.base import DeviceDescriptor

logger = logging.getLogger(__name__)


@dataclass
class JobOutcome:
    """Result of one print job, ready to be shown to the user.

    Attributes:
        message: Human-readable summary
        error: The failure that stopped the job, None otherwise
        cancelled: True if the user selected nothing to print
        sent: Payloads delivered to the printer
        skipped: Images dropped before transfer because stripping failed
    """
    message: str
    error: Optional[PrinterError] = None
    cancelled: bool = False
    sent: int = 0
    skipped: list[StripFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


class ReceiptPrinter:
    """Prints text files, images and receipts on one named printer."""

    def __init__(
        self,
        provider: TransportProvider,
        device_name: str = DEFAULT_PRINTER_NAME,
        connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT,
        assembler: Optional[JobAssembler] = None,
    ):
        """
        Args:
            provider: Transport provider used to reach the printer
            device_name: Paired device name of the printer
            connect_timeout: Seconds to wait for a connect, None for no limit
            assembler: Job assembler, defaults to JobAssembler()
        """
        self.device_name = device_name
        self.connections = ConnectionManager(provider, connect_timeout)
        self.assembler = assembler or JobAssembler()

    @classmethod
    def from_config(
        cls,
        config: Config,
        name: Optional[str] = None,
        provider: Optional[TransportProvider] = None,
        rotate: int = 0,
    ) -> "ReceiptPrinter":
        """Build a printer from configuration.

        Args:
            config: Loaded configuration
            name: Device name or alias overriding config.printer
            provider: Provider to use instead of config.transport
            rotate: Clockwise rotation for image jobs
        """
        if provider is None:
            if config.transport == "rfcomm":
                provider = get_provider("rfcomm", default_channel=config.rfcomm_channel)
            else:
                provider = get_provider(config.transport)
        return cls(
            provider,
            device_name=config.resolve_printer_name(name),
            connect_timeout=config.connect_timeout,
            assembler=JobAssembler.from_config(config, rotate=rotate),
        )

    async def list_devices(self) -> list[DeviceDescriptor]:
        """List paired devices.

        Raises:
            RadioUnavailable: If the adapter is missing or off
            ConnectIOError: If the provider fails while enumerating
        """
        return await self.connections.list_devices()

    async def print_payloads(self, payloads: Sequence[JobPayload]) -> JobOutcome:
        """Connect to the printer and send payloads as one job."""
        logger.info(f"Printing {len(payloads)} payload(s) on {self.device_name!r}")
        channel = await self.connections.connect(self.device_name)
        if isinstance(channel, ConnectionFailure):
            return JobOutcome(str(channel), error=channel)

        result = await transfer(channel, payloads)
        return JobOutcome(result.message, error=result.error, sent=result.sent)

    async def print_files(self, files: FileSelection, kind: JobKind) -> JobOutcome:
        """Assemble the selected files and print them."""
        assembled = await self.assembler.assemble(files, kind)
        if isinstance(assembled, AssemblyFailure):
            return JobOutcome(str(assembled), error=assembled)
        if assembled.cancelled:
            return JobOutcome(assembled.message, cancelled=True)
        if not assembled.payloads:
            # Every image failed to strip
            first = assembled.skipped[0]
            return JobOutcome(str(first), error=first, skipped=assembled.skipped)

        outcome = await self.print_payloads(assembled.payloads)
        outcome.skipped = assembled.skipped
        return outcome

    async def print_text_files(self, files: FileSelection) -> JobOutcome:
        return await self.print_files(files, JobKind.TEXT)

    async def print_image_files(self, files: FileSelection) -> JobOutcome:
        return await self.print_files(files, JobKind.IMAGE)

    async def print_receipt(self, receipt: Receipt, encoding: str = "utf-8") -> JobOutcome:
        assembled = self.assembler.assemble_receipt(receipt, encoding)
        if isinstance(assembled, AssemblyFailure):
            return JobOutcome(str(assembled), error=assembled)
        return await self.print_payloads(assembled.payloads)

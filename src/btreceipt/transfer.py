"""
Job transfer engine.

Streams the payloads of one job over an open channel, in order, one write
per payload, and always closes the channel afterwards.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from .errors import TransferIOError
from .jobs import JobPayload
from .transport.base import Channel

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """Outcome of streaming one job.

    Attributes:
        total: Number of payloads in the job
        sent: Payloads written before the job finished or failed
        error: The write failure, None on success
    """
    total: int
    sent: int
    error: Optional[TransferIOError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.ok:
            return "Print job completed."
        return (
            f"Print job failed at payload {self.error.payload_index + 1} of "
            f"{self.total} ({self.sent} sent): {self.error.detail}"
        )


@asynccontextmanager
async def transferring(channel: Channel) -> AsyncIterator[Channel]:
    """Yield channel and close it on the way out, however the block exits."""
    try:
        yield channel
    finally:
        await channel.close()
        logger.debug(f"Channel to {channel.device.address} released")


async def send_payloads(channel: Channel, payloads: Sequence[JobPayload]) -> int:
    """Write each payload in order.

    Returns:
        Number of payloads written

    Raises:
        TransferIOError: On the first failed write; later payloads are skipped
    """
    if not channel.is_connected:
        raise TransferIOError(0, "channel is not open")

    for index, payload in enumerate(payloads):
        try:
            await channel.write(payload.data)
        except OSError as e:
            raise TransferIOError(index, str(e) or type(e).__name__) from e
        logger.info(f"Sent {payload.source} ({len(payload.data)} bytes)")
    return len(payloads)


async def transfer(channel: Channel, payloads: Sequence[JobPayload]) -> TransferResult:
    """Send a job over channel and close it.

    The channel is consumed: it is closed on every exit path, including
    failures and cancellation.
    """
    payloads = list(payloads)
    async with transferring(channel):
        try:
            sent = await send_payloads(channel, payloads)
        except TransferIOError as e:
            logger.error(str(e))
            return TransferResult(total=len(payloads), sent=e.payload_index, error=e)
    return TransferResult(total=len(payloads), sent=sent)

"""
Job assembly: turn selected files (or a receipt) into payload bytes.

Text files are passed through verbatim. Images are decoded, stripped of
colour and re-encoded before they become payloads.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from .errors import AssemblyFailure, StripFailure
from .image import (
    DEFAULT_ERASE_COLOR,
    DEFAULT_JPEG_QUALITY,
    encode_image,
    load_image,
    prepare_image,
    strip_color,
)

logger = logging.getLogger(__name__)

FileSelection = Optional[Sequence[Union[str, Path]]]


class JobKind(enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    RECEIPT = "receipt"


@dataclass(frozen=True)
class JobPayload:
    """Bytes for one file of a job, ready to stream."""
    data: bytes
    source: str
    kind: JobKind = JobKind.TEXT

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class AssemblyResult:
    """Payloads produced from a file selection.

    Attributes:
        payloads: One payload per usable file, in selection order
        skipped: Images dropped because their colour strip failed
        cancelled: True when the user selected nothing
    """
    payloads: list[JobPayload] = field(default_factory=list)
    skipped: list[StripFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def message(self) -> str:
        if self.cancelled:
            return "No files selected."
        text = f"Prepared {len(self.payloads)} payload(s)"
        if self.skipped:
            text += f", skipped {len(self.skipped)} image(s)"
        return text + "."


@dataclass(frozen=True)
class Receipt:
    """Fields printed on a receipt slip."""
    outlet: str
    invoice: str
    run_number: str

    def lines(self) -> list[str]:
        return [
            f"Outlet: {self.outlet}",
            f"Invoice: {self.invoice}",
            f"Run No: {self.run_number}",
        ]

    def to_payload(self, encoding: str = "utf-8", feed_lines: int = 3) -> JobPayload:
        """Render the receipt as plain text followed by blank feed lines.

        Raises:
            UnicodeEncodeError: If a field cannot be encoded
        """
        text = "\n".join(self.lines()) + "\n" * (feed_lines + 1)
        return JobPayload(
            text.encode(encoding),
            source=f"receipt {self.invoice}",
            kind=JobKind.RECEIPT,
        )


class JobAssembler:
    """Builds job payloads from selected files."""

    def __init__(
        self,
        quality: int = DEFAULT_JPEG_QUALITY,
        image_format: str = "JPEG",
        erase_color=DEFAULT_ERASE_COLOR,
        width: Optional[int] = None,
        rotate: int = 0,
    ):
        """
        Args:
            quality: Encoder quality for image payloads
            image_format: Encoded image format ("JPEG" or "PNG")
            erase_color: Colour the strip step fills images with
            width: Resize images to this width, None to keep their size
            rotate: Clockwise rotation applied to images
        """
        self.quality = quality
        self.image_format = image_format
        self.erase_color = erase_color
        self.width = width
        self.rotate = rotate

    @classmethod
    def from_config(cls, config, rotate: int = 0) -> "JobAssembler":
        return cls(
            quality=config.image_quality,
            image_format=config.image_format,
            erase_color=config.erase_color,
            width=config.image_width,
            rotate=rotate,
        )

    async def assemble(
        self, files: FileSelection, kind: JobKind = JobKind.TEXT
    ) -> Union[AssemblyResult, AssemblyFailure]:
        """Build payloads for files, in order.

        Args:
            files: Selected paths, or None if the selection was cancelled
            kind: JobKind.TEXT or JobKind.IMAGE

        Returns:
            AssemblyResult, or the AssemblyFailure for the first file that
            could not be read or decoded
        """
        if not files:
            logger.info("No files selected")
            return AssemblyResult(cancelled=True)

        result = AssemblyResult()
        for path in files:
            try:
                if kind is JobKind.IMAGE:
                    payload = await self._assemble_image(Path(path))
                else:
                    payload = await self._assemble_text(Path(path))
            except StripFailure as e:
                logger.warning(f"Skipping image: {e}")
                result.skipped.append(e)
                continue
            except AssemblyFailure as e:
                logger.error(str(e))
                return e
            result.payloads.append(payload)
        return result

    def assemble_receipt(
        self, receipt: Receipt, encoding: str = "utf-8"
    ) -> Union[AssemblyResult, AssemblyFailure]:
        try:
            payload = receipt.to_payload(encoding)
        except (UnicodeEncodeError, LookupError) as e:
            failure = AssemblyFailure(f"receipt {receipt.invoice}", str(e))
            logger.error(str(failure))
            return failure
        return AssemblyResult(payloads=[payload])

    async def _read(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AssemblyFailure(str(path), e.strerror or str(e)) from e

    async def _assemble_text(self, path: Path) -> JobPayload:
        data = await self._read(path)
        logger.debug(f"Read {len(data)} bytes from {path}")
        return JobPayload(data, source=str(path), kind=JobKind.TEXT)

    async def _assemble_image(self, path: Path) -> JobPayload:
        data = await self._read(path)
        encoded = await asyncio.to_thread(self._render_image, path, data)
        return JobPayload(encoded, source=str(path), kind=JobKind.IMAGE)

    def _render_image(self, path: Path, data: bytes) -> bytes:
        """Decode, prepare, strip and encode one image.

        Runs in a worker thread; every step is CPU bound.

        Raises:
            AssemblyFailure: If the image cannot be decoded or encoded
            StripFailure: If the colour strip fails
        """
        try:
            image = load_image(data)
            image = prepare_image(image, width=self.width, rotate=self.rotate)
        except (OSError, ValueError) as e:
            raise AssemblyFailure(str(path), str(e)) from e

        try:
            stripped = strip_color(image, self.erase_color)
        except StripFailure as e:
            raise StripFailure(e.detail, source=str(path)) from e

        try:
            encoded = encode_image(stripped, self.quality, self.image_format)
        except (OSError, ValueError) as e:
            raise AssemblyFailure(str(path), f"could not encode image: {e}") from e

        logger.debug(
            f"Encoded {path} ({stripped.width}x{stripped.height}) "
            f"to {len(encoded)} bytes of {self.image_format}"
        )
        return encoded

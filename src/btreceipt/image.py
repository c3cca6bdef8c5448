"""
Image processing for raster print jobs.

Decodes image files, strips their colour, and re-encodes them to the
compressed bytes that are streamed to the printer.
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image

from .errors import StripFailure

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 10000  # Maximum width or height in pixels
MAX_IMAGE_PIXELS = 10_000_000  # Maximum total pixels (10 megapixels)

# Strip output is always 32 bits per pixel
STRIP_MODE = "RGBA"

DEFAULT_ERASE_COLOR = (0, 0, 0, 255)  # opaque black
TRANSPARENT = 0  # fully transparent black

DEFAULT_JPEG_QUALITY = 75

ImageSource = Union[str, Path, bytes, Image.Image]


class ImageSizeError(ValueError):
    """Image dimensions exceed safety limits."""

    pass


def load_image(source: ImageSource) -> Image.Image:
    """
    Load and fully decode an image.

    Args:
        source: File path, bytes, or PIL Image

    Returns:
        PIL Image object

    Raises:
        ImageSizeError: If image dimensions exceed safety limits
        OSError: If the data cannot be read or decoded
        ValueError: If source type is unsupported
    """
    if isinstance(source, Image.Image):
        img = source
    elif isinstance(source, (str, Path)):
        img = Image.open(source)
    elif isinstance(source, bytes):
        img = Image.open(BytesIO(source))
    else:
        raise ValueError(f"Unsupported source type: {type(source)}")

    # Validate before decoding pixel data
    if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
        raise ImageSizeError(
            f"Image dimensions ({img.width}x{img.height}) exceed maximum "
            f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
        )
    if img.width * img.height > MAX_IMAGE_PIXELS:
        raise ImageSizeError(
            f"Image pixel count ({img.width * img.height:,}) exceeds "
            f"maximum ({MAX_IMAGE_PIXELS:,})"
        )

    img.load()
    return img


def prepare_image(image: Image.Image, width: int = None, rotate: int = 0) -> Image.Image:
    """
    Rotate and resize an image for the printer.

    Args:
        image: Source image
        width: Target width in pixels, None to keep the original size
        rotate: Clockwise rotation in degrees (0, 90, 180 or 270)

    Returns:
        The prepared image (the source itself if nothing changed)
    """
    if rotate % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90, got {rotate}")

    if rotate % 360:
        # PIL rotates counter clockwise
        image = image.rotate(-rotate, expand=True)

    # Resize to fit printer width while maintaining aspect ratio
    if width and image.width != width:
        ratio = width / image.width
        new_height = max(1, int(image.height * ratio))
        image = image.resize((width, new_height), Image.Resampling.LANCZOS)

    return image


def strip_color(image: Image.Image, color=DEFAULT_ERASE_COLOR) -> Image.Image:
    """
    Remove all colour from an image.

    Makes a 32-bit RGBA copy of image and fills every pixel of the copy with
    color. The input image is not modified.

    Args:
        image: Source image, any mode
        color: RGBA tuple or packed integer to erase to

    Returns:
        New RGBA image with the same dimensions

    Raises:
        StripFailure: If the image cannot be copied or filled
    """
    try:
        # convert() always returns a new image, even for RGBA input
        stripped = image.convert(STRIP_MODE)
        stripped.paste(color, (0, 0, stripped.width, stripped.height))
    except (ValueError, TypeError, OSError) as e:
        raise StripFailure(str(e) or type(e).__name__) from e
    return stripped


def encode_image(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY,
                 image_format: str = "JPEG") -> bytes:
    """
    Compress an image to bytes.

    JPEG has no alpha channel, so RGBA images are flattened to RGB first.

    Raises:
        OSError: If the encoder fails
    """
    if image_format == "JPEG" and image.mode not in ("RGB", "L", "CMYK"):
        image = image.convert("RGB")

    buffer = BytesIO()
    if image_format == "JPEG":
        image.save(buffer, format="JPEG", quality=quality)
    else:
        image.save(buffer, format=image_format, optimize=True)
    return buffer.getvalue()

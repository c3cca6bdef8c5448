"""
User configuration for btreceipt.

Settings live in a small JSON file so the printer name, aliases and image
options can change without touching code. Every key is optional; missing
keys fall back to the defaults below.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

from .errors import ConfigError

DEFAULT_PRINTER_NAME = "MTP-2"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_IMAGE_QUALITY = 75
DEFAULT_RFCOMM_CHANNEL = 1
DEFAULT_ERASE_COLOR = (0, 0, 0, 255)  # opaque black

TRANSPORTS = ("rfcomm", "ble")
IMAGE_FORMATS = ("JPEG", "PNG")

# Config directory location
CONFIG_DIR = Path.home() / ".config" / "btreceipt"
CONFIG_FILE = CONFIG_DIR / "config.json"

CONFIG_ENV_VAR = "BTRECEIPT_CONFIG"


@dataclass
class Config:
    """Resolved settings.

    Attributes:
        printer: Paired device name (or alias) to print to
        devices: Alias -> paired device name lookup table
        transport: Transport provider name ("rfcomm" or "ble")
        connect_timeout: Seconds to wait for a connect, None for no limit
        image_quality: Encoder quality for raster jobs (1-95)
        image_format: Encoded raster format
        erase_color: RGBA colour the strip step fills images with
        image_width: Resize raster jobs to this width, None to keep size
        rfcomm_channel: RFCOMM channel used when SDP lookup finds nothing
    """

    printer: str = DEFAULT_PRINTER_NAME
    devices: dict[str, str] = field(default_factory=dict)
    transport: str = "rfcomm"
    connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT
    image_quality: int = DEFAULT_IMAGE_QUALITY
    image_format: str = "JPEG"
    erase_color: tuple[int, int, int, int] = DEFAULT_ERASE_COLOR
    image_width: Optional[int] = None
    rfcomm_channel: int = DEFAULT_RFCOMM_CHANNEL

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigError if any value is out of range."""
        if not isinstance(self.printer, str) or not self.printer:
            raise ConfigError("printer must be a non-empty string")
        if not isinstance(self.devices, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in self.devices.items()
        ):
            raise ConfigError("devices must map alias strings to device names")
        if self.transport not in TRANSPORTS:
            raise ConfigError(
                f"transport must be one of {', '.join(TRANSPORTS)}, "
                f"got {self.transport!r}"
            )
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ConfigError("connect_timeout must be positive or null")
        if not isinstance(self.image_quality, int) or not 1 <= self.image_quality <= 95:
            raise ConfigError("image_quality must be an integer between 1 and 95")
        if self.image_format not in IMAGE_FORMATS:
            raise ConfigError(
                f"image_format must be one of {', '.join(IMAGE_FORMATS)}"
            )
        color = tuple(self.erase_color)
        if len(color) != 4 or not all(
            isinstance(c, int) and 0 <= c <= 255 for c in color
        ):
            raise ConfigError("erase_color must be four integers 0-255 (RGBA)")
        self.erase_color = color
        if self.image_width is not None and (
            not isinstance(self.image_width, int) or self.image_width <= 0
        ):
            raise ConfigError("image_width must be a positive integer or null")
        if not isinstance(self.rfcomm_channel, int) or not 1 <= self.rfcomm_channel <= 30:
            raise ConfigError("rfcomm_channel must be between 1 and 30")

    def resolve_printer_name(self, name: Optional[str] = None) -> str:
        """Map a name or alias to the paired device name.

        Args:
            name: Device name or alias, or None for the configured printer

        Returns:
            Device name to look up among paired devices
        """
        name = name or self.printer
        return self.devices.get(name, name)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["erase_color"] = list(self.erase_color)
        return data


def config_path() -> Path:
    """Return the config file path, honouring BTRECEIPT_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return CONFIG_FILE


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from disk.

    Args:
        path: Config file, defaults to config_path()

    Returns:
        Config with defaults for missing keys (or all defaults if no file).

    Raises:
        ConfigError: If the file is not valid JSON or holds bad values.
    """
    path = path or config_path()
    if not path.exists():
        return Config()

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    known = {f.name for f in fields(Config)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")

    try:
        return Config(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Write configuration to disk, creating the directory if needed."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2))
    return path

"""
Gram descriptor loading.

A descriptor is a small YAML or JSON file naming the spectrogram image and
the data range it covers:

    image: sonar_run3.png
    time-start: 0
    time-end: 60
    freq-start: 100
    freq-end: 900
    # optional
    width: 1024
    height: 768
    orientation: freq_x

Relative image paths are resolved against the descriptor's directory. When
width/height are missing they are read from the image header.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import ConfigurationError
from .geometry.viewport import DataRange, Orientation
from .utils.logging import get_logger

logger = get_logger(__name__)

RANGE_KEYS = ('time-start', 'time-end', 'freq-start', 'freq-end')


@dataclass(frozen=True)
class GramSource:
    """Everything needed to open a session on one image."""
    image_path: Path
    data_range: DataRange
    image_width: int
    image_height: int
    orientation: Orientation = Orientation.FREQ_X


def _number(descriptor: dict, key: str) -> float | None:
    """Read a numeric value; unparseable values are reported and treated as missing."""
    value = descriptor.get(key)
    if value is None:
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid numeric value for %s: %r", key, value)
        return None
    if not math.isfinite(number):
        logger.warning("Non-finite value for %s: %r", key, value)
        return None
    return number


def parse_data_range(descriptor: dict) -> DataRange:
    """
    Build a DataRange from descriptor keys.

    Raises:
        ConfigurationError: If a bound is missing or a range is empty/inverted
    """
    time_start = _number(descriptor, 'time-start')
    time_end = _number(descriptor, 'time-end')
    if time_start is None or time_end is None:
        raise ConfigurationError(
            "Missing required time configuration: both time-start and time-end "
            "must be present with valid numeric values"
        )
    freq_start = _number(descriptor, 'freq-start')
    freq_end = _number(descriptor, 'freq-end')
    if freq_start is None or freq_end is None:
        raise ConfigurationError(
            "Missing required frequency configuration: both freq-start and freq-end "
            "must be present with valid numeric values"
        )
    return DataRange(time_start, time_end, freq_start, freq_end)


def read_image_size(path: Path) -> tuple[int, int]:
    """Read an image's pixel size from its header without decoding it."""
    from PyQt6.QtGui import QImageReader

    reader = QImageReader(str(path))
    size = reader.size()
    if not size.isValid() or size.width() <= 0 or size.height() <= 0:
        raise ConfigurationError(f"Cannot read image size from {path}: {reader.errorString()}")
    return size.width(), size.height()


def _read_descriptor(path: Path) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read descriptor {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Descriptor {path} must contain a mapping")
    return data


def load_gram(path: Path | str) -> GramSource:
    """
    Load a gram descriptor.

    Args:
        path: Path to a .yaml/.yml/.json descriptor

    Returns:
        GramSource with resolved image path, data range and image size

    Raises:
        ConfigurationError: For a missing file, malformed ranges or
            missing image metadata
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Descriptor not found: {path}")
    descriptor = _read_descriptor(path)

    image = descriptor.get('image')
    if not image:
        raise ConfigurationError(f"Descriptor {path} has no image")
    image_path = Path(image)
    if not image_path.is_absolute():
        image_path = path.parent / image_path

    data_range = parse_data_range(descriptor)
    orientation = Orientation.parse(descriptor.get('orientation'))

    width = _number(descriptor, 'width')
    height = _number(descriptor, 'height')
    if width is None or height is None:
        if not image_path.exists():
            raise ConfigurationError(f"Image not found: {image_path}")
        width, height = read_image_size(image_path)
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Invalid image size: {width}x{height}")

    logger.info("Loaded %s: %s, %dx%d px", path.name, image_path.name, int(width), int(height))
    return GramSource(
        image_path=image_path,
        data_range=data_range,
        image_width=int(width),
        image_height=int(height),
        orientation=orientation,
    )

"""
Value types shared by the geometry layer.

Three coordinate spaces are in play:

- screen: pixels of the drawing surface (``display_width`` x ``display_height``),
  origin top-left, y growing downward
- viewport: native raster pixels (``image_width`` x ``image_height``) with
  zoom and pan removed
- data: (time, frequency) in the units the spectrogram represents

``ViewportState`` is immutable; every zoom or pan produces a new instance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from ..errors import ConfigurationError


class Orientation(Enum):
    """Which data axis runs horizontally on screen."""
    FREQ_X = 'freq_x'  # Frequency to the right, time upward
    TIME_X = 'time_x'  # Time to the right, frequency upward

    @classmethod
    def parse(cls, value: str | Orientation | None) -> Orientation:
        """Parse an orientation name, accepting enum values or names."""
        if value is None:
            return cls.FREQ_X
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace('-', '_')
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ConfigurationError(f"Unknown orientation: {value!r}")


@dataclass(frozen=True)
class DataPoint:
    """A position in data units."""
    time: float
    freq: float


@dataclass(frozen=True)
class ScreenPoint:
    """A position in screen pixels."""
    x: float
    y: float

    def distance_to(self, other: ScreenPoint) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class DataRange:
    """Time and frequency extent covered by the raster.

    Attributes:
        time_min: Earliest time shown by the image
        time_max: Latest time shown by the image
        freq_min: Lowest frequency shown by the image
        freq_max: Highest frequency shown by the image
    """
    time_min: float
    time_max: float
    freq_min: float
    freq_max: float

    def __post_init__(self):
        for name in ('time_min', 'time_max', 'freq_min', 'freq_max'):
            value = getattr(self, name)
            if value is None:
                raise ConfigurationError(f"Missing {name}")
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{name} is not a number: {value!r}") from None
            if not math.isfinite(number):
                raise ConfigurationError(f"{name} must be finite, got {value!r}")
            object.__setattr__(self, name, number)
        if self.time_min >= self.time_max:
            raise ConfigurationError(
                f"Invalid time range: start ({self.time_min}) must be less than end ({self.time_max})"
            )
        if self.freq_min >= self.freq_max:
            raise ConfigurationError(
                f"Invalid frequency range: start ({self.freq_min}) must be less than end ({self.freq_max})"
            )

    @property
    def time_span(self) -> float:
        return self.time_max - self.time_min

    @property
    def freq_span(self) -> float:
        return self.freq_max - self.freq_min

    @property
    def time_mid(self) -> float:
        return (self.time_min + self.time_max) / 2

    @property
    def freq_mid(self) -> float:
        return (self.freq_min + self.freq_max) / 2

    def contains(self, point: DataPoint) -> bool:
        """Check whether a data point lies inside the range (edges included)."""
        return (self.time_min <= point.time <= self.time_max
                and self.freq_min <= point.freq <= self.freq_max)


@dataclass(frozen=True)
class ViewportState:
    """Zoom and pan applied on top of the base data-to-pixel mapping.

    Pan is expressed in viewport units before scaling, so a viewport
    point ``v`` lands at ``v * zoom + pan`` on the (unscaled) canvas.
    """
    data_range: DataRange
    image_width: float
    image_height: float
    display_width: float
    display_height: float
    orientation: Orientation = Orientation.FREQ_X
    zoom_scale_x: float = 1.0
    zoom_scale_y: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    def __post_init__(self):
        for name in ('image_width', 'image_height', 'display_width', 'display_height'):
            value = getattr(self, name)
            if value is None or not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")
        if self.zoom_scale_x < 1 or self.zoom_scale_y < 1:
            raise ConfigurationError("Zoom scale must be >= 1")

    @classmethod
    def create(
        cls,
        data_range: DataRange,
        image_width: float,
        image_height: float,
        display_width: float | None = None,
        display_height: float | None = None,
        orientation: Orientation | str | None = None,
    ) -> ViewportState:
        """Build an unzoomed viewport; display size defaults to the image size."""
        if image_width is None or image_height is None:
            raise ConfigurationError("Image dimensions are required")
        return cls(
            data_range=data_range,
            image_width=float(image_width),
            image_height=float(image_height),
            display_width=float(display_width if display_width is not None else image_width),
            display_height=float(display_height if display_height is not None else image_height),
            orientation=Orientation.parse(orientation),
        )

    @property
    def is_zoomed(self) -> bool:
        return self.zoom_scale_x > 1.0 or self.zoom_scale_y > 1.0

    def with_display_size(self, width: float, height: float) -> ViewportState:
        return replace(self, display_width=float(width), display_height=float(height))

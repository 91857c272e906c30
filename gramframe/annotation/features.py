"""
Feature types placed on the spectrogram.

Usage:
    from gramframe.annotation.features import Marker, HarmonicSet

    marker = Marker(id='marker-1', time=1.25, freq=440.0)
    moved = marker.moved_to(DataPoint(1.5, 450.0))
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum

from ..analysis import doppler
from ..config import config
from ..geometry.viewport import DataPoint


def default_marker_color() -> str:
    """Marker color from the ``colors.marker`` RGBA setting, as hex."""
    red, green, blue = config['colors']['marker'][:3]
    return f'#{int(red):02x}{int(green):02x}{int(blue):02x}'


class Mode(Enum):
    """Interaction modes."""
    CROSS_CURSOR = 'cross_cursor'
    HARMONICS = 'harmonics'
    DOPPLER = 'doppler'
    PAN = 'pan'

    @classmethod
    def parse(cls, name: str | Mode) -> Mode:
        """Look up a mode by value or name (``'doppler'``, ``'cross-cursor'``, ...)."""
        if isinstance(name, cls):
            return name
        text = str(name).strip().lower().replace('-', '_').replace(' ', '_')
        if text in ('crosscursor', 'analysis'):
            text = 'cross_cursor'
        for member in cls:
            if text == member.value:
                return member
        raise ValueError(f"Unknown mode: {name!r}")


class Cursor(Enum):
    """Pointer affordance shown by the viewer."""
    CROSSHAIR = 'crosshair'
    GRAB = 'grab'
    GRABBING = 'grabbing'


class FeatureKind(Enum):
    MARKER = 'marker'
    HARMONIC_SET = 'harmonic'
    DOPPLER = 'doppler'


_ID_PATTERN = re.compile(r'^(?P<kind>[a-z]+)-(?P<seq>\d+)$')


def make_feature_id(kind: FeatureKind, sequence: int) -> str:
    return f"{kind.value}-{sequence}"


def id_sequence(feature_id: str) -> int:
    """Creation sequence number embedded in a feature id (-1 if none)."""
    match = _ID_PATTERN.match(feature_id or '')
    return int(match.group('seq')) if match else -1


def id_kind(feature_id: str) -> FeatureKind | None:
    match = _ID_PATTERN.match(feature_id or '')
    if not match:
        return None
    for kind in FeatureKind:
        if kind.value == match.group('kind'):
            return kind
    return None


def _finite(value, name: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite")
    return number


@dataclass(frozen=True)
class Marker:
    """A cross-cursor marker.

    Attributes:
        id: Unique identifier (``marker-N``)
        time: Time position in seconds
        freq: Frequency position in Hz
        color: Display color
        selected: Whether this is the selected feature
    """
    id: str
    time: float
    freq: float
    color: str = field(default_factory=default_marker_color)
    selected: bool = False

    @property
    def position(self) -> DataPoint:
        return DataPoint(self.time, self.freq)

    def moved_to(self, point: DataPoint) -> Marker:
        return replace(self, time=point.time, freq=point.freq)


@dataclass(frozen=True)
class HarmonicSet:
    """A family of evenly spaced frequency lines.

    Attributes:
        id: Unique identifier (``harmonic-N``)
        color: Display color, taken from the harmonic palette
        anchor_time: Time the lines are vertically centred on
        spacing: Fundamental spacing in Hz
        selected: Whether this is the selected feature
    """
    id: str
    color: str
    anchor_time: float
    spacing: float
    selected: bool = False


@dataclass(frozen=True)
class DopplerFit:
    """Three-point Doppler measurement.

    ``f_zero`` stays None until the user drags it; until then the
    midpoint of f+ and f- is used. ``complete`` is False while the drag
    that creates the fit is still in progress.
    """
    id: str
    f_plus: DataPoint
    f_minus: DataPoint
    f_zero: DataPoint | None = None
    complete: bool = False
    selected: bool = False

    @property
    def effective_f_zero(self) -> DataPoint:
        if self.f_zero is not None:
            return self.f_zero
        return doppler.midpoint(self.f_plus, self.f_minus)

    @property
    def speed(self) -> float | None:
        return doppler.speed(self.f_plus, self.f_minus, self.effective_f_zero)

    @property
    def speed_knots(self) -> float | None:
        return doppler.speed_to_knots(self.speed)

    def time_ordered(self) -> DopplerFit:
        """Swap the endpoints if needed so f- is the earlier one."""
        if self.f_minus.time > self.f_plus.time:
            return replace(self, f_plus=self.f_minus, f_minus=self.f_plus)
        return self


Feature = Marker | HarmonicSet | DopplerFit


def _as_point(value) -> DataPoint:
    if isinstance(value, DataPoint):
        return value
    if isinstance(value, dict):
        return DataPoint(_finite(value['time'], 'time'), _finite(value['freq'], 'freq'))
    time, freq = value
    return DataPoint(_finite(time, 'time'), _finite(freq, 'freq'))


def apply_changes(feature: Feature, changes: dict) -> Feature:
    """
    Return a copy of ``feature`` with user-supplied field changes.

    Raises:
        ValueError: For unknown fields or values of the wrong kind
    """
    if isinstance(feature, Marker):
        allowed = {'time', 'freq', 'color'}
    elif isinstance(feature, HarmonicSet):
        allowed = {'anchor_time', 'spacing', 'color'}
    else:
        allowed = {'f_plus', 'f_minus', 'f_zero'}

    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update {', '.join(sorted(unknown))} on {feature.id}")

    values = {}
    for key, value in changes.items():
        if key == 'color':
            values[key] = str(value)
        elif key in ('f_plus', 'f_minus'):
            values[key] = _as_point(value)
        elif key == 'f_zero':
            values[key] = None if value is None else _as_point(value)
        else:
            values[key] = _finite(value, key)
    return replace(feature, **values)

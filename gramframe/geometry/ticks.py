"""
Axis tick placement using the "nice numbers" method.

Intervals are always 1, 2 or 5 times a power of ten.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

NICE_STEPS = (1.0, 2.0, 5.0, 10.0)


@dataclass
class TickSet:
    """Major and minor ticks for one axis."""
    major_interval: float
    minor_interval: float
    ticks: list[float] = field(default_factory=list)
    minor_ticks: list[float] = field(default_factory=list)


def nice_interval(raw: float) -> float:
    """Round a raw interval up to the nearest {1, 2, 5} x 10^n."""
    if raw <= 0:
        return 0.0
    exponent = math.floor(math.log10(raw))
    magnitude = 10.0 ** exponent
    fraction = raw / magnitude
    for step in NICE_STEPS:
        # Tolerance absorbs log10 rounding (e.g. 0.3 / 0.1 = 2.9999999999999996)
        if fraction <= step * (1 + 1e-9):
            return step * magnitude
    return 10.0 * magnitude


def minor_interval_for(major: float) -> float:
    """Minor interval: half of a 2-led major, a fifth of a 1- or 5-led major."""
    if major <= 0:
        return 0.0
    leading = major / 10.0 ** math.floor(math.log10(major))
    if round(leading) == 2:
        return major / 2
    return major / 5


def _ticks_between(start: float, stop: float, interval: float) -> list[float]:
    """Multiples of ``interval`` inside [start, stop]."""
    eps = interval * 1e-9
    first = math.ceil((start - eps) / interval)
    last = math.floor((stop + eps) / interval)
    # Round away accumulated error so labels read cleanly
    digits = max(0, -math.floor(math.log10(interval)) + 1)
    return [round(i * interval, digits) for i in range(first, last + 1)]


def compute_ticks(
    minimum: float,
    maximum: float,
    pixel_budget: float,
    target_pixel_spacing: float,
) -> TickSet:
    """
    Compute major and minor ticks for an axis.

    Args:
        minimum: Lowest value on the axis
        maximum: Highest value on the axis
        pixel_budget: Axis length in screen pixels
        target_pixel_spacing: Desired distance between major ticks in pixels

    Returns:
        TickSet whose ``ticks`` lie within [minimum, maximum]. A zero-width
        range yields the single tick ``[minimum]`` with zero intervals.
    """
    if maximum < minimum:
        minimum, maximum = maximum, minimum
    if maximum == minimum:
        return TickSet(major_interval=0.0, minor_interval=0.0, ticks=[minimum])

    target_count = math.floor(pixel_budget / target_pixel_spacing) if target_pixel_spacing > 0 else 1
    raw = (maximum - minimum) / max(1, target_count - 1)
    major = nice_interval(raw)
    minor = minor_interval_for(major)

    ticks = _ticks_between(minimum, maximum, major)
    major_set = set(ticks)
    minor_ticks = [t for t in _ticks_between(minimum, maximum, minor) if t not in major_set]

    return TickSet(major_interval=major, minor_interval=minor, ticks=ticks, minor_ticks=minor_ticks)


def tick_positions(
    ticks: list[float],
    minimum: float,
    maximum: float,
    pixels: float,
    inverted: bool = False,
) -> list[float]:
    """Map tick values to pixel offsets along an axis of ``pixels`` length.

    With ``inverted`` the maximum sits at pixel 0 (a vertical axis whose
    values grow upward).
    """
    span = maximum - minimum
    if span == 0:
        return [0.0 for _ in ticks]
    positions = []
    for value in ticks:
        fraction = (value - minimum) / span
        if inverted:
            fraction = 1.0 - fraction
        positions.append(fraction * pixels)
    return positions

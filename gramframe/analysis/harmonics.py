"""
Harmonic series calculations.

A harmonic set is defined by its spacing (the fundamental, in Hz) and the
anchor time its lines are centred on. Lines sit at ``spacing * index``
for index 1, 2, 3, ... and only those inside the data range are shown.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..config import config
from ..errors import GeometryDegenerateError, InvalidInputError
from ..geometry.viewport import DataRange

# Relative slack for range edges hit exactly (0.3 / 0.1 in floating point)
_EDGE_EPS = 1e-9


@dataclass(frozen=True)
class Harmonic:
    """One line of a harmonic set."""
    index: int
    frequency: float


def compute_harmonics(
    spacing: float,
    data_range: DataRange,
    max_count: int | None = 10,
) -> list[Harmonic]:
    """
    Compute the harmonic lines of a set that fall inside the data range.

    Args:
        spacing: Fundamental spacing in Hz
        data_range: Range whose frequency bounds filter the lines
        max_count: Most lines returned, counted from the lowest in-range
            index (None for no cap)

    Returns:
        Harmonics ordered by index; empty when spacing <= 0
    """
    if spacing is None or not math.isfinite(spacing) or spacing <= 0:
        return []

    first = max(1, math.ceil(data_range.freq_min / spacing - _EDGE_EPS))
    last = math.floor(data_range.freq_max / spacing + _EDGE_EPS)
    if max_count is not None:
        last = min(last, first + int(max_count) - 1)

    return [Harmonic(index=n, frequency=n * spacing) for n in range(first, last + 1)]


def compute_rate(cursor_freq: float, spacing: float) -> float | None:
    """Ratio of the cursor frequency to the spacing, or None when spacing <= 0."""
    if spacing is None or spacing <= 0:
        return None
    return cursor_freq / spacing


def compute_rate_or_raise(cursor_freq: float, spacing: float) -> float:
    """Like ``compute_rate`` but raises GeometryDegenerateError when undefined."""
    rate = compute_rate(cursor_freq, spacing)
    if rate is None:
        raise GeometryDegenerateError(f"Rate undefined for spacing {spacing}")
    return rate


def initial_harmonic_index(freq_min: float) -> int:
    """Harmonic index a fresh click represents.

    When the frequency axis starts above zero the click is taken as the
    10th harmonic, otherwise as the 5th.
    """
    harmonics_cfg = config['harmonics']
    if freq_min > 0:
        return int(harmonics_cfg['click_index_offset_origin'])
    return int(harmonics_cfg['click_index_zero_origin'])


def spacing_for_click(freq: float, freq_min: float) -> float:
    """Spacing for a new set created by clicking at ``freq``."""
    return freq / initial_harmonic_index(freq_min)


def nearest_harmonic_index(freq: float, spacing: float) -> int | None:
    """Index of the harmonic line closest to ``freq`` (at least 1)."""
    if spacing is None or spacing <= 0:
        return None
    return max(1, round(freq / spacing))


def min_spacing() -> float:
    return float(config['harmonics']['min_spacing'])


def validate_spacing(spacing) -> float:
    """
    Check that a spacing is usable.

    Args:
        spacing: Candidate spacing (number or numeric text)

    Returns:
        The spacing as a float

    Raises:
        InvalidInputError: If it is not a finite number or below the minimum
    """
    try:
        value = float(str(spacing).strip()) if isinstance(spacing, str) else float(spacing)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Spacing is not a number: {spacing!r}") from None
    if not math.isfinite(value):
        raise InvalidInputError(f"Spacing must be finite, got {spacing!r}")
    minimum = min_spacing()
    if value < minimum:
        raise InvalidInputError(f"Spacing must be at least {minimum:g} Hz, got {value:g}")
    return value


def line_time_extent(anchor_time: float, data_range: DataRange) -> tuple[float, float]:
    """Time span covered by a set's lines, centred on the anchor time."""
    half = float(config['harmonics']['line_height']) * data_range.time_span / 2
    return anchor_time - half, anchor_time + half

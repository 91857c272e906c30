"""
Doppler speed estimation from a frequency S-curve.

A passing source produces a frequency trace that starts high (f+ side,
approaching) and ends low, or the reverse. Three points are picked on the
trace: f- and f+ at its ends and f0 at the inflection. The classical
approximation gives the relative speed:

    delta_f = (f+ - f-) / 2
    speed   = c / f0 * delta_f

With f- the earlier point, an approaching-then-receding source gives a
negative delta_f and therefore a negative speed.
"""

from __future__ import annotations

import numpy as np
from scipy.interpolate import PchipInterpolator

from ..config import config
from ..errors import GeometryDegenerateError
from ..geometry.viewport import DataPoint

MS_TO_KNOTS = 1.94384


def speed_of_sound() -> float:
    return float(config['doppler']['speed_of_sound'])


def delta_f(f_plus: DataPoint, f_minus: DataPoint) -> float:
    """Half the frequency difference between the f+ and f- points."""
    return (f_plus.freq - f_minus.freq) / 2


def midpoint(f_plus: DataPoint, f_minus: DataPoint) -> DataPoint:
    """Default f0: the time and frequency midpoint of f+ and f-."""
    return DataPoint(time=(f_plus.time + f_minus.time) / 2,
                     freq=(f_plus.freq + f_minus.freq) / 2)


def speed(
    f_plus: DataPoint,
    f_minus: DataPoint,
    f_zero: DataPoint | None = None,
    c: float | None = None,
) -> float | None:
    """
    Estimated relative speed in m/s.

    Args:
        f_plus: Later point of the trace
        f_minus: Earlier point of the trace
        f_zero: Inflection point (midpoint of f+ and f- when None)
        c: Propagation speed (``doppler.speed_of_sound`` when None)

    Returns:
        Signed speed, or None when f0 has zero frequency
    """
    if f_zero is None:
        f_zero = midpoint(f_plus, f_minus)
    if f_zero.freq == 0:
        return None
    if c is None:
        c = speed_of_sound()
    return c / f_zero.freq * delta_f(f_plus, f_minus)


def speed_or_raise(
    f_plus: DataPoint,
    f_minus: DataPoint,
    f_zero: DataPoint | None = None,
    c: float | None = None,
) -> float:
    """Like ``speed`` but raises GeometryDegenerateError when f0 is zero."""
    value = speed(f_plus, f_minus, f_zero, c)
    if value is None:
        raise GeometryDegenerateError("Doppler speed undefined for f0 = 0 Hz")
    return value


def speed_to_knots(speed_ms: float | None) -> float | None:
    if speed_ms is None:
        return None
    return speed_ms * MS_TO_KNOTS


def doppler_curve(
    f_plus: DataPoint,
    f_minus: DataPoint,
    f_zero: DataPoint | None = None,
    samples: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Sample the S-curve through f-, f0 and f+.

    Frequency is interpolated as a function of time with a monotone
    piecewise cubic Hermite interpolant, which passes through every point
    and is continuously differentiable. Points sharing a time are merged
    (the later-listed one wins); two distinct times give a straight line
    and a single time gives a constant.

    Args:
        f_plus: f+ point
        f_minus: f- point
        f_zero: Inflection point (midpoint when None)
        samples: Number of samples (``doppler.curve_samples`` when None)

    Returns:
        (times, freqs) arrays ordered by time
    """
    if f_zero is None:
        f_zero = midpoint(f_plus, f_minus)
    if samples is None:
        samples = int(config['doppler']['curve_samples'])
    samples = max(2, samples)

    by_time: dict[float, float] = {}
    for point in (f_minus, f_zero, f_plus):
        by_time[point.time] = point.freq
    times = np.array(sorted(by_time))
    freqs = np.array([by_time[t] for t in times])

    if len(times) == 1:
        return np.full(samples, times[0]), np.full(samples, freqs[0])

    grid = np.linspace(times[0], times[-1], samples)
    if len(times) == 2:
        return grid, np.interp(grid, times, freqs)

    interpolator = PchipInterpolator(times, freqs)
    return grid, interpolator(grid)

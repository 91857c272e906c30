"""Calculation engines for harmonic sets and Doppler fits."""

from .harmonics import Harmonic, compute_harmonics, compute_rate
from .doppler import delta_f, doppler_curve, midpoint, speed, speed_to_knots

__all__ = [
    'Harmonic', 'compute_harmonics', 'compute_rate',
    'delta_f', 'doppler_curve', 'midpoint', 'speed', 'speed_to_knots',
]

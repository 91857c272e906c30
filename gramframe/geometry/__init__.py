"""Coordinate geometry: viewport model, transforms and axis ticks."""

from .viewport import DataPoint, DataRange, Orientation, ScreenPoint, ViewportState
from .ticks import TickSet, compute_ticks, tick_positions

__all__ = [
    'DataPoint', 'DataRange', 'Orientation', 'ScreenPoint', 'ViewportState',
    'TickSet', 'compute_ticks', 'tick_positions',
]

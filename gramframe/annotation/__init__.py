"""Feature types and the feature store."""

from .features import (
    Cursor, DopplerFit, FeatureKind, HarmonicSet, Marker, Mode,
)
from .store import FeatureStore, Patch, Snapshot

__all__ = [
    'Cursor', 'DopplerFit', 'FeatureKind', 'HarmonicSet', 'Marker', 'Mode',
    'FeatureStore', 'Patch', 'Snapshot',
]

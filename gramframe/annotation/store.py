"""
Feature store: the single owner of session state.

Holds the markers, harmonic sets and Doppler fit together with the
viewport, active mode and hover point. State changes arrive as ``Patch``
objects which are applied to a working copy and committed only when every
operation succeeds, so listeners never see a half-applied change.

Usage:
    store = FeatureStore(viewport)
    store.subscribe(on_snapshot)

    patch = Patch().add(Marker(id=store.allocate_id(FeatureKind.MARKER), time=1.0, freq=440.0))
    snapshot = store.apply(patch)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable

from ..analysis.harmonics import Harmonic, compute_harmonics, compute_rate, line_time_extent
from ..config import config
from ..errors import InvalidInputError, StateInconsistencyError
from ..geometry.viewport import DataPoint, ViewportState
from ..utils.logging import get_logger
from .features import (
    Cursor,
    DopplerFit,
    Feature,
    FeatureKind,
    HarmonicSet,
    Marker,
    Mode,
    id_sequence,
    make_feature_id,
)

logger = get_logger(__name__)


# =============================================================================
# Snapshot
# =============================================================================

@dataclass(frozen=True)
class HarmonicSetView:
    """A harmonic set with its derived lines and rate at the hover frequency."""
    feature: HarmonicSet
    lines: tuple[Harmonic, ...]
    rate: float | None
    time_extent: tuple[float, float]

    @property
    def id(self) -> str:
        return self.feature.id


@dataclass(frozen=True)
class DopplerView:
    """A Doppler fit with its effective f0 and derived speed."""
    fit: DopplerFit
    f_zero: DataPoint
    speed: float | None
    speed_knots: float | None

    @property
    def id(self) -> str:
        return self.fit.id


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the session delivered to listeners."""
    mode: Mode
    previous_mode: Mode | None
    viewport: ViewportState
    markers: tuple[Marker, ...]
    harmonic_sets: tuple[HarmonicSetView, ...]
    doppler: DopplerView | None
    hover: DataPoint | None
    cursor: Cursor
    selected_id: str | None

    def marker(self, feature_id: str) -> Marker | None:
        for marker in self.markers:
            if marker.id == feature_id:
                return marker
        return None

    def harmonic_set(self, feature_id: str) -> HarmonicSetView | None:
        for view in self.harmonic_sets:
            if view.id == feature_id:
                return view
        return None


# =============================================================================
# State and patches
# =============================================================================

@dataclass
class StoreState:
    """Mutable state container; only ever mutated on a working copy."""
    viewport: ViewportState
    mode: Mode = Mode.CROSS_CURSOR
    previous_mode: Mode | None = None
    markers: dict[str, Marker] = field(default_factory=dict)
    harmonic_sets: dict[str, HarmonicSet] = field(default_factory=dict)
    doppler: DopplerFit | None = None
    hover: DataPoint | None = None
    cursor: Cursor = Cursor.CROSSHAIR

    def working_copy(self) -> StoreState:
        # Features are frozen, so copying the containers is enough
        return replace(self, markers=dict(self.markers), harmonic_sets=dict(self.harmonic_sets))

    def get(self, feature_id: str) -> Feature | None:
        if feature_id in self.markers:
            return self.markers[feature_id]
        if feature_id in self.harmonic_sets:
            return self.harmonic_sets[feature_id]
        if self.doppler is not None and self.doppler.id == feature_id:
            return self.doppler
        return None

    def all_features(self) -> list[Feature]:
        features: list[Feature] = [*self.markers.values(), *self.harmonic_sets.values()]
        if self.doppler is not None:
            features.append(self.doppler)
        return features


class Patch:
    """An ordered list of store operations applied as one unit.

    Builder methods return the patch so calls can be chained.
    """

    def __init__(self):
        self.ops: list[tuple] = []

    def __bool__(self) -> bool:
        return bool(self.ops)

    def __repr__(self) -> str:
        return f"Patch({[op[0] for op in self.ops]})"

    def extend(self, other: Patch | None) -> Patch:
        if other:
            self.ops.extend(other.ops)
        return self

    def add(self, feature: Feature) -> Patch:
        """Add a new feature; a Doppler fit replaces any existing fit."""
        self.ops.append(('add', feature))
        return self

    def replace(self, feature: Feature) -> Patch:
        """Replace an existing feature with an updated copy."""
        self.ops.append(('replace', feature))
        return self

    def remove(self, feature_id: str) -> Patch:
        self.ops.append(('remove', feature_id))
        return self

    def clear_doppler(self) -> Patch:
        self.ops.append(('clear_doppler',))
        return self

    def clear_features(self) -> Patch:
        self.ops.append(('clear_features',))
        return self

    def select(self, feature_id: str | None) -> Patch:
        self.ops.append(('select', feature_id))
        return self

    def set_viewport(self, viewport: ViewportState) -> Patch:
        self.ops.append(('viewport', viewport))
        return self

    def set_mode(self, mode: Mode, previous: Mode | None) -> Patch:
        self.ops.append(('mode', mode, previous))
        return self

    def set_hover(self, point: DataPoint | None) -> Patch:
        self.ops.append(('hover', point))
        return self

    def set_cursor(self, cursor: Cursor) -> Patch:
        self.ops.append(('cursor', cursor))
        return self


def _apply_op(state: StoreState, op: tuple) -> None:
    """Apply one operation to a working copy. Raises on invalid operations."""
    name = op[0]

    if name == 'add':
        feature = op[1]
        if state.get(feature.id) is not None:
            raise InvalidInputError(f"Feature {feature.id!r} already exists")
        if isinstance(feature, Marker):
            state.markers[feature.id] = feature
        elif isinstance(feature, HarmonicSet):
            state.harmonic_sets[feature.id] = feature
        elif isinstance(feature, DopplerFit):
            state.doppler = feature
        else:
            raise InvalidInputError(f"Unsupported feature: {feature!r}")

    elif name == 'replace':
        feature = op[1]
        existing = state.get(feature.id)
        if existing is None:
            raise StateInconsistencyError(feature.id)
        if type(existing) is not type(feature):
            raise InvalidInputError(f"Feature {feature.id!r} changed kind")
        if isinstance(feature, Marker):
            state.markers[feature.id] = feature
        elif isinstance(feature, HarmonicSet):
            state.harmonic_sets[feature.id] = feature
        else:
            state.doppler = feature

    elif name == 'remove':
        feature_id = op[1]
        if feature_id in state.markers:
            del state.markers[feature_id]
        elif feature_id in state.harmonic_sets:
            del state.harmonic_sets[feature_id]
        elif state.doppler is not None and state.doppler.id == feature_id:
            state.doppler = None
        else:
            raise StateInconsistencyError(feature_id)

    elif name == 'clear_doppler':
        state.doppler = None

    elif name == 'clear_features':
        state.markers.clear()
        state.harmonic_sets.clear()
        state.doppler = None

    elif name == 'select':
        feature_id = op[1]
        if feature_id is not None and state.get(feature_id) is None:
            raise StateInconsistencyError(feature_id)
        for feature in state.all_features():
            should_select = feature.id == feature_id
            if feature.selected != should_select:
                _apply_op(state, ('replace', replace(feature, selected=should_select)))

    elif name == 'viewport':
        state.viewport = op[1]

    elif name == 'mode':
        state.mode = op[1]
        state.previous_mode = op[2]

    elif name == 'hover':
        state.hover = op[1]

    elif name == 'cursor':
        state.cursor = op[1]

    else:
        raise InvalidInputError(f"Unknown patch operation: {name}")


# =============================================================================
# Store
# =============================================================================

class FeatureStore:
    """Owns session state and notifies listeners after every commit."""

    def __init__(self, viewport: ViewportState, mode: Mode = Mode.CROSS_CURSOR):
        self._state = StoreState(viewport=viewport, mode=mode)
        self._next_sequence: int = 1
        self._harmonic_sets_created: int = 0
        self._listeners: list[Callable[[Snapshot], None]] = []
        self._snapshot: Snapshot | None = None

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        """Current committed state. Treat as read-only."""
        return self._state

    @property
    def viewport(self) -> ViewportState:
        return self._state.viewport

    @property
    def mode(self) -> Mode:
        return self._state.mode

    def get(self, feature_id: str) -> Feature | None:
        return self._state.get(feature_id)

    def snapshot(self) -> Snapshot:
        """Snapshot of the committed state (cached until the next commit)."""
        if self._snapshot is None:
            self._snapshot = self._build_snapshot()
        return self._snapshot

    def next_harmonic_color(self) -> str:
        """Next color from the harmonic palette, cycling by sets created so far."""
        palette = config['harmonics']['palette']
        return palette[self._harmonic_sets_created % len(palette)]

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def allocate_id(self, kind: FeatureKind) -> str:
        """Reserve a feature id. Ids encode creation order."""
        feature_id = make_feature_id(kind, self._next_sequence)
        self._next_sequence += 1
        return feature_id

    def apply(self, patch: Patch | None) -> Snapshot:
        """
        Apply a patch atomically and notify listeners.

        Args:
            patch: Operations to apply; an empty patch is a no-op

        Returns:
            The snapshot after commit

        Raises:
            InvalidInputError, StateInconsistencyError: If any operation
                fails; the committed state is left unchanged
        """
        if not patch:
            return self.snapshot()

        working = self._state.working_copy()
        for op in patch.ops:
            _apply_op(working, op)

        self._state = working
        self._harmonic_sets_created += sum(
            1 for op in patch.ops if op[0] == 'add' and isinstance(op[1], HarmonicSet))
        self._snapshot = None
        snapshot = self.snapshot()
        self._notify(snapshot)
        return snapshot

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Callable[[Snapshot], None]) -> Callable[[Snapshot], None]:
        """Register a listener for committed snapshots. Returns the listener."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Callable[[Snapshot], None]) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self, snapshot: Snapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.warning("Snapshot listener %r failed", listener, exc_info=True)

    # -------------------------------------------------------------------------
    # Snapshot construction
    # -------------------------------------------------------------------------

    def _build_snapshot(self) -> Snapshot:
        state = self._state
        data_range = state.viewport.data_range
        max_count = config['harmonics']['max_count']

        harmonic_views = []
        for harmonic_set in state.harmonic_sets.values():
            lines = compute_harmonics(harmonic_set.spacing, data_range, max_count)
            rate = compute_rate(state.hover.freq, harmonic_set.spacing) if state.hover else None
            harmonic_views.append(HarmonicSetView(
                feature=harmonic_set,
                lines=tuple(lines),
                rate=rate,
                time_extent=line_time_extent(harmonic_set.anchor_time, data_range),
            ))

        doppler_view = None
        if state.doppler is not None:
            fit = state.doppler
            doppler_view = DopplerView(
                fit=fit,
                f_zero=fit.effective_f_zero,
                speed=fit.speed,
                speed_knots=fit.speed_knots,
            )

        selected = [f.id for f in state.all_features() if f.selected]

        return Snapshot(
            mode=state.mode,
            previous_mode=state.previous_mode,
            viewport=state.viewport,
            markers=tuple(sorted(state.markers.values(), key=lambda m: id_sequence(m.id))),
            harmonic_sets=tuple(harmonic_views),
            doppler=doppler_view,
            hover=state.hover,
            cursor=state.cursor,
            selected_id=selected[0] if selected else None,
        )

"""
Mode handlers.

Each interaction mode is a stateless handler class. Handlers receive a
``ModeContext`` (committed snapshot, active drag, pointer positions) and
return a ``ModeResult`` describing the store patch to apply, the drag they
want to start and the cursor to show. They never touch the store or the
session directly.

The active handler is looked up in ``MODE_HANDLERS`` by ``Mode``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable

from ..analysis import harmonics as harmonic_engine
from ..annotation.features import (
    Cursor,
    DopplerFit,
    FeatureKind,
    HarmonicSet,
    Marker,
    Mode,
)
from ..annotation.store import Patch, Snapshot
from ..errors import InvalidInputError, StateInconsistencyError
from ..geometry.transform import clamp_to_range, pan_by, to_data
from ..geometry.viewport import DataPoint, ScreenPoint, ViewportState
from ..utils.logging import get_logger
from .gestures import INACTIVE_DRAG, DragIntent, DragKind, DragState, Gesture
from .hit_test import Hit, HitKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModeContext:
    """Everything a handler may read while handling one gesture.

    Attributes:
        snapshot: Committed store snapshot
        allocate_id: Reserves an id for a feature the handler creates
        next_color: Palette color for the next harmonic set
        drag: Active drag (inactive outside drags)
        gesture: The gesture being handled, if any
    """
    snapshot: Snapshot
    allocate_id: Callable[[FeatureKind], str]
    next_color: str
    drag: DragState = INACTIVE_DRAG
    gesture: Gesture | None = None

    @property
    def viewport(self) -> ViewportState:
        return self.snapshot.viewport

    @property
    def point(self) -> DataPoint:
        """Data position of the gesture, clamped to the data range."""
        return self.data_at(self.gesture.point)

    @property
    def origin(self) -> DataPoint:
        """Data position where the current press started."""
        return self.data_at(self.gesture.origin or self.gesture.point)

    def data_at(self, screen: ScreenPoint) -> DataPoint:
        return clamp_to_range(to_data(screen, self.viewport), self.viewport.data_range)


@dataclass
class ModeResult:
    """What a handler asks the session to do."""
    patch: Patch = field(default_factory=Patch)
    drag_intent: DragIntent | None = None
    cursor: Cursor | None = None


class ModeHandler:
    """Base handler: ignores every gesture."""

    mode: Mode
    hit_kinds: tuple[HitKind, ...] = ()

    def can_enter(self, snapshot: Snapshot) -> bool:
        return True

    def enter(self, ctx: ModeContext) -> ModeResult:
        return ModeResult(cursor=Cursor.CROSSHAIR)

    def exit(self, ctx: ModeContext) -> ModeResult:
        return ModeResult()

    def on_hover(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        return ModeResult(cursor=Cursor.GRAB if hit else Cursor.CROSSHAIR)

    def on_click(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        return ModeResult()

    def on_drag_start(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        return ModeResult()

    def on_drag_move(self, ctx: ModeContext) -> ModeResult:
        return ModeResult()

    def on_drag_end(self, ctx: ModeContext) -> ModeResult:
        return ModeResult(cursor=Cursor.CROSSHAIR)


# =============================================================================
# Harmonic set creation and dragging (shared by CrossCursor and Harmonics)
# =============================================================================

def new_harmonic_set(ctx: ModeContext, at: DataPoint) -> tuple[HarmonicSet, int]:
    """
    Build a harmonic set whose initial harmonic line passes through ``at``.

    Returns:
        (set, index of the line through ``at``)

    Raises:
        InvalidInputError: If the resulting spacing is below the minimum
    """
    data_range = ctx.viewport.data_range
    index = harmonic_engine.initial_harmonic_index(data_range.freq_min)
    spacing = harmonic_engine.validate_spacing(at.freq / index)
    harmonic_set = HarmonicSet(
        id=ctx.allocate_id(FeatureKind.HARMONIC_SET),
        color=ctx.next_color,
        anchor_time=at.time,
        spacing=spacing,
    )
    return harmonic_set, index


def _start_harmonic_drag(ctx: ModeContext, hit: Hit | None) -> ModeResult:
    """Grab a harmonic line, or create a set to lay out when nothing was hit."""
    if hit is not None and hit.kind is HitKind.HARMONIC_LINE:
        view = ctx.snapshot.harmonic_set(hit.feature_id)
        if view is None:
            raise StateInconsistencyError(hit.feature_id)
        intent = DragIntent(
            kind=DragKind.HARMONIC_SPACING,
            target_id=hit.feature_id,
            origin_feature_snapshot=view.feature,
            harmonic_index=hit.harmonic_index,
        )
        return ModeResult(Patch().select(hit.feature_id), intent, Cursor.GRABBING)

    harmonic_set, index = new_harmonic_set(ctx, ctx.origin)
    intent = DragIntent(
        kind=DragKind.HARMONIC_TIME,
        target_id=harmonic_set.id,
        origin_feature_snapshot=harmonic_set,
        harmonic_index=index,
        creating=True,
    )
    patch = Patch().add(harmonic_set).select(harmonic_set.id)
    logger.debug("Created harmonic set %s (spacing %.3f Hz)", harmonic_set.id, harmonic_set.spacing)
    return ModeResult(patch, intent, Cursor.GRABBING)


def _move_harmonic(ctx: ModeContext) -> ModeResult:
    """Follow the pointer so the grabbed line stays under it.

    The frequency change is divided by the grabbed line's index, so that
    line moves by exactly the pointer's frequency change.
    """
    drag = ctx.drag
    view = ctx.snapshot.harmonic_set(drag.target_id)
    if view is None:
        raise StateInconsistencyError(drag.target_id)

    original: HarmonicSet = drag.origin_feature_snapshot
    current = view.feature
    delta_freq = ctx.point.freq - ctx.origin.freq
    delta_time = ctx.point.time - ctx.origin.time

    spacing = original.spacing + delta_freq / drag.harmonic_index
    if spacing < harmonic_engine.min_spacing():
        # Keep the last valid spacing; the anchor still follows
        spacing = current.spacing

    updated = replace(current, anchor_time=original.anchor_time + delta_time, spacing=spacing)
    if updated == current:
        return ModeResult(cursor=Cursor.GRABBING)
    return ModeResult(Patch().replace(updated), cursor=Cursor.GRABBING)


def _end_harmonic_drag(ctx: ModeContext) -> ModeResult:
    if ctx.gesture is not None and ctx.gesture.synthetic:
        return ModeResult(cursor=Cursor.CROSSHAIR)
    result = _move_harmonic(ctx)
    result.cursor = Cursor.GRAB
    return result


# =============================================================================
# Handlers
# =============================================================================

class CrossCursorMode(ModeHandler):
    """Read coordinates, place markers and lay out harmonic sets by dragging."""

    mode = Mode.CROSS_CURSOR
    hit_kinds = (HitKind.MARKER, HitKind.HARMONIC_LINE)

    def on_click(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        point = ctx.point
        marker = Marker(id=ctx.allocate_id(FeatureKind.MARKER), time=point.time, freq=point.freq)
        logger.debug("Marker %s at %.4f s, %.2f Hz", marker.id, marker.time, marker.freq)
        return ModeResult(Patch().add(marker).select(marker.id))

    def on_drag_start(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        if hit is not None and hit.kind is HitKind.MARKER:
            marker = ctx.snapshot.marker(hit.feature_id)
            if marker is None:
                raise StateInconsistencyError(hit.feature_id)
            intent = DragIntent(kind=DragKind.MARKER, target_id=marker.id,
                                origin_feature_snapshot=marker)
            return ModeResult(Patch().select(marker.id), intent, Cursor.GRABBING)
        return _start_harmonic_drag(ctx, hit)

    def on_drag_move(self, ctx: ModeContext) -> ModeResult:
        if ctx.drag.kind is DragKind.MARKER:
            return self._move_marker(ctx)
        return _move_harmonic(ctx)

    def on_drag_end(self, ctx: ModeContext) -> ModeResult:
        if ctx.drag.kind is DragKind.MARKER:
            if ctx.gesture is not None and ctx.gesture.synthetic:
                return ModeResult(cursor=Cursor.CROSSHAIR)
            result = self._move_marker(ctx)
            result.cursor = Cursor.GRAB
            return result
        return _end_harmonic_drag(ctx)

    def _move_marker(self, ctx: ModeContext) -> ModeResult:
        marker = ctx.snapshot.marker(ctx.drag.target_id)
        if marker is None:
            raise StateInconsistencyError(ctx.drag.target_id)
        original: Marker = ctx.drag.origin_feature_snapshot
        target = DataPoint(
            time=original.time + ctx.point.time - ctx.origin.time,
            freq=original.freq + ctx.point.freq - ctx.origin.freq,
        )
        moved = marker.moved_to(clamp_to_range(target, ctx.viewport.data_range))
        if moved == marker:
            return ModeResult(cursor=Cursor.GRABBING)
        return ModeResult(Patch().replace(moved), cursor=Cursor.GRABBING)


class HarmonicsMode(ModeHandler):
    """Create harmonic sets by clicking and adjust them by dragging their lines."""

    mode = Mode.HARMONICS
    hit_kinds = (HitKind.HARMONIC_LINE,)

    def on_click(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        if hit is not None:
            return ModeResult(Patch().select(hit.feature_id))
        harmonic_set, index = new_harmonic_set(ctx, ctx.point)
        logger.debug("Harmonic set %s: click is harmonic %d, spacing %.3f Hz",
                     harmonic_set.id, index, harmonic_set.spacing)
        return ModeResult(Patch().add(harmonic_set).select(harmonic_set.id))

    def on_drag_start(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        return _start_harmonic_drag(ctx, hit)

    def on_drag_move(self, ctx: ModeContext) -> ModeResult:
        return _move_harmonic(ctx)

    def on_drag_end(self, ctx: ModeContext) -> ModeResult:
        return _end_harmonic_drag(ctx)


class DopplerMode(ModeHandler):
    """Fit a Doppler S-curve through f-, f0 and f+ and report the speed."""

    mode = Mode.DOPPLER
    hit_kinds = (HitKind.DOPPLER_POINT,)

    def exit(self, ctx: ModeContext) -> ModeResult:
        view = ctx.snapshot.doppler
        if view is not None and not view.fit.complete:
            logger.debug("Discarding incomplete Doppler fit %s", view.id)
            return ModeResult(Patch().remove(view.id))
        return ModeResult()

    def on_click(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        if hit is not None:
            return ModeResult(Patch().select(hit.feature_id))
        return ModeResult()

    def on_drag_start(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        view = ctx.snapshot.doppler
        if hit is not None and view is not None and hit.feature_id == view.id:
            intent = DragIntent(
                kind=DragKind.DOPPLER_ENDPOINT,
                target_id=view.id,
                origin_feature_snapshot=view.fit,
                handle=hit.handle,
            )
            return ModeResult(Patch().select(view.id), intent, Cursor.GRABBING)

        # A fresh drag replaces any existing fit
        fit = DopplerFit(
            id=ctx.allocate_id(FeatureKind.DOPPLER),
            f_plus=ctx.point,
            f_minus=ctx.origin,
        )
        patch = Patch()
        if view is not None:
            patch.remove(view.id)
        patch.add(fit).select(fit.id)
        intent = DragIntent(
            kind=DragKind.DOPPLER_ENDPOINT,
            target_id=fit.id,
            origin_feature_snapshot=fit,
            handle='f_plus',
            creating=True,
        )
        logger.debug("Doppler fit %s started", fit.id)
        return ModeResult(patch, intent, Cursor.GRABBING)

    def on_drag_move(self, ctx: ModeContext) -> ModeResult:
        fit = self._updated_fit(ctx)
        return ModeResult(Patch().replace(fit), cursor=Cursor.GRABBING)

    def on_drag_end(self, ctx: ModeContext) -> ModeResult:
        if ctx.gesture is not None and ctx.gesture.synthetic:
            return ModeResult(cursor=Cursor.CROSSHAIR)
        fit = self._updated_fit(ctx).time_ordered()
        if ctx.drag.creating:
            fit = replace(fit, complete=True)
            logger.debug("Doppler fit %s complete: speed %s m/s", fit.id, fit.speed)
        return ModeResult(Patch().replace(fit), cursor=Cursor.GRAB)

    def _updated_fit(self, ctx: ModeContext) -> DopplerFit:
        view = ctx.snapshot.doppler
        drag = ctx.drag
        if view is None or view.id != drag.target_id:
            raise StateInconsistencyError(drag.target_id)
        current = view.fit
        original: DopplerFit = drag.origin_feature_snapshot
        data_range = ctx.viewport.data_range

        if drag.creating:
            return replace(current, f_plus=ctx.point)

        delta_time = ctx.point.time - ctx.origin.time
        delta_freq = ctx.point.freq - ctx.origin.freq

        def shifted(point: DataPoint) -> DataPoint:
            return clamp_to_range(DataPoint(point.time + delta_time, point.freq + delta_freq), data_range)

        if drag.handle == 'f_plus':
            return replace(current, f_plus=shifted(original.f_plus))
        if drag.handle == 'f_minus':
            return replace(current, f_minus=shifted(original.f_minus))
        # f0: once dragged it stops tracking the midpoint
        return replace(current, f_zero=shifted(original.effective_f_zero))


class PanMode(ModeHandler):
    """Drag the zoomed image around."""

    mode = Mode.PAN

    def can_enter(self, snapshot: Snapshot) -> bool:
        return snapshot.viewport.is_zoomed

    def enter(self, ctx: ModeContext) -> ModeResult:
        if not self.can_enter(ctx.snapshot):
            raise InvalidInputError("Pan is only available while zoomed in")
        return ModeResult(cursor=Cursor.GRAB)

    def on_hover(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        return ModeResult(cursor=Cursor.GRAB)

    def on_drag_start(self, ctx: ModeContext, hit: Hit | None) -> ModeResult:
        intent = DragIntent(kind=DragKind.PAN, origin_feature_snapshot=ctx.viewport)
        return ModeResult(drag_intent=intent, cursor=Cursor.GRABBING)

    def on_drag_move(self, ctx: ModeContext) -> ModeResult:
        origin_viewport: ViewportState = ctx.drag.origin_feature_snapshot
        gesture = ctx.gesture
        dx = gesture.point.x - gesture.origin.x
        dy = gesture.point.y - gesture.origin.y
        start = replace(ctx.viewport, pan_x=origin_viewport.pan_x, pan_y=origin_viewport.pan_y)
        viewport = pan_by(dx, dy, start)
        return ModeResult(Patch().set_viewport(viewport), cursor=Cursor.GRABBING)

    def on_drag_end(self, ctx: ModeContext) -> ModeResult:
        if ctx.gesture is not None and ctx.gesture.synthetic:
            return ModeResult(cursor=Cursor.GRAB)
        result = self.on_drag_move(ctx)
        result.cursor = Cursor.GRAB
        return result


# Dispatch table
MODE_HANDLERS: dict[Mode, ModeHandler] = {
    Mode.CROSS_CURSOR: CrossCursorMode(),
    Mode.HARMONICS: HarmonicsMode(),
    Mode.DOPPLER: DopplerMode(),
    Mode.PAN: PanMode(),
}


def handler_for(mode: Mode) -> ModeHandler:
    return MODE_HANDLERS[mode]

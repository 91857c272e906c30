"""
GramFrame session: the command surface over the store, gestures and modes.

Usage:
    from gramframe.interaction.session import GramFrame

    frame = GramFrame(DataRange(0, 10, 0, 1000), image_width=800, image_height=600)
    frame.subscribe(print)

    frame.pointer_move(400, 300)          # hover readout
    frame.pointer_down(400, 300)
    frame.pointer_up(400, 300)            # click: marker in cross-cursor mode

    result = frame.select_mode('harmonics')
    if not result.ok:
        print(result.error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..annotation.features import Cursor, FeatureKind, HarmonicSet, Marker, Mode, apply_changes
from ..annotation.store import FeatureStore, Patch, Snapshot
from ..analysis import harmonics as harmonic_engine
from ..config import config
from ..errors import GramFrameError, InvalidInputError, StateInconsistencyError
from ..geometry import transform
from ..geometry.viewport import DataPoint, DataRange, Orientation, ScreenPoint, ViewportState
from ..utils.logging import get_logger
from .gestures import Gesture, GestureController, GestureKind
from .hit_test import hit_test
from .modes import MODE_HANDLERS, ModeContext, ModeHandler, ModeResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command: success flag, resulting snapshot and any error."""
    ok: bool
    snapshot: Snapshot
    error: GramFrameError | None = None

    def __bool__(self) -> bool:
        return self.ok


def _screen_point(value) -> ScreenPoint | None:
    if value is None or isinstance(value, ScreenPoint):
        return value
    x, y = value
    return ScreenPoint(float(x), float(y))


class GramFrame:
    """An interactive overlay session for one spectrogram image.

    Args:
        data_range: Time and frequency covered by the image
        image_width: Native image width in pixels
        image_height: Native image height in pixels
        display_width: Drawing surface width (defaults to image width)
        display_height: Drawing surface height (defaults to image height)
        orientation: Which data axis is horizontal
        mode: Initial mode

    Raises:
        ConfigurationError: If the range or image size is invalid
    """

    def __init__(
        self,
        data_range: DataRange,
        image_width: float,
        image_height: float,
        display_width: float | None = None,
        display_height: float | None = None,
        orientation: Orientation | str | None = None,
        mode: Mode | str = Mode.CROSS_CURSOR,
    ):
        viewport = ViewportState.create(
            data_range, image_width, image_height,
            display_width, display_height, orientation,
        )
        initial_mode = Mode.parse(mode)
        if initial_mode is Mode.PAN:
            # Nothing to pan at zoom 1
            initial_mode = Mode.CROSS_CURSOR
        self._store = FeatureStore(viewport, initial_mode)
        self._gestures = GestureController()
        self._handlers: dict[Mode, ModeHandler] = dict(MODE_HANDLERS)
        logger.debug("Session created: %s, image %gx%g", data_range, image_width, image_height)

    @classmethod
    def from_source(cls, source, **kwargs) -> GramFrame:
        """Create a session from a loaded ``GramSource``."""
        return cls(
            source.data_range,
            source.image_width,
            source.image_height,
            orientation=source.orientation,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def store(self) -> FeatureStore:
        return self._store

    @property
    def gestures(self) -> GestureController:
        return self._gestures

    @property
    def mode(self) -> Mode:
        return self._store.mode

    @property
    def viewport(self) -> ViewportState:
        return self._store.viewport

    def snapshot(self) -> Snapshot:
        return self._store.snapshot()

    def subscribe(self, listener: Callable[[Snapshot], None]) -> Callable[[Snapshot], None]:
        return self._store.subscribe(listener)

    def unsubscribe(self, listener: Callable[[Snapshot], None]) -> bool:
        return self._store.unsubscribe(listener)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @property
    def _handler(self) -> ModeHandler:
        return self._handlers[self._store.mode]

    def _context(self, gesture: Gesture | None = None) -> ModeContext:
        return ModeContext(
            snapshot=self._store.snapshot(),
            allocate_id=self._store.allocate_id,
            next_color=self._store.next_harmonic_color(),
            drag=self._gestures.drag,
            gesture=gesture,
        )

    def _ok(self, snapshot: Snapshot | None = None) -> CommandResult:
        return CommandResult(True, snapshot or self._store.snapshot())

    def _fail(self, error: GramFrameError) -> CommandResult:
        logger.warning("Rejected: %s", error)
        return CommandResult(False, self._store.snapshot(), error)

    def _run(self, build_patch: Callable[[], Patch | None]) -> CommandResult:
        """Build a patch and apply it; any GramFrameError becomes a failure result."""
        try:
            patch = build_patch()
            return self._ok(self._store.apply(patch))
        except GramFrameError as e:
            return self._fail(e)

    @staticmethod
    def _with_cursor(result: ModeResult) -> Patch:
        patch = result.patch
        if result.cursor is not None:
            patch.set_cursor(result.cursor)
        return patch

    def _end_drag(self) -> Patch:
        """Force a synthetic drag end on the active mode and clear the drag."""
        patch = Patch()
        for gesture in self._gestures.force_end():
            if self._gestures.drag.active:
                try:
                    result = self._handler.on_drag_end(self._context(gesture))
                    patch.extend(self._with_cursor(result))
                except StateInconsistencyError:
                    logger.debug("Drag target vanished before forced end")
        self._gestures.clear_drag()
        return patch

    def _switch_mode_patch(self, new_mode: Mode, previous: Mode | None) -> Patch:
        """Patch that exits the current mode and enters ``new_mode``."""
        ctx = self._context()
        patch = Patch()
        patch.extend(self._handler.exit(ctx).patch)
        entered = self._handlers[new_mode].enter(ctx)
        patch.extend(self._with_cursor(entered))
        patch.set_mode(new_mode, previous)
        return patch

    def _viewport_patch(self, viewport: ViewportState) -> Patch:
        """Set the viewport, leaving Pan mode if the zoom returned to 1."""
        patch = Patch().set_viewport(viewport)
        if self._store.mode is Mode.PAN and not viewport.is_zoomed:
            patch = self._end_drag().extend(patch)
            target = self._store.state.previous_mode or Mode.CROSS_CURSOR
            ctx = self._context()
            patch.extend(self._handler.exit(ctx).patch)
            patch.extend(self._with_cursor(self._handlers[target].enter(ctx)))
            patch.set_mode(target, None)
            logger.debug("Zoom back at 1: leaving pan mode for %s", target.value)
        return patch

    # -------------------------------------------------------------------------
    # Pointer events
    # -------------------------------------------------------------------------

    def pointer_down(self, x: float, y: float) -> CommandResult:
        return self._dispatch(self._gestures.pointer_down(ScreenPoint(x, y)))

    def pointer_move(self, x: float, y: float) -> CommandResult:
        point = ScreenPoint(x, y)
        gestures = self._gestures.pointer_move(point)
        if self._gestures.is_pressed and not gestures:
            # Press still under the click threshold: keep the readout live
            return self._run(lambda: self._hover_patch(point))
        return self._dispatch(gestures)

    def pointer_up(self, x: float, y: float) -> CommandResult:
        return self._dispatch(self._gestures.pointer_up(ScreenPoint(x, y)))

    def pointer_leave(self) -> CommandResult:
        return self._dispatch(self._gestures.pointer_leave())

    def _hover_patch(self, point: ScreenPoint) -> Patch:
        viewport = self._store.viewport
        data = transform.to_data(point, viewport)
        return Patch().set_hover(data if viewport.data_range.contains(data) else None)

    def _dispatch(self, gestures: list[Gesture]) -> CommandResult:
        """Route gestures to the active mode, committing each one's patch."""
        result = self._ok()
        failure = None
        for gesture in gestures:
            result = self._handle_gesture(gesture)
            if not result.ok and failure is None:
                failure = result
        if failure is not None:
            return CommandResult(False, self._store.snapshot(), failure.error)
        return result

    def _handle_gesture(self, gesture: Gesture) -> CommandResult:
        handler = self._handler
        kind = gesture.kind

        if kind is GestureKind.LEAVE:
            return self._run(lambda: Patch().set_hover(None).set_cursor(Cursor.CROSSHAIR))

        if kind is GestureKind.HOVER:
            def hover() -> Patch:
                ctx = self._context(gesture)
                hit = hit_test(ctx.snapshot, gesture.point, handler.hit_kinds)
                return self._hover_patch(gesture.point).extend(
                    self._with_cursor(handler.on_hover(ctx, hit)))
            return self._run(hover)

        if kind is GestureKind.CLICK:
            def click() -> Patch:
                ctx = self._context(gesture)
                hit = hit_test(ctx.snapshot, gesture.point, handler.hit_kinds)
                logger.debug("Click in %s at %s", handler.mode.value, ctx.point)
                return self._with_cursor(handler.on_click(ctx, hit))
            return self._run(click)

        if kind is GestureKind.DRAG_START:
            try:
                ctx = self._context(gesture)
                hit = hit_test(ctx.snapshot, gesture.origin, handler.hit_kinds)
                result = handler.on_drag_start(ctx, hit)
                snapshot = self._store.apply(self._with_cursor(result))
            except GramFrameError as e:
                return self._fail(e)
            if result.drag_intent is not None:
                self._gestures.begin_drag(result.drag_intent, gesture.origin)
            return self._ok(snapshot)

        # DRAG_MOVE / DRAG_END
        if not self._gestures.drag.active:
            return self._ok()
        try:
            ctx = self._context(gesture)
            if kind is GestureKind.DRAG_MOVE:
                result = handler.on_drag_move(ctx)
                patch = self._hover_patch(gesture.point).extend(self._with_cursor(result))
            else:
                result = handler.on_drag_end(ctx)
                patch = self._with_cursor(result)
            snapshot = self._store.apply(patch)
        except StateInconsistencyError as e:
            # Target deleted mid-drag: abort quietly without mutating anything
            logger.debug("Aborting drag: %s", e)
            self._gestures.clear_drag()
            return self._ok()
        except GramFrameError as e:
            if kind is GestureKind.DRAG_END:
                self._gestures.clear_drag()
            return self._fail(e)
        if kind is GestureKind.DRAG_END:
            self._gestures.clear_drag()
        return self._ok(snapshot)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def select_mode(self, name: Mode | str) -> CommandResult:
        """Switch the active mode. Pan is rejected while not zoomed."""
        try:
            mode = Mode.parse(name)
        except ValueError as e:
            return self._fail(InvalidInputError(str(e)))

        current = self._store.mode
        if mode is current:
            return self._ok()
        if not self._handlers[mode].can_enter(self._store.snapshot()):
            return self._fail(InvalidInputError(f"Cannot enter {mode.value} mode now"))

        def build() -> Patch:
            patch = self._end_drag()
            previous = current if mode is Mode.PAN else None
            return patch.extend(self._switch_mode_patch(mode, previous))

        result = self._run(build)
        if result.ok:
            logger.debug("Mode %s -> %s", current.value, mode.value)
        return result

    def create_marker(self, time: float, freq: float) -> CommandResult:
        def build() -> Patch:
            try:
                point = DataPoint(float(time), float(freq))
            except (TypeError, ValueError):
                raise InvalidInputError(f"Marker position is not numeric: {time!r}, {freq!r}") from None
            if not self._store.viewport.data_range.contains(point):
                raise InvalidInputError(f"Marker position outside data range: {point}")
            marker = Marker(id=self._store.allocate_id(FeatureKind.MARKER),
                            time=point.time, freq=point.freq)
            return Patch().add(marker).select(marker.id)
        return self._run(build)

    def update_feature(self, feature_id: str, changes: dict) -> CommandResult:
        """Change fields of a feature (marker time/freq/color, set spacing/anchor_time/color, Doppler points)."""
        def build() -> Patch:
            feature = self._store.get(feature_id)
            if feature is None:
                raise StateInconsistencyError(feature_id)
            try:
                updated = apply_changes(feature, dict(changes))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidInputError(str(e)) from None
            if isinstance(updated, HarmonicSet) and 'spacing' in changes:
                harmonic_engine.validate_spacing(updated.spacing)
            return Patch().replace(updated)
        return self._run(build)

    def delete_feature(self, feature_id: str) -> CommandResult:
        def build() -> Patch:
            if self._store.get(feature_id) is None:
                raise StateInconsistencyError(feature_id)
            patch = Patch()
            if self._gestures.drag.target_id == feature_id:
                patch = self._end_drag()
            return patch.remove(feature_id)
        return self._run(build)

    def select_feature(self, feature_id: str | None) -> CommandResult:
        return self._run(lambda: Patch().select(feature_id))

    def clear_features(self) -> CommandResult:
        return self._run(lambda: self._end_drag().clear_features())

    def reset_doppler(self) -> CommandResult:
        def build() -> Patch:
            patch = Patch()
            if self._store.snapshot().doppler is not None and self._gestures.drag.active \
                    and self._gestures.drag.target_id == self._store.snapshot().doppler.id:
                patch = self._end_drag()
            return patch.clear_doppler()
        return self._run(build)

    def add_manual_harmonic_set(self, spacing_text) -> CommandResult:
        """
        Add a harmonic set from a typed spacing.

        The set is anchored at the hover time, or at the middle of the
        visible time range when the pointer is off the image. A spacing
        with no harmonic line inside the frequency range is rejected.
        """
        def build() -> Patch:
            spacing = harmonic_engine.validate_spacing(spacing_text)
            snapshot = self._store.snapshot()
            data_range = snapshot.viewport.data_range
            if not harmonic_engine.compute_harmonics(spacing, data_range,
                                                     config['harmonics']['max_count']):
                raise InvalidInputError(
                    f"No harmonic of {spacing:g} Hz falls within "
                    f"{data_range.freq_min:g}-{data_range.freq_max:g} Hz")
            if snapshot.hover:
                anchor = snapshot.hover.time
            else:
                anchor = transform.visible_data_range(snapshot.viewport).time_mid
            harmonic_set = HarmonicSet(
                id=self._store.allocate_id(FeatureKind.HARMONIC_SET),
                color=self._store.next_harmonic_color(),
                anchor_time=anchor,
                spacing=spacing,
            )
            return Patch().add(harmonic_set).select(harmonic_set.id)
        return self._run(build)

    # -------------------------------------------------------------------------
    # Zoom, pan and size
    # -------------------------------------------------------------------------

    def set_zoom(self, scale: float, focal=None) -> CommandResult:
        return self._run(lambda: self._viewport_patch(
            transform.set_zoom(scale, self._store.viewport, _screen_point(focal))))

    def zoom_in(self, focal=None) -> CommandResult:
        return self._zoom_by(float(config['zoom']['step']), focal)

    def zoom_out(self, focal=None) -> CommandResult:
        return self._zoom_by(1.0 / float(config['zoom']['step']), focal)

    def _zoom_by(self, factor: float, focal) -> CommandResult:
        def build() -> Patch:
            viewport = self._store.viewport
            point = _screen_point(focal) or ScreenPoint(viewport.display_width / 2,
                                                        viewport.display_height / 2)
            return self._viewport_patch(transform.zoom_about(point, factor, viewport))
        return self._run(build)

    def zoom_to_rect(self, x0: float, y0: float, x1: float, y1: float) -> CommandResult:
        return self._run(lambda: self._viewport_patch(
            transform.zoom_to_rect(ScreenPoint(x0, y0), ScreenPoint(x1, y1), self._store.viewport)))

    def reset_zoom(self) -> CommandResult:
        return self._run(lambda: self._viewport_patch(transform.reset_zoom(self._store.viewport)))

    def pan(self, dx: float, dy: float) -> CommandResult:
        """Pan by a screen-pixel displacement."""
        return self._run(lambda: self._viewport_patch(
            transform.pan_by(dx, dy, self._store.viewport)))

    def resize(self, display_width: float, display_height: float) -> CommandResult:
        """Update the drawing surface size."""
        def build() -> Patch:
            if display_width is None or display_height is None or display_width <= 0 or display_height <= 0:
                raise InvalidInputError(f"Invalid display size: {display_width}x{display_height}")
            viewport = self._store.viewport.with_display_size(display_width, display_height)
            return self._viewport_patch(viewport)
        return self._run(build)

"""
Pointer gesture classification.

Turns raw pointer down/move/up events into hover, click and drag gestures.
A press that stays within ``interaction.click_threshold_px`` of where it
started is a click at the press position; once the pointer moves further
the press becomes a drag: one DRAG_START (carrying the press position as
its origin), a stream of DRAG_MOVE and a single DRAG_END.

The controller also owns the ``DragState`` for the active drag.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..config import config
from ..geometry.viewport import ScreenPoint
from ..utils.logging import get_logger

logger = get_logger(__name__)


class GestureKind(Enum):
    HOVER = 'hover'
    CLICK = 'click'
    DRAG_START = 'drag_start'
    DRAG_MOVE = 'drag_move'
    DRAG_END = 'drag_end'
    LEAVE = 'leave'


@dataclass(frozen=True)
class Gesture:
    """A classified pointer gesture.

    ``origin`` is the press position for drag gestures. ``synthetic`` marks
    a DRAG_END forced by a mode switch or reset rather than a pointer release.
    """
    kind: GestureKind
    point: ScreenPoint
    origin: ScreenPoint | None = None
    synthetic: bool = False


class DragKind(Enum):
    MARKER = 'marker'
    HARMONIC_SPACING = 'harmonic_spacing'  # Adjusting an existing set from one of its lines
    HARMONIC_TIME = 'harmonic_time'        # Laying out a set created by this drag
    DOPPLER_ENDPOINT = 'doppler_endpoint'
    PAN = 'pan'


@dataclass(frozen=True)
class DragIntent:
    """What a mode wants to drag, returned from its drag-start handler."""
    kind: DragKind
    target_id: str | None = None
    origin_feature_snapshot: object = None
    harmonic_index: int | None = None
    handle: str | None = None
    creating: bool = False


@dataclass(frozen=True)
class DragState:
    """State of the active drag, or an inactive placeholder."""
    active: bool = False
    kind: DragKind | None = None
    target_id: str | None = None
    origin_pointer_pos: ScreenPoint | None = None
    origin_feature_snapshot: object = None
    harmonic_index: int | None = None
    handle: str | None = None
    creating: bool = False


INACTIVE_DRAG = DragState()


class GestureController:
    """Classifies pointer events and tracks the active drag."""

    def __init__(self, click_threshold: float | None = None):
        if click_threshold is None:
            click_threshold = float(config['interaction']['click_threshold_px'])
        self._threshold = click_threshold
        self._down_pos: ScreenPoint | None = None
        self._last_pos: ScreenPoint | None = None
        self._dragging = False
        self._drag = INACTIVE_DRAG

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def drag(self) -> DragState:
        return self._drag

    @property
    def is_pressed(self) -> bool:
        return self._down_pos is not None

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def begin_drag(self, intent: DragIntent, origin: ScreenPoint) -> DragState:
        """Record the drag a mode accepted at drag start."""
        self._drag = DragState(
            active=True,
            kind=intent.kind,
            target_id=intent.target_id,
            origin_pointer_pos=origin,
            origin_feature_snapshot=intent.origin_feature_snapshot,
            harmonic_index=intent.harmonic_index,
            handle=intent.handle,
            creating=intent.creating,
        )
        logger.debug("Drag started: %s on %s", intent.kind.value, intent.target_id)
        return self._drag

    def clear_drag(self):
        """Drop the drag state. The press continues until pointer up."""
        if self._drag.active:
            logger.debug("Drag cleared: %s on %s", self._drag.kind.value, self._drag.target_id)
        self._drag = INACTIVE_DRAG

    # -------------------------------------------------------------------------
    # Pointer events
    # -------------------------------------------------------------------------

    def pointer_down(self, point: ScreenPoint) -> list[Gesture]:
        if self._dragging:
            # A second press without a release; close the running drag first
            events = self.force_end()
        else:
            events = []
        self._down_pos = point
        self._last_pos = point
        return events

    def pointer_move(self, point: ScreenPoint) -> list[Gesture]:
        """Classify a pointer move. Without a press this is a hover."""
        if self._down_pos is None:
            return [Gesture(GestureKind.HOVER, point)]

        self._last_pos = point
        if self._dragging:
            return [Gesture(GestureKind.DRAG_MOVE, point, self._down_pos)]

        if point.distance_to(self._down_pos) > self._threshold:
            self._dragging = True
            return [
                Gesture(GestureKind.DRAG_START, point, self._down_pos),
                Gesture(GestureKind.DRAG_MOVE, point, self._down_pos),
            ]
        return []

    def pointer_up(self, point: ScreenPoint) -> list[Gesture]:
        if self._down_pos is None:
            return []
        origin = self._down_pos
        was_dragging = self._dragging
        self._down_pos = None
        self._last_pos = None
        self._dragging = False

        if was_dragging:
            return [Gesture(GestureKind.DRAG_END, point, origin)]
        return [Gesture(GestureKind.CLICK, origin, origin)]

    def pointer_leave(self) -> list[Gesture]:
        point = self._last_pos or ScreenPoint(0.0, 0.0)
        return [Gesture(GestureKind.LEAVE, point)]

    def force_end(self) -> list[Gesture]:
        """
        End the current press without a pointer release.

        Returns a synthetic DRAG_END when a drag was running, so the active
        mode can finish before a mode switch or reset takes effect.
        """
        events = []
        if self._dragging:
            point = self._last_pos or self._down_pos
            events.append(Gesture(GestureKind.DRAG_END, point, self._down_pos, synthetic=True))
            logger.debug("Forced drag end")
        self._down_pos = None
        self._last_pos = None
        self._dragging = False
        return events

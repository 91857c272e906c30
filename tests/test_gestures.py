"""Tests for gesture classification and hit testing."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gramframe.annotation.features import DopplerFit, FeatureKind, HarmonicSet, Marker
from gramframe.annotation.store import FeatureStore, Patch
from gramframe.geometry.viewport import DataPoint, DataRange, ScreenPoint, ViewportState
from gramframe.interaction.gestures import DragIntent, DragKind, GestureController, GestureKind
from gramframe.interaction.hit_test import HitKind, hit_test

ALL_KINDS = (HitKind.MARKER, HitKind.HARMONIC_LINE, HitKind.DOPPLER_POINT)


def kinds(events):
    return [e.kind for e in events]


def test_small_movement_is_click():
    """Movement up to the threshold is a click at the press position."""
    controller = GestureController(click_threshold=5.0)
    assert controller.pointer_down(ScreenPoint(100, 100)) == []
    assert controller.pointer_move(ScreenPoint(103, 104)) == []
    events = controller.pointer_up(ScreenPoint(103, 104))
    assert kinds(events) == [GestureKind.CLICK]
    assert events[0].point == ScreenPoint(100, 100)
    assert not controller.is_pressed
    print("test_small_movement_is_click PASSED")


def test_large_movement_is_drag():
    """Crossing the threshold starts a drag that carries its origin."""
    controller = GestureController(click_threshold=5.0)
    controller.pointer_down(ScreenPoint(100, 100))
    events = controller.pointer_move(ScreenPoint(106, 100))
    assert kinds(events) == [GestureKind.DRAG_START, GestureKind.DRAG_MOVE]
    assert events[0].origin == ScreenPoint(100, 100)
    assert controller.is_dragging

    events = controller.pointer_move(ScreenPoint(101, 100))
    assert kinds(events) == [GestureKind.DRAG_MOVE]

    events = controller.pointer_up(ScreenPoint(120, 130))
    assert kinds(events) == [GestureKind.DRAG_END]
    assert events[0].point == ScreenPoint(120, 130)
    assert not events[0].synthetic
    assert not controller.is_dragging
    print("test_large_movement_is_drag PASSED")


def test_hover_without_press():
    controller = GestureController(click_threshold=5.0)
    events = controller.pointer_move(ScreenPoint(10, 20))
    assert kinds(events) == [GestureKind.HOVER]
    assert controller.pointer_up(ScreenPoint(10, 20)) == []
    assert kinds(controller.pointer_leave()) == [GestureKind.LEAVE]
    print("test_hover_without_press PASSED")


def test_force_end():
    """A forced end emits one synthetic drag end only while dragging."""
    controller = GestureController(click_threshold=5.0)
    controller.pointer_down(ScreenPoint(0, 0))
    assert controller.force_end() == []

    controller.pointer_down(ScreenPoint(0, 0))
    controller.pointer_move(ScreenPoint(50, 0))
    events = controller.force_end()
    assert kinds(events) == [GestureKind.DRAG_END]
    assert events[0].synthetic
    assert events[0].point == ScreenPoint(50, 0)
    assert controller.pointer_up(ScreenPoint(50, 0)) == []
    print("test_force_end PASSED")


def test_second_press_closes_drag():
    controller = GestureController(click_threshold=5.0)
    controller.pointer_down(ScreenPoint(0, 0))
    controller.pointer_move(ScreenPoint(50, 0))
    events = controller.pointer_down(ScreenPoint(200, 200))
    assert kinds(events) == [GestureKind.DRAG_END]
    assert events[0].synthetic
    assert controller.is_pressed and not controller.is_dragging
    print("test_second_press_closes_drag PASSED")


def test_drag_state():
    controller = GestureController(click_threshold=5.0)
    assert not controller.drag.active
    state = controller.begin_drag(DragIntent(DragKind.MARKER, target_id='marker-1'), ScreenPoint(4, 5))
    assert state.active
    assert state.kind is DragKind.MARKER
    assert state.origin_pointer_pos == ScreenPoint(4, 5)
    controller.clear_drag()
    assert not controller.drag.active
    print("test_drag_state PASSED")


def make_store():
    """Freq on x (0-1000 px), time on y with 10 s at the top (50 px per second)."""
    viewport = ViewportState.create(DataRange(0.0, 10.0, 0.0, 1000.0), 1000, 500)
    return FeatureStore(viewport)


def test_hit_nearest_marker():
    store = make_store()
    near = Marker(id=store.allocate_id(FeatureKind.MARKER), time=8.0, freq=400.0)
    far = Marker(id=store.allocate_id(FeatureKind.MARKER), time=8.0, freq=410.0)
    snapshot = store.apply(Patch().add(near).add(far))

    hit = hit_test(snapshot, ScreenPoint(403, 100), ALL_KINDS)
    assert hit.kind is HitKind.MARKER
    assert hit.feature_id == near.id
    assert abs(hit.distance - 3.0) < 1e-9

    assert hit_test(snapshot, ScreenPoint(600, 100), ALL_KINDS) is None
    assert hit_test(snapshot, ScreenPoint(403, 100), (HitKind.HARMONIC_LINE,)) is None
    print("test_hit_nearest_marker PASSED")


def test_hit_tie_goes_to_newest():
    store = make_store()
    older = Marker(id=store.allocate_id(FeatureKind.MARKER), time=8.0, freq=400.0)
    newer = Marker(id=store.allocate_id(FeatureKind.MARKER), time=8.0, freq=400.0)
    snapshot = store.apply(Patch().add(older).add(newer))
    hit = hit_test(snapshot, ScreenPoint(400, 100), ALL_KINDS)
    assert hit.feature_id == newer.id
    print("test_hit_tie_goes_to_newest PASSED")


def test_hit_harmonic_line():
    """Lines are hit within their time extent, reporting the line index."""
    store = make_store()
    harmonic = HarmonicSet(id=store.allocate_id(FeatureKind.HARMONIC_SET), color='#fff',
                           anchor_time=5.0, spacing=100.0)
    snapshot = store.apply(Patch().add(harmonic))

    # Line 3 at x=300 spans t=4..6, i.e. y=200..300
    hit = hit_test(snapshot, ScreenPoint(304, 250), ALL_KINDS)
    assert hit.kind is HitKind.HARMONIC_LINE
    assert hit.harmonic_index == 3
    assert abs(hit.distance - 4.0) < 1e-9

    assert hit_test(snapshot, ScreenPoint(300, 400), ALL_KINDS) is None
    assert hit_test(snapshot, ScreenPoint(350, 250), ALL_KINDS) is None
    print("test_hit_harmonic_line PASSED")


def test_hit_doppler_handles():
    store = make_store()
    fit = DopplerFit(id=store.allocate_id(FeatureKind.DOPPLER),
                     f_plus=DataPoint(6.0, 580.0), f_minus=DataPoint(3.0, 820.0), complete=True)
    snapshot = store.apply(Patch().add(fit))

    assert hit_test(snapshot, ScreenPoint(582, 200), ALL_KINDS).handle == 'f_plus'
    assert hit_test(snapshot, ScreenPoint(820, 352), ALL_KINDS).handle == 'f_minus'
    assert hit_test(snapshot, ScreenPoint(700, 275), ALL_KINDS).handle == 'f_zero'
    print("test_hit_doppler_handles PASSED")


if __name__ == "__main__":
    test_small_movement_is_click()
    test_large_movement_is_drag()
    test_hover_without_press()
    test_force_end()
    test_second_press_closes_drag()
    test_drag_state()
    test_hit_nearest_marker()
    test_hit_tie_goes_to_newest()
    test_hit_harmonic_line()
    test_hit_doppler_handles()
    print("\nAll gesture tests passed!")

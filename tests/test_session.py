"""Tests for the GramFrame command surface."""

import sys
import os
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gramframe.annotation.features import Mode
from gramframe.errors import ConfigurationError, InvalidInputError, StateInconsistencyError
from gramframe.geometry import transform
from gramframe.geometry.viewport import DataRange, Orientation
from gramframe.interaction.session import GramFrame
from gramframe.loader import GramSource
from gramframe.utils.logging import LogCapture


def make_frame(**kwargs):
    return GramFrame(DataRange(0.0, 10.0, 0.0, 1000.0), image_width=1000, image_height=500, **kwargs)


def test_construction():
    frame = make_frame()
    snapshot = frame.snapshot()
    assert snapshot.mode is Mode.CROSS_CURSOR
    assert snapshot.markers == ()
    assert snapshot.doppler is None
    assert snapshot.viewport.display_width == 1000

    # Pan makes no sense at zoom 1
    assert make_frame(mode='pan').mode is Mode.CROSS_CURSOR
    assert make_frame(mode='doppler').mode is Mode.DOPPLER
    print("test_construction PASSED")


def test_invalid_construction():
    try:
        GramFrame(DataRange(0.0, 10.0, 0.0, 1000.0), image_width=0, image_height=500)
        assert False, "Should have raised ConfigurationError"
    except ConfigurationError:
        pass

    try:
        make_frame(mode='spectrum')
        assert False, "Should have raised ValueError"
    except ValueError:
        pass
    print("test_invalid_construction PASSED")


def test_from_source():
    source = GramSource(
        image_path='gram.png',
        data_range=DataRange(0.0, 60.0, 0.0, 500.0),
        image_width=600,
        image_height=300,
        orientation=Orientation.TIME_X,
    )
    frame = GramFrame.from_source(source, mode='harmonics')
    assert frame.mode is Mode.HARMONICS
    assert frame.viewport.orientation is Orientation.TIME_X
    assert frame.viewport.image_width == 600
    print("test_from_source PASSED")


def test_select_mode():
    frame = make_frame()
    received = []
    frame.subscribe(received.append)

    result = frame.select_mode('harmonics')
    assert result.ok and result
    assert result.snapshot.mode is Mode.HARMONICS
    assert len(received) == 1

    result = frame.select_mode(Mode.HARMONICS)
    assert result.ok
    assert len(received) == 1

    result = frame.select_mode('nonsense')
    assert not result.ok and not result
    assert isinstance(result.error, InvalidInputError)
    assert frame.mode is Mode.HARMONICS

    assert frame.unsubscribe(received.append)
    assert not frame.unsubscribe(received.append)
    frame.select_mode('doppler')
    assert len(received) == 1
    print("test_select_mode PASSED")


def test_create_marker():
    frame = make_frame()
    result = frame.create_marker(2.5, 440.0)
    assert result.ok
    marker = result.snapshot.markers[0]
    assert marker.time == 2.5 and marker.freq == 440.0
    assert result.snapshot.selected_id == marker.id

    with LogCapture() as capture:
        result = frame.create_marker(20.0, 440.0)
    assert not result.ok
    assert isinstance(result.error, InvalidInputError)
    assert len(result.snapshot.markers) == 1
    assert any('Rejected' in m for m in capture.get_messages(logging.WARNING))

    result = frame.create_marker('abc', 440.0)
    assert not result.ok
    assert isinstance(result.error, InvalidInputError)
    print("test_create_marker PASSED")


def test_update_feature():
    frame = make_frame()
    marker_id = frame.create_marker(2.5, 440.0).snapshot.markers[0].id

    result = frame.update_feature(marker_id, {'time': 3.0, 'color': '#00ff00'})
    assert result.ok
    marker = result.snapshot.marker(marker_id)
    assert marker.time == 3.0
    assert marker.color == '#00ff00'

    result = frame.update_feature(marker_id, {'spacing': 10.0})
    assert not result.ok
    assert isinstance(result.error, InvalidInputError)

    result = frame.update_feature('marker-999', {'time': 1.0})
    assert not result.ok
    assert isinstance(result.error, StateInconsistencyError)

    set_id = frame.add_manual_harmonic_set(50).snapshot.harmonic_sets[0].id
    result = frame.update_feature(set_id, {'spacing': 0.5})
    assert not result.ok
    assert frame.snapshot().harmonic_set(set_id).feature.spacing == 50.0

    result = frame.update_feature(set_id, {'spacing': 75})
    assert result.ok
    assert result.snapshot.harmonic_set(set_id).feature.spacing == 75.0
    print("test_update_feature PASSED")


def test_delete_and_select():
    frame = make_frame()
    first = frame.create_marker(1.0, 100.0).snapshot.selected_id
    second = frame.create_marker(2.0, 200.0).snapshot.selected_id
    assert first != second

    result = frame.select_feature(first)
    assert result.ok and result.snapshot.selected_id == first

    result = frame.select_feature('harmonic-42')
    assert not result.ok
    assert isinstance(result.error, StateInconsistencyError)
    assert frame.snapshot().selected_id == first

    result = frame.delete_feature(first)
    assert result.ok
    assert [m.id for m in result.snapshot.markers] == [second]

    result = frame.delete_feature(first)
    assert not result.ok
    assert isinstance(result.error, StateInconsistencyError)

    result = frame.select_feature(None)
    assert result.ok and result.snapshot.selected_id is None
    print("test_delete_and_select PASSED")


def test_clear_features():
    frame = make_frame()
    frame.create_marker(1.0, 100.0)
    frame.add_manual_harmonic_set("120")
    result = frame.clear_features()
    assert result.ok
    assert result.snapshot.markers == ()
    assert result.snapshot.harmonic_sets == ()
    print("test_clear_features PASSED")


def test_manual_harmonic_set():
    """Typed spacings are validated and anchored at the hover time."""
    frame = make_frame()
    result = frame.add_manual_harmonic_set("73.5")
    assert result.ok
    view = result.snapshot.harmonic_sets[0]
    assert view.feature.spacing == 73.5
    assert view.feature.anchor_time == 5.0
    assert result.snapshot.selected_id == view.id

    frame.pointer_move(100, 400)
    result = frame.add_manual_harmonic_set(" 200 ")
    assert abs(result.snapshot.harmonic_sets[1].feature.anchor_time - 2.0) < 1e-9

    for bad in ("", "abc", "0.5", "-3", "inf"):
        result = frame.add_manual_harmonic_set(bad)
        assert not result.ok, bad
        assert isinstance(result.error, InvalidInputError)
    assert len(frame.snapshot().harmonic_sets) == 2

    # Off the image while zoomed, the set lands mid-way through the visible time
    frame.set_zoom(5.0, (500, 0))
    frame.pointer_leave()
    result = frame.add_manual_harmonic_set("50")
    assert result.ok
    anchor = result.snapshot.harmonic_sets[2].feature.anchor_time
    visible = transform.visible_data_range(frame.viewport)
    assert abs(visible.time_min - 8.0) < 1e-9
    assert visible.time_min <= anchor <= visible.time_max
    assert abs(anchor - 9.0) < 1e-9
    print("test_manual_harmonic_set PASSED")


def test_manual_harmonic_set_needs_lines_in_range():
    """Small spacings still draw lines; spacings with none in range are rejected."""
    frame = GramFrame(DataRange(0.0, 10.0, 200.0, 2000.0), image_width=1800, image_height=500)
    result = frame.add_manual_harmonic_set("5")
    assert result.ok
    lines = result.snapshot.harmonic_sets[0].lines
    assert len(lines) == 10
    assert lines[0].frequency == 200.0

    result = frame.add_manual_harmonic_set("5000")
    assert not result.ok
    assert isinstance(result.error, InvalidInputError)
    assert len(frame.snapshot().harmonic_sets) == 1
    print("test_manual_harmonic_set_needs_lines_in_range PASSED")


def test_zoom_commands():
    frame = make_frame()
    result = frame.set_zoom(2.0)
    assert result.ok
    assert result.snapshot.viewport.zoom_scale_x == 2.0

    result = frame.set_zoom(0.5)
    assert not result.ok
    assert frame.viewport.zoom_scale_x == 2.0

    result = frame.set_zoom(50.0, (0, 0))
    assert result.ok
    assert frame.viewport.zoom_scale_x == 10.0

    assert frame.reset_zoom().ok
    assert not frame.viewport.is_zoomed

    result = frame.zoom_to_rect(0, 0, 500, 250)
    assert result.ok
    assert abs(frame.viewport.zoom_scale_x - 2.0) < 1e-9

    result = frame.zoom_to_rect(10, 10, 10, 10)
    assert not result.ok
    print("test_zoom_commands PASSED")


def test_pan_command():
    frame = make_frame()
    assert frame.pan(50, 50).ok
    assert frame.viewport.pan_x == 0.0

    frame.set_zoom(2.0, (0, 0))
    assert frame.pan(-100, -40).ok
    assert frame.viewport.pan_x == -100.0
    assert frame.viewport.pan_y == -40.0

    # Clamped at the image edge
    frame.pan(10000, 10000)
    assert frame.viewport.pan_x == 0.0
    assert frame.viewport.pan_y == 0.0
    print("test_pan_command PASSED")


def test_resize():
    """Resizing keeps features at the same data coordinates."""
    frame = make_frame()
    frame.create_marker(8.0, 400.0)

    result = frame.resize(500, 250)
    assert result.ok
    assert result.snapshot.viewport.display_width == 500

    # The marker now sits at half the screen position
    assert frame.pointer_move(200, 50).snapshot.cursor.value == 'grab'

    result = frame.resize(0, 250)
    assert not result.ok
    assert frame.viewport.display_width == 500
    print("test_resize PASSED")


def test_failing_listener_does_not_fail_command():
    frame = make_frame()

    def broken(snapshot):
        raise RuntimeError("listener bug")

    frame.subscribe(broken)
    result = frame.create_marker(1.0, 100.0)
    assert result.ok
    assert len(frame.snapshot().markers) == 1
    print("test_failing_listener_does_not_fail_command PASSED")


if __name__ == "__main__":
    test_construction()
    test_invalid_construction()
    test_from_source()
    test_select_mode()
    test_create_marker()
    test_update_feature()
    test_delete_and_select()
    test_clear_features()
    test_manual_harmonic_set()
    test_manual_harmonic_set_needs_lines_in_range()
    test_zoom_commands()
    test_pan_command()
    test_resize()
    test_failing_listener_does_not_fail_command()
    print("\nAll session tests passed!")

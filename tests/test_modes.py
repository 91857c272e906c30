"""Tests for the interaction modes, driven through pointer events."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gramframe.annotation.features import Cursor, Mode
from gramframe.annotation.store import Patch
from gramframe.errors import InvalidInputError
from gramframe.geometry.transform import to_screen
from gramframe.geometry.viewport import DataPoint, DataRange
from gramframe.interaction.session import GramFrame

SCENARIO_SPEED = -1500.0 / 700.0 * 120.0


def make_frame(mode=Mode.CROSS_CURSOR):
    """Freq on x (1 Hz per px), time on y with 10 s at the top (50 px per second)."""
    return GramFrame(DataRange(0.0, 10.0, 0.0, 1000.0), image_width=1000, image_height=500, mode=mode)


def drag(frame, start, *points):
    frame.pointer_down(*start)
    for point in points:
        frame.pointer_move(*point)
    return frame.pointer_up(*points[-1])


def click(frame, x, y):
    frame.pointer_down(x, y)
    return frame.pointer_up(x, y)


# =============================================================================
# Cross cursor
# =============================================================================

def test_hover_readout():
    frame = make_frame()
    result = frame.pointer_move(250, 100)
    hover = result.snapshot.hover
    assert abs(hover.time - 8.0) < 1e-9
    assert abs(hover.freq - 250.0) < 1e-9
    assert result.snapshot.cursor is Cursor.CROSSHAIR

    result = frame.pointer_leave()
    assert result.snapshot.hover is None
    print("test_hover_readout PASSED")


def test_click_creates_marker():
    """A click within the threshold places a selected marker at the press point."""
    frame = make_frame()
    frame.pointer_down(400, 100)
    frame.pointer_move(402, 101)
    result = frame.pointer_up(402, 101)
    assert result.ok
    markers = result.snapshot.markers
    assert len(markers) == 1
    assert abs(markers[0].time - 8.0) < 1e-9
    assert abs(markers[0].freq - 400.0) < 1e-9
    assert result.snapshot.selected_id == markers[0].id
    print("test_click_creates_marker PASSED")


def test_hover_over_marker_shows_grab():
    frame = make_frame()
    click(frame, 400, 100)
    assert frame.pointer_move(405, 100).snapshot.cursor is Cursor.GRAB
    assert frame.pointer_move(600, 100).snapshot.cursor is Cursor.CROSSHAIR
    print("test_hover_over_marker_shows_grab PASSED")


def test_drag_moves_marker():
    frame = make_frame()
    click(frame, 400, 100)
    marker_id = frame.snapshot().markers[0].id

    result = drag(frame, (400, 100), (420, 120), (450, 150))
    assert result.ok
    markers = result.snapshot.markers
    assert len(markers) == 1
    assert markers[0].id == marker_id
    assert abs(markers[0].time - 7.0) < 1e-9
    assert abs(markers[0].freq - 450.0) < 1e-9
    assert not frame.gestures.drag.active
    print("test_drag_moves_marker PASSED")


def test_marker_drag_clamped_to_range():
    frame = make_frame()
    click(frame, 950, 100)
    result = drag(frame, (950, 100), (1200, 100))
    assert abs(result.snapshot.markers[0].freq - 1000.0) < 1e-9
    print("test_marker_drag_clamped_to_range PASSED")


def test_drag_on_empty_space_lays_out_harmonics():
    """With the axis starting at 0 Hz the press point is the 5th harmonic."""
    frame = make_frame()
    result = drag(frame, (500, 250), (530, 250), (560, 250))
    assert result.ok
    assert result.snapshot.markers == ()
    views = result.snapshot.harmonic_sets
    assert len(views) == 1
    assert abs(views[0].feature.spacing - 112.0) < 1e-9
    assert abs(views[0].feature.anchor_time - 5.0) < 1e-9
    assert result.snapshot.selected_id == views[0].id
    print("test_drag_on_empty_space_lays_out_harmonics PASSED")


def test_target_removed_mid_drag():
    """A drag whose feature disappears is aborted without error."""
    frame = make_frame()
    click(frame, 400, 100)
    marker_id = frame.snapshot().markers[0].id

    frame.pointer_down(400, 100)
    frame.pointer_move(420, 100)
    assert frame.gestures.drag.active

    frame.store.apply(Patch().remove(marker_id))
    result = frame.pointer_move(440, 100)
    assert result.ok
    assert not frame.gestures.drag.active

    result = frame.pointer_up(440, 100)
    assert result.ok
    assert result.snapshot.markers == ()
    print("test_target_removed_mid_drag PASSED")


# =============================================================================
# Harmonics
# =============================================================================

def test_harmonics_click_scenario():
    """A click at 950 Hz on a 200-2000 Hz axis makes a 95 Hz set."""
    frame = GramFrame(DataRange(0.0, 10.0, 200.0, 2000.0), image_width=1800, image_height=500,
                      mode='harmonics')
    result = click(frame, 750, 250)
    assert result.ok
    view = result.snapshot.harmonic_sets[0]
    assert abs(view.feature.spacing - 95.0) < 1e-9
    assert abs(view.feature.anchor_time - 5.0) < 1e-9
    assert [line.index for line in view.lines] == list(range(3, 13))
    assert result.snapshot.selected_id == view.id

    # Clicking a line selects the set instead of creating another
    click(frame, 950 - 200 + 3, 250)
    assert len(frame.snapshot().harmonic_sets) == 1
    print("test_harmonics_click_scenario PASSED")


def test_harmonics_sets_take_palette_colors():
    frame = make_frame(Mode.HARMONICS)
    click(frame, 500, 250)
    click(frame, 730, 100)
    colors = [view.feature.color for view in frame.snapshot().harmonic_sets]
    assert len(colors) == 2
    assert colors[0] != colors[1]
    print("test_harmonics_sets_take_palette_colors PASSED")


def test_grabbed_line_follows_pointer():
    """The dragged harmonic line stays under the pointer for the whole drag."""
    frame = make_frame(Mode.HARMONICS)
    assert frame.add_manual_harmonic_set("100").ok
    set_id = frame.snapshot().harmonic_sets[0].id

    frame.pointer_down(300, 250)
    for x, y in ((306, 252), (330, 260), (280, 230), (450, 300), (600, 210)):
        result = frame.pointer_move(x, y)
        assert result.ok
        feature = result.snapshot.harmonic_set(set_id).feature
        line = to_screen(DataPoint(feature.anchor_time, 3 * feature.spacing), frame.viewport)
        assert abs(line.x - x) <= 1.0, (x, line)
        assert abs(line.y - y) <= 1.0, (y, line)

    result = frame.pointer_up(600, 210)
    feature = result.snapshot.harmonic_set(set_id).feature
    assert abs(feature.spacing - 200.0) < 1e-9
    assert not frame.gestures.drag.active
    print("test_grabbed_line_follows_pointer PASSED")


def test_spacing_floor_during_drag():
    """Dragging below the minimum spacing keeps the last valid spacing."""
    frame = make_frame(Mode.HARMONICS)
    frame.add_manual_harmonic_set("10")
    set_id = frame.snapshot().harmonic_sets[0].id

    # Line 3 at x=30
    frame.pointer_down(30, 250)
    frame.pointer_move(20, 250)
    spacing = frame.snapshot().harmonic_set(set_id).feature.spacing
    assert abs(spacing - (10.0 - 10.0 / 3)) < 1e-9
    frame.pointer_move(0, 250)
    assert abs(frame.snapshot().harmonic_set(set_id).feature.spacing - spacing) < 1e-9
    frame.pointer_up(0, 250)
    assert frame.snapshot().harmonic_set(set_id).feature.spacing >= 1.0
    print("test_spacing_floor_during_drag PASSED")


# =============================================================================
# Doppler
# =============================================================================

def test_doppler_drag_scenario():
    """Dragging from (3 s, 820 Hz) to (6 s, 580 Hz) gives about -257 m/s."""
    frame = make_frame(Mode.DOPPLER)
    result = drag(frame, (820, 350), (700, 275), (580, 200))
    assert result.ok
    view = result.snapshot.doppler
    assert view.fit.complete
    assert abs(view.fit.f_minus.time - 3.0) < 1e-9
    assert abs(view.fit.f_minus.freq - 820.0) < 1e-9
    assert abs(view.fit.f_plus.time - 6.0) < 1e-9
    assert abs(view.fit.f_plus.freq - 580.0) < 1e-9
    assert abs(view.f_zero.freq - 700.0) < 1e-9
    assert abs(view.speed - SCENARIO_SPEED) < 1e-6
    print("test_doppler_drag_scenario PASSED")


def test_doppler_reverse_drag_is_time_ordered():
    frame = make_frame(Mode.DOPPLER)
    result = drag(frame, (580, 200), (820, 350))
    view = result.snapshot.doppler
    assert view.fit.f_minus.time < view.fit.f_plus.time
    assert abs(view.fit.f_minus.freq - 820.0) < 1e-9
    assert abs(view.speed - SCENARIO_SPEED) < 1e-6
    print("test_doppler_reverse_drag_is_time_ordered PASSED")


def test_doppler_f_zero_drag():
    """Dragging f0 detaches it from the midpoint."""
    frame = make_frame(Mode.DOPPLER)
    drag(frame, (820, 350), (580, 200))
    assert frame.snapshot().doppler.fit.f_zero is None

    result = drag(frame, (700, 275), (680, 275), (650, 275))
    view = result.snapshot.doppler
    assert abs(view.fit.f_zero.freq - 650.0) < 1e-9
    assert abs(view.fit.f_zero.time - 4.5) < 1e-9
    assert abs(view.speed - 1500.0 / 650.0 * -120.0) < 1e-6

    # Moving an endpoint keeps the dragged f0
    result = drag(frame, (580, 200), (570, 200), (560, 200))
    view = result.snapshot.doppler
    assert abs(view.fit.f_plus.freq - 560.0) < 1e-9
    assert abs(view.f_zero.freq - 650.0) < 1e-9
    print("test_doppler_f_zero_drag PASSED")


def test_fresh_drag_replaces_fit():
    frame = make_frame(Mode.DOPPLER)
    drag(frame, (820, 350), (580, 200))
    first_id = frame.snapshot().doppler.id

    result = drag(frame, (100, 450), (300, 400))
    view = result.snapshot.doppler
    assert view.id != first_id
    assert abs(view.fit.f_minus.time - 1.0) < 1e-9
    assert abs(view.fit.f_plus.freq - 300.0) < 1e-9
    print("test_fresh_drag_replaces_fit PASSED")


def test_mode_switch_discards_incomplete_fit():
    """Leaving Doppler mode mid-drag drops the unfinished fit."""
    frame = make_frame(Mode.DOPPLER)
    frame.pointer_down(820, 350)
    frame.pointer_move(580, 200)
    assert frame.snapshot().doppler is not None

    result = frame.select_mode('cross_cursor')
    assert result.ok
    assert result.snapshot.mode is Mode.CROSS_CURSOR
    assert result.snapshot.doppler is None
    assert not frame.gestures.drag.active

    result = frame.pointer_up(580, 200)
    assert result.ok
    assert result.snapshot.markers == ()
    print("test_mode_switch_discards_incomplete_fit PASSED")


def test_complete_fit_survives_mode_switch():
    frame = make_frame(Mode.DOPPLER)
    drag(frame, (820, 350), (580, 200))
    frame.select_mode('harmonics')
    frame.select_mode('doppler')
    view = frame.snapshot().doppler
    assert view is not None and view.fit.complete
    print("test_complete_fit_survives_mode_switch PASSED")


def test_reset_doppler():
    frame = make_frame(Mode.DOPPLER)
    drag(frame, (820, 350), (580, 200))
    result = frame.reset_doppler()
    assert result.ok
    assert result.snapshot.doppler is None
    print("test_reset_doppler PASSED")


# =============================================================================
# Pan
# =============================================================================

def test_pan_requires_zoom():
    frame = make_frame()
    result = frame.select_mode('pan')
    assert not result.ok
    assert isinstance(result.error, InvalidInputError)
    assert frame.mode is Mode.CROSS_CURSOR
    print("test_pan_requires_zoom PASSED")


def test_pan_drag_and_auto_exit():
    """Pan drags the image and ends when the zoom returns to 1."""
    frame = make_frame(Mode.HARMONICS)
    assert frame.zoom_in().ok
    pan_x = frame.viewport.pan_x

    result = frame.select_mode('pan')
    assert result.ok
    assert result.snapshot.previous_mode is Mode.HARMONICS
    assert result.snapshot.cursor is Cursor.GRAB

    result = drag(frame, (500, 250), (480, 250), (450, 250))
    assert result.ok
    assert abs(frame.viewport.pan_x - (pan_x - 50.0)) < 1e-9
    assert frame.snapshot().harmonic_sets == ()

    result = frame.reset_zoom()
    assert result.ok
    assert result.snapshot.mode is Mode.HARMONICS
    assert not result.snapshot.viewport.is_zoomed
    print("test_pan_drag_and_auto_exit PASSED")


def test_zoom_out_leaves_pan():
    frame = make_frame()
    frame.zoom_in()
    frame.select_mode('pan')
    result = frame.zoom_out()
    assert result.ok
    assert result.snapshot.mode is Mode.CROSS_CURSOR
    print("test_zoom_out_leaves_pan PASSED")


if __name__ == "__main__":
    test_hover_readout()
    test_click_creates_marker()
    test_hover_over_marker_shows_grab()
    test_drag_moves_marker()
    test_marker_drag_clamped_to_range()
    test_drag_on_empty_space_lays_out_harmonics()
    test_target_removed_mid_drag()
    test_harmonics_click_scenario()
    test_harmonics_sets_take_palette_colors()
    test_grabbed_line_follows_pointer()
    test_spacing_floor_during_drag()
    test_doppler_drag_scenario()
    test_doppler_reverse_drag_is_time_ordered()
    test_doppler_f_zero_drag()
    test_fresh_drag_replaces_fit()
    test_mode_switch_discards_incomplete_fit()
    test_complete_fit_survives_mode_switch()
    test_reset_doppler()
    test_pan_requires_zoom()
    test_pan_drag_and_auto_exit()
    test_zoom_out_leaves_pan()
    print("\nAll mode tests passed!")

"""
Coordinate transforms between screen, viewport and data space.

All functions are pure: they take a ``ViewportState`` and return values or
a new ``ViewportState``. The vertical inversion (data values grow upward
while screen y grows downward) is applied here and nowhere else.

Usage:
    from gramframe.geometry.transform import to_data, to_screen, zoom_about

    point = to_data(ScreenPoint(120, 40), viewport)
    viewport = zoom_about(ScreenPoint(120, 40), 1.5, viewport)
"""

from __future__ import annotations

from dataclasses import replace

from ..config import config
from ..errors import InvalidInputError
from .viewport import DataPoint, DataRange, Orientation, ScreenPoint, ViewportState


def _screen_ratio(viewport: ViewportState) -> tuple[float, float]:
    """Viewport units per screen pixel at zoom 1."""
    return (viewport.image_width / viewport.display_width,
            viewport.image_height / viewport.display_height)


def _max_scale() -> float:
    return float(config['zoom']['max_scale'])


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# Screen <-> viewport
# =============================================================================

def screen_to_viewport(point: ScreenPoint, viewport: ViewportState) -> tuple[float, float]:
    """Convert a screen point to viewport units (zoom and pan removed)."""
    ratio_x, ratio_y = _screen_ratio(viewport)
    vx = (point.x * ratio_x - viewport.pan_x) / viewport.zoom_scale_x
    vy = (point.y * ratio_y - viewport.pan_y) / viewport.zoom_scale_y
    return vx, vy


def viewport_to_screen(vx: float, vy: float, viewport: ViewportState) -> ScreenPoint:
    """Convert viewport units to a screen point."""
    ratio_x, ratio_y = _screen_ratio(viewport)
    return ScreenPoint(
        (vx * viewport.zoom_scale_x + viewport.pan_x) / ratio_x,
        (vy * viewport.zoom_scale_y + viewport.pan_y) / ratio_y,
    )


def screen_delta_to_viewport(dx: float, dy: float, viewport: ViewportState) -> tuple[float, float]:
    """Convert a screen-pixel displacement to a viewport-unit displacement."""
    ratio_x, ratio_y = _screen_ratio(viewport)
    return dx * ratio_x / viewport.zoom_scale_x, dy * ratio_y / viewport.zoom_scale_y


# =============================================================================
# Viewport <-> data
# =============================================================================

def _viewport_to_data(vx: float, vy: float, viewport: ViewportState) -> DataPoint:
    r = viewport.data_range
    fx = vx / viewport.image_width
    fy = vy / viewport.image_height
    if viewport.orientation is Orientation.FREQ_X:
        return DataPoint(time=r.time_max - fy * r.time_span,
                         freq=r.freq_min + fx * r.freq_span)
    return DataPoint(time=r.time_min + fx * r.time_span,
                     freq=r.freq_max - fy * r.freq_span)


def _data_to_viewport(point: DataPoint, viewport: ViewportState) -> tuple[float, float]:
    r = viewport.data_range
    if viewport.orientation is Orientation.FREQ_X:
        fx = (point.freq - r.freq_min) / r.freq_span
        fy = (r.time_max - point.time) / r.time_span
    else:
        fx = (point.time - r.time_min) / r.time_span
        fy = (r.freq_max - point.freq) / r.freq_span
    return fx * viewport.image_width, fy * viewport.image_height


def to_data(point: ScreenPoint, viewport: ViewportState) -> DataPoint:
    """Convert a screen point to data coordinates.

    Points outside the canvas extrapolate linearly; use ``clamp_to_range``
    when a readout must stay inside the data range.
    """
    vx, vy = screen_to_viewport(point, viewport)
    return _viewport_to_data(vx, vy, viewport)


def to_screen(point: DataPoint, viewport: ViewportState) -> ScreenPoint:
    """Convert data coordinates to a screen point. Exact inverse of ``to_data``."""
    vx, vy = _data_to_viewport(point, viewport)
    return viewport_to_screen(vx, vy, viewport)


def clamp_to_range(point: DataPoint, data_range: DataRange) -> DataPoint:
    """Clamp a data point into the data range."""
    return DataPoint(
        time=_clamp(point.time, data_range.time_min, data_range.time_max),
        freq=_clamp(point.freq, data_range.freq_min, data_range.freq_max),
    )


def data_per_pixel(viewport: ViewportState) -> tuple[float, float]:
    """Data units covered by one screen pixel.

    Returns:
        (time_per_pixel, freq_per_pixel) at the current zoom
    """
    r = viewport.data_range
    ratio_x, ratio_y = _screen_ratio(viewport)
    per_px_x = ratio_x / viewport.zoom_scale_x / viewport.image_width
    per_px_y = ratio_y / viewport.zoom_scale_y / viewport.image_height
    if viewport.orientation is Orientation.FREQ_X:
        return r.time_span * per_px_y, r.freq_span * per_px_x
    return r.time_span * per_px_x, r.freq_span * per_px_y


def visible_data_range(viewport: ViewportState) -> DataRange:
    """The part of the data range currently visible on the canvas."""
    a = to_data(ScreenPoint(0.0, 0.0), viewport)
    b = to_data(ScreenPoint(viewport.display_width, viewport.display_height), viewport)
    return DataRange(
        time_min=min(a.time, b.time),
        time_max=max(a.time, b.time),
        freq_min=min(a.freq, b.freq),
        freq_max=max(a.freq, b.freq),
    )


# =============================================================================
# Zoom and pan
# =============================================================================

def clamp_pan(viewport: ViewportState) -> ViewportState:
    """Clamp pan so the zoomed image always covers the canvas.

    Idempotent: clamping an already clamped viewport returns equal pan values.
    """
    min_pan_x = min(0.0, viewport.image_width - viewport.image_width * viewport.zoom_scale_x)
    min_pan_y = min(0.0, viewport.image_height - viewport.image_height * viewport.zoom_scale_y)
    pan_x = _clamp(viewport.pan_x, min_pan_x, 0.0)
    pan_y = _clamp(viewport.pan_y, min_pan_y, 0.0)
    if pan_x == viewport.pan_x and pan_y == viewport.pan_y:
        return viewport
    return replace(viewport, pan_x=pan_x, pan_y=pan_y)


def _rescale(viewport: ViewportState, focal: ScreenPoint,
             scale_x: float, scale_y: float) -> ViewportState:
    """Set zoom scales keeping the viewport point under ``focal`` fixed."""
    ratio_x, ratio_y = _screen_ratio(viewport)
    canvas_x = focal.x * ratio_x
    canvas_y = focal.y * ratio_y
    vx, vy = screen_to_viewport(focal, viewport)
    rescaled = replace(
        viewport,
        zoom_scale_x=scale_x,
        zoom_scale_y=scale_y,
        pan_x=canvas_x - vx * scale_x,
        pan_y=canvas_y - vy * scale_y,
    )
    return clamp_pan(rescaled)


def zoom_about(focal: ScreenPoint, factor: float, viewport: ViewportState) -> ViewportState:
    """Multiply the zoom by ``factor`` about a focal screen point.

    The data coordinate under ``focal`` is unchanged whenever the pan
    clamp does not engage, which is always the case when zooming in about
    a point on the canvas. Scales are clamped to [1, zoom.max_scale].
    """
    if factor <= 0:
        raise InvalidInputError(f"Zoom factor must be positive, got {factor}")
    max_scale = _max_scale()
    scale_x = _clamp(viewport.zoom_scale_x * factor, 1.0, max_scale)
    scale_y = _clamp(viewport.zoom_scale_y * factor, 1.0, max_scale)
    return _rescale(viewport, focal, scale_x, scale_y)


def set_zoom(scale: float, viewport: ViewportState, focal: ScreenPoint | None = None) -> ViewportState:
    """Set an absolute uniform zoom scale about ``focal`` (canvas centre by default)."""
    if scale is None or scale < 1.0:
        raise InvalidInputError(f"Zoom scale must be >= 1, got {scale}")
    if focal is None:
        focal = ScreenPoint(viewport.display_width / 2, viewport.display_height / 2)
    scale = min(float(scale), _max_scale())
    return _rescale(viewport, focal, scale, scale)


def reset_zoom(viewport: ViewportState) -> ViewportState:
    """Return to zoom 1 with no pan."""
    return replace(viewport, zoom_scale_x=1.0, zoom_scale_y=1.0, pan_x=0.0, pan_y=0.0)


def zoom_to_rect(corner_a: ScreenPoint, corner_b: ScreenPoint, viewport: ViewportState) -> ViewportState:
    """Zoom so the screen rectangle between two corners fills the canvas.

    Each axis is scaled independently. Raises InvalidInputError for a
    rectangle with no area.
    """
    left, right = sorted((corner_a.x, corner_b.x))
    top, bottom = sorted((corner_a.y, corner_b.y))
    if right - left <= 0 or bottom - top <= 0:
        raise InvalidInputError("Zoom rectangle has no area")

    vx0, vy0 = screen_to_viewport(ScreenPoint(left, top), viewport)
    rect_w, rect_h = screen_delta_to_viewport(right - left, bottom - top, viewport)

    max_scale = _max_scale()
    scale_x = _clamp(viewport.image_width / rect_w, 1.0, max_scale)
    scale_y = _clamp(viewport.image_height / rect_h, 1.0, max_scale)

    # Centre the rectangle, then let the clamp keep the image covering the canvas
    centre_vx = vx0 + rect_w / 2
    centre_vy = vy0 + rect_h / 2
    zoomed = replace(
        viewport,
        zoom_scale_x=scale_x,
        zoom_scale_y=scale_y,
        pan_x=viewport.image_width / 2 - centre_vx * scale_x,
        pan_y=viewport.image_height / 2 - centre_vy * scale_y,
    )
    return clamp_pan(zoomed)


def pan_by(dx: float, dy: float, viewport: ViewportState) -> ViewportState:
    """Translate the view by a screen-pixel displacement.

    Content follows the pointer: a point under the cursor before the pan
    stays under it afterwards unless the clamp engages.
    """
    ratio_x, ratio_y = _screen_ratio(viewport)
    moved = replace(viewport,
                    pan_x=viewport.pan_x + dx * ratio_x,
                    pan_y=viewport.pan_y + dy * ratio_y)
    return clamp_pan(moved)

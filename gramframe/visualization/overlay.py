"""
Spectrogram overlay widget.

Draws the spectrogram image and the GramFrame features with pyqtgraph and
forwards mouse input to a ``GramFrame`` session. All geometry comes from
the session's snapshots: the view box works in screen pixels of the
drawing surface, so everything is placed with ``to_screen``.

Architecture:
    The widget inherits from pyqtgraph's GraphicsLayoutWidget. A single
    PlotItem hosts the image (positioned with a QTransform built from the
    viewport's zoom and pan) and the overlay items. Axis labels are set
    explicitly from ``compute_ticks`` because pyqtgraph's own ticks would
    describe pixels rather than data units.

Signals:
    snapshot_changed(snapshot): Emitted after every redraw
    command_failed(message): Emitted when a pointer action is rejected
"""

from __future__ import annotations

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QImage, QTransform, QFont, QFontDatabase

from ..analysis.doppler import doppler_curve
from ..annotation.features import Cursor, Mode
from ..annotation.store import Snapshot
from ..config import config
from ..geometry.ticks import compute_ticks, tick_positions
from ..geometry.transform import data_per_pixel, to_screen, visible_data_range
from ..geometry.viewport import DataPoint, Orientation
from ..interaction.session import CommandResult, GramFrame
from ..utils.logging import get_logger

logger = get_logger(__name__)

_QT_CURSORS = {
    Cursor.CROSSHAIR: Qt.CursorShape.CrossCursor,
    Cursor.GRAB: Qt.CursorShape.OpenHandCursor,
    Cursor.GRABBING: Qt.CursorShape.ClosedHandCursor,
}


def _decimals(step: float) -> int:
    """Decimal places needed to show values ``step`` apart."""
    if step <= 0:
        return 0
    return max(0, int(np.ceil(-np.log10(step))))


def format_readout(snapshot: Snapshot) -> str:
    """Readout text: hover position, harmonic rates and Doppler speed."""
    lines = []
    time_step, freq_step = data_per_pixel(snapshot.viewport)
    if snapshot.hover is not None:
        lines.append(f"Time: {snapshot.hover.time:.{_decimals(time_step)}f} s")
        lines.append(f"Freq: {snapshot.hover.freq:.{_decimals(freq_step)}f} Hz")

    for view in snapshot.harmonic_sets:
        text = f"{view.feature.spacing:.1f} Hz"
        if view.rate is not None:
            text += f"  rate {view.rate:.2f}"
        lines.append(text)

    if snapshot.doppler is not None:
        speed = snapshot.doppler.speed
        if speed is None:
            lines.append("Speed: --")
        else:
            lines.append(f"Speed: {speed:.1f} m/s ({snapshot.doppler.speed_knots:.1f} kn)")
    return "\n".join(lines)


class GramOverlayWidget(pg.GraphicsLayoutWidget):
    """Interactive spectrogram with marker, harmonic and Doppler overlays."""

    snapshot_changed = pyqtSignal(object)  # Snapshot
    command_failed = pyqtSignal(str)

    def __init__(self, frame: GramFrame, image: QImage | None = None, parent=None):
        super().__init__(parent)

        self._frame = frame
        self._snapshot: Snapshot = frame.snapshot()

        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(int(config['display']['resize_debounce_ms']))
        self._resize_timer.timeout.connect(self._apply_resize)

        self._setup_layout()
        self._setup_image(image)
        self._setup_overlays()
        self._setup_readout()

        self.setMouseTracking(True)
        self._frame.subscribe(self._on_snapshot)
        self._redraw(self._snapshot)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _setup_layout(self):
        """Single plot in screen-pixel coordinates with y growing downward."""
        colors = config['colors']
        self.setBackground(tuple(colors['background'][:3]))

        self._plot = self.addPlot(row=0, col=0)
        self._plot.setMouseEnabled(x=False, y=False)
        self._plot.hideButtons()
        self._plot.vb.setDefaultPadding(0)
        self._plot.vb.invertY(True)
        self._plot.setMenuEnabled(False)

        axis_pen = pg.mkPen(color=colors['axis'][:3])
        self._plot.getAxis('left').setWidth(int(config['display']['axis_width']))
        for name in ('left', 'bottom'):
            axis = self._plot.getAxis(name)
            axis.setPen(axis_pen)
            axis.setTextPen(axis_pen)

        self._plot.vb.sigResized.connect(self._on_view_resized)

    def _setup_image(self, image: QImage | None):
        self._image_item = pg.ImageItem()
        self._plot.addItem(self._image_item)
        if image is not None and not image.isNull():
            rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
            self._image_item.setImage(pg.functions.imageToArray(rgba, copy=True, transpose=True))

    def _setup_overlays(self):
        colors = config['colors']

        self._harmonic_items: list[pg.PlotCurveItem] = []

        self._doppler_curve = pg.PlotCurveItem(
            pen=pg.mkPen(color=colors['doppler_curve'][:3], width=colors['doppler_curve_width'])
        )
        self._plot.addItem(self._doppler_curve)

        self._doppler_points = pg.ScatterPlotItem(size=colors['doppler_marker_size'], pxMode=True)
        self._plot.addItem(self._doppler_points)

        self._marker_points = pg.ScatterPlotItem(symbol='+', size=colors['marker_size'] * 2, pxMode=True)
        self._plot.addItem(self._marker_points)

        hover_pen = pg.mkPen(color=colors['hover_cursor'][:3], width=colors['hover_cursor_width'])
        self._hover_v = pg.InfiniteLine(angle=90, pen=hover_pen, movable=False)
        self._hover_h = pg.InfiniteLine(angle=0, pen=hover_pen, movable=False)
        for line in (self._hover_v, self._hover_h):
            line.setZValue(1000)
            line.hide()
            self._plot.addItem(line, ignoreBounds=True)

    def _setup_readout(self):
        self._readout = pg.TextItem(text="", color=(0, 0, 0), anchor=(1, 0),
                                    fill=pg.mkBrush(255, 255, 255, 200))
        font = QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont)
        self._readout.setFont(QFont(font))
        self._readout.setZValue(2000)
        self._plot.addItem(self._readout, ignoreBounds=True)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def frame(self) -> GramFrame:
        return self._frame

    def report(self, result: CommandResult) -> CommandResult:
        """Forward a failed command's message to listeners."""
        if not result.ok and result.error is not None:
            self.command_failed.emit(str(result.error))
        return result

    def detach(self):
        """Stop listening to the session."""
        self._frame.unsubscribe(self._on_snapshot)

    # -------------------------------------------------------------------------
    # Snapshot rendering
    # -------------------------------------------------------------------------

    def _on_snapshot(self, snapshot: Snapshot):
        self._snapshot = snapshot
        self._redraw(snapshot)
        self.snapshot_changed.emit(snapshot)

    def _redraw(self, snapshot: Snapshot):
        viewport = snapshot.viewport
        self._plot.setXRange(0, viewport.display_width, padding=0)
        self._plot.setYRange(0, viewport.display_height, padding=0)

        self._place_image(snapshot)
        self._draw_markers(snapshot)
        self._draw_harmonics(snapshot)
        self._draw_doppler(snapshot)
        self._draw_hover(snapshot)
        self._update_axes(snapshot)

        self._readout.setText(format_readout(snapshot))
        self._readout.setPos(viewport.display_width, 0)
        self.setCursor(_QT_CURSORS.get(snapshot.cursor, Qt.CursorShape.CrossCursor))

    def _place_image(self, snapshot: Snapshot):
        """Map raster pixels to screen pixels using the viewport's zoom and pan."""
        vp = snapshot.viewport
        ratio_x = vp.image_width / vp.display_width
        ratio_y = vp.image_height / vp.display_height
        image = self._image_item.image
        # The raster may be larger or smaller than the declared image size
        px_x = vp.image_width / image.shape[0] if image is not None else 1.0
        px_y = vp.image_height / image.shape[1] if image is not None else 1.0

        transform = QTransform()
        transform.translate(vp.pan_x / ratio_x, vp.pan_y / ratio_y)
        transform.scale(vp.zoom_scale_x / ratio_x * px_x, vp.zoom_scale_y / ratio_y * px_y)
        self._image_item.setTransform(transform)

    def _draw_markers(self, snapshot: Snapshot):
        colors = config['colors']
        spots = []
        for marker in snapshot.markers:
            pos = to_screen(marker.position, snapshot.viewport)
            color = colors['marker_selected'][:3] if marker.selected else marker.color
            spots.append({
                'pos': (pos.x, pos.y),
                'pen': pg.mkPen(color=color, width=2),
                'brush': pg.mkBrush(color=color),
            })
        self._marker_points.setData(spots)

    def _draw_harmonics(self, snapshot: Snapshot):
        # Reuse curve items; add more when there are more sets
        while len(self._harmonic_items) < len(snapshot.harmonic_sets):
            item = pg.PlotCurveItem(connect='pairs')
            self._plot.addItem(item)
            self._harmonic_items.append(item)

        width = config['colors']['harmonic_width']
        for i, item in enumerate(self._harmonic_items):
            if i >= len(snapshot.harmonic_sets):
                item.setData([], [])
                continue
            view = snapshot.harmonic_sets[i]
            t_lo, t_hi = view.time_extent
            xs, ys = [], []
            for line in view.lines:
                a = to_screen(DataPoint(t_lo, line.frequency), snapshot.viewport)
                b = to_screen(DataPoint(t_hi, line.frequency), snapshot.viewport)
                xs.extend((a.x, b.x))
                ys.extend((a.y, b.y))
            pen_width = width * 2 if view.feature.selected else width
            item.setPen(pg.mkPen(color=view.feature.color, width=pen_width))
            item.setData(np.array(xs, dtype=float), np.array(ys, dtype=float))

    def _draw_doppler(self, snapshot: Snapshot):
        view = snapshot.doppler
        if view is None:
            self._doppler_curve.setData([], [])
            self._doppler_points.setData([])
            return

        colors = config['colors']
        fit = view.fit
        times, freqs = doppler_curve(fit.f_plus, fit.f_minus, view.f_zero)
        screen = [to_screen(DataPoint(t, f), snapshot.viewport) for t, f in zip(times, freqs)]
        self._doppler_curve.setData([p.x for p in screen], [p.y for p in screen])

        spots = []
        for point, key in ((fit.f_plus, 'doppler_plus'), (fit.f_minus, 'doppler_minus'),
                           (view.f_zero, 'doppler_zero')):
            pos = to_screen(point, snapshot.viewport)
            spots.append({
                'pos': (pos.x, pos.y),
                'pen': pg.mkPen(color=colors[key][:3], width=2),
                'brush': pg.mkBrush(None),
                'symbol': 'o',
            })
        self._doppler_points.setData(spots)

    def _draw_hover(self, snapshot: Snapshot):
        if snapshot.hover is None or snapshot.mode is Mode.PAN:
            self._hover_v.hide()
            self._hover_h.hide()
            return
        pos = to_screen(snapshot.hover, snapshot.viewport)
        self._hover_v.setPos(pos.x)
        self._hover_h.setPos(pos.y)
        self._hover_v.show()
        self._hover_h.show()

    def _update_axes(self, snapshot: Snapshot):
        """Label the axes in data units for the visible range."""
        vp = snapshot.viewport
        visible = visible_data_range(vp)
        axes_cfg = config['axes']

        if vp.orientation is Orientation.FREQ_X:
            bottom = (visible.freq_min, visible.freq_max, axes_cfg['freq_tick_spacing_px'], False)
            left = (visible.time_min, visible.time_max, axes_cfg['time_tick_spacing_px'], True)
            labels = ('Frequency (Hz)', 'Time (s)')
        else:
            bottom = (visible.time_min, visible.time_max, axes_cfg['time_tick_spacing_px'], False)
            left = (visible.freq_min, visible.freq_max, axes_cfg['freq_tick_spacing_px'], True)
            labels = ('Time (s)', 'Frequency (Hz)')

        for name, (low, high, spacing, inverted), pixels, label in (
            ('bottom', bottom, vp.display_width, labels[0]),
            ('left', left, vp.display_height, labels[1]),
        ):
            tick_set = compute_ticks(low, high, pixels, spacing)
            major = tick_positions(tick_set.ticks, low, high, pixels, inverted)
            minor = tick_positions(tick_set.minor_ticks, low, high, pixels, inverted)
            digits = _decimals(tick_set.major_interval) if tick_set.major_interval < 1 else 0
            axis = self._plot.getAxis(name)
            axis.setTicks([
                [(pos, f"{value:.{digits}f}") for pos, value in zip(major, tick_set.ticks)],
                [(pos, '') for pos in minor],
            ])
            axis.setLabel(label)

    # -------------------------------------------------------------------------
    # Resize
    # -------------------------------------------------------------------------

    def _on_view_resized(self, *args):
        self._resize_timer.start()

    def _apply_resize(self):
        rect = self._plot.vb.sceneBoundingRect()
        if rect.width() > 0 and rect.height() > 0:
            self.report(self._frame.resize(rect.width(), rect.height()))

    # -------------------------------------------------------------------------
    # Mouse input
    # -------------------------------------------------------------------------

    def _view_pos(self, ev) -> tuple[float, float]:
        scene_pos = self.mapToScene(ev.position().toPoint())
        view_pos = self._plot.vb.mapSceneToView(scene_pos)
        return view_pos.x(), view_pos.y()

    def mousePressEvent(self, ev):
        """Left button starts a gesture; right button resets the Doppler fit."""
        if ev.button() == Qt.MouseButton.LeftButton:
            x, y = self._view_pos(ev)
            self.report(self._frame.pointer_down(x, y))
            ev.accept()
        elif ev.button() == Qt.MouseButton.RightButton and self._frame.mode is Mode.DOPPLER:
            self.report(self._frame.reset_doppler())
            ev.accept()
        else:
            super().mousePressEvent(ev)

    def mouseMoveEvent(self, ev):
        x, y = self._view_pos(ev)
        self.report(self._frame.pointer_move(x, y))
        ev.accept()

    def mouseReleaseEvent(self, ev):
        if ev.button() == Qt.MouseButton.LeftButton:
            x, y = self._view_pos(ev)
            self.report(self._frame.pointer_up(x, y))
            ev.accept()
        else:
            super().mouseReleaseEvent(ev)

    def wheelEvent(self, ev):
        """Vertical scroll zooms about the pointer."""
        delta_y = ev.angleDelta().y()
        if delta_y == 0:
            ev.ignore()
            return
        x, y = self._view_pos(ev)
        if delta_y > 0:
            self.report(self._frame.zoom_in((x, y)))
        else:
            self.report(self._frame.zoom_out((x, y)))
        ev.accept()

    def leaveEvent(self, ev):
        """Clear the hover readout when the mouse leaves the widget."""
        self._frame.pointer_leave()
        super().leaveEvent(ev)

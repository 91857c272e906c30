"""
Main application window for GramFrame.

Hosts the overlay widget for one spectrogram and the controls around it:

Components:
    - GramOverlayWidget: Spectrogram image with feature overlays
    - Toolbar: Mode buttons, zoom controls, manual harmonic entry
    - Readout line: Hover position, harmonic rate and Doppler speed

The window never changes state directly; every action goes through the
GramFrame session command surface and the widget redraws from snapshots.
"""

from __future__ import annotations

from pathlib import Path

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QImage, QKeySequence
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QStatusBar, QToolBar,
    QLabel, QPushButton, QInputDialog, QFileDialog, QMessageBox, QButtonGroup,
)

from ..annotation.features import Mode
from ..annotation.store import Snapshot
from ..config import reload_config
from ..interaction.session import CommandResult, GramFrame
from ..loader import GramSource
from ..utils.logging import get_logger
from ..visualization.overlay import GramOverlayWidget

logger = get_logger(__name__)

MODE_LABELS = {
    Mode.CROSS_CURSOR: "Cross Cursor",
    Mode.HARMONICS: "Harmonics",
    Mode.DOPPLER: "Doppler",
    Mode.PAN: "Pan",
}


class MainWindow(QMainWindow):
    """Viewer window for one gram descriptor."""

    def __init__(self, source: GramSource, initial_mode: Mode | str = Mode.CROSS_CURSOR):
        super().__init__()

        self._source = source
        self._frame = GramFrame.from_source(source, mode=initial_mode)

        image = QImage(str(source.image_path))
        if image.isNull():
            logger.warning("Could not decode image %s", source.image_path)

        self._setup_ui(image)
        self._setup_menus()
        self._setup_toolbar()
        self._connect_signals()

        self._on_snapshot(self._frame.snapshot())

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _setup_ui(self, image: QImage):
        """Setup the main UI layout."""
        self.setWindowTitle(f"GramFrame - {self._source.image_path.name}")
        self.setMinimumSize(800, 600)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(5, 5, 5, 5)

        self._overlay = GramOverlayWidget(self._frame, image)
        layout.addWidget(self._overlay, stretch=1)

        self._readout_label = QLabel("")
        self._readout_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        layout.addWidget(self._readout_label)

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")

    def _setup_menus(self):
        """Setup menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")

        load_config_action = QAction("Load &Config...", self)
        load_config_action.triggered.connect(self._load_config_dialog)
        file_menu.addAction(load_config_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        view_menu = menubar.addMenu("&View")

        zoom_in = QAction("Zoom &In", self)
        zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(lambda: self._run(self._frame.zoom_in()))
        view_menu.addAction(zoom_in)

        zoom_out = QAction("Zoom &Out", self)
        zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(lambda: self._run(self._frame.zoom_out()))
        view_menu.addAction(zoom_out)

        reset_zoom = QAction("&Reset Zoom", self)
        reset_zoom.setShortcut("Ctrl+0")
        reset_zoom.triggered.connect(lambda: self._run(self._frame.reset_zoom()))
        view_menu.addAction(reset_zoom)

        edit_menu = menubar.addMenu("&Edit")

        delete_action = QAction("&Delete Selected", self)
        delete_action.setShortcut(QKeySequence.StandardKey.Delete)
        delete_action.triggered.connect(self._delete_selected)
        edit_menu.addAction(delete_action)

        clear_action = QAction("&Clear All Features", self)
        clear_action.triggered.connect(self._clear_features)
        edit_menu.addAction(clear_action)

        reset_doppler = QAction("Reset &Doppler", self)
        reset_doppler.triggered.connect(lambda: self._run(self._frame.reset_doppler()))
        edit_menu.addAction(reset_doppler)

    def _setup_toolbar(self):
        """Setup toolbar with mode buttons and zoom controls."""
        toolbar = QToolBar("Main Toolbar")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        self._mode_group = QButtonGroup(self)
        self._mode_group.setExclusive(True)
        self._mode_buttons: dict[Mode, QPushButton] = {}
        for index, (mode, label) in enumerate(MODE_LABELS.items()):
            button = QPushButton(label)
            button.setCheckable(True)
            button.clicked.connect(lambda checked, m=mode: self._select_mode(m))
            self._mode_group.addButton(button, index)
            self._mode_buttons[mode] = button
            toolbar.addWidget(button)

        toolbar.addSeparator()

        zoom_in_btn = QPushButton("+ Zoom In")
        zoom_in_btn.clicked.connect(lambda: self._run(self._frame.zoom_in()))
        zoom_in_btn.setToolTip("Zoom in (Ctrl++)")
        toolbar.addWidget(zoom_in_btn)

        zoom_out_btn = QPushButton("− Zoom Out")
        zoom_out_btn.clicked.connect(lambda: self._run(self._frame.zoom_out()))
        zoom_out_btn.setToolTip("Zoom out (Ctrl+-)")
        toolbar.addWidget(zoom_out_btn)

        reset_btn = QPushButton("Reset")
        reset_btn.clicked.connect(lambda: self._run(self._frame.reset_zoom()))
        reset_btn.setToolTip("Reset zoom (Ctrl+0)")
        toolbar.addWidget(reset_btn)

        toolbar.addSeparator()

        self._manual_btn = QPushButton("Manual Harmonic...")
        self._manual_btn.clicked.connect(self._manual_harmonic_dialog)
        self._manual_btn.setToolTip("Add a harmonic set with a typed spacing")
        toolbar.addWidget(self._manual_btn)

    def _connect_signals(self):
        self._overlay.snapshot_changed.connect(self._on_snapshot)
        self._overlay.command_failed.connect(self._show_error)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _run(self, result: CommandResult) -> CommandResult:
        """Show a failed command's message in the status bar."""
        return self._overlay.report(result)

    def _show_error(self, message: str):
        self._status_bar.showMessage(message, 4000)

    def _select_mode(self, mode: Mode):
        result = self._run(self._frame.select_mode(mode))
        if not result.ok:
            # Restore the button of the mode that is still active
            self._mode_buttons[self._frame.mode].setChecked(True)

    def _delete_selected(self):
        selected = self._frame.snapshot().selected_id
        if selected is None:
            self._status_bar.showMessage("Nothing selected", 2000)
            return
        self._run(self._frame.delete_feature(selected))

    def _clear_features(self):
        reply = QMessageBox.question(
            self,
            "Clear Features",
            "Remove all markers, harmonic sets and the Doppler fit?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self._run(self._frame.clear_features())

    def _manual_harmonic_dialog(self):
        text, ok = QInputDialog.getText(self, "Manual Harmonic", "Spacing (Hz):")
        if ok and text:
            result = self._run(self._frame.add_manual_harmonic_set(text))
            if not result.ok:
                QMessageBox.warning(self, "Manual Harmonic", str(result.error))

    def _load_config_dialog(self):
        """Load a config file via dialog."""
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Load Config",
            "",
            "Config Files (*.yaml *.yml *.json);;All Files (*)"
        )
        if file_path:
            reload_config(file_path)
            self._status_bar.showMessage(f"Loaded config from {Path(file_path).name}")

    # -------------------------------------------------------------------------
    # Snapshot updates
    # -------------------------------------------------------------------------

    def _on_snapshot(self, snapshot: Snapshot):
        button = self._mode_buttons.get(snapshot.mode)
        if button is not None and not button.isChecked():
            button.setChecked(True)
        self._mode_buttons[Mode.PAN].setEnabled(snapshot.viewport.is_zoomed)

        parts = [MODE_LABELS[snapshot.mode]]
        if snapshot.hover is not None:
            parts.append(f"t={snapshot.hover.time:.3f} s")
            parts.append(f"f={snapshot.hover.freq:.1f} Hz")
        if snapshot.doppler is not None and snapshot.doppler.speed is not None:
            parts.append(f"v={snapshot.doppler.speed:.1f} m/s ({snapshot.doppler.speed_knots:.1f} kn)")
        zoom = snapshot.viewport.zoom_scale_x
        if zoom > 1.0:
            parts.append(f"zoom {zoom:.1f}x")
        self._readout_label.setText("   ".join(parts))

    def closeEvent(self, event):
        self._overlay.detach()
        super().closeEvent(event)

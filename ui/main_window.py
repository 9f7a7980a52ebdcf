# ui/main_window.py
from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Optional, Sequence

from PySide6 import QtCore, QtGui, QtWidgets

from config import ViewerConfig
from core.edf_decoder import FormatError
from core.project import PROJECT_SUFFIX, ProjectError, ProjectMissingError
from core.session import RecordingMismatchError, ViewerSession
from ui.channel_backend import ChannelCanvasBackend, PyqtgraphChannelBackend
from ui.themes import THEMES, ThemeDefinition, resolve_theme
from ui.widgets import ChannelGutter, OverviewStrip


LOG = logging.getLogger(__name__)

PROJECT_FILTER = f"Projects and recordings (*{PROJECT_SUFFIX} *.edf *.EDF);;All Files (*)"
RECORDING_FILTER = "EDF Files (*.edf *.EDF);;All Files (*)"
PAN_FRACTION = 0.1


def _format_clock(seconds: float) -> str:
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, session: ViewerSession, *, config: ViewerConfig | None = None):
        super().__init__()
        self.session = session
        self._config = config or ViewerConfig()
        self._theme: ThemeDefinition = resolve_theme(self._config.theme)
        self._last_dir = str(Path.cwd())
        self._redraw_timer = QtCore.QTimer(self)
        self._redraw_timer.setSingleShot(True)
        self._redraw_timer.setInterval(0)
        self._redraw_timer.timeout.connect(self.redraw)
        self._layout_project = None
        self._signal_actions: dict[str, QtGui.QAction] = {}
        self._track_actions: list[QtGui.QAction] = []
        self.overview_strips: dict[int, OverviewStrip] = {}
        self._overview_labels: dict[int, QtWidgets.QLabel] = {}

        self.setWindowTitle("EDF Viewer")
        self._build_ui()
        self._build_menus()
        self._connect_signals()
        self._apply_theme(self._theme.name, persist=False)

        self.session.add_listener(self._schedule_redraw)
        self.redraw()

    # ------------------------------------------------------------------ build
    def _build_ui(self):
        central = QtWidgets.QWidget(self)
        root = QtWidgets.QVBoxLayout(central)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        canvas_row = QtWidgets.QHBoxLayout()
        canvas_row.setContentsMargins(0, 0, 0, 0)
        canvas_row.setSpacing(0)
        self.gutter = ChannelGutter(central)
        self.canvas: ChannelCanvasBackend = PyqtgraphChannelBackend(
            decimate=self._config.decimate,
            on_resize=self._on_canvas_resized,
            on_click=self._on_canvas_clicked,
            parent=central,
        )
        canvas_row.addWidget(self.gutter)
        canvas_row.addWidget(self.canvas.widget, 1)
        root.addLayout(canvas_row, 1)

        self.overview_panel = QtWidgets.QFrame(central)
        self.overview_panel.setObjectName("overviewPanel")
        self._overview_layout = QtWidgets.QGridLayout(self.overview_panel)
        self._overview_layout.setContentsMargins(0, 2, 6, 2)
        self._overview_layout.setHorizontalSpacing(0)
        self._overview_layout.setVerticalSpacing(2)
        self._overview_layout.setColumnMinimumWidth(0, self.gutter.width())
        self._overview_layout.setColumnStretch(1, 1)
        root.addWidget(self.overview_panel)

        control_bar = QtWidgets.QFrame(central)
        control_bar.setObjectName("controlBar")
        controls = QtWidgets.QHBoxLayout(control_bar)
        controls.setContentsMargins(8, 6, 8, 6)
        controls.setSpacing(8)

        self.play_button = QtWidgets.QPushButton("Play", control_bar)
        self.play_button.setFixedWidth(72)
        controls.addWidget(self.play_button)

        self.time_slider = QtWidgets.QSlider(QtCore.Qt.Horizontal, control_bar)
        self.time_slider.setRange(0, self._config.slider_steps)
        self.time_slider.setSingleStep(1)
        self.time_slider.setPageStep(max(1, self._config.slider_steps // 20))
        controls.addWidget(self.time_slider, 1)

        self.time_label = QtWidgets.QLabel("00:00:00 / 00:00:00", control_bar)
        self.time_label.setObjectName("timeLabel")
        controls.addWidget(self.time_label)

        style = self.style()
        self.zoom_out_button = QtWidgets.QToolButton(control_bar)
        self.zoom_out_button.setText("-")
        self.zoom_out_button.setToolTip("Zoom out")
        self.zoom_in_button = QtWidgets.QToolButton(control_bar)
        self.zoom_in_button.setText("+")
        self.zoom_in_button.setToolTip("Zoom in")
        controls.addWidget(self.zoom_out_button)
        controls.addWidget(self.zoom_in_button)

        limits = self.session.limits
        self.zoom_spin = QtWidgets.QDoubleSpinBox(control_bar)
        self.zoom_spin.setRange(limits.px_per_second_min, limits.px_per_second_max)
        self.zoom_spin.setDecimals(1)
        self.zoom_spin.setSuffix(" px/s")
        self.zoom_spin.setKeyboardTracking(False)
        controls.addWidget(self.zoom_spin)

        controls.addWidget(QtWidgets.QLabel("Gain", control_bar))
        self.y_scale_spin = QtWidgets.QDoubleSpinBox(control_bar)
        self.y_scale_spin.setRange(0.05, 50.0)
        self.y_scale_spin.setDecimals(2)
        self.y_scale_spin.setSingleStep(0.1)
        self.y_scale_spin.setKeyboardTracking(False)
        controls.addWidget(self.y_scale_spin)

        self.play_button.setIcon(style.standardIcon(QtWidgets.QStyle.SP_MediaPlay))
        root.addWidget(control_bar)

        self.setCentralWidget(central)
        self.statusBar()

    def _build_menus(self):
        bar = self.menuBar()

        file_menu = bar.addMenu("&File")
        self.open_project_action = file_menu.addAction("Open Project…")
        self.open_project_action.setShortcut(QtGui.QKeySequence.Open)
        self.load_recording_action = file_menu.addAction("Load Recording…")
        self.save_project_action = file_menu.addAction("Save Project…")
        self.save_project_action.setShortcut(QtGui.QKeySequence.Save)
        file_menu.addSeparator()
        quit_action = file_menu.addAction("Quit")
        quit_action.setShortcut(QtGui.QKeySequence.Quit)
        quit_action.triggered.connect(self.close)

        layout_menu = bar.addMenu("&Layout")
        self.signals_menu = layout_menu.addMenu("Signals")
        self.tracks_menu = layout_menu.addMenu("Annotations")

        view_menu = bar.addMenu("&View")
        zoom_in = view_menu.addAction("Zoom In")
        zoom_in.setShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Equal))
        zoom_in.triggered.connect(lambda: self._zoom_factor(self._config.zoom_step))
        zoom_out = view_menu.addAction("Zoom Out")
        zoom_out.setShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Minus))
        zoom_out.triggered.connect(lambda: self._zoom_factor(1.0 / self._config.zoom_step))
        view_menu.addSeparator()
        theme_menu = view_menu.addMenu("Theme")
        self._theme_group = QtGui.QActionGroup(self)
        self._theme_group.setExclusive(True)
        self._theme_actions: dict[str, QtGui.QAction] = {}
        for key, theme_def in THEMES.items():
            action = theme_menu.addAction(theme_def.name)
            action.setCheckable(True)
            action.setChecked(key == self._theme.name)
            action.triggered.connect(
                lambda _checked=False, k=key: self._apply_theme(k, persist=True)
            )
            self._theme_group.addAction(action)
            self._theme_actions[key] = action

    def _connect_signals(self):
        self.open_project_action.triggered.connect(self._prompt_open_project)
        self.load_recording_action.triggered.connect(self._prompt_load_recording)
        self.save_project_action.triggered.connect(self._prompt_save_project)
        self.play_button.clicked.connect(lambda: self.session.toggle_playback())
        self.time_slider.valueChanged.connect(self._on_slider_changed)
        self.zoom_in_button.clicked.connect(lambda: self._zoom_factor(self._config.zoom_step))
        self.zoom_out_button.clicked.connect(
            lambda: self._zoom_factor(1.0 / self._config.zoom_step)
        )
        self.zoom_spin.valueChanged.connect(self._on_zoom_spin_changed)
        self.y_scale_spin.valueChanged.connect(self._on_y_scale_changed)

        self._shortcuts: list[QtGui.QShortcut] = []
        self._shortcuts.append(QtGui.QShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Space), self, activated=lambda: self.session.toggle_playback()))
        self._shortcuts.append(QtGui.QShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Left), self, activated=lambda: self._pan_fraction(-PAN_FRACTION)))
        self._shortcuts.append(QtGui.QShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Right), self, activated=lambda: self._pan_fraction(PAN_FRACTION)))
        self._shortcuts.append(QtGui.QShortcut(QtGui.QKeySequence(QtCore.Qt.Key_Home), self, activated=lambda: self.session.seek(0.0)))

    # ------------------------------------------------------------------ theme
    def _apply_theme(self, key: str, *, persist: bool) -> None:
        theme = resolve_theme(key)
        self._theme = theme
        app = QtWidgets.QApplication.instance()
        if app is not None:
            app.setStyleSheet(theme.stylesheet)
        self.canvas.set_theme(
            background=theme.pg_background,
            foreground=theme.pg_foreground,
            curve_colors=theme.curve_colors,
            grid_color=theme.grid_color,
        )
        self.gutter.set_text_color(theme.gutter_text)
        for strip in self.overview_strips.values():
            strip.set_colors(background=theme.overview_background, marker=theme.playhead_color)
        action = self._theme_actions.get(theme.name)
        if action is not None and not action.isChecked():
            action.setChecked(True)
        if persist:
            self._config.theme = theme.name
            self._write_persistent_state()

    # ------------------------------------------------------------------ redraw
    def _schedule_redraw(self):
        if not self._redraw_timer.isActive():
            self._redraw_timer.start()

    def redraw(self):
        self._redraw_timer.stop()
        session = self.session
        if session.project is not self._layout_project:
            self._layout_project = session.project
            self._rebuild_layout_menu()
            self._rebuild_overview_strips()

        self.canvas.apply_scene(session.signal_scene())
        self.canvas.apply_overlays(session.overlay_rects())
        self.canvas.set_placeholder(session.placeholder_text())
        self.gutter.set_labels(session.gutter_labels())

        self._sync_overview()
        self._sync_controls()
        self._sync_layout_checks()

    def _sync_overview(self):
        segments = self.session.overview()
        total = self.session.total_duration() or 0.0
        state = self.session.state
        for idx, strip in self.overview_strips.items():
            visible = idx in segments
            strip.setVisible(visible)
            self._overview_labels[idx].setVisible(visible)
            if not visible:
                continue
            strip.set_segments(segments[idx])
            if total > 0:
                strip.set_window(state.current_time_s / total, state.end_time_s / total)
            else:
                strip.set_window(None)

    def _sync_controls(self):
        session = self.session
        timeline = session.timeline
        steps = self._config.slider_steps
        with QtCore.QSignalBlocker(self.time_slider):
            self.time_slider.setEnabled(timeline.enabled)
            self.time_slider.setValue(int(round(timeline.position() * steps)))
        with QtCore.QSignalBlocker(self.zoom_spin):
            self.zoom_spin.setValue(session.state.px_per_second)
        with QtCore.QSignalBlocker(self.y_scale_spin):
            self.y_scale_spin.setValue(session.state.y_scale)

        running = session.playback.running
        icon = QtWidgets.QStyle.SP_MediaPause if running else QtWidgets.QStyle.SP_MediaPlay
        self.play_button.setIcon(self.style().standardIcon(icon))
        self.play_button.setText("Pause" if running else "Play")
        self.play_button.setEnabled(session.recording is not None)

        total = session.total_duration() or 0.0
        self.time_label.setText(
            f"{_format_clock(session.state.current_time_s)} / {_format_clock(total)}"
        )
        self.load_recording_action.setEnabled(session.awaiting_file is not None)
        self.save_project_action.setEnabled(session.project is not None)

    # ------------------------------------------------------------------ layout menu
    def _rebuild_layout_menu(self):
        self.signals_menu.clear()
        self.tracks_menu.clear()
        self._signal_actions = {}
        self._track_actions = []
        project = self.session.project
        if project is None:
            self.signals_menu.setEnabled(False)
            self.tracks_menu.setEnabled(False)
            return
        for ref in project.signals:
            name = ref.signal_name.strip()
            if not name or name in self._signal_actions:
                continue
            action = self.signals_menu.addAction(name)
            action.setCheckable(True)
            action.setChecked(self.session.signal_visible(name))
            action.toggled.connect(partial(self.session.set_signal_visible, name))
            self._signal_actions[name] = action
        for idx, track in enumerate(project.annotations):
            action = self.tracks_menu.addAction(track.name)
            action.setCheckable(True)
            action.setChecked(self.session.track_visible(idx))
            action.toggled.connect(partial(self.session.set_track_visible, idx))
            self._track_actions.append(action)
        self.signals_menu.setEnabled(bool(self._signal_actions))
        self.tracks_menu.setEnabled(bool(self._track_actions))

    def _sync_layout_checks(self):
        for name, action in self._signal_actions.items():
            with QtCore.QSignalBlocker(action):
                action.setChecked(self.session.signal_visible(name))
        for idx, action in enumerate(self._track_actions):
            with QtCore.QSignalBlocker(action):
                action.setChecked(self.session.track_visible(idx))

    def _rebuild_overview_strips(self):
        for idx in list(self.overview_strips):
            strip = self.overview_strips.pop(idx)
            label = self._overview_labels.pop(idx)
            self._overview_layout.removeWidget(strip)
            self._overview_layout.removeWidget(label)
            strip.deleteLater()
            label.deleteLater()
        project = self.session.project
        if project is None:
            self.overview_panel.setVisible(False)
            return
        for idx, track in enumerate(project.annotations):
            label = QtWidgets.QLabel(track.name, self.overview_panel)
            label.setObjectName("overviewLabel")
            label.setAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
            label.setContentsMargins(0, 0, 6, 0)
            strip = OverviewStrip(
                track.name, self.overview_panel, height=self._config.overview_height
            )
            strip.set_colors(
                background=self._theme.overview_background,
                marker=self._theme.playhead_color,
            )
            strip.scrubbed.connect(self.session.timeline.on_scrub)
            self._overview_layout.addWidget(label, idx, 0)
            self._overview_layout.addWidget(strip, idx, 1)
            self.overview_strips[idx] = strip
            self._overview_labels[idx] = label
        self.overview_panel.setVisible(bool(project.annotations))

    # ------------------------------------------------------------------ controls
    def _on_slider_changed(self, value: int):
        self.session.timeline.on_scrub(value / float(self._config.slider_steps))

    def _on_zoom_spin_changed(self, value: float):
        self.session.set_zoom(value)
        self._config.px_per_second = self.session.state.px_per_second

    def _on_y_scale_changed(self, value: float):
        self.session.set_y_scale(value)
        self._config.y_scale = self.session.state.y_scale

    def _zoom_factor(self, factor: float):
        self.session.zoom_by(factor)
        self._config.px_per_second = self.session.state.px_per_second

    def _pan_fraction(self, fraction: float):
        if self.session.recording is None:
            return
        self.session.advance(self.session.state.visible_duration_s * fraction)

    def _on_canvas_resized(self, width: float, height: float):
        self.session.set_canvas_size(width, height)

    def _on_canvas_clicked(self):
        if self.session.awaiting_file:
            self._prompt_load_recording()

    # ------------------------------------------------------------------ files
    def open_project(self, paths: Sequence[str | Path]) -> bool:
        """Load a project (and its recording, when selected alongside)."""
        try:
            self.session.load_project_from_selection(paths)
        except ProjectMissingError as exc:
            LOG.warning("Selection %s holds no project: %s", [str(p) for p in paths], exc)
            QtWidgets.QMessageBox.warning(self, "Open project", str(exc))
            return False
        except (ProjectError, OSError) as exc:
            LOG.warning("Failed to open project: %s", exc)
            QtWidgets.QMessageBox.critical(self, "Failed to open project", str(exc))
            return False
        except FormatError as exc:
            LOG.warning("Recording in selection could not be decoded: %s", exc)
            QtWidgets.QMessageBox.critical(self, "Failed to open recording", str(exc))
        if paths:
            self._last_dir = str(Path(paths[0]).parent)
        return True

    def open_recording(self, path: str | Path) -> bool:
        try:
            self.session.load_recording_from_path(path)
        except RecordingMismatchError as exc:
            QtWidgets.QMessageBox.warning(self, "Wrong recording", str(exc))
            return False
        except (FormatError, OSError) as exc:
            LOG.warning("Failed to open recording %s: %s", path, exc)
            QtWidgets.QMessageBox.critical(self, "Failed to open recording", str(exc))
            return False
        return True

    def _prompt_open_project(self):
        paths, _ = QtWidgets.QFileDialog.getOpenFileNames(
            self,
            "Open project",
            self._last_dir,
            PROJECT_FILTER,
        )
        if paths:
            self.open_project(paths)

    def _recording_port(self, expected: str) -> Optional[tuple[str, bytes]]:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(
            self,
            f"Select {expected}",
            self._last_dir,
            RECORDING_FILTER,
        )
        if not path:
            return None
        chosen = Path(path)
        self._last_dir = str(chosen.parent)
        return chosen.name, chosen.read_bytes()

    def _prompt_load_recording(self):
        if self.session.project is None or not self.session.project.edf_file:
            QtWidgets.QMessageBox.information(
                self, "Load recording", "Open a project that names a recording first."
            )
            return
        while True:
            try:
                self.session.request_recording(self._recording_port)
            except RecordingMismatchError as exc:
                QtWidgets.QMessageBox.warning(self, "Wrong recording", str(exc))
                continue
            except (FormatError, OSError) as exc:
                LOG.warning("Failed to load recording: %s", exc)
                QtWidgets.QMessageBox.critical(self, "Failed to open recording", str(exc))
            return

    def _prompt_save_project(self):
        project = self.session.project
        if project is None:
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self,
            "Save project",
            str(Path(self._last_dir) / project.default_file_name()),
            f"Project (*{PROJECT_SUFFIX})",
        )
        if not path:
            return
        try:
            out = self.session.save_project(path)
        except (ProjectError, OSError) as exc:
            LOG.warning("Failed to save project: %s", exc)
            QtWidgets.QMessageBox.critical(self, "Failed to save project", str(exc))
            return
        self.statusBar().showMessage(f"Saved {out}", 4000)

    # ------------------------------------------------------------------ lifecycle
    def _write_persistent_state(self) -> None:
        try:
            self._config.save()
        except OSError as exc:
            LOG.warning("Could not write config: %s", exc)

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:
        self.session.pause()
        self.session.remove_listener(self._schedule_redraw)
        self._write_persistent_state()
        super().closeEvent(event)

# core/session.py
"""Single owner of the viewer's mutable state.

Every change goes through a named transition (load project, load recording,
seek, zoom, playback, visibility). Each transition notifies listeners
synchronously so the views can redraw from the new state; there is no
batching, and the last write to the playhead wins.
"""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from core import project as project_io
from core.colors import LabelColorMap, build_label_color_map
from core.edf_decoder import COMPACT_LAYOUT, HeaderLayout, Recording, decode
from core.edf_loader import load_recording
from core.overlay import OverlayRect, OverviewSegment, overview_strips, viewport_rects
from core.playback import Clock, PlaybackClock, Scheduler
from core.project import Project, Track
from core.render import SignalScene, build_signal_scene, channel_band
from core.timeline import TimelineSync
from core.viewport import ViewportController, ViewportState, ZoomLimits

LOG = logging.getLogger(__name__)

Listener = Callable[[], None]
# Given the expected file name, return (chosen file name, bytes) or None if cancelled.
FilePort = Callable[[str], Optional[Tuple[str, bytes]]]


class RecordingMismatchError(ValueError):
    """Raised when the chosen recording is not the one the project names."""


class ViewerSession:
    def __init__(
        self,
        scheduler: Scheduler,
        *,
        clock: Clock = time.monotonic,
        limits: ZoomLimits | None = None,
        px_per_second: float | None = None,
        y_scale: float = 1.0,
        layout: str | HeaderLayout = COMPACT_LAYOUT,
        backend: str = "native",
        default_opacity: float = project_io.DEFAULT_TRACK_OPACITY,
    ) -> None:
        base = ViewportState(y_scale=y_scale)
        if px_per_second is not None:
            base = replace(base, px_per_second=px_per_second)
        self._viewport = ViewportController(base, limits=limits)
        self._layout = layout
        self._backend = backend
        self._default_opacity = default_opacity
        self._listeners: List[Listener] = []
        self._pending_time = 0.0

        self.project: Project | None = None
        self.recording: Recording | None = None
        self.label_colors: LabelColorMap = {}
        self.awaiting_file: str | None = None
        self._signal_visible: dict[str, bool] = {}
        self._track_visible: List[bool] = []

        self.playback = PlaybackClock(
            scheduler,
            advance=self._advance_playhead,
            redraw=self._notify,
            clock=clock,
        )
        self.timeline = TimelineSync(
            seek=self.seek,
            current_time=lambda: self._viewport.state.current_time_s,
            total_duration=self.total_duration,
        )

    # ----- observation -------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    @property
    def state(self) -> ViewportState:
        return self._viewport.state

    @property
    def limits(self) -> ZoomLimits:
        return self._viewport.limits

    def total_duration(self) -> float | None:
        return self.recording.duration_s if self.recording is not None else None

    # ----- project / recording ----------------------------------------------

    def load_project(self, project: Project) -> None:
        self.playback.stop()
        self.project = project
        self.label_colors = build_label_color_map(project.annotations)
        self._signal_visible = {s.signal_name.strip(): s.visible for s in project.signals}
        self._track_visible = [t.visible for t in project.annotations]
        self.recording = None
        self.awaiting_file = project.edf_file
        self._pending_time = max(0.0, project.current_time)
        self._viewport.set_total_duration(0.0)
        LOG.info(
            "Project %r loaded; waiting for recording %r",
            project.project_name,
            self.awaiting_file,
        )
        self._notify()

    def load_project_from_selection(self, paths: Iterable[str | Path]) -> Project:
        """Load the project document found in a multi-file selection.

        When the selection also holds the recording the project names, it is
        loaded straight away. Without a project document nothing changes.
        """
        selection = [Path(p) for p in paths]
        path = project_io.find_project_file(selection)
        project = project_io.load_project(path, default_opacity=self._default_opacity)
        self.load_project(project)
        if self.awaiting_file:
            for candidate in selection:
                if candidate.name == Path(self.awaiting_file).name:
                    self.load_recording_from_path(candidate)
                    break
        return project

    def _check_file_name(self, file_name: str) -> None:
        expected = self.project.edf_file if self.project is not None else None
        name = Path(file_name).name
        if expected is None:
            raise RecordingMismatchError("No project is loaded, or it names no recording")
        if name != Path(expected).name:
            LOG.warning("Rejected recording %r; project expects %r", name, expected)
            raise RecordingMismatchError(f"Please select {expected}")

    def load_recording(self, file_name: str, buffer: bytes | bytearray | memoryview) -> Recording:
        """Decode ``buffer`` as the project's recording.

        The file name must match the project's first signal entry. A mismatch
        or a decode failure leaves every piece of state untouched.
        """
        self._check_file_name(file_name)
        recording = decode(buffer, layout=self._layout)
        self._accept_recording(recording, file_name)
        return recording

    def load_recording_from_path(self, path: str | Path) -> Recording:
        self._check_file_name(str(path))
        recording = load_recording(path, backend=self._backend, layout=self._layout)
        self._accept_recording(recording, str(path))
        return recording

    def request_recording(self, port: FilePort) -> bool:
        """Ask ``port`` for the expected recording. Returns False on cancel."""
        expected = self.awaiting_file or (self.project.edf_file if self.project else None)
        if expected is None:
            raise RecordingMismatchError("No project is loaded, or it names no recording")
        answer = port(expected)
        if answer is None:
            return False
        name, data = answer
        self.load_recording(name, data)
        return True

    def _accept_recording(self, recording: Recording, source: str) -> None:
        self.playback.stop()
        self.recording = recording
        self.awaiting_file = None
        self._viewport.set_total_duration(recording.duration_s)
        self._viewport.seek(self._pending_time)
        LOG.info(
            "Recording %s loaded: %d channels, %.1f s",
            source,
            recording.channel_count,
            recording.duration_s,
        )
        self._notify()

    # ----- viewport transitions ------------------------------------------------

    def seek(self, t: float) -> float:
        value = self._viewport.seek(t)
        self._pending_time = value
        self._notify()
        return value

    def advance(self, delta_s: float) -> float:
        value = self._viewport.advance(delta_s)
        self._pending_time = value
        self._notify()
        return value

    def set_zoom(self, px_per_second: float) -> float:
        value = self._viewport.set_zoom(px_per_second)
        self._notify()
        return value

    def zoom_by(self, factor: float) -> float:
        value = self._viewport.zoom_by(factor)
        self._notify()
        return value

    def set_canvas_size(self, width_px: float, height_px: float) -> None:
        self._viewport.set_canvas_size(width_px, height_px)
        self._notify()

    def set_y_scale(self, y_scale: float) -> None:
        self._viewport.set_y_scale(y_scale)
        self._notify()

    # ----- playback ------------------------------------------------------------

    def _advance_playhead(self, delta_s: float) -> None:
        self._pending_time = self._viewport.advance(delta_s)
        if self._viewport.at_end:
            self.playback.stop()

    def play(self) -> bool:
        if self.recording is None or self.recording.duration_s <= 0:
            LOG.debug("Ignoring play request: no recording loaded")
            return False
        if self._viewport.at_end:
            self._viewport.seek(0.0)
        self.playback.start()
        self._notify()
        return True

    def pause(self) -> None:
        self.playback.stop()
        self._notify()

    def toggle_playback(self) -> bool:
        if self.playback.running:
            self.pause()
            return False
        return self.play()

    # ----- visibility ------------------------------------------------------------

    def set_signal_visible(self, signal_name: str, visible: bool) -> None:
        self._signal_visible[signal_name.strip()] = bool(visible)
        self._notify()

    def set_track_visible(self, index: int, visible: bool) -> None:
        if not 0 <= index < len(self._track_visible):
            raise IndexError("track index out of range")
        self._track_visible[index] = bool(visible)
        self._notify()

    def signal_visible(self, signal_name: str) -> bool:
        return self._signal_visible.get(signal_name.strip(), True)

    def visible_channels(self) -> List[int]:
        if self.recording is None:
            return []
        return [
            idx
            for idx, ch in enumerate(self.recording.channels)
            if self._signal_visible.get(ch.label, True)
        ]

    def visible_tracks(self) -> List[int]:
        return [idx for idx, visible in enumerate(self._track_visible) if visible]

    def track_visible(self, index: int) -> bool:
        return self._track_visible[index]

    def tracks(self) -> List[Track]:
        """Project tracks with the session's visibility applied."""
        if self.project is None:
            return []
        return [
            replace(track, visible=self._track_visible[idx])
            for idx, track in enumerate(self.project.annotations)
        ]

    # ----- derived views ------------------------------------------------------------

    def signal_scene(self) -> SignalScene:
        return build_signal_scene(self.recording, self.state, self.visible_channels())

    def overlay_rects(self) -> List[OverlayRect]:
        if self.recording is None:
            return []
        return viewport_rects(self.tracks(), self.label_colors, self.state)

    def overview(self) -> dict[int, List[OverviewSegment]]:
        total = self.total_duration() or 0.0
        return overview_strips(self.tracks(), self.label_colors, total)

    def gutter_labels(self) -> List[Tuple[str, float]]:
        """(text, mid_y) per visible channel, in drawing order."""
        if self.recording is None:
            return []
        visible = self.visible_channels()
        out = []
        for slot, idx in enumerate(visible):
            channel = self.recording.channels[idx]
            mid_y, _ = channel_band(slot, len(visible), self.state.canvas_height_px)
            unit = channel.physical_dimension
            out.append((f"{channel.label} [{unit}]" if unit else channel.label, mid_y))
        return out

    def placeholder_text(self) -> str | None:
        if self.recording is not None:
            return None
        if self.awaiting_file:
            return f"Click to load {self.awaiting_file}"
        return "No signal loaded"

    # ----- saving ----------------------------------------------------------------------

    def snapshot_for_save(self) -> Project:
        if self.project is None:
            raise project_io.ProjectError("No project is loaded")
        if self.recording is not None:
            self.project.current_time = self.state.current_time_s
        else:
            self.project.current_time = self._pending_time
        return self.project

    def save_project(self, path: str | Path) -> Path:
        return project_io.save_project(self.snapshot_for_save(), path)

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from core import edf_writer
from core.edf_decoder import FormatError
from core.edf_writer import ChannelSpec
from core.project import ProjectError, ProjectMissingError, project_from_dict
from core.session import RecordingMismatchError, ViewerSession
from core.viewport import ZoomLimits


PROJECT = {
    "projectName": "night1",
    "currentTime": 4.0,
    "signals": [
        {"edfFile": "night1.edf", "signalName": "Fpz-Cz", "visible": True},
        {"edfFile": "night1.edf", "signalName": "EOG", "visible": False},
    ],
    "annotations": [
        {"name": "Stages", "events": [{"label": "Wake", "startSec": 0, "endSec": 6}]},
        {"name": "Arousals", "visible": False, "events": [{"label": "A", "startSec": 2, "endSec": 3}]},
    ],
}


class FakeScheduler:
    def __init__(self):
        self.pending = {}
        self._next = 0

    def schedule(self, callback):
        self._next += 1
        self.pending[self._next] = callback
        return self._next

    def cancel(self, handle):
        self.pending.pop(handle, None)

    def fire(self):
        _, callback = self.pending.popitem()
        callback()


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _recording_bytes(seconds: int = 10) -> bytes:
    rate = 10
    t = np.arange(seconds * rate)
    specs = [
        ChannelSpec("Fpz-Cz", (np.sin(t / 3.0) * 80).astype(np.int16), rate, -100.0, 100.0, -100, 100),
        ChannelSpec("EOG", (np.cos(t / 5.0) * 40).astype(np.int16), rate, -100.0, 100.0, -100, 100),
    ]
    return edf_writer.encode(specs, record_duration_s=1.0)


@pytest.fixture
def rig():
    scheduler = FakeScheduler()
    clock = FakeClock()
    session = ViewerSession(scheduler, clock=clock, limits=ZoomLimits(1.0, 2000.0))
    session.set_canvas_size(380, 200)
    calls = []
    session.add_listener(lambda: calls.append(session.state.current_time_s))
    return session, scheduler, clock, calls


@pytest.fixture
def loaded(rig):
    session, scheduler, clock, calls = rig
    session.load_project(project_from_dict(PROJECT))
    session.load_recording("night1.edf", _recording_bytes())
    calls.clear()
    return rig


def test_project_load_waits_for_recording(rig):
    session, _, _, calls = rig
    session.load_project(project_from_dict(PROJECT))
    assert session.awaiting_file == "night1.edf"
    assert session.recording is None
    assert session.placeholder_text() == "Click to load night1.edf"
    assert not session.timeline.enabled
    assert calls


def test_placeholder_without_project(rig):
    session, _, _, _ = rig
    assert session.placeholder_text() == "No signal loaded"
    assert session.signal_scene().traces == ()


def test_mismatched_file_name_changes_nothing(rig):
    session, _, _, calls = rig
    session.load_project(project_from_dict(PROJECT))
    calls.clear()
    with pytest.raises(RecordingMismatchError, match="night1.edf"):
        session.load_recording("other.edf", _recording_bytes())
    assert session.recording is None
    assert session.awaiting_file == "night1.edf"
    assert calls == []


def test_recording_without_project_is_rejected(rig):
    session, _, _, _ = rig
    with pytest.raises(RecordingMismatchError):
        session.load_recording("night1.edf", _recording_bytes())


def test_decode_failure_changes_nothing(rig):
    session, _, _, calls = rig
    session.load_project(project_from_dict(PROJECT))
    calls.clear()
    with pytest.raises(FormatError):
        session.load_recording("night1.edf", b"garbage")
    assert session.recording is None
    assert session.awaiting_file == "night1.edf"
    assert calls == []


def test_recording_load_restores_playhead(loaded):
    session, _, _, _ = loaded
    assert session.recording is not None
    assert session.awaiting_file is None
    assert session.placeholder_text() is None
    assert session.state.current_time_s == 4.0
    assert session.total_duration() == 10.0
    assert session.timeline.position() == pytest.approx(0.4)


def test_saved_time_beyond_recording_is_clamped(rig):
    session, _, _, _ = rig
    session.load_project(project_from_dict({**PROJECT, "currentTime": 99.0}))
    session.load_recording("night1.edf", _recording_bytes())
    assert session.state.current_time_s == 10.0


def test_request_recording_port(rig):
    session, _, _, _ = rig
    session.load_project(project_from_dict(PROJECT))
    asked = []

    def cancel(expected):
        asked.append(expected)
        return None

    assert session.request_recording(cancel) is False
    assert asked == ["night1.edf"]
    assert session.recording is None

    with pytest.raises(RecordingMismatchError):
        session.request_recording(lambda expected: ("wrong.edf", _recording_bytes()))

    assert session.request_recording(lambda expected: (expected, _recording_bytes())) is True
    assert session.recording is not None


def test_selection_without_project_keeps_state(loaded, tmp_path: Path):
    session, _, _, calls = loaded
    before = session.project
    with pytest.raises(ProjectMissingError):
        session.load_project_from_selection([tmp_path / "night1.edf"])
    assert session.project is before
    assert session.recording is not None
    assert calls == []


def test_selection_loads_project_and_matching_recording(rig, tmp_path: Path):
    session, _, _, _ = rig
    (tmp_path / "night1.veembproj.json").write_text(json.dumps(PROJECT))
    (tmp_path / "night1.edf").write_bytes(_recording_bytes())
    project = session.load_project_from_selection(
        [tmp_path / "night1.edf", tmp_path / "night1.veembproj.json"]
    )
    assert project.project_name == "night1"
    assert session.recording is not None
    assert session.state.current_time_s == 4.0


def test_selection_with_project_only_waits(rig, tmp_path: Path):
    session, _, _, _ = rig
    (tmp_path / "night1.veembproj.json").write_text(json.dumps(PROJECT))
    session.load_project_from_selection([tmp_path / "night1.veembproj.json"])
    assert session.awaiting_file == "night1.edf"


def test_seek_clamps_and_notifies(loaded):
    session, _, _, calls = loaded
    assert session.seek(-3.0) == 0.0
    assert session.seek(50.0) == 10.0
    session.timeline.on_scrub(0.5)
    assert session.state.current_time_s == 5.0
    assert calls == [0.0, 10.0, 5.0]


def test_zoom_and_y_scale(loaded):
    session, _, _, _ = loaded
    assert session.set_zoom(5000.0) == 2000.0
    assert session.zoom_by(0.5) == 1000.0
    session.set_y_scale(3.0)
    assert session.state.y_scale == 3.0


def test_playback_advances_and_stops_at_end(loaded):
    session, scheduler, clock, _ = loaded
    assert session.play() is True
    assert session.playback.running
    clock.now += 2.5
    scheduler.fire()
    assert session.state.current_time_s == pytest.approx(6.5)
    clock.now += 10.0
    scheduler.fire()
    assert session.state.current_time_s == 10.0
    assert not session.playback.running
    assert scheduler.pending == {}


def test_play_from_end_restarts(loaded):
    session, _, _, _ = loaded
    session.seek(10.0)
    assert session.play() is True
    assert session.state.current_time_s == 0.0


def test_play_needs_recording(rig):
    session, scheduler, _, _ = rig
    assert session.play() is False
    assert scheduler.pending == {}


def test_pause_and_toggle(loaded):
    session, scheduler, _, _ = loaded
    assert session.toggle_playback() is True
    assert session.toggle_playback() is False
    assert scheduler.pending == {}


def test_loading_a_project_stops_playback(loaded):
    session, scheduler, _, _ = loaded
    session.play()
    session.load_project(project_from_dict(PROJECT))
    assert not session.playback.running
    assert session.recording is None


def test_signal_visibility(loaded):
    session, _, _, _ = loaded
    assert session.visible_channels() == [0]
    assert [t.label for t in session.signal_scene().traces] == ["Fpz-Cz"]
    assert session.gutter_labels() == [("Fpz-Cz", 100.0)]

    session.set_signal_visible("EOG", True)
    assert session.visible_channels() == [0, 1]
    assert [mid for _, mid in session.gutter_labels()] == [50.0, 150.0]

    session.set_signal_visible("Fpz-Cz", False)
    assert session.visible_channels() == [1]


def test_channels_unknown_to_project_stay_visible(rig):
    session, _, _, _ = rig
    raw = {**PROJECT, "signals": [{"edfFile": "night1.edf", "signalName": "Other"}]}
    session.load_project(project_from_dict(raw))
    session.load_recording("night1.edf", _recording_bytes())
    assert session.visible_channels() == [0, 1]


def test_track_visibility(loaded):
    session, _, _, _ = loaded
    session.seek(0.0)
    assert session.visible_tracks() == [0]
    assert [r.label for r in session.overlay_rects()] == ["Wake"]
    assert set(session.overview()) == {0}

    session.set_track_visible(1, True)
    assert sorted(r.label for r in session.overlay_rects()) == ["A", "Wake"]
    assert set(session.overview()) == {0, 1}
    # the project document itself is not rewritten
    assert session.project.annotations[1].visible is False

    with pytest.raises(IndexError):
        session.set_track_visible(7, True)


def test_snapshot_records_playhead(loaded, tmp_path: Path):
    session, _, _, _ = loaded
    session.seek(7.5)
    assert session.snapshot_for_save().current_time == 7.5
    out = session.save_project(tmp_path)
    assert out.name == "night1.veembproj.json"
    saved = json.loads(out.read_text())
    assert saved["currentTime"] == 7.5
    assert saved["signals"][1]["visible"] is False


def test_snapshot_before_recording_keeps_saved_time(rig):
    session, _, _, _ = rig
    session.load_project(project_from_dict(PROJECT))
    assert session.snapshot_for_save().current_time == 4.0


def test_snapshot_without_project(rig):
    session, _, _, _ = rig
    with pytest.raises(ProjectError):
        session.snapshot_for_save()


def test_remove_listener(rig):
    session, _, _, calls = rig
    session.remove_listener(calls.append)  # unknown listener is ignored
    listener_calls = []
    listener = lambda: listener_calls.append(1)  # noqa: E731
    session.add_listener(listener)
    session.seek(0.0)
    session.remove_listener(listener)
    session.seek(0.0)
    assert listener_calls == [1]


def test_standard_layout_labels_carry_units():
    session = ViewerSession(FakeScheduler(), clock=FakeClock(), layout="standard")
    session.set_canvas_size(100, 100)
    session.load_project(project_from_dict(PROJECT))
    data = edf_writer.encode(
        [ChannelSpec("Fpz-Cz", np.zeros(10, dtype=np.int16), 10, physical_dimension="uV")],
        layout="standard",
    )
    session.load_recording("night1.edf", data)
    assert session.gutter_labels() == [("Fpz-Cz [uV]", 50.0)]


def test_scrub_while_playing_continues_from_new_playhead(loaded):
    session, scheduler, clock, _ = loaded
    assert session.play() is True
    clock.now += 1.0
    scheduler.fire()
    assert session.state.current_time_s == pytest.approx(5.0)

    session.timeline.on_scrub(0.2)
    assert session.state.current_time_s == pytest.approx(2.0)
    clock.now += 0.5
    scheduler.fire()

    assert session.state.current_time_s == pytest.approx(2.5)
    assert session.playback.running

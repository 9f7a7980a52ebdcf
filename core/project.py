# core/project.py
"""Project documents: which recording to show and which annotation tracks to overlay.

Projects are JSON files named ``<projectName>.veembproj.json``. Keys are
camelCase on disk; keys we do not model are kept and written back on save.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

LOG = logging.getLogger(__name__)

PROJECT_SUFFIX = ".veembproj.json"
DEFAULT_TRACK_OPACITY = 0.2


class ProjectError(ValueError):
    """Raised when a project document is malformed."""


class ProjectMissingError(ProjectError):
    """Raised when a file selection holds no project document."""


@dataclass
class Event:
    label: str
    start_sec: float
    end_sec: float

    @property
    def duration(self) -> float:
        return self.end_sec - self.start_sec


@dataclass
class Track:
    name: str
    visible: bool = True
    opacity: float = DEFAULT_TRACK_OPACITY
    events: List[Event] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SignalRef:
    edf_file: str
    signal_name: str = ""
    visible: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Project:
    project_name: str = "untitled"
    current_time: float = 0.0
    signals: List[SignalRef] = field(default_factory=list)
    annotations: List[Track] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def edf_file(self) -> Optional[str]:
        """Recording the project expects; only the first signal entry counts."""
        if not self.signals:
            return None
        return self.signals[0].edf_file or None

    def default_file_name(self) -> str:
        return f"{self.project_name}{PROJECT_SUFFIX}"


# ----- parsing -------------------------------------------------------------

def _number(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise ProjectError(f"{what}: expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ProjectError(f"{what}: expected a number, got {value!r}") from None


def _rest(raw: Dict[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    skip = set(known)
    return {k: v for k, v in raw.items() if k not in skip}


def _event_from_dict(raw: Any, where: str) -> Event:
    if not isinstance(raw, dict):
        raise ProjectError(f"{where}: expected an object")
    start = _number(raw.get("startSec"), f"{where}.startSec")
    end = _number(raw.get("endSec", start), f"{where}.endSec")
    if end < start:
        LOG.warning("%s ends before it starts (%.3f > %.3f); swapping", where, start, end)
        start, end = end, start
    return Event(str(raw.get("label", "")), start, end)


def _track_from_dict(raw: Any, index: int, default_opacity: float) -> Track:
    where = f"annotations[{index}]"
    if not isinstance(raw, dict):
        raise ProjectError(f"{where}: expected an object")
    events_raw = raw.get("events") or []
    if not isinstance(events_raw, list):
        raise ProjectError(f"{where}.events: expected a list")
    opacity = raw.get("opacity")
    return Track(
        name=str(raw.get("name", f"Track {index + 1}")),
        visible=bool(raw.get("visible", True)),
        opacity=default_opacity if opacity is None else _number(opacity, f"{where}.opacity"),
        events=[_event_from_dict(ev, f"{where}.events[{i}]") for i, ev in enumerate(events_raw)],
        extra=_rest(raw, ("name", "visible", "opacity", "events")),
    )


def _signal_from_dict(raw: Any, index: int) -> SignalRef:
    if not isinstance(raw, dict):
        raise ProjectError(f"signals[{index}]: expected an object")
    return SignalRef(
        edf_file=str(raw.get("edfFile", "")),
        signal_name=str(raw.get("signalName", "")),
        visible=bool(raw.get("visible", True)),
        extra=_rest(raw, ("edfFile", "signalName", "visible")),
    )


def project_from_dict(raw: Any, *, default_opacity: float = DEFAULT_TRACK_OPACITY) -> Project:
    if not isinstance(raw, dict):
        raise ProjectError("project document must be a JSON object")
    signals = raw.get("signals") or []
    tracks = raw.get("annotations") or []
    if not isinstance(signals, list):
        raise ProjectError("signals: expected a list")
    if not isinstance(tracks, list):
        raise ProjectError("annotations: expected a list")
    return Project(
        project_name=str(raw.get("projectName", "untitled")),
        current_time=_number(raw.get("currentTime", 0.0), "currentTime"),
        signals=[_signal_from_dict(s, i) for i, s in enumerate(signals)],
        annotations=[_track_from_dict(t, i, default_opacity) for i, t in enumerate(tracks)],
        extra=_rest(raw, ("projectName", "currentTime", "signals", "annotations")),
    )


def project_to_dict(project: Project) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(project.extra)
    out["projectName"] = project.project_name
    out["currentTime"] = project.current_time
    out["signals"] = [
        {**s.extra, "edfFile": s.edf_file, "signalName": s.signal_name, "visible": s.visible}
        for s in project.signals
    ]
    out["annotations"] = [
        {
            **t.extra,
            "name": t.name,
            "visible": t.visible,
            "opacity": t.opacity,
            "events": [
                {"label": ev.label, "startSec": ev.start_sec, "endSec": ev.end_sec}
                for ev in t.events
            ],
        }
        for t in project.annotations
    ]
    return out


def loads(text: str, *, default_opacity: float = DEFAULT_TRACK_OPACITY) -> Project:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProjectError(f"invalid JSON: {exc}") from exc
    return project_from_dict(raw, default_opacity=default_opacity)


def dumps(project: Project) -> str:
    return json.dumps(project_to_dict(project), indent=2, ensure_ascii=False)


def load_project(path: str | Path, *, default_opacity: float = DEFAULT_TRACK_OPACITY) -> Project:
    project = loads(Path(path).read_text(encoding="utf-8"), default_opacity=default_opacity)
    LOG.info(
        "Loaded project %r (%d signals, %d tracks) from %s",
        project.project_name,
        len(project.signals),
        len(project.annotations),
        path,
    )
    return project


def save_project(project: Project, path: str | Path) -> Path:
    out = Path(path)
    if out.is_dir():
        out = out / project.default_file_name()
    out.write_text(dumps(project), encoding="utf-8")
    LOG.info("Saved project %r to %s", project.project_name, out)
    return out


def find_project_file(paths: Iterable[str | Path]) -> Path:
    """Pick the project document out of a multi-file selection."""
    for p in paths:
        path = Path(p)
        if path.name.endswith(PROJECT_SUFFIX):
            return path
    raise ProjectMissingError("No project file found.")

"""Annotation overlay geometry: in-viewport rectangles and the overview strip."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Sequence

from core.colors import color_for
from core.project import Track
from core.viewport import ViewportState, time_to_x


@dataclass(frozen=True)
class OverlayRect:
    track_index: int
    label: str
    x0: float
    x1: float
    height: float
    color: str
    opacity: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0


@dataclass(frozen=True)
class OverviewSegment:
    track_index: int
    label: str
    left_pct: float
    right_pct: float
    color: str


def viewport_rects(
    tracks: Sequence[Track],
    color_map: Mapping[int, Mapping[str, str]],
    state: ViewportState,
) -> List[OverlayRect]:
    """Rectangles for events of visible tracks that touch ``[current, end_time)``.

    Rectangles span the full canvas height and are not clipped to the canvas
    width; the drawing surface clips them.
    """
    t0 = state.current_time_s
    t1 = state.end_time_s
    out: List[OverlayRect] = []
    for track_idx, track in enumerate(tracks):
        if not track.visible:
            continue
        for ev in track.events:
            if ev.end_sec < t0 or ev.start_sec >= t1:
                continue
            out.append(
                OverlayRect(
                    track_index=track_idx,
                    label=ev.label,
                    x0=time_to_x(ev.start_sec, state),
                    x1=time_to_x(ev.end_sec, state),
                    height=state.canvas_height_px,
                    color=color_for(color_map, track_idx, ev.label),
                    opacity=track.opacity,
                )
            )
    return out


def overview_segments(
    track: Track,
    track_index: int,
    color_map: Mapping[int, Mapping[str, str]],
    total_duration: float,
) -> List[OverviewSegment]:
    """Every event of ``track`` as a percentage span of the whole recording."""
    if total_duration <= 0:
        return []
    out: List[OverviewSegment] = []
    for ev in track.events:
        left = ev.start_sec / total_duration * 100.0
        right = ev.end_sec / total_duration * 100.0
        if right < 0.0 or left > 100.0:
            continue
        out.append(
            OverviewSegment(
                track_index=track_index,
                label=ev.label,
                left_pct=max(0.0, min(100.0, left)),
                right_pct=max(0.0, min(100.0, right)),
                color=color_for(color_map, track_index, ev.label),
            )
        )
    return out


def overview_strips(
    tracks: Sequence[Track],
    color_map: Mapping[int, Mapping[str, str]],
    total_duration: float,
) -> dict[int, List[OverviewSegment]]:
    """Segments for each visible track, keyed by track index."""
    return {
        idx: overview_segments(track, idx, color_map, total_duration)
        for idx, track in enumerate(tracks)
        if track.visible
    }

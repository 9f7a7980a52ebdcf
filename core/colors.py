"""Deterministic per-label colors for annotation tracks."""
from __future__ import annotations

import colorsys
from typing import Dict, Iterable, Mapping, Sequence

GOLDEN_ANGLE_DEG = 137.508
SATURATION = 0.70
LIGHTNESS = 0.50
FALLBACK_COLOR = "#888888"

LabelColorMap = Dict[int, Dict[str, str]]


def label_hue(index: int) -> float:
    """Hue in degrees for the ``index``-th distinct label of a track."""
    return (index * GOLDEN_ANGLE_DEG) % 360.0


def label_color(index: int) -> str:
    r, g, b = colorsys.hls_to_rgb(label_hue(index) / 360.0, LIGHTNESS, SATURATION)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))


def assign_label_colors(labels: Iterable[str]) -> Dict[str, str]:
    """Map each distinct label to a color in first-occurrence order."""
    colors: Dict[str, str] = {}
    for label in labels:
        if label not in colors:
            colors[label] = label_color(len(colors))
    return colors


def build_label_color_map(tracks: Sequence[object]) -> LabelColorMap:
    """One independent label→color mapping per track index."""
    return {
        idx: assign_label_colors(ev.label for ev in getattr(track, "events", ()))
        for idx, track in enumerate(tracks)
    }


def color_for(color_map: Mapping[int, Mapping[str, str]], track_index: int, label: str) -> str:
    return color_map.get(track_index, {}).get(label, FALLBACK_COLOR)

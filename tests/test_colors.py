import colorsys

import pytest

from core.colors import (
    FALLBACK_COLOR,
    assign_label_colors,
    build_label_color_map,
    color_for,
    label_color,
    label_hue,
)
from core.project import Event, Track


def _hue_of(hex_color: str) -> float:
    r, g, b = (int(hex_color[i:i + 2], 16) / 255.0 for i in (1, 3, 5))
    h, _, _ = colorsys.rgb_to_hls(r, g, b)
    return h * 360.0


def test_hues_follow_golden_angle():
    assert label_hue(0) == pytest.approx(0.0)
    assert label_hue(1) == pytest.approx(137.508)
    assert label_hue(2) == pytest.approx(275.016)
    assert label_hue(3) == pytest.approx((3 * 137.508) % 360)


def test_colors_are_hex_and_match_hue():
    color = label_color(1)
    assert color.startswith("#") and len(color) == 7
    assert _hue_of(color) == pytest.approx(137.508, abs=1.0)
    assert label_color(0) == "#d92626"


def test_assignment_uses_first_occurrence_order():
    colors = assign_label_colors(["A", "B", "A", "C", "B"])
    assert list(colors) == ["A", "B", "C"]
    assert colors["A"] == label_color(0)
    assert colors["B"] == label_color(1)
    assert colors["C"] == label_color(2)


def test_tracks_are_independent():
    tracks = [
        Track("stages", events=[Event("Wake", 0, 30), Event("N1", 30, 60)]),
        Track("arousals", events=[Event("N1", 5, 9)]),
    ]
    cmap = build_label_color_map(tracks)
    assert cmap[0]["N1"] == label_color(1)
    assert cmap[1]["N1"] == label_color(0)


def test_unknown_label_falls_back():
    cmap = build_label_color_map([Track("t", events=[Event("A", 0, 1)])])
    assert color_for(cmap, 0, "missing") == FALLBACK_COLOR
    assert color_for(cmap, 5, "A") == FALLBACK_COLOR

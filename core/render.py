"""Canvas geometry for the waveform view.

Everything here is pure: it turns a :class:`~core.viewport.ViewportState` and
decoded channels into pixel coordinates. Drawing happens in ``ui``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from core.edf_decoder import Channel, Recording
from core.viewport import ViewportState, channel_sample_range, time_to_x


@dataclass(frozen=True)
class GridLine:
    second: int
    x: float

    @property
    def label(self) -> str:
        return f"{self.second}s"


@dataclass(frozen=True, eq=False)
class ChannelTrace:
    index: int
    label: str
    mid_y: float
    amplitude: float
    x: np.ndarray
    y: np.ndarray


@dataclass(frozen=True)
class SignalScene:
    width: float
    height: float
    gridlines: Tuple[GridLine, ...] = ()
    traces: Tuple[ChannelTrace, ...] = field(default_factory=tuple)


def gridlines(state: ViewportState) -> List[GridLine]:
    """One line per whole second from ``floor(current)`` up to ``end_time``."""
    first = int(math.floor(state.current_time_s))
    last = int(math.ceil(state.end_time_s))
    return [GridLine(sec, time_to_x(sec, state)) for sec in range(first, last)]


def channel_band(slot: int, count: int, height: float) -> Tuple[float, float]:
    """(mid_y, amplitude) of the ``slot``-th of ``count`` equal horizontal bands."""
    if count <= 0:
        return height / 2.0, 0.0
    band = height / count
    return band * (slot + 0.5), band / 4.0


def channel_polyline(
    channel: Channel,
    state: ViewportState,
    mid_y: float,
    amplitude: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Pixel coordinates of the visible part of ``channel``.

    Amplitude is normalised by the channel's own precomputed peak, so only the
    visible slice of samples is touched.
    """
    start, end = channel_sample_range(state, channel)
    if end <= start:
        empty = np.zeros(0, dtype=np.float64)
        return empty, empty.copy()
    idx = np.arange(start, end, dtype=np.float64)
    x = (idx / channel.sample_rate - state.current_time_s) * state.px_per_second
    peak = channel.max_abs_value if channel.max_abs_value > 0 else 1.0
    values = channel.samples[start:end].astype(np.float64)
    y = mid_y - values * (amplitude * state.y_scale / peak)
    return x, y


def build_signal_scene(
    recording: Recording | None,
    state: ViewportState,
    visible: Sequence[int] | None = None,
) -> SignalScene:
    """Gridlines plus one trace per visible channel, bands split evenly."""
    lines = tuple(gridlines(state))
    if recording is None:
        return SignalScene(state.canvas_width_px, state.canvas_height_px, lines, ())
    indices = list(range(len(recording.channels))) if visible is None else list(visible)
    traces = []
    for slot, idx in enumerate(indices):
        channel = recording.channels[idx]
        mid_y, amplitude = channel_band(slot, len(indices), state.canvas_height_px)
        x, y = channel_polyline(channel, state, mid_y, amplitude)
        traces.append(ChannelTrace(idx, channel.label, mid_y, amplitude, x, y))
    return SignalScene(state.canvas_width_px, state.canvas_height_px, lines, tuple(traces))

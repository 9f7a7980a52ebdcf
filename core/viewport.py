"""Viewport state and the pure time/pixel/sample mappings built on it."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Tuple

LOG = logging.getLogger(__name__)

DEFAULT_PX_PER_SECOND = 38.0  # roughly 1 cm per second at 96 dpi


@dataclass(frozen=True)
class ZoomLimits:
    px_per_second_min: float = 1.0
    px_per_second_max: float = 2000.0

    def clamp(self, px_per_second: float) -> float:
        return max(self.px_per_second_min, min(self.px_per_second_max, px_per_second))


@dataclass(frozen=True)
class ViewportState:
    current_time_s: float = 0.0
    px_per_second: float = DEFAULT_PX_PER_SECOND
    canvas_width_px: float = 0.0
    canvas_height_px: float = 0.0
    y_scale: float = 1.0

    @property
    def visible_duration_s(self) -> float:
        if self.px_per_second <= 0:
            return 0.0
        return self.canvas_width_px / self.px_per_second

    @property
    def end_time_s(self) -> float:
        return self.current_time_s + self.visible_duration_s


def clamp_time(t: float, total: float) -> float:
    return max(0.0, min(float(t), max(0.0, total)))


def sample_range(state: ViewportState, n_samples: int, rate: float) -> Tuple[int, int]:
    """Return the ``[start, end)`` sample indices visible in ``state``.

    ``start = floor(current * rate)`` and ``end = floor(end_time * rate)``,
    both kept inside ``[0, n_samples]`` with ``end >= start``.
    """
    if rate <= 0 or n_samples <= 0:
        return 0, 0
    start = int(math.floor(state.current_time_s * rate))
    end = int(math.floor(state.end_time_s * rate))
    start = min(max(0, start), n_samples)
    end = max(start, min(n_samples, end))
    return start, end


def channel_sample_range(state: ViewportState, channel) -> Tuple[int, int]:
    return sample_range(state, channel.n_samples, channel.sample_rate)


def time_to_x(t: float, state: ViewportState) -> float:
    return (t - state.current_time_s) * state.px_per_second


def x_to_time(x: float, state: ViewportState) -> float:
    if state.px_per_second <= 0:
        return state.current_time_s
    return state.current_time_s + x / state.px_per_second


class ViewportController:
    """Owns the playhead and zoom. All writes go through named transitions."""

    def __init__(
        self,
        state: ViewportState | None = None,
        *,
        limits: ZoomLimits | None = None,
        total_duration: float = 0.0,
    ) -> None:
        self._limits = limits or ZoomLimits()
        self._total = max(0.0, float(total_duration))
        base = state or ViewportState()
        self._state = replace(
            base,
            px_per_second=self._limits.clamp(base.px_per_second),
            current_time_s=clamp_time(base.current_time_s, self._total),
        )

    @property
    def state(self) -> ViewportState:
        return self._state

    @property
    def limits(self) -> ZoomLimits:
        return self._limits

    @property
    def total_duration(self) -> float:
        return self._total

    @property
    def at_end(self) -> bool:
        return self._state.current_time_s >= self._total

    def set_total_duration(self, total: float) -> None:
        self._total = max(0.0, float(total))
        self.seek(self._state.current_time_s)

    def seek(self, t: float) -> float:
        self._state = replace(self._state, current_time_s=clamp_time(t, self._total))
        return self._state.current_time_s

    def advance(self, delta_s: float) -> float:
        return self.seek(self._state.current_time_s + delta_s)

    def set_zoom(self, px_per_second: float) -> float:
        if px_per_second <= 0:
            raise ValueError("px_per_second must be positive")
        pps = self._limits.clamp(float(px_per_second))
        self._state = replace(self._state, px_per_second=pps)
        LOG.debug("Zoom set to %.2f px/s (%.2f s visible)", pps, self._state.visible_duration_s)
        return pps

    def zoom_by(self, factor: float) -> float:
        if factor <= 0:
            raise ValueError("factor must be positive")
        return self.set_zoom(self._state.px_per_second * factor)

    def set_canvas_size(self, width_px: float, height_px: float) -> None:
        self._state = replace(
            self._state,
            canvas_width_px=max(0.0, float(width_px)),
            canvas_height_px=max(0.0, float(height_px)),
        )

    def set_y_scale(self, y_scale: float) -> None:
        if y_scale <= 0:
            raise ValueError("y_scale must be positive")
        self._state = replace(self._state, y_scale=float(y_scale))

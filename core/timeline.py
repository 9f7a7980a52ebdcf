"""Mapping between the playhead and a normalised scrub-control position."""
from __future__ import annotations

from typing import Callable


def clamp_ratio(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class TimelineSync:
    """Two-way link between playhead seconds and a ``[0, 1]`` scrub position.

    ``total_duration`` and ``current_time`` are read on demand so the control
    always reflects the latest playhead; ``seek`` is the playhead's write path.
    """

    def __init__(
        self,
        *,
        seek: Callable[[float], object],
        current_time: Callable[[], float],
        total_duration: Callable[[], float | None],
    ) -> None:
        self._seek = seek
        self._current_time = current_time
        self._total_duration = total_duration

    @property
    def enabled(self) -> bool:
        total = self._total_duration()
        return total is not None and total > 0

    def on_scrub(self, ratio: float) -> None:
        if not self.enabled:
            return
        self._seek(clamp_ratio(ratio) * float(self._total_duration()))

    def position(self) -> float:
        if not self.enabled:
            return 0.0
        return clamp_ratio(self._current_time() / float(self._total_duration()))

"""Cooperative playback clock.

The clock never sleeps or spins a thread: it asks a :class:`Scheduler` to call
it back once, does one frame of work, and asks again while still running.
Time comes from an injectable ``clock`` so tests can drive it by hand.
"""
from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Hashable, Optional, Protocol

LOG = logging.getLogger(__name__)

Clock = Callable[[], float]


class PlaybackState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class Scheduler(Protocol):
    def schedule(self, callback: Callable[[], None]) -> Hashable:
        """Arrange for ``callback`` to run once, later. Return a handle."""

    def cancel(self, handle: Hashable) -> None:
        """Drop a pending callback if it has not run yet."""


class PlaybackClock:
    """Advances the playhead by the measured wall-clock delta of each frame."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        advance: Callable[[float], None],
        redraw: Callable[[], None],
        clock: Clock = time.monotonic,
    ) -> None:
        self._scheduler = scheduler
        self._advance = advance
        self._redraw = redraw
        self._clock = clock
        self._state = PlaybackState.STOPPED
        self._last_ts: float | None = None
        self._pending: Optional[Hashable] = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is PlaybackState.RUNNING

    def start(self) -> None:
        if self.running:
            return
        self._state = PlaybackState.RUNNING
        self._last_ts = self._clock()
        self._pending = self._scheduler.schedule(self._tick)
        LOG.debug("Playback started")

    def stop(self) -> None:
        if not self.running:
            return
        self._state = PlaybackState.STOPPED
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
        self._last_ts = None
        LOG.debug("Playback stopped")

    def toggle(self) -> bool:
        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def _tick(self) -> None:
        self._pending = None
        if not self.running:
            return
        now = self._clock()
        last = self._last_ts if self._last_ts is not None else now
        self._last_ts = now
        self._advance(now - last)
        self._redraw()
        # advance/redraw may have stopped playback
        if self.running:
            self._pending = self._scheduler.schedule(self._tick)

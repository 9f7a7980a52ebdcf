"""Qt event-loop implementation of the playback scheduler."""

from __future__ import annotations

from typing import Callable

from PySide6 import QtCore


class QtFrameScheduler:
    """Runs one-shot callbacks on the Qt event loop, ``interval_ms`` apart.

    Each :meth:`schedule` call arms a fresh single-shot timer; the timer object
    doubles as the cancellation handle.
    """

    def __init__(self, interval_ms: int = 16, parent: QtCore.QObject | None = None) -> None:
        self._interval_ms = max(1, int(interval_ms))
        self._parent = parent
        self._pending: set[QtCore.QTimer] = set()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def schedule(self, callback: Callable[[], None]) -> QtCore.QTimer:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(self._interval_ms)

        def _fire() -> None:
            self._release(timer)
            callback()

        timer.timeout.connect(_fire)
        self._pending.add(timer)
        timer.start()
        return timer

    def cancel(self, handle: QtCore.QTimer) -> None:
        if handle not in self._pending:
            return
        handle.stop()
        self._release(handle)

    def pending(self) -> int:
        return len(self._pending)

    def _release(self, timer: QtCore.QTimer) -> None:
        self._pending.discard(timer)
        timer.deleteLater()

from __future__ import annotations

from typing import Sequence

from PySide6 import QtCore, QtGui, QtWidgets

from core.overlay import OverviewSegment


class ChannelGutter(QtWidgets.QWidget):
    """Column of channel names aligned with the canvas bands."""

    def __init__(self, parent: QtWidgets.QWidget | None = None, *, width: int = 96) -> None:
        super().__init__(parent)
        self.setFixedWidth(width)
        self.setSizePolicy(QtWidgets.QSizePolicy.Fixed, QtWidgets.QSizePolicy.Expanding)
        self._labels: list[tuple[str, float]] = []
        self._color = QtGui.QColor("#323f4b")

    def labels(self) -> list[tuple[str, float]]:
        return list(self._labels)

    def set_labels(self, labels: Sequence[tuple[str, float]]) -> None:
        labels = list(labels)
        if labels == self._labels:
            return
        self._labels = labels
        self.update()

    def set_text_color(self, color: str) -> None:
        self._color = QtGui.QColor(color)
        self.update()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # pragma: no cover - Qt paint
        painter = QtGui.QPainter(self)
        try:
            painter.setPen(self._color)
            metrics = painter.fontMetrics()
            half = metrics.height() / 2.0
            for text, mid_y in self._labels:
                elided = metrics.elidedText(text, QtCore.Qt.ElideRight, self.width() - 8)
                rect = QtCore.QRectF(0.0, mid_y - half, self.width() - 6.0, 2 * half)
                painter.drawText(rect, QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter, elided)
        finally:
            painter.end()


class OverviewStrip(QtWidgets.QWidget):
    """Whole-recording summary of one annotation track.

    Segments are placed by percentage of the recording; the current viewport
    is drawn as an outlined window. Clicking emits the clicked position as a
    ratio of the strip width.
    """

    scrubbed = QtCore.Signal(float)

    def __init__(
        self,
        name: str,
        parent: QtWidgets.QWidget | None = None,
        *,
        height: int = 18,
    ) -> None:
        super().__init__(parent)
        self.name = name
        self.setFixedHeight(max(4, height))
        self.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Fixed)
        self.setToolTip(name)
        self._segments: list[OverviewSegment] = []
        self._window: tuple[float, float] | None = None
        self._background = QtGui.QColor("#e4e7eb")
        self._marker = QtGui.QColor("#2f6fdf")

    def segments(self) -> list[OverviewSegment]:
        return list(self._segments)

    def set_segments(self, segments: Sequence[OverviewSegment]) -> None:
        self._segments = list(segments)
        self.update()

    def set_window(self, start_ratio: float | None, end_ratio: float | None = None) -> None:
        if start_ratio is None:
            self._window = None
        else:
            end = start_ratio if end_ratio is None else end_ratio
            self._window = (max(0.0, min(1.0, start_ratio)), max(0.0, min(1.0, end)))
        self.update()

    def set_colors(self, *, background: str, marker: str) -> None:
        self._background = QtGui.QColor(background)
        self._marker = QtGui.QColor(marker)
        self.update()

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:
        if event.button() == QtCore.Qt.LeftButton and self.width() > 0:
            self.scrubbed.emit(max(0.0, min(1.0, event.position().x() / self.width())))
            event.accept()
            return
        super().mousePressEvent(event)

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # pragma: no cover - Qt paint
        painter = QtGui.QPainter(self)
        try:
            width = float(self.width())
            height = float(self.height())
            painter.fillRect(self.rect(), self._background)
            painter.setPen(QtCore.Qt.NoPen)
            for seg in self._segments:
                left = seg.left_pct / 100.0 * width
                span = max(1.0, (seg.right_pct - seg.left_pct) / 100.0 * width)
                painter.fillRect(QtCore.QRectF(left, 0.0, span, height), QtGui.QColor(seg.color))
            if self._window is not None:
                start, end = self._window
                pen = QtGui.QPen(self._marker)
                pen.setWidth(2)
                painter.setPen(pen)
                painter.setBrush(QtCore.Qt.NoBrush)
                x0 = start * width
                painter.drawRect(QtCore.QRectF(x0, 1.0, max(2.0, (end - start) * width), height - 2.0))
        finally:
            painter.end()

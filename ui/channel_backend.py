"""Shared signal canvas backend protocol and pyqtgraph implementation."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

import numpy as np
import pyqtgraph as pg
from PySide6 import QtCore, QtGui, QtWidgets

from core.decimate import min_max_bins
from core.overlay import OverlayRect
from core.render import SignalScene


class ChannelCanvasBackend(Protocol):
    """Contract implemented by concrete signal rendering backends.

    Backends draw in canvas pixels: x grows to the right from the playhead,
    y grows downward from the top edge.
    """

    @property
    def widget(self) -> QtWidgets.QWidget:  # pragma: no cover - Qt accessor
        """Return the Qt widget hosting the canvas."""

    def set_theme(
        self,
        *,
        background: str,
        foreground: str,
        curve_colors: Sequence[str],
        grid_color: str,
    ) -> None:
        """Apply colors and palette tweaks."""

    def apply_scene(self, scene: SignalScene) -> None:
        """Replace gridlines and traces with the ones in ``scene``."""

    def apply_overlays(self, rects: Sequence[OverlayRect]) -> None:
        """Replace the annotation rectangles drawn behind the traces."""

    def set_placeholder(self, text: str | None) -> None:
        """Show centred ``text`` over the canvas, or hide it for ``None``."""

    def canvas_size(self) -> tuple[float, float]:
        """Current drawable size in pixels."""


class PyqtgraphChannelBackend(ChannelCanvasBackend):
    """CPU renderer backed by a single pyqtgraph ViewBox in pixel space."""

    def __init__(
        self,
        *,
        decimate: bool = True,
        on_resize: Callable[[float, float], None] | None = None,
        on_click: Callable[[], None] | None = None,
        parent: QtWidgets.QWidget | None = None,
    ) -> None:
        self._widget = pg.PlotWidget(parent=parent)
        self._plot = self._widget.getPlotItem()
        for axis in ("left", "bottom", "right", "top"):
            self._plot.hideAxis(axis)
        self._plot.setMenuEnabled(False)
        self._plot.hideButtons()
        self._plot.setContentsMargins(0, 0, 0, 0)
        self._widget.setSizePolicy(
            QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding
        )

        self._vb = self._plot.getViewBox()
        self._vb.setMouseEnabled(x=False, y=False)
        self._vb.setMenuEnabled(False)
        self._vb.invertY(True)
        self._vb.setDefaultPadding(0.0)

        self._decimate = decimate
        self._on_resize = on_resize
        self._on_click = on_click

        self._curve_colors: tuple[str, ...] = ("#1f2933",)
        self._grid_color = "#d0d5db"
        self._foreground = "#1f2933"

        self.gridlines: list[pg.InfiniteLine] = []
        self.grid_labels: list[pg.TextItem] = []
        self.curves: list[pg.PlotDataItem] = []
        self.overlay_items: list[QtWidgets.QGraphicsRectItem] = []

        self._placeholder = pg.TextItem("", anchor=(0.5, 0.5), color=self._foreground)
        self._placeholder.setZValue(30)
        self._vb.addItem(self._placeholder, ignoreBounds=True)
        self._placeholder.setVisible(False)

        self._vb.sigResized.connect(self._handle_resized)
        self._widget.scene().sigMouseClicked.connect(self._handle_click)
        self._fit_range()

    # ChannelCanvasBackend -------------------------------------------------
    @property
    def widget(self) -> QtWidgets.QWidget:  # pragma: no cover - trivial
        return self._widget

    def set_theme(
        self,
        *,
        background: str,
        foreground: str,
        curve_colors: Sequence[str],
        grid_color: str,
    ) -> None:
        self._widget.setBackground(background)
        self._foreground = foreground
        self._curve_colors = tuple(curve_colors) or ("#1f2933",)
        self._grid_color = grid_color
        for idx, curve in enumerate(self.curves):
            curve.setPen(self._curve_pen(idx))
        grid_pen = pg.mkPen(grid_color, width=1)
        for line in self.gridlines:
            line.setPen(grid_pen)
        for label in self.grid_labels:
            label.setColor(foreground)
        self._placeholder.setColor(foreground)

    def apply_scene(self, scene: SignalScene) -> None:
        self._fit_range(scene.width, scene.height)
        self._ensure_gridlines(len(scene.gridlines))
        for idx, line in enumerate(self.gridlines):
            if idx >= len(scene.gridlines):
                line.setVisible(False)
                self.grid_labels[idx].setVisible(False)
                continue
            grid = scene.gridlines[idx]
            line.setValue(grid.x)
            line.setVisible(True)
            label = self.grid_labels[idx]
            label.setText(grid.label)
            label.setPos(grid.x + 2.0, 0.0)
            label.setVisible(True)

        self._ensure_curves(len(scene.traces))
        pixels = max(1, int(scene.width))
        for idx, curve in enumerate(self.curves):
            if idx >= len(scene.traces):
                curve.setData([], [])
                continue
            trace = scene.traces[idx]
            x_arr, y_arr = trace.x, trace.y
            if self._decimate and x_arr.size > 2 * pixels:
                x_arr, y_arr = min_max_bins(x_arr, y_arr, pixels)
            curve.setData(x_arr, y_arr)

    def apply_overlays(self, rects: Sequence[OverlayRect]) -> None:
        self._ensure_overlays(len(rects))
        for idx, item in enumerate(self.overlay_items):
            if idx >= len(rects):
                item.setVisible(False)
                continue
            rect = rects[idx]
            item.setRect(QtCore.QRectF(rect.x0, 0.0, max(rect.width, 1.0), rect.height))
            color = QtGui.QColor(rect.color)
            color.setAlphaF(max(0.0, min(1.0, rect.opacity)))
            item.setBrush(QtGui.QBrush(color))
            item.setToolTip(rect.label)
            item.setVisible(True)

    def set_placeholder(self, text: str | None) -> None:
        if not text:
            self._placeholder.setVisible(False)
            return
        width, height = self.canvas_size()
        self._placeholder.setText(text)
        self._placeholder.setPos(width / 2.0, height / 2.0)
        self._placeholder.setVisible(True)

    def canvas_size(self) -> tuple[float, float]:
        return float(self._vb.width()), float(self._vb.height())

    # Internal helpers ----------------------------------------------------
    def _fit_range(self, width: float | None = None, height: float | None = None) -> None:
        if width is None or height is None:
            width, height = self.canvas_size()
        self._vb.setRange(
            xRange=(0.0, max(1.0, width)),
            yRange=(0.0, max(1.0, height)),
            padding=0.0,
            update=True,
        )

    def _curve_pen(self, idx: int) -> QtGui.QPen:
        color = self._curve_colors[idx % len(self._curve_colors)]
        return pg.mkPen(color, width=1)

    def _ensure_gridlines(self, count: int) -> None:
        while len(self.gridlines) < count:
            line = pg.InfiniteLine(angle=90, movable=False, pen=pg.mkPen(self._grid_color, width=1))
            line.setZValue(-20)
            self._vb.addItem(line, ignoreBounds=True)
            label = pg.TextItem("", anchor=(0.0, 0.0), color=self._foreground)
            label.setZValue(-19)
            self._vb.addItem(label, ignoreBounds=True)
            self.gridlines.append(line)
            self.grid_labels.append(label)

    def _ensure_curves(self, count: int) -> None:
        while len(self.curves) < count:
            curve = pg.PlotDataItem([], [], pen=self._curve_pen(len(self.curves)))
            curve.setZValue(10)
            self._vb.addItem(curve, ignoreBounds=True)
            self.curves.append(curve)

    def _ensure_overlays(self, count: int) -> None:
        while len(self.overlay_items) < count:
            item = QtWidgets.QGraphicsRectItem()
            item.setPen(QtGui.QPen(QtCore.Qt.NoPen))
            item.setZValue(-10)
            self._vb.addItem(item, ignoreBounds=True)
            self.overlay_items.append(item)

    def _handle_resized(self, *_args) -> None:
        width, height = self.canvas_size()
        self._fit_range(width, height)
        if self._on_resize is not None:
            self._on_resize(width, height)

    def _handle_click(self, event) -> None:
        if event.button() != QtCore.Qt.LeftButton:
            return
        if self._on_click is not None:
            self._on_click()


def trace_point_count(backend: PyqtgraphChannelBackend) -> int:
    """Number of points currently held by visible curves."""
    total = 0
    for curve in backend.curves:
        x_data, _ = curve.getData()
        if x_data is not None:
            total += int(np.asarray(x_data).size)
    return total

"""Min/max envelope reduction of dense polylines."""
from __future__ import annotations

import numpy as np

__all__ = ["min_max_bins"]


def min_max_bins(x: np.ndarray, y: np.ndarray, pixels: int) -> tuple[np.ndarray, np.ndarray]:
    """Reduce a polyline to its min/max envelope, two points per pixel column.

    Parameters
    ----------
    x : np.ndarray
        Monotonic horizontal coordinates.
    y : np.ndarray
        Values at each ``x``.
    pixels : int
        Number of columns available for drawing.

    Returns
    -------
    x_out, y_out : np.ndarray
        At most ``2 * pixels`` points. Inputs already within budget are
        returned unchanged (same objects).
    """
    if pixels <= 0:
        raise ValueError("pixels must be positive")
    if x.size != y.size:
        raise ValueError("x and y must have the same length")
    n = x.size
    if n == 0 or n <= pixels * 2:
        return x, y

    x = np.asarray(x)
    y = np.asarray(y)
    edges = np.unique(np.linspace(0, n, num=pixels + 1).astype(np.int64))
    starts = edges[:-1]
    stops = edges[1:]
    segment = np.repeat(np.arange(starts.size), stops - starts)
    # sorted by segment, then by value: first of a segment is its min, last its max
    order = np.lexsort((y, segment))
    lo_idx = order[starts]
    hi_idx = order[stops - 1]
    picks = np.column_stack([np.minimum(lo_idx, hi_idx), np.maximum(lo_idx, hi_idx)]).ravel()
    return x[picks], y[picks]

from __future__ import annotations

import numpy as np

from .grid import Grid


def init_from_occupancy(grid: Grid) -> np.ndarray:
    """Height 1.0 on occupied cells, 0.0 elsewhere."""
    return grid.cells.astype(np.float64)


def upsample_bilinear(heights: np.ndarray, new_size: int) -> np.ndarray:
    """
    Bilinearly resample a square height field to ``new_size``.

    New cell (x, y) samples the old field at (x * old / new, y * old / new),
    i.e. (x / 2, y / 2) when doubling. The far neighbours are clamped to the
    last row/column.
    """
    old_size = heights.shape[0]
    scale = old_size / new_size

    g = np.arange(new_size, dtype=np.float64) * scale
    i0 = np.floor(g).astype(np.int64)
    t = g - i0
    i1 = np.minimum(i0 + 1, old_size - 1)

    # rows are y, columns are x
    v00 = heights[np.ix_(i0, i0)]
    v10 = heights[np.ix_(i0, i1)]
    v01 = heights[np.ix_(i1, i0)]
    v11 = heights[np.ix_(i1, i1)]

    tx = t[np.newaxis, :]
    ty = t[:, np.newaxis]
    top = v00 + (v10 - v00) * tx
    bottom = v01 + (v11 - v01) * tx
    return top + (bottom - top) * ty


def accumulate(heights: np.ndarray, grid: Grid) -> None:
    """Add 1.0 to every height whose cell is occupied (in place)."""
    if heights.shape != grid.cells.shape:
        raise ValueError(
            f"Height field {heights.shape} and occupancy grid {grid.cells.shape} "
            "must have matching dimensions"
        )
    heights[grid.cells] += 1.0


class HeightFieldAccumulator:
    """Keeps a height field in lock-step with the occupancy grid across resolutions."""

    def __init__(self) -> None:
        self.heights: np.ndarray | None = None

    @property
    def size(self) -> int:
        return 0 if self.heights is None else int(self.heights.shape[0])

    def start(self, grid: Grid) -> np.ndarray:
        self.heights = init_from_occupancy(grid)
        return self.heights

    def advance(self, grid: Grid) -> np.ndarray:
        """Upsample to ``grid.size`` and stack the new occupancy on top."""
        if self.heights is None:
            raise RuntimeError("Height field has not been initialised. Call start() first.")
        heights = upsample_bilinear(self.heights, grid.size)
        accumulate(heights, grid)
        self.heights = heights
        return heights


__all__ = [
    "HeightFieldAccumulator",
    "accumulate",
    "init_from_occupancy",
    "upsample_bilinear",
]

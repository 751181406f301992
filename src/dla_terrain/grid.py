from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numba import njit


###############################################################################
# Kernels (shared by the walker and the upscaler)
###############################################################################


@njit(cache=True)
def in_bounds(n: int, x: int, y: int) -> bool:
    return 0 <= x < n and 0 <= y < n


@njit(cache=True)
def has_occupied_neighbor(cells: np.ndarray, x: int, y: int) -> bool:
    """Check the 8-neighbourhood of (x, y); neighbours off the grid are ignored."""
    n = cells.shape[0]
    for dy in range(-1, 2):
        for dx in range(-1, 2):
            if dx == 0 and dy == 0:
                continue
            nx = x + dx
            ny = y + dy
            if in_bounds(n, nx, ny) and cells[ny, nx]:
                return True
    return False


@njit(cache=True)
def set_cell(cells: np.ndarray, x: int, y: int) -> bool:
    """Occupy (x, y) if it is on the grid and empty. Returns True when the cell flipped."""
    n = cells.shape[0]
    if not in_bounds(n, x, y):
        return False
    if cells[y, x]:
        return False
    cells[y, x] = True
    return True


###############################################################################
# Python-side containers
###############################################################################


@dataclass
class FillCounter:
    """Number of occupied cells, owned by the generation pass that mutates the grid."""

    value: int = 0

    def increment(self, amount: int = 1) -> None:
        self.value += amount

    def decrement(self, amount: int = 1) -> None:
        self.value -= amount


class Grid:
    """
    Square boolean occupancy buffer.

    Cells are stored row-major in a numpy array indexed ``cells[y, x]``.
    Accessors take ``(x, y)`` and reject coordinates outside ``[0, size)``.
    """

    def __init__(self, size: int, cells: np.ndarray | None = None) -> None:
        if cells is None:
            cells = np.zeros((size, size), dtype=bool)
        elif cells.shape != (size, size):
            raise ValueError(f"cells must have shape ({size}, {size}), got {cells.shape}")
        self.size = int(size)
        self.cells = np.ascontiguousarray(cells, dtype=bool)

    @classmethod
    def seeded(cls, size: int) -> "Grid":
        """Empty grid with its centre cell occupied."""
        grid = cls(size)
        center = size // 2
        grid.cells[center, center] = True
        return grid

    def __repr__(self) -> str:
        return f"Grid(size={self.size}, occupied={self.count()})"

    def _check(self, x: int, y: int) -> None:
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) is outside a {self.size}x{self.size} grid")

    def in_bounds(self, x: int, y: int) -> bool:
        return bool(in_bounds(self.size, x, y))

    def get(self, x: int, y: int) -> bool:
        self._check(x, y)
        return bool(self.cells[y, x])

    def set(self, x: int, y: int) -> bool:
        """Occupy (x, y). Idempotent: returns False if the cell was already occupied."""
        self._check(x, y)
        return bool(set_cell(self.cells, x, y))

    def clear(self, x: int, y: int) -> bool:
        self._check(x, y)
        was_set = bool(self.cells[y, x])
        self.cells[y, x] = False
        return was_set

    def has_occupied_neighbor(self, x: int, y: int) -> bool:
        self._check(x, y)
        return bool(has_occupied_neighbor(self.cells, x, y))

    def count(self) -> int:
        return int(np.count_nonzero(self.cells))

    def occupied_coords(self) -> np.ndarray:
        """(M, 2) array of occupied (x, y) pairs in row-major order."""
        ys, xs = np.nonzero(self.cells)
        return np.column_stack((xs, ys))

    def copy(self) -> "Grid":
        return Grid(self.size, self.cells.copy())


__all__ = [
    "FillCounter",
    "Grid",
    "has_occupied_neighbor",
    "in_bounds",
    "set_cell",
]

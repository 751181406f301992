"""
Biased random-walk particle placement.

One call launches one walker from a uniformly random cell and lets it wander
over the 8-neighbourhood until it lands on an empty cell touching the
aggregate, or runs out of steps.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from numba import njit

from .grid import FillCounter, Grid, has_occupied_neighbor, in_bounds

# (dx, dy) for N, S, E, W, NE, NW, SE, SW
MOVES = np.array(
    [
        [0, 1],
        [0, -1],
        [1, 0],
        [-1, 0],
        [1, 1],
        [-1, 1],
        [1, -1],
        [-1, -1],
    ],
    dtype=np.int64,
)


@njit
def walk_particle(
    cells: np.ndarray, max_steps: int, rng: np.random.Generator, moves: np.ndarray
) -> Tuple[bool, int, int]:
    """
    Run one walker on ``cells`` in place.

    Returns (placed, x, y); (x, y) is the attachment cell when placed, else the
    walker's final position. The grid is untouched when the walker gives up.
    """
    n = cells.shape[0]
    x = rng.integers(0, n)
    y = rng.integers(0, n)

    for _ in range(max_steps):
        if not cells[y, x] and has_occupied_neighbor(cells, x, y):
            cells[y, x] = True
            return True, x, y

        move = rng.integers(0, moves.shape[0])
        nx = x + moves[move, 0]
        ny = y + moves[move, 1]
        if in_bounds(n, nx, ny):
            x = nx
            y = ny
    return False, x, y


def try_place_particle(
    grid: Grid, counter: FillCounter, rng: np.random.Generator, max_steps: int
) -> bool:
    """Launch a single walker; on attachment the counter is incremented."""
    placed, _, _ = walk_particle(grid.cells, int(max_steps), rng, MOVES)
    if placed:
        counter.increment()
    return bool(placed)


class RandomWalkAggregator:
    """Places particles on a grid with a fixed per-walker step budget."""

    def __init__(self, rng: np.random.Generator, max_steps: int) -> None:
        self.rng = rng
        self.max_steps = int(max_steps)
        self.launched = 0
        self.placed = 0

    def try_place(self, grid: Grid, counter: FillCounter) -> bool:
        placed, _, _ = self.place_with_position(grid, counter)
        return placed

    def place_with_position(
        self, grid: Grid, counter: FillCounter
    ) -> Tuple[bool, int, int]:
        """Like :meth:`try_place` but also reports where the walker ended."""
        self.launched += 1
        placed, x, y = walk_particle(grid.cells, self.max_steps, self.rng, MOVES)
        if placed:
            counter.increment()
            self.placed += 1
        return bool(placed), int(x), int(y)


__all__ = ["MOVES", "RandomWalkAggregator", "try_place_particle", "walk_particle"]

"""
Resolution doubling for DLA occupancy grids.

An occupied cell (x, y) of the coarse grid becomes the point (2x+1, 2y+1) of
the fine grid. The gaps between carried points are then re-filled
stochastically so the fine aggregate keeps the coarse silhouette:

1. carry-over   - copy points, collapsing cells enclosed from the top-left;
2. connectors   - bridge coarse right/down links with a straight or wiggled cell;
3. diagonal repair (x2) - bridge coarse diagonal links for points that still
   lack an east connector.

All passes draw from the run's Generator in row-major (y outer, x inner) order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numba import njit

from .grid import FillCounter, Grid, in_bounds, set_cell

PRIMARY = 0
SECONDARY = 1
FALLBACK = 2


@dataclass(frozen=True)
class ConnectorWeights:
    """Weighted choice table for connector placement (integer weights of one uniform draw)."""

    primary: int = 4
    secondary: int = 2
    fallback: int = 2

    def __post_init__(self) -> None:
        if min(self.primary, self.secondary, self.fallback) < 0 or self.total <= 0:
            raise ValueError(f"Connector weights must be non-negative with a positive sum: {self}")

    @property
    def total(self) -> int:
        return self.primary + self.secondary + self.fallback

    def thresholds(self) -> Tuple[int, int, int]:
        """(primary cut, secondary cut, total) for a draw in [0, total)."""
        return self.primary, self.primary + self.secondary, self.total


CONNECTOR_WEIGHTS = ConnectorWeights()


###############################################################################
# Kernels
###############################################################################


@njit
def _weighted_choice(rng: np.random.Generator, cut_primary: int, cut_secondary: int, total: int) -> int:
    r = rng.integers(0, total)
    if r < cut_primary:
        return PRIMARY
    if r < cut_secondary:
        return SECONDARY
    return FALLBACK


@njit(cache=True)
def _place(cells: np.ndarray, x: int, y: int) -> int:
    if set_cell(cells, x, y):
        return 1
    return 0


@njit(cache=True)
def carry_over_points(old: np.ndarray, new: np.ndarray) -> int:
    """
    Pass 1: copy each occupied coarse cell to (2x+1, 2y+1).

    Cells whose up, left and up-left neighbours are all occupied are dropped.
    Returns the fill-count change (minus one per dropped cell). No draws.
    """
    old_size = old.shape[0]
    delta = 0
    for y in range(old_size):
        for x in range(old_size):
            if not old[y, x]:
                continue
            up_left = x >= 1 and y >= 1 and old[y - 1, x - 1]
            left = x >= 1 and old[y, x - 1]
            up = y >= 1 and old[y - 1, x]
            if up_left and left and up:
                delta -= 1
            else:
                new[2 * y + 1, 2 * x + 1] = True
    return delta


@njit
def add_cardinal_connectors(
    old: np.ndarray,
    new: np.ndarray,
    rng: np.random.Generator,
    cut_primary: int,
    cut_secondary: int,
    total: int,
) -> int:
    """
    Pass 2: bridge coarse right and down links.

    Right link: E (primary), NE (secondary), SE otherwise.
    Down link:  S (primary), SW (secondary), SE otherwise.
    Returns the number of newly occupied cells.
    """
    old_size = old.shape[0]
    n = new.shape[0]
    added = 0
    for y in range(old_size):
        for x in range(old_size):
            if not old[y, x]:
                continue
            hx = 2 * x + 1
            hy = 2 * y + 1

            if x + 1 < old_size and old[y, x + 1]:
                choice = _weighted_choice(rng, cut_primary, cut_secondary, total)
                if choice == PRIMARY:
                    added += _place(new, hx + 1, hy)
                elif choice == SECONDARY and hy > 0:
                    added += _place(new, hx + 1, hy - 1)
                elif in_bounds(n, hx + 1, hy + 1):
                    added += _place(new, hx + 1, hy + 1)

            if y + 1 < old_size and old[y + 1, x]:
                choice = _weighted_choice(rng, cut_primary, cut_secondary, total)
                if choice == PRIMARY and hy + 1 < n:
                    added += _place(new, hx, hy + 1)
                elif choice == SECONDARY and hx > 0 and hy + 1 < n:
                    added += _place(new, hx - 1, hy + 1)
                elif in_bounds(n, hx + 1, hy + 1):
                    added += _place(new, hx + 1, hy + 1)
    return added


@njit
def repair_diagonals(
    old: np.ndarray,
    new: np.ndarray,
    rng: np.random.Generator,
    cut_primary: int,
    cut_secondary: int,
    total: int,
) -> int:
    """
    Pass 3 (one sweep): bridge coarse diagonal links for carried points with no east connector.

    One weighted draw per such point; when both the down-right and up-right
    coarse neighbours exist a coin draw follows and picks the branch.
    Down-right branch: diagonal (primary), E (secondary), S (fallback).
    Up-right branch:   diagonal (primary), N (secondary), E (fallback).
    Returns the number of newly occupied cells.
    """
    old_size = old.shape[0]
    n = new.shape[0]
    added = 0
    for y in range(old_size):
        for x in range(old_size):
            hx = 2 * x + 1
            hy = 2 * y + 1
            if not new[hy, hx]:
                continue
            if x + 1 >= old_size or new[hy, hx + 1]:
                continue

            down_right = y + 1 < old_size and old[y + 1, x + 1]
            up_right = y >= 1 and old[y - 1, x + 1]
            choice = _weighted_choice(rng, cut_primary, cut_secondary, total)

            if down_right and up_right:
                take_down_right = rng.integers(0, 2) == 0
            else:
                take_down_right = down_right

            if down_right and take_down_right:
                if choice == PRIMARY:
                    added += _place(new, hx + 1, hy + 1)
                elif choice == SECONDARY:
                    added += _place(new, hx + 1, hy)
                else:
                    added += _place(new, hx, hy + 1)
            elif up_right:
                if choice == PRIMARY and hy > 0:
                    added += _place(new, hx + 1, hy - 1)
                elif choice == SECONDARY and hy > 0:
                    added += _place(new, hx, hy - 1)
                else:
                    added += _place(new, hx + 1, hy)
    return added


###############################################################################
# Public API
###############################################################################

REPAIR_PASSES = 2


def upscale(
    grid: Grid,
    counter: FillCounter,
    rng: np.random.Generator,
    weights: ConnectorWeights = CONNECTOR_WEIGHTS,
) -> Grid:
    """Return a new grid of twice the size; the old grid is left untouched."""
    new_size = grid.size * 2
    old = grid.cells
    new = np.zeros((new_size, new_size), dtype=np.bool_)
    cut_primary, cut_secondary, total = weights.thresholds()

    counter.increment(carry_over_points(old, new))
    counter.increment(
        add_cardinal_connectors(old, new, rng, cut_primary, cut_secondary, total)
    )
    for _ in range(REPAIR_PASSES):
        counter.increment(
            repair_diagonals(old, new, rng, cut_primary, cut_secondary, total)
        )
    return Grid(new_size, new)


class Upscaler:
    """Doubles grid resolution using one shared Generator and weight table."""

    def __init__(
        self, rng: np.random.Generator, weights: ConnectorWeights = CONNECTOR_WEIGHTS
    ) -> None:
        self.rng = rng
        self.weights = weights

    def __call__(self, grid: Grid, counter: FillCounter) -> Grid:
        return upscale(grid, counter, self.rng, self.weights)


__all__ = [
    "CONNECTOR_WEIGHTS",
    "ConnectorWeights",
    "Upscaler",
    "add_cardinal_connectors",
    "carry_over_points",
    "repair_diagonals",
    "upscale",
]

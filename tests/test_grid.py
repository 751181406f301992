"""
Unit tests for the occupancy grid.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from src.dla_terrain.grid import FillCounter, Grid, has_occupied_neighbor, in_bounds, set_cell


def test_seeded_grid_has_only_center():
    """A seeded 4x4 grid holds exactly the centre cell (2, 2)."""
    grid = Grid.seeded(4)
    assert grid.get(2, 2)
    assert grid.count() == 1
    assert grid.occupied_coords().tolist() == [[2, 2]]


def test_set_is_idempotent():
    grid = Grid(8)
    counter = FillCounter()
    for _ in range(3):
        if grid.set(3, 4):
            counter.increment()
    assert grid.get(3, 4)
    assert grid.cells[4, 3], "cells are indexed [y, x]"
    assert counter.value == 1, "setting an occupied cell must not count twice"


def test_clear_reports_previous_state():
    grid = Grid(4)
    grid.set(1, 1)
    assert grid.clear(1, 1)
    assert not grid.clear(1, 1)
    assert grid.count() == 0


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (4, 0), (0, 4), (10, 10)])
def test_out_of_bounds_access_is_rejected(x, y):
    grid = Grid(4)
    with pytest.raises(IndexError):
        grid.get(x, y)
    with pytest.raises(IndexError):
        grid.set(x, y)
    assert not grid.in_bounds(x, y)


def test_neighbor_test_covers_diagonals():
    grid = Grid(8)
    grid.set(3, 3)
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            assert grid.has_occupied_neighbor(3 + dx, 3 + dy), f"offset ({dx}, {dy})"
    assert not grid.has_occupied_neighbor(3, 3), "a cell is not its own neighbour"
    assert not grid.has_occupied_neighbor(5, 3), "Chebyshev distance 2 is not adjacent"


def test_neighbor_test_ignores_off_grid_offsets():
    """Corner cells only look at their in-bounds neighbours and never wrap."""
    grid = Grid(4)
    grid.set(3, 3)
    assert not grid.has_occupied_neighbor(0, 0)
    assert grid.has_occupied_neighbor(2, 2)
    grid = Grid(4)
    assert not grid.has_occupied_neighbor(0, 0)


def test_kernel_set_cell_skips_out_of_bounds():
    cells = np.zeros((4, 4), dtype=bool)
    assert not set_cell(cells, 4, 0)
    assert not set_cell(cells, -1, 2)
    assert set_cell(cells, 0, 0)
    assert not set_cell(cells, 0, 0)
    assert has_occupied_neighbor(cells, 1, 1)


@pytest.mark.parametrize("x, y", [(0, 0), (3, 3), (-1, 0), (0, -1), (4, 0), (0, 4), (4, 4)])
def test_grid_bounds_agree_with_kernel(x, y):
    grid = Grid(4)
    expected = 0 <= x < 4 and 0 <= y < 4
    assert grid.in_bounds(x, y) is expected
    assert in_bounds(4, x, y) == expected
    assert set_cell(grid.cells, x, y) == expected


def test_mismatched_buffer_is_rejected():
    with pytest.raises(ValueError):
        Grid(4, np.zeros((4, 8), dtype=bool))

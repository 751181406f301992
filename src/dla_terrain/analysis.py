"""
Fractal and height statistics for generated terrains.

Box counting: cover the occupancy grid with boxes of side s = 1, 2, 4, ...
and count boxes containing at least one occupied cell. For a fractal
aggregate N(s) ~ s^(-Df), so Df is minus the slope of log N(s) vs log s.
"""

from __future__ import annotations

from typing import Dict

import numpy as np
from scipy.stats import linregress

MIN_FIT_POINTS = 3


def box_counts(occupied: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return (box sizes, occupied box counts) for power-of-two box sizes."""
    occ = np.asarray(occupied, dtype=bool)
    if occ.ndim != 2 or occ.shape[0] != occ.shape[1]:
        raise ValueError(f"Expected a square 2D occupancy grid, got shape {occ.shape}")
    size = occ.shape[0]

    sizes = []
    counts = []
    s = 1
    while s <= size // 2:
        k = size // s
        trimmed = occ[: k * s, : k * s]
        boxes = trimmed.reshape(k, s, k, s).any(axis=(1, 3))
        sizes.append(s)
        counts.append(int(np.count_nonzero(boxes)))
        s *= 2
    return np.array(sizes, dtype=np.float64), np.array(counts, dtype=np.float64)


def box_counting_dimension(occupied: np.ndarray) -> tuple[float, float, np.ndarray, np.ndarray]:
    """
    Estimate the box-counting fractal dimension of an occupancy grid.

    Returns:
        Tuple of (Df, r_squared, log_s, log_n)

    Raises:
        ValueError: if the grid is empty or too small for a fit
    """
    if not np.any(occupied):
        raise ValueError("Occupancy grid is empty; cannot estimate a fractal dimension.")
    sizes, counts = box_counts(occupied)
    valid = counts > 0
    sizes = sizes[valid]
    counts = counts[valid]
    if len(sizes) < MIN_FIT_POINTS:
        raise ValueError(
            f"Too few box sizes ({len(sizes)}) for a fit; need a grid of at least "
            f"{2 ** MIN_FIT_POINTS} cells per side."
        )

    log_s = np.log(sizes)
    log_n = np.log(counts)
    slope, intercept, r_value, p_value, std_err = linregress(log_s, log_n)
    return float(-slope), float(r_value**2), log_s, log_n


def height_statistics(heights: np.ndarray) -> Dict[str, float]:
    h = np.asarray(heights, dtype=np.float64)
    if h.size == 0:
        raise ValueError("Height field is empty.")
    return {
        "min": float(h.min()),
        "max": float(h.max()),
        "mean": float(h.mean()),
        "raised_fraction": float(np.count_nonzero(h > 0.0) / h.size),
    }


__all__ = ["box_counting_dimension", "box_counts", "height_statistics"]

"""
utils.py

Helper functions for hard-rod GCMC runs: activity grids for sweeps and
serialization of rod placements, including replay of a saved configuration
onto a fresh periodic lattice.
"""

import numpy as np
from typing import Iterable, List, Optional, Sequence

from .lattice import Lattice
from .rods import Orientation, Rod


def generate_activity_grid(
    z_start: float,
    z_end: float,
    z_step: Optional[float] = None,
    n_points: Optional[int] = None,
    log_space: bool = False,
) -> List[float]:
    """
    Build the list of activities for a sweep, in the order from z_start to z_end.

    Args:
        z_start: First activity.
        z_end: Last activity (included).
        z_step: Spacing of a uniform grid. Ignored when n_points is set.
        n_points: Number of grid points (uniform in z, or in ln z if log_space).
        log_space: Space points evenly in ln z (requires z_start, z_end > 0).

    Returns:
        List of activities.
    """
    if z_start < 0 or z_end < 0:
        raise ValueError("Activities must be >= 0.")
    if n_points is not None:
        if n_points < 1:
            raise ValueError("n_points must be >= 1.")
        if log_space:
            if z_start <= 0 or z_end <= 0:
                raise ValueError("log_space requires strictly positive activities.")
            return np.geomspace(z_start, z_end, n_points).tolist()
        return np.linspace(z_start, z_end, n_points).tolist()

    if z_step is None or np.isclose(z_step, 0.0):
        raise ValueError("z_step must be non-zero when n_points is not set.")
    if z_start > z_end:
        grid = np.arange(z_start, z_end - abs(z_step) / 2, -abs(z_step))
    else:
        grid = np.arange(z_start, z_end + abs(z_step) / 2, abs(z_step))
    return grid.tolist()


def serialize_placements(rods: Iterable[Rod]) -> np.ndarray:
    """
    Pack rod placements into an (N, 3) int array of (orientation, x, y).
    The rod length is implicit: it is a property of the whole run.
    """
    rows = [(int(rod.orientation), rod.x, rod.y) for rod in rods]
    if not rows:
        return np.zeros((0, 3), dtype=int)
    return np.array(rows, dtype=int)


def deserialize_placements(placements: np.ndarray, length: int) -> List[Rod]:
    """Inverse of serialize_placements."""
    placements = np.asarray(placements, dtype=int).reshape(-1, 3)
    return [Rod(int(x), int(y), Orientation(int(o)), length) for o, x, y in placements]


def replay_placements(
    placements: np.ndarray,
    length: int,
    cols: int,
    rows: int,
) -> Lattice:
    """
    Mark serialized placements on a new empty lattice.

    Raises:
        ValueError: if two placements overlap.
    """
    lattice = Lattice(cols, rows)
    for rod in deserialize_placements(placements, length):
        if not lattice.is_span_free(rod.x, rod.y, rod.orientation, length):
            raise ValueError(f"Placement {rod} overlaps an earlier rod.")
        lattice.fill_span(rod.x, rod.y, rod.orientation, length, True)
    return lattice


def anchors_array(rods: Sequence[Rod]) -> np.ndarray:
    """(N, 2) array of anchor coordinates, the per-orientation visualization listing."""
    if not rods:
        return np.zeros((0, 2), dtype=int)
    return np.array([(rod.x, rod.y) for rod in rods], dtype=int)

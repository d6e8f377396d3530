# -*- coding: utf-8 -*-
"""
lattice.py - Toroidal occupancy grid for the hard-rod lattice gas.

Coordinates follow the (x, y) = (column, row) convention; every index is
reduced modulo the lattice dimensions, so callers never see a range error.
"""

from typing import List, Tuple

import numpy as np

from .rods import Orientation


class Lattice:
    """
    R x C periodic grid of occupancy bits.

    Variables:
        rows: Number of rows (R), the extent along y.
        cols: Number of columns (C), the extent along x.
        cells: (rows, cols) boolean array, True where a rod covers the cell.
    """

    def __init__(self, cols: int, rows: int) -> None:
        self.cols: int = int(cols)
        self.rows: int = int(rows)
        self.cells: np.ndarray = np.zeros((self.rows, self.cols), dtype=bool)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    def is_occupied(self, x: int, y: int) -> bool:
        return bool(self.cells[y % self.rows, x % self.cols])

    def set_occupied(self, x: int, y: int, value: bool = True) -> None:
        self.cells[y % self.rows, x % self.cols] = bool(value)

    def span(self, x: int, y: int, orientation: Orientation, length: int) -> List[Tuple[int, int]]:
        """
        Wrapped (x, y) cells covered by a rod anchored at (x, y).
        Vertical rods advance along y, horizontal rods along x.
        """
        if orientation == Orientation.VERTICAL:
            return [(x % self.cols, (y + i) % self.rows) for i in range(length)]
        return [((x + i) % self.cols, y % self.rows) for i in range(length)]

    def is_span_free(self, x: int, y: int, orientation: Orientation, length: int) -> bool:
        """True if none of the cells of the span is occupied."""
        for cx, cy in self.span(x, y, orientation, length):
            if self.cells[cy, cx]:
                return False
        return True

    def fill_span(self, x: int, y: int, orientation: Orientation, length: int, value: bool = True) -> None:
        for cx, cy in self.span(x, y, orientation, length):
            self.cells[cy, cx] = value

    def occupied_count(self) -> int:
        return int(np.count_nonzero(self.cells))

    @property
    def occupancy(self) -> np.ndarray:
        """Copy of the occupancy bitmap, shape (rows, cols)."""
        return self.cells.copy()

    def __repr__(self) -> str:
        return f"Lattice(cols={self.cols}, rows={self.rows}, occupied={self.occupied_count()})"

import unittest

import numpy as np

from hardrods.lattice import Lattice
from hardrods.rods import Orientation


class LatticeWraparoundTests(unittest.TestCase):
    def setUp(self):
        self.lattice = Lattice(cols=5, rows=4)

    def test_starts_empty(self):
        self.assertEqual(self.lattice.occupied_count(), 0)
        self.assertEqual(self.lattice.size, 20)
        self.assertEqual(self.lattice.occupancy.shape, (4, 5))

    def test_indices_are_reduced_modulo_dimensions(self):
        self.lattice.set_occupied(-1, -1, True)
        self.assertTrue(self.lattice.is_occupied(4, 3))
        self.assertTrue(self.lattice.is_occupied(9, 7))
        self.lattice.set_occupied(14, 11, False)
        self.assertFalse(self.lattice.is_occupied(4, 3))

    def test_vertical_span_wraps_rows(self):
        cells = self.lattice.span(2, 3, Orientation.VERTICAL, 3)
        self.assertEqual(cells, [(2, 3), (2, 0), (2, 1)])

    def test_horizontal_span_wraps_columns(self):
        cells = self.lattice.span(4, 1, Orientation.HORIZONTAL, 3)
        self.assertEqual(cells, [(4, 1), (0, 1), (1, 1)])

    def test_fill_and_clear_span(self):
        self.lattice.fill_span(3, 0, Orientation.HORIZONTAL, 4, True)
        self.assertEqual(self.lattice.occupied_count(), 4)
        self.assertFalse(self.lattice.is_span_free(0, 0, Orientation.VERTICAL, 2))
        self.assertTrue(self.lattice.is_span_free(2, 1, Orientation.VERTICAL, 3))
        self.lattice.fill_span(3, 0, Orientation.HORIZONTAL, 4, False)
        self.assertEqual(self.lattice.occupied_count(), 0)

    def test_occupancy_is_a_copy(self):
        snapshot = self.lattice.occupancy
        snapshot[:] = True
        self.assertEqual(self.lattice.occupied_count(), 0)
        self.assertFalse(np.any(self.lattice.cells))


if __name__ == "__main__":
    unittest.main()

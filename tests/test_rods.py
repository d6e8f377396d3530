import unittest

from hardrods.rods import Orientation, Rod, RodRegistry


V = Orientation.VERTICAL
H = Orientation.HORIZONTAL


class RodRegistryAddressingTests(unittest.TestCase):
    def setUp(self):
        self.registry = RodRegistry()
        self.v0 = Rod(0, 0, V, 2)
        self.h0 = Rod(1, 0, H, 2)
        self.v1 = Rod(3, 3, V, 2)
        self.h1 = Rod(2, 4, H, 2)
        for rod in (self.v0, self.h0, self.v1, self.h1):
            self.registry.add(rod)

    def test_counts_follow_orientation(self):
        self.assertEqual(self.registry.n_vertical, 2)
        self.assertEqual(self.registry.n_horizontal, 2)
        self.assertEqual(len(self.registry), 4)

    def test_combined_index_puts_vertical_first(self):
        self.assertEqual(
            [self.registry.at(i) for i in range(4)],
            [self.v0, self.v1, self.h0, self.h1],
        )
        self.assertEqual(list(self.registry), [self.v0, self.v1, self.h0, self.h1])

    def test_remove_at_boundary_index_takes_first_horizontal(self):
        removed = self.registry.remove_at(2)
        self.assertEqual(removed, self.h0)
        self.assertEqual(self.registry.n_vertical, 2)
        self.assertEqual(self.registry.n_horizontal, 1)
        self.assertEqual(self.registry.at(2), self.h1)

    def test_remove_last_vertical(self):
        removed = self.registry.remove_at(1)
        self.assertEqual(removed, self.v1)
        # The boundary moved: index 1 now addresses the first horizontal rod.
        self.assertEqual(self.registry.at(1), self.h0)

    def test_out_of_range_fails_fast(self):
        for index in (-1, 4, 100):
            with self.assertRaises(IndexError):
                self.registry.at(index)
            with self.assertRaises(IndexError):
                self.registry.remove_at(index)
        with self.assertRaises(IndexError):
            RodRegistry().at(0)

    def test_population_copies_are_detached(self):
        vertical = self.registry.vertical()
        vertical.clear()
        self.assertEqual(self.registry.n_vertical, 2)
        self.assertEqual(self.registry.horizontal(), [self.h0, self.h1])

    def test_rod_is_immutable(self):
        with self.assertRaises(AttributeError):
            self.v0.x = 5
        self.assertTrue(self.v0.is_vertical)
        self.assertFalse(self.h0.is_vertical)


if __name__ == "__main__":
    unittest.main()

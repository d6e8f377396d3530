# -*- coding: utf-8 -*-
"""
rods.py - Rod placements and the two-population rod registry.

The registry keeps vertical and horizontal rods in separate ordered lists and
addresses them through one combined index: i < nv selects vertical[i],
otherwise horizontal[i - nv].
"""

from enum import IntEnum
from typing import Iterator, List, NamedTuple


class Orientation(IntEnum):
    VERTICAL = 0
    HORIZONTAL = 1


class Rod(NamedTuple):
    """Immutable rod placement: anchor cell, orientation and length."""

    x: int
    y: int
    orientation: Orientation
    length: int

    @property
    def is_vertical(self) -> bool:
        return self.orientation == Orientation.VERTICAL


class RodRegistry:
    """
    Ordered vertical and horizontal rod populations.

    Insertion order carries no physical meaning but fixes the combined
    addressing used to pick a uniform deletion target across both lists.
    """

    def __init__(self) -> None:
        self._vertical: List[Rod] = []
        self._horizontal: List[Rod] = []

    @property
    def n_vertical(self) -> int:
        return len(self._vertical)

    @property
    def n_horizontal(self) -> int:
        return len(self._horizontal)

    def __len__(self) -> int:
        return len(self._vertical) + len(self._horizontal)

    def __iter__(self) -> Iterator[Rod]:
        yield from self._vertical
        yield from self._horizontal

    def add(self, rod: Rod) -> None:
        if rod.orientation == Orientation.VERTICAL:
            self._vertical.append(rod)
        else:
            self._horizontal.append(rod)

    def _resolve(self, index: int):
        """Map a combined index to (list, local index)."""
        n = len(self)
        if not 0 <= index < n:
            raise IndexError(f"rod index {index} out of range for {n} live rods")
        nv = len(self._vertical)
        if index < nv:
            return self._vertical, index
        return self._horizontal, index - nv

    def at(self, index: int) -> Rod:
        rods, local = self._resolve(index)
        return rods[local]

    def remove_at(self, index: int) -> Rod:
        """Erase and return the rod at a combined index."""
        rods, local = self._resolve(index)
        return rods.pop(local)

    def vertical(self) -> List[Rod]:
        return list(self._vertical)

    def horizontal(self) -> List[Rod]:
        return list(self._horizontal)

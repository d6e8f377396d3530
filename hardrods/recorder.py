# -*- coding: utf-8 -*-
"""
recorder.py - Sampling and output for hard-rod GCMC chains.

The engine never touches files; a Recorder is handed the engine at each
sample tick and owns every artifact of the run:
- a whitespace-delimited time series (step, Q, nv, nh, density, net accept fraction),
- one anchor listing per orientation for plotting the final configuration,
- optionally an ASE trajectory of configurations for `ase gui`.
"""

import logging
from typing import Any, List, Optional

import numpy as np
from ase import Atoms
from ase.io.trajectory import Trajectory

from .rods import Orientation
from .utils import anchors_array

logger = logging.getLogger("mc")

TABLE_COLUMNS = ("step", "Q", "nv", "nh", "density", "net_accept_fraction")
ORIENTATION_SYMBOLS = {Orientation.VERTICAL: "N", Orientation.HORIZONTAL: "C"}


def configuration_atoms(engine: Any) -> Atoms:
    """
    One pseudo-atom per covered cell, placed at the cell centre.
    Cells of vertical rods are 'N', cells of horizontal rods are 'C'.
    """
    symbols: List[str] = []
    positions: List[List[float]] = []
    for rod in engine.registry:
        for cx, cy in engine.lattice.span(rod.x, rod.y, rod.orientation, rod.length):
            symbols.append(ORIENTATION_SYMBOLS[rod.orientation])
            positions.append([cx + 0.5, cy + 0.5, 0.0])
    return Atoms(
        symbols=symbols,
        positions=np.array(positions, dtype=float).reshape(-1, 3),
        cell=[engine.cols, engine.rows, 1.0],
        pbc=[True, True, False],
    )


class Recorder:
    """
    Collects per-tick records from an engine and writes them out.

    Args:
        data_file: Time-series table path.
        vertical_file: Anchor listing of vertical rods.
        horizontal_file: Anchor listing of horizontal rods.
        traj_file: ASE trajectory of sampled configurations (None disables it).
    """

    def __init__(
        self,
        data_file: str = "dataplot.dat",
        vertical_file: str = "2dplotv.txt",
        horizontal_file: str = "2dploth.txt",
        traj_file: Optional[str] = None,
    ) -> None:
        self.data_file = data_file
        self.vertical_file = vertical_file
        self.horizontal_file = horizontal_file
        self.traj_file = traj_file
        self.records: List[tuple] = []
        self._traj: Optional[Trajectory] = None

    def record(self, step: int, engine: Any) -> None:
        stats = engine.summary()
        self.records.append((
            step,
            stats["order_parameter"],
            stats["nv"],
            stats["nh"],
            stats["density"],
            stats["net_accept_fraction"],
        ))
        if self.traj_file:
            if self._traj is None:
                self._traj = Trajectory(self.traj_file, "w")
            self._traj.write(configuration_atoms(engine))

    def as_array(self) -> np.ndarray:
        if not self.records:
            return np.zeros((0, len(TABLE_COLUMNS)))
        return np.array(self.records, dtype=float)

    def write_table(self) -> None:
        """Write the time series; undefined statistics appear as nan."""
        np.savetxt(
            self.data_file,
            self.as_array(),
            fmt=["%d", "%.6f", "%d", "%d", "%.6f", "%.6f"],
            header=" ".join(TABLE_COLUMNS),
        )
        logger.info(f"Wrote {len(self.records)} samples to {self.data_file}")

    def write_anchors(self, engine: Any) -> None:
        np.savetxt(self.vertical_file, anchors_array(engine.live_vertical_rods()), fmt="%d")
        np.savetxt(self.horizontal_file, anchors_array(engine.live_horizontal_rods()), fmt="%d")
        logger.info(
            f"Wrote {engine.vertical_count()} vertical / {engine.horizontal_count()} horizontal anchors"
        )

    def close(self) -> None:
        if self._traj is not None:
            self._traj.close()
            self._traj = None

    def finalize(self, engine: Any) -> None:
        """Write every artifact of a finished chain."""
        self.write_table()
        self.write_anchors(engine)
        self.close()

    def __enter__(self) -> "Recorder":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

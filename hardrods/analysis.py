"""Plotting helpers for hard-rod configurations and activity sweeps."""

from typing import Optional

import numpy as np
import matplotlib.pyplot as plt

from .lattice import Lattice
from .rods import Orientation
from .utils import deserialize_placements


def plot_configuration(vertical, horizontal, length, cols, rows, ax=None):
    """
    Draw every covered cell, vertical rods in blue and horizontal rods in red.

    vertical/horizontal are (N, 2) anchor arrays, as written by the recorder,
    or (N, 3) serialized placements.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6 * rows / cols))
    else:
        fig = ax.figure

    lattice = Lattice(cols, rows)
    for anchors, orientation, color in (
        (vertical, Orientation.VERTICAL, "tab:blue"),
        (horizontal, Orientation.HORIZONTAL, "tab:red"),
    ):
        anchors = np.asarray(anchors, dtype=int)
        if anchors.size == 0:
            continue
        if anchors.shape[-1] == 3:
            rods = deserialize_placements(anchors, length)
            xy = [(r.x, r.y) for r in rods if r.orientation == orientation]
        else:
            xy = anchors.reshape(-1, 2).tolist()
        cells = [c for x, y in xy for c in lattice.span(x, y, orientation, length)]
        if cells:
            cells = np.array(cells)
            ax.scatter(cells[:, 0] + 0.5, cells[:, 1] + 0.5, marker="s", s=12, color=color,
                       label=orientation.name.lower())

    ax.set_xlim(0, cols)
    ax.set_ylim(0, rows)
    ax.set_aspect("equal")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title(f"Hard rods, L={length}")
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="upper right")
    return fig


def plot_sweep(results_file: str, single_site_reference: bool = False, ax: Optional[plt.Axes] = None):
    """
    Density and order parameter against activity from a sweep results file.
    With single_site_reference, overlay the L=1 exact density z/(1+z).
    """
    data = np.genfromtxt(results_file, delimiter=",", names=True)
    data = np.atleast_1d(data)
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 5))
    else:
        fig = ax.figure

    ax.plot(data["z"], data["density"], "o-", label="density")
    ax.plot(data["z"], data["Q"], "s--", label="Q")
    if single_site_reference:
        z = np.linspace(0.0, float(np.max(data["z"])), 200)
        ax.plot(z, z / (1.0 + z), "k:", label="z/(1+z)")
    ax.set_xlabel("Activity z")
    ax.set_ylabel("Value")
    ax.set_title("Hard-rod GCMC activity sweep")
    ax.legend()
    fig.tight_layout()
    return fig

#!/usr/bin/env python3

import matplotlib.pyplot as plt

from hardrods import ActivitySweep
from hardrods.analysis import plot_sweep


def main():
    # Single-site lattice gas (L=1): density should follow z/(1+z).
    sweep = ActivitySweep.from_auto_config(
        z_start=0.0,
        z_end=10.0,
        n_points=50,
        nsteps=1_000_000,
        length=1,
        cols=100,
        rows=100,
        results_file="dataNvsZ.csv",
        # "serial", "multiprocessing" or "ray"
        execution_backend="multiprocessing",
        n_workers=8,
        seed=67,
    )
    sweep.run()

    plot_sweep("dataNvsZ.csv", single_site_reference=True)
    plt.show()


if __name__ == "__main__":
    main()

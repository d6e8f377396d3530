# -*- coding: utf-8 -*-
"""
hardrods package: Grand Canonical Monte Carlo of oriented hard rods on a torus.

Exports:
- HardRodGCMC: GCMC move engine (insertion/deletion, statistics)
- Lattice, RodRegistry, Rod, Orientation: configuration data model
- Recorder: time-series, anchor listings and ASE snapshots
- ActivitySweep: one independent chain per activity
- ConfigurationError, UndefinedStatisticError
- utils: activity grids, placement serialization
"""

from .exceptions import ConfigurationError, UndefinedStatisticError
from .rods import Orientation, Rod, RodRegistry
from .lattice import Lattice
from .gcmc import HardRodGCMC, StepOutcome
from .recorder import Recorder
from .sweep import ActivitySweep
from . import utils

__all__ = [
    "ConfigurationError",
    "UndefinedStatisticError",
    "Orientation",
    "Rod",
    "RodRegistry",
    "Lattice",
    "HardRodGCMC",
    "StepOutcome",
    "Recorder",
    "ActivitySweep",
    "utils",
]

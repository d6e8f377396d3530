import logging
import math
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np

from .exceptions import ConfigurationError, UndefinedStatisticError
from .lattice import Lattice
from .rods import Orientation, Rod, RodRegistry

logger = logging.getLogger("mc")
logger.setLevel(logging.INFO)
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
logger.propagate = False


class StepOutcome(NamedTuple):
    step: int
    move: str
    accepted: bool


def _require_int(name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}.")
    return int(value)


class HardRodGCMC:
    """
    Grand Canonical Monte Carlo (GCMC) for a lattice gas of hard rods of
    length L on an R x C torus, with vertical and horizontal orientations.

    Each step flips a fair coin between an insertion and a deletion attempt.
    The acceptance probabilities

        Pa = min(1, z*R*C / ((N+1)*L))
        Pd = min(1, N*L / (z*R*C))

    are computed from the current rod count N before the move is chosen and
    are reciprocal, which gives detailed balance for the grand canonical
    ensemble at activity z = exp(beta*mu).

    Parameters (attributes are the same as the __init__ args):
    ----------------------------------------------------------
    nsteps: Step budget of the chain
    length: Rod length L (cells)
    cols: Number of lattice columns C (x extent)
    rows: Number of lattice rows R (y extent)
    z: Activity
    seed: Seed for numpy's default generator (None draws OS entropy)
    rng: Pre-built numpy Generator; takes precedence over seed
    """

    def __init__(
        self,
        nsteps: int,
        length: int,
        cols: int,
        rows: int,
        z: float,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.nsteps: int = _require_int("nsteps", nsteps, 0)
        self.length: int = _require_int("length", length, 1)
        self.cols: int = _require_int("cols", cols, 1)
        self.rows: int = _require_int("rows", rows, 1)
        if self.length > self.cols or self.length > self.rows:
            raise ConfigurationError(
                f"Rod length {self.length} exceeds lattice dimensions {self.cols}x{self.rows}."
            )
        if isinstance(z, (str, bytes)):
            raise ConfigurationError(f"z must be a real number, got {z!r}.")
        try:
            z = float(z)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"z must be a real number, got {z!r}.") from exc
        if not math.isfinite(z) or z < 0:
            raise ConfigurationError(f"z must be finite and >= 0, got {z}.")
        self.z: float = z

        self.seed: Optional[int] = seed
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng(seed)

        self.lattice: Lattice = Lattice(self.cols, self.rows)
        self.registry: RodRegistry = RodRegistry()

        # Cumulative accepted moves per orientation
        self.av: int = 0
        self.ah: int = 0
        self.dv: int = 0
        self.dh: int = 0
        self.step: int = 0

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def addition_probability(self, n: Optional[int] = None) -> float:
        if n is None:
            n = len(self.registry)
        return min(1.0, self.z * self.lattice.size / ((n + 1) * self.length))

    def deletion_probability(self, n: Optional[int] = None) -> float:
        """Pd for the current N; its z -> 0 limit is 1."""
        if n is None:
            n = len(self.registry)
        if self.z == 0.0:
            return 1.0
        return min(1.0, n * self.length / (self.z * self.lattice.size))

    def attempt_addition(self, threshold: float, p_add: float) -> bool:
        """
        Try to insert a rod at a random anchor with a random orientation.
        Blocked spans are no-ops; a free span is accepted if threshold < p_add.
        """
        x = int(self.rng.integers(self.cols))
        y = int(self.rng.integers(self.rows))
        orientation = Orientation(int(self.rng.integers(2)))

        if self.lattice.is_occupied(x, y):
            return False
        if not self.lattice.is_span_free(x, y, orientation, self.length):
            return False
        if threshold >= p_add:
            return False

        rod = Rod(x, y, orientation, self.length)
        self.lattice.fill_span(x, y, orientation, self.length, True)
        self.registry.add(rod)
        if rod.is_vertical:
            self.av += 1
        else:
            self.ah += 1
        logger.debug("Step %d: inserted %s rod at (%d, %d)", self.step, orientation.name, x, y)
        return True

    def attempt_deletion(self, threshold: float, p_del: float) -> bool:
        """Try to remove a uniformly chosen live rod. No-op on an empty lattice."""
        n = len(self.registry)
        if n == 0:
            return False
        index = int(self.rng.integers(n))
        if threshold >= p_del:
            return False

        rod = self.registry.remove_at(index)
        self.lattice.fill_span(rod.x, rod.y, rod.orientation, rod.length, False)
        if rod.is_vertical:
            self.dv += 1
        else:
            self.dh += 1
        logger.debug("Step %d: deleted %s rod at (%d, %d)", self.step, rod.orientation.name, rod.x, rod.y)
        return True

    def mc_step(self) -> StepOutcome:
        """
        One Markov step. Draw order: move-kind coin, acceptance threshold,
        then the move's own draws.
        """
        n = len(self.registry)
        p_add = self.addition_probability(n)
        p_del = self.deletion_probability(n)

        move = "add" if int(self.rng.integers(2)) == 0 else "delete"
        threshold = self.rng.random()
        if move == "add":
            accepted = self.attempt_addition(threshold, p_add)
        elif n > 0:
            accepted = self.attempt_deletion(threshold, p_del)
        else:
            accepted = False

        self.step += 1
        return StepOutcome(self.step, move, accepted)

    def run(
        self,
        recorder: Optional[Any] = None,
        sample_interval: Optional[int] = None,
        log_interval: Optional[int] = None,
    ) -> Dict[str, float]:
        """
        Run the remaining step budget.

        The recorder, if given, is handed the engine every sample_interval
        steps via recorder.record(step, engine). Defaults give 10000 samples
        and 100 progress lines per run.
        """
        if sample_interval is None:
            sample_interval = max(1, self.nsteps // 10000)
        if log_interval is None:
            log_interval = max(1, self.nsteps // 100)

        header_fmt = "{:>8s} {:>12s} {:>8s} {:>8s} {:>8s} {:>9s} {:>9s}"
        step_fmt = "{:7.2f}% {:12d} {:8d} {:8d} {:8d} {:9.4f} {:9.4f}"
        logger.info(header_fmt.format("Progress", "Step", "N", "Nv", "Nh", "Q", "Density"))

        while self.step < self.nsteps:
            self.mc_step()

            if recorder is not None and self.step % sample_interval == 0:
                recorder.record(self.step, self)

            if self.step % log_interval == 0:
                stats = self.summary()
                logger.info(step_fmt.format(
                    100.0 * self.step / self.nsteps,
                    self.step,
                    self.vertical_count() + self.horizontal_count(),
                    self.vertical_count(),
                    self.horizontal_count(),
                    stats["order_parameter"],
                    stats["density"],
                ))

        logger.info(
            f"GCMC completed: z={self.z:g}, Ins V/H {self.av}/{self.ah}, Del V/H {self.dv}/{self.dh}, "
            f"density={self.density():.4f}"
        )
        return self.summary()

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _net_accepted(self) -> int:
        return self.av + self.ah - self.dv - self.dh

    def density(self) -> float:
        """Fraction of covered cells, L * (net accepted rods) / (R*C)."""
        return self.length * self._net_accepted() / self.lattice.size

    def order_parameter(self) -> float:
        """
        Nematic order parameter Q = (nv - nh) / (nv + nh).

        Raises:
            UndefinedStatisticError: if no rods are on the lattice.
        """
        nv, nh = self.vertical_count(), self.horizontal_count()
        if nv + nh == 0:
            raise UndefinedStatisticError("Order parameter is undefined on an empty lattice.")
        return (nv - nh) / (nv + nh)

    def addition_acceptance_rate(self) -> float:
        """Unclipped insertion ratio z*R*C / ((N+1)*L); diagnostic only."""
        return self.z * self.lattice.size / ((self._net_accepted() + 1) * self.length)

    def deletion_acceptance_rate(self) -> float:
        """Unclipped deletion ratio N*L / (z*R*C); diagnostic only."""
        if self.z == 0.0:
            raise UndefinedStatisticError("Deletion acceptance rate is undefined at z = 0.")
        return self._net_accepted() * self.length / (self.z * self.lattice.size)

    def net_accept_fraction(self) -> float:
        """(adds - deletes) / (adds + deletes) over all accepted moves."""
        total = self.av + self.ah + self.dv + self.dh
        if total == 0:
            raise UndefinedStatisticError("No move has been accepted yet.")
        return self._net_accepted() / total

    def vertical_count(self) -> int:
        return self.registry.n_vertical

    def horizontal_count(self) -> int:
        return self.registry.n_horizontal

    def live_vertical_rods(self) -> List[Rod]:
        return self.registry.vertical()

    def live_horizontal_rods(self) -> List[Rod]:
        return self.registry.horizontal()

    def occupancy(self) -> np.ndarray:
        return self.lattice.occupancy

    def counters(self) -> Dict[str, int]:
        return {
            "nv": self.vertical_count(),
            "nh": self.horizontal_count(),
            "av": self.av,
            "ah": self.ah,
            "dv": self.dv,
            "dh": self.dh,
        }

    def summary(self) -> Dict[str, float]:
        """Snapshot of every exposed statistic; undefined values become nan."""
        out: Dict[str, float] = {
            "step": self.step,
            "nv": self.vertical_count(),
            "nh": self.horizontal_count(),
            "density": self.density(),
            "add_rate": self.addition_acceptance_rate(),
        }
        for key, query in (
            ("order_parameter", self.order_parameter),
            ("del_rate", self.deletion_acceptance_rate),
            ("net_accept_fraction", self.net_accept_fraction),
        ):
            try:
                out[key] = query()
            except UndefinedStatisticError:
                out[key] = float("nan")
        return out

    def check_consistency(self) -> None:
        """
        Assert the integral counter invariants and the occupancy invariant:
        every cell is covered by at most one rod and occupied cells are
        exactly the union of the live spans.
        """
        counters = self.counters()
        for name, value in counters.items():
            assert isinstance(value, int) and value >= 0, f"{name}={value!r} is not a non-negative int"
        assert counters["nv"] == self.av - self.dv, "vertical count drifted from add/delete totals"
        assert counters["nh"] == self.ah - self.dh, "horizontal count drifted from add/delete totals"

        coverage = np.zeros((self.rows, self.cols), dtype=int)
        for rod in self.registry:
            for cx, cy in self.lattice.span(rod.x, rod.y, rod.orientation, rod.length):
                coverage[cy, cx] += 1
        assert coverage.max(initial=0) <= 1, "overlapping rods"
        assert np.array_equal(coverage.astype(bool), self.lattice.cells), "occupancy out of sync with registry"
        assert self.lattice.occupied_count() == self.length * len(self.registry)

import logging
import os
import time
from typing import Any, Dict, List, Optional

import numpy as np
from scipy.special import logit

from .execution_backends import build_chain_backend
from .utils import generate_activity_grid

logger = logging.getLogger("mc")

RESULTS_HEADER = "z,nv,nh,density,Q,beta_mu,logit_density,add_rate,del_rate,seed"


class ActivitySweep:
    """
    Runs one independent GCMC chain per activity and collects one aggregate
    record per chain. Chains share nothing: each task builds its own engine
    and generator, seeded seed + seed_nonce + chain_id.
    """

    def __init__(
        self,
        chain_states: List[Dict[str, Any]],
        n_workers: int = 1,
        results_file: str = "dataNvsZ.csv",
        execution_backend: str = "serial",
        backend_kwargs: Optional[Dict[str, Any]] = None,
        seed: int = 67,
        seed_nonce: int = 0,
    ):
        self.chain_states = chain_states
        self.n_workers = n_workers
        self.results_file = results_file
        self.execution_backend = execution_backend
        self.backend_kwargs = backend_kwargs
        self.seed = seed
        self.seed_nonce = seed_nonce
        self.results: List[Dict[str, Any]] = []

        # Deterministic per-chain streams, independent of worker scheduling and ordering.
        for state in self.chain_states:
            if state.get("seed") is None:
                state["seed"] = self.seed + self.seed_nonce + state["id"]

    @classmethod
    def from_auto_config(
        cls,
        z_start: float,
        z_end: float,
        z_step: Optional[float] = None,
        *,
        n_points: Optional[int] = None,
        log_space: bool = False,
        nsteps: int = 1_000_000,
        length: int = 1,
        cols: int = 100,
        rows: int = 100,
        sample_interval: Optional[int] = None,
        log_interval: Optional[int] = None,
        **sweep_kwargs,
    ) -> "ActivitySweep":
        activities = generate_activity_grid(
            z_start, z_end, z_step=z_step, n_points=n_points, log_space=log_space
        )
        logger.info(
            f"Configuration: {len(activities)} chains | L={length} | {cols}x{rows} | {nsteps} steps/chain"
        )
        chain_states = []
        for i, z in enumerate(activities):
            chain_states.append({
                "id": i,
                "z": float(z),
                "nsteps": nsteps,
                "length": length,
                "cols": cols,
                "rows": rows,
                "sample_interval": sample_interval,
                "log_interval": log_interval,
            })
        return cls(chain_states, **sweep_kwargs)

    @staticmethod
    def _format_row(res: Dict[str, Any]) -> str:
        stats = res["stats"]
        z = res["z"]
        density = stats["density"]
        with np.errstate(divide="ignore"):
            beta_mu = float(np.log(z))
            logit_density = float(logit(density))
        return (
            f"{z:.6f},"
            f"{stats['nv']},"
            f"{stats['nh']},"
            f"{density:.6f},"
            f"{stats['order_parameter']:.6f},"
            f"{beta_mu:.6f},"
            f"{logit_density:.6f},"
            f"{stats['add_rate']:.6f},"
            f"{stats['del_rate']:.6f},"
            f"{res['seed']}"
        )

    def run(self) -> List[Dict[str, Any]]:
        """Run every chain and write the results file, sorted by chain id."""
        backend = build_chain_backend(
            self.execution_backend,
            n_workers=self.n_workers,
            backend_kwargs=self.backend_kwargs,
        )
        backend.start()
        logger.info(f"Starting activity sweep: {len(self.chain_states)} chains")
        t_start = time.time()
        results: Dict[int, Dict[str, Any]] = {}

        try:
            for state in self.chain_states:
                task_data = {k: v for k, v in state.items() if k != "id"}
                backend.submit(state["id"], task_data)

            while len(results) < len(self.chain_states):
                res = backend.get_result()
                if isinstance(res, tuple) and res[0] == "ERROR":
                    raise RuntimeError(f"Worker Error: {res[1]}")
                results[res["chain_id"]] = res
                logger.info(
                    f"  [Chain {res['chain_id']}] z={res['z']:.4f} "
                    f"density={res['stats']['density']:.4f} "
                    f"({len(results)}/{len(self.chain_states)})"
                )
        finally:
            backend.stop()

        duration = time.time() - t_start
        total_steps = sum(state["nsteps"] for state in self.chain_states)
        speed = total_steps / duration if duration > 0 else 0
        logger.info(f"[Timing] {duration:.2f}s | {speed:.2e} steps/s")

        self.results = [results[cid] for cid in sorted(results)]
        self.write_results()
        return self.results

    def write_results(self) -> None:
        directory = os.path.dirname(self.results_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.results_file, "w") as f:
            f.write(RESULTS_HEADER + "\n")
            for res in self.results:
                f.write(self._format_row(res) + "\n")
        logger.info(f"Sweep results written to {self.results_file}")

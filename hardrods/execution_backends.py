import logging
import queue
import traceback
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Dict, Optional

from .process_chain import ChainWorker, ctx, run_chain

logger = logging.getLogger("mc")


class ChainExecutionBackend(ABC):
    """Execution backend interface for running independent chains."""

    @abstractmethod
    def start(self) -> None:
        """Start workers/resources."""

    @abstractmethod
    def submit(self, chain_id: int, task_data: Dict[str, Any]) -> None:
        """Submit one chain task."""

    @abstractmethod
    def get_result(self) -> Any:
        """Return one completed result."""

    @abstractmethod
    def stop(self) -> None:
        """Stop workers/resources."""


class SerialChainBackend(ChainExecutionBackend):
    """Runs each chain in the calling process at submit time."""

    def __init__(self) -> None:
        self._results = deque()

    def start(self) -> None:
        logger.info("Running chains serially in-process.")

    def submit(self, chain_id: int, task_data: Dict[str, Any]) -> None:
        try:
            self._results.append(run_chain(dict(task_data, chain_id=chain_id)))
        except Exception as exc:
            traceback.print_exc()
            self._results.append(("ERROR", f"chain {chain_id}: {exc}"))

    def get_result(self) -> Any:
        if not self._results:
            raise RuntimeError("No pending chain results to collect.")
        return self._results.popleft()

    def stop(self) -> None:
        self._results.clear()


class MultiprocessingChainBackend(ChainExecutionBackend):
    """Local pool of persistent spawn-context worker processes."""

    def __init__(self, n_workers: int):
        self.n_workers = int(n_workers)
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1.")

        self._task_queue = ctx.Queue()
        self._result_queue = ctx.Queue()
        self._workers = []

    def start(self) -> None:
        logger.info(f"Spawning {self.n_workers} persistent chain workers...")
        for rank in range(self.n_workers):
            worker = ChainWorker(rank, self._task_queue, self._result_queue)
            worker.start()
            self._workers.append(worker)

    def submit(self, chain_id: int, task_data: Dict[str, Any]) -> None:
        self._task_queue.put((chain_id, task_data))

    def get_result(self) -> Any:
        return self._result_queue.get()

    def _drain_results(self) -> int:
        """Discard unread results so workers blocked on a full pipe can exit."""
        dropped = 0
        while True:
            try:
                self._result_queue.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1

    def stop(self) -> None:
        for _ in self._workers:
            self._task_queue.put("STOP")
        dropped = 0
        for worker in self._workers:
            while worker.is_alive():
                dropped += self._drain_results()
                worker.join(timeout=0.1)
        dropped += self._drain_results()
        if dropped:
            logger.info(f"Discarded {dropped} uncollected chain results on stop.")
        self._workers = []


class _RayChainActor:
    """Persistent Ray worker actor mirroring process_chain.ChainWorker logic."""

    def __init__(self, rank: int):
        self.rank = rank

    def run_task(self, chain_id: int, data: Dict[str, Any]) -> Any:
        try:
            return run_chain(dict(data, chain_id=chain_id))
        except Exception as exc:
            traceback.print_exc()
            return ("ERROR", f"chain {chain_id}: {exc}")


class RayChainBackend(ChainExecutionBackend):
    """
    Ray backend for multi-node chain execution.

    backend_kwargs supports:
      - init_kwargs: dict passed to ray.init() when needed.
      - actor_options: dict merged into actor options. num_cpus defaults to 1.
      - shutdown_on_stop: bool, if True call ray.shutdown() when this backend owns runtime.
    """

    def __init__(
        self,
        n_workers: int,
        backend_kwargs: Optional[Dict[str, Any]] = None,
    ):
        self.n_workers = int(n_workers)
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1.")
        self.backend_kwargs = backend_kwargs or {}

        self._ray = None
        self._owns_ray_runtime = False
        self._actors = []
        self._next_actor = 0
        self._pending_refs = []

    def start(self) -> None:
        try:
            import ray
        except ImportError as exc:
            raise ImportError(
                "execution_backend='ray' requested but package 'ray' is not installed."
            ) from exc

        self._ray = ray
        if not ray.is_initialized():
            ray.init(**self.backend_kwargs.get("init_kwargs", {}))
            self._owns_ray_runtime = True

        actor_options = dict(self.backend_kwargs.get("actor_options", {}))
        num_cpus_per_actor = float(actor_options.get("num_cpus", 1))
        if num_cpus_per_actor < 0:
            raise ValueError("actor_options['num_cpus'] must be >= 0 for Ray backend.")
        actor_options["num_cpus"] = num_cpus_per_actor

        cluster_cpus = float(ray.cluster_resources().get("CPU", 0.0))
        requested = num_cpus_per_actor * self.n_workers
        if cluster_cpus and requested > cluster_cpus + 1e-8:
            logger.warning(
                "Ray backend requests %.1f CPUs for %d actors but the cluster reports %.1f. "
                "Some actors may stay pending.",
                requested,
                self.n_workers,
                cluster_cpus,
            )

        actor_cls = ray.remote(_RayChainActor)
        logger.info(
            "Spawning %d Ray chain workers (%.3f CPU per actor)...",
            self.n_workers,
            num_cpus_per_actor,
        )
        for rank in range(self.n_workers):
            self._actors.append(actor_cls.options(**actor_options).remote(rank=rank))

    def submit(self, chain_id: int, task_data: Dict[str, Any]) -> None:
        if not self._actors:
            raise RuntimeError("No Ray workers available; call start() first.")
        actor = self._actors[self._next_actor]
        self._next_actor = (self._next_actor + 1) % len(self._actors)
        self._pending_refs.append(actor.run_task.remote(chain_id, task_data))

    def get_result(self) -> Any:
        if not self._pending_refs:
            raise RuntimeError("No pending Ray tasks to collect.")
        ready, pending = self._ray.wait(self._pending_refs, num_returns=1)
        self._pending_refs = pending
        return self._ray.get(ready[0])

    def stop(self) -> None:
        if self._ray is not None:
            for actor in self._actors:
                try:
                    self._ray.kill(actor, no_restart=True)
                except Exception as exc:
                    logger.debug(f"Ignoring failure to kill Ray actor: {exc}")
        self._actors = []
        self._next_actor = 0
        self._pending_refs = []
        if self._owns_ray_runtime and self.backend_kwargs.get("shutdown_on_stop", False):
            self._ray.shutdown()


def build_chain_backend(
    execution_backend: str,
    n_workers: int = 1,
    backend_kwargs: Optional[Dict[str, Any]] = None,
) -> ChainExecutionBackend:
    """Factory for chain execution backends."""
    name = str(execution_backend).strip().lower()
    if name in {"serial", "inline"}:
        return SerialChainBackend()
    if name in {"multiprocessing", "mp", "local"}:
        return MultiprocessingChainBackend(n_workers)
    if name == "ray":
        return RayChainBackend(n_workers=n_workers, backend_kwargs=backend_kwargs)
    raise ValueError(
        f"Unsupported execution_backend '{execution_backend}'. "
        "Use 'serial', 'multiprocessing' or 'ray'."
    )

import logging
import multiprocessing
import traceback
from typing import Any, Dict

from .gcmc import HardRodGCMC
from .recorder import Recorder
from .utils import serialize_placements

# Use 'spawn' so every worker starts from a clean interpreter with no inherited RNG state
ctx = multiprocessing.get_context("spawn")


def run_chain(task: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a fresh engine for one activity, run its whole budget and return
    the aggregate record. Each call owns its own lattice, registry and generator.
    """
    engine = HardRodGCMC(
        nsteps=task["nsteps"],
        length=task["length"],
        cols=task["cols"],
        rows=task["rows"],
        z=task["z"],
        seed=task.get("seed"),
    )

    recorder_kwargs = task.get("recorder_kwargs")
    recorder = Recorder(**recorder_kwargs) if recorder_kwargs else None
    try:
        stats = engine.run(
            recorder=recorder,
            sample_interval=task.get("sample_interval"),
            log_interval=task.get("log_interval"),
        )
        if recorder is not None:
            recorder.finalize(engine)
    finally:
        if recorder is not None:
            recorder.close()

    return {
        "chain_id": task["chain_id"],
        "z": engine.z,
        "seed": task.get("seed"),
        "stats": stats,
        "counters": engine.counters(),
        "vertical": serialize_placements(engine.live_vertical_rods()),
        "horizontal": serialize_placements(engine.live_horizontal_rods()),
    }


class ChainWorker(ctx.Process):
    """
    Persistent worker process:
    1. Pulls (chain_id, task) pairs from a shared task queue until "STOP".
    2. Runs one independent chain per task.
    3. Pushes the aggregate record, or ("ERROR", message), to the result queue.
    """

    def __init__(self, rank, task_queue, result_queue):
        super().__init__()
        self.rank = rank
        self.task_queue = task_queue
        self.result_queue = result_queue
        self.daemon = True

    def run(self):
        logging.basicConfig(
            format=f"[W {self.rank}] %(message)s",
            level=logging.INFO,
        )

        while True:
            task = self.task_queue.get()
            if task == "STOP":
                break

            chain_id, data = task
            try:
                result = run_chain(dict(data, chain_id=chain_id))
            except Exception as e:
                traceback.print_exc()
                result = ("ERROR", f"chain {chain_id}: {e}")
            self.result_queue.put(result)

import sys
import types
import unittest
from unittest.mock import patch

from hardrods.execution_backends import (
    MultiprocessingChainBackend,
    RayChainBackend,
    SerialChainBackend,
    build_chain_backend,
)


TASK = {"z": 1.0, "nsteps": 300, "length": 2, "cols": 5, "rows": 5, "seed": 4}


def _make_fake_ray_module(cluster_cpus=8.0):
    mod = types.ModuleType("ray")
    mod._initialized = False
    mod.init_calls = []
    mod.actor_option_calls = []
    mod.submitted = []
    mod.killed = []

    def is_initialized():
        return mod._initialized

    def init(**kwargs):
        mod.init_calls.append(kwargs)
        mod._initialized = True

    def remote(_cls):
        class _Template:
            def options(self, **opts):
                mod.actor_option_calls.append(dict(opts))

                class _Invoker:
                    def remote(self, **kwargs):
                        rank = kwargs["rank"]

                        def run_task_remote(chain_id, data):
                            mod.submitted.append((rank, chain_id))
                            return {"chain_id": chain_id, "rank": rank}

                        return types.SimpleNamespace(
                            rank=rank,
                            run_task=types.SimpleNamespace(remote=run_task_remote),
                        )

                return _Invoker()

        return _Template()

    def wait(refs, num_returns=1):
        return refs[:num_returns], refs[num_returns:]

    def kill(actor, no_restart=True):
        mod.killed.append(actor.rank)

    def shutdown():
        mod._initialized = False

    mod.is_initialized = is_initialized
    mod.init = init
    mod.remote = remote
    mod.wait = wait
    mod.kill = kill
    mod.shutdown = shutdown
    mod.get = lambda obj: obj
    mod.cluster_resources = lambda: {"CPU": cluster_cpus}
    return mod


class RayBackendConfigTests(unittest.TestCase):
    def test_default_one_cpu_per_actor(self):
        fake_ray = _make_fake_ray_module()
        with patch.dict(sys.modules, {"ray": fake_ray}):
            backend = RayChainBackend(n_workers=3, backend_kwargs={})
            backend.start()

        self.assertEqual(len(fake_ray.init_calls), 1)
        self.assertEqual(len(fake_ray.actor_option_calls), 3)
        self.assertTrue(all(opts["num_cpus"] == 1.0 for opts in fake_ray.actor_option_calls))

    def test_respects_explicit_num_cpus_override(self):
        fake_ray = _make_fake_ray_module()
        with patch.dict(sys.modules, {"ray": fake_ray}):
            backend = RayChainBackend(
                n_workers=2,
                backend_kwargs={"actor_options": {"num_cpus": 0.5}},
            )
            backend.start()

        self.assertTrue(
            all(abs(opts["num_cpus"] - 0.5) < 1e-12 for opts in fake_ray.actor_option_calls)
        )

    def test_rejects_negative_num_cpus_override(self):
        fake_ray = _make_fake_ray_module()
        with patch.dict(sys.modules, {"ray": fake_ray}):
            backend = RayChainBackend(
                n_workers=2,
                backend_kwargs={"actor_options": {"num_cpus": -1}},
            )
            with self.assertRaises(ValueError):
                backend.start()

    def test_warns_when_cluster_is_oversubscribed(self):
        fake_ray = _make_fake_ray_module(cluster_cpus=2.0)
        with patch.dict(sys.modules, {"ray": fake_ray}):
            backend = RayChainBackend(n_workers=4)
            with self.assertLogs("mc", level="WARNING"):
                backend.start()

    def test_submit_round_robin_and_collect(self):
        fake_ray = _make_fake_ray_module()
        with patch.dict(sys.modules, {"ray": fake_ray}):
            backend = RayChainBackend(n_workers=2, backend_kwargs={"shutdown_on_stop": True})
            backend.start()
            for chain_id in range(4):
                backend.submit(chain_id, dict(TASK))
            results = [backend.get_result() for _ in range(4)]
            with self.assertRaises(RuntimeError):
                backend.get_result()
            backend.stop()

        self.assertEqual(fake_ray.submitted, [(0, 0), (1, 1), (0, 2), (1, 3)])
        self.assertEqual([r["chain_id"] for r in results], [0, 1, 2, 3])
        self.assertEqual(sorted(fake_ray.killed), [0, 1])
        self.assertFalse(fake_ray._initialized)

    def test_submit_before_start_fails(self):
        backend = RayChainBackend(n_workers=1)
        with self.assertRaises(RuntimeError):
            backend.submit(0, dict(TASK))


class BackendFactoryTests(unittest.TestCase):
    def test_names(self):
        self.assertIsInstance(build_chain_backend("serial"), SerialChainBackend)
        self.assertIsInstance(build_chain_backend("Ray", n_workers=2), RayChainBackend)
        self.assertIsInstance(build_chain_backend(" mp ", n_workers=1), MultiprocessingChainBackend)
        with self.assertRaises(ValueError):
            build_chain_backend("threads")

    def test_worker_count_validation(self):
        with self.assertRaises(ValueError):
            MultiprocessingChainBackend(0)
        with self.assertRaises(ValueError):
            RayChainBackend(n_workers=0)


class SerialBackendTests(unittest.TestCase):
    def test_runs_chain_in_process(self):
        backend = SerialChainBackend()
        backend.start()
        backend.submit(7, dict(TASK))
        result = backend.get_result()
        backend.stop()
        self.assertEqual(result["chain_id"], 7)
        self.assertEqual(result["z"], 1.0)
        self.assertEqual(result["stats"]["step"], 300)
        self.assertEqual(result["vertical"].shape[0], result["counters"]["nv"])
        self.assertEqual(result["horizontal"].shape[0], result["counters"]["nh"])

    def test_bad_task_is_reported_as_error(self):
        backend = SerialChainBackend()
        backend.submit(1, dict(TASK, length=9))
        result = backend.get_result()
        self.assertEqual(result[0], "ERROR")
        self.assertIn("chain 1", result[1])


class MultiprocessingBackendTests(unittest.TestCase):
    def test_matches_serial_backend(self):
        serial = SerialChainBackend()
        serial.submit(0, dict(TASK))
        expected = serial.get_result()

        backend = MultiprocessingChainBackend(n_workers=1)
        backend.start()
        try:
            backend.submit(0, dict(TASK))
            result = backend.get_result()
        finally:
            backend.stop()

        self.assertEqual(result["counters"], expected["counters"])
        self.assertEqual(result["vertical"].tolist(), expected["vertical"].tolist())
        self.assertEqual(result["horizontal"].tolist(), expected["horizontal"].tolist())

    def test_stop_with_uncollected_large_result_returns(self):
        backend = MultiprocessingChainBackend(n_workers=2)
        backend.start()
        backend.submit(0, dict(TASK, length=5, cols=3, rows=3))
        backend.submit(1, {"z": 1000.0, "nsteps": 150000, "length": 1, "cols": 100, "rows": 100, "seed": 1})
        first = backend.get_result()
        self.assertEqual(first[0], "ERROR")
        backend.stop()
        self.assertEqual(backend._workers, [])


if __name__ == "__main__":
    unittest.main()

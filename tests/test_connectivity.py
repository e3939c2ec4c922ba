import asyncio
import unittest

from album_edge.offline.connectivity import ConnectivityMonitor


class _Probe:
    def __init__(self, *results: bool) -> None:
        self._results = list(results)

    async def __call__(self) -> bool:
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0]


class ConnectivityMonitorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.restored = 0

    async def _on_restored(self) -> None:
        self.restored += 1

    def _monitor(self, probe) -> ConnectivityMonitor:
        return ConnectivityMonitor(probe=probe, on_restored=self._on_restored, interval_seconds=0.01)

    async def test_restoration_fires_once_per_transition(self) -> None:
        monitor = self._monitor(_Probe(True, True, False, False, True, True))

        results = [await monitor.tick() for _ in range(6)]

        self.assertEqual(results, [True, False, False, False, True, False])
        self.assertEqual(self.restored, 2)
        self.assertTrue(monitor.online)

    async def test_probe_exception_counts_as_offline(self) -> None:
        async def broken() -> bool:
            raise RuntimeError("dns")

        monitor = self._monitor(broken)

        self.assertFalse(await monitor.tick())
        self.assertIs(monitor.online, False)
        self.assertEqual(self.restored, 0)

    async def test_loop_runs_until_stopped(self) -> None:
        monitor = self._monitor(_Probe(False, True))

        monitor.start()
        await asyncio.sleep(0.1)
        await monitor.stop()

        self.assertEqual(self.restored, 1)


if __name__ == "__main__":
    unittest.main()

import unittest

from offline.connectivity import ConnectivityMonitor


class ConnectivityMonitorTests(unittest.TestCase):
    def test_callbacks_fire_on_transitions_only(self):
        monitor = ConnectivityMonitor()
        seen = []
        monitor.subscribe(seen.append)

        self.assertTrue(monitor.set_online(True))
        self.assertFalse(monitor.set_online(True))
        self.assertTrue(monitor.set_online(False))

        self.assertEqual(seen, [True, False])
        self.assertFalse(monitor.online)

    def test_unsubscribe(self):
        monitor = ConnectivityMonitor()
        seen = []
        unsubscribe = monitor.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        monitor.set_online(True)

        self.assertEqual(seen, [])

    def test_failing_callback_does_not_block_others(self):
        monitor = ConnectivityMonitor()
        seen = []

        def broken(online):
            raise RuntimeError("listener crashed")

        monitor.subscribe(broken)
        monitor.subscribe(seen.append)

        with self.assertLogs("offline.connectivity", level="WARNING"):
            monitor.set_online(True)

        self.assertEqual(seen, [True])

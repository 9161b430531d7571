"""
Tests for the cleanup ledger.
"""

import os
import sys
import unittest
from concurrent.futures import ThreadPoolExecutor

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from common.ledger import CleanupLedger
from fakes import InMemoryStorage


class TestCleanupLedger(unittest.TestCase):
    """Test key tracking semantics."""

    def setUp(self):
        self.ledger = CleanupLedger()

    def test_commit_keeps_order(self):
        for key in ["b", "a", "c"]:
            self.assertTrue(self.ledger.commit(key))
        self.assertEqual(self.ledger.keys(), ["b", "a", "c"])
        self.assertEqual(len(self.ledger), 3)
        self.assertIn("a", self.ledger)

    def test_duplicate_is_rejected(self):
        self.assertTrue(self.ledger.commit("k"))
        with self.assertLogs('common.ledger', level='WARNING'):
            self.assertFalse(self.ledger.commit("k"))
        self.assertEqual(len(self.ledger), 1)

    def test_pending_not_in_ledger_until_committed(self):
        self.ledger.track_pending("k")
        self.assertNotIn("k", self.ledger)

        self.ledger.commit("k")
        self.assertIn("k", self.ledger)
        self.assertEqual(self.ledger.promote_pending(), 0)
        self.assertEqual(self.ledger.keys(), ["k"])

    def test_discard_pending(self):
        self.ledger.track_pending("k")
        self.ledger.discard_pending("k")
        self.assertEqual(self.ledger.promote_pending(), 0)
        self.assertEqual(len(self.ledger), 0)

    def test_promote_pending(self):
        self.ledger.commit("done")
        self.ledger.track_pending("abandoned-1")
        self.ledger.track_pending("abandoned-2")

        self.assertEqual(self.ledger.promote_pending(), 2)
        self.assertEqual(self.ledger.keys(), ["done", "abandoned-1", "abandoned-2"])
        self.assertEqual(self.ledger.promote_pending(), 0)

    def test_drain_only_once(self):
        self.ledger.commit("k")
        self.assertEqual(self.ledger.drain(), ["k"])
        self.assertEqual(len(self.ledger), 0)
        with self.assertRaises(RuntimeError):
            self.ledger.drain()

    def test_commit_after_drain_is_rejected(self):
        self.ledger.drain()
        self.assertFalse(self.ledger.commit("late"))

    def test_concurrent_commits(self):
        keys = [f"key-{i}" for i in range(2000)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(self.ledger.commit, keys))

        self.assertTrue(all(results))
        self.assertEqual(len(self.ledger), 2000)
        self.assertEqual(set(self.ledger.keys()), set(keys))


class TestCleanupLedgerDeleteAll(unittest.IsolatedAsyncioTestCase):
    """Test deleting recorded keys."""

    async def test_deletes_every_key(self):
        storage = InMemoryStorage(objects={"a": b"1", "b": b"2", "other": b"3"})
        ledger = CleanupLedger()
        ledger.commit("a")
        ledger.commit("b")

        report = await ledger.delete_all(storage)

        self.assertEqual(report.attempted, 2)
        self.assertEqual(report.deleted, 2)
        self.assertEqual(report.failed, 0)
        self.assertEqual(set(storage.objects), {"other"})

    async def test_failures_are_collected(self):
        storage = InMemoryStorage(objects={"a": b"1", "b": b"2", "c": b"3"})
        storage.fail_delete_keys = {"b"}
        ledger = CleanupLedger()
        for key in ["a", "b", "c"]:
            ledger.commit(key)

        report = await ledger.delete_all(storage)

        self.assertEqual(report.attempted, 3)
        self.assertEqual(report.deleted, 2)
        self.assertEqual(list(report.failures), ["b"])
        self.assertIn("AccessDenied", report.failures["b"])
        self.assertEqual(set(storage.objects), {"b"})

    async def test_missing_object_counts_as_deleted(self):
        ledger = CleanupLedger()
        ledger.commit("never-landed")

        report = await ledger.delete_all(InMemoryStorage())

        self.assertEqual(report.deleted, 1)


if __name__ == '__main__':
    unittest.main()

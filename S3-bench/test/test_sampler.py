"""
Tests for the read sampler.
"""

import os
import random
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from algorithms.sampler import ReadSampler
from common.errors import ProvisioningError
from fakes import InMemoryStorage


def make_storage(count, prefix="data/"):
    objects = {f"{prefix}obj-{i:03d}": b"x" * 10 for i in range(count)}
    objects["elsewhere/obj"] = b"y"
    return InMemoryStorage(objects=objects)


async def drain(sampler):
    keys = []
    while True:
        record = await sampler.next_record()
        if record is None:
            return keys
        keys.append(record.key)


class TestReadSampler(unittest.IsolatedAsyncioTestCase):
    """Test key selection for read workloads."""

    async def test_distinct_keys_across_pages(self):
        storage = make_storage(25)
        sampler = ReadSampler(storage, 25, prefix="data", page_size=10, rng=random.Random(7))

        self.assertTrue(await sampler.prime())
        keys = await drain(sampler)

        self.assertEqual(len(keys), 25)
        self.assertEqual(len(set(keys)), 25)
        self.assertTrue(all(key.startswith("data/") for key in keys))
        self.assertFalse(sampler.with_replacement)
        self.assertEqual(storage.list_calls, 3)

    async def test_stops_at_requested_count(self):
        sampler = ReadSampler(make_storage(25), 5, prefix="data", page_size=10)

        await sampler.prime()
        keys = await drain(sampler)

        self.assertEqual(len(keys), 5)
        self.assertEqual(sampler.issued, 5)

    async def test_pool_bounded_by_page_size(self):
        storage = make_storage(100)
        sampler = ReadSampler(storage, 3, prefix="data", page_size=10)

        await sampler.prime()
        await drain(sampler)

        self.assertEqual(storage.list_calls, 1)
        self.assertEqual(sampler.observed_count, 10)

    async def test_order_is_shuffled(self):
        sampler = ReadSampler(make_storage(20), 20, prefix="data", page_size=20, rng=random.Random(3))

        await sampler.prime()
        keys = await drain(sampler)

        listing_order = sorted(keys)
        self.assertNotEqual(keys, listing_order)
        self.assertNotEqual(keys, list(reversed(listing_order)))

    async def test_replacement_when_fewer_objects_than_reads(self):
        storage = make_storage(4)
        sampler = ReadSampler(storage, 10, prefix="data", page_size=10, rng=random.Random(1))

        await sampler.prime()
        with self.assertLogs('algorithms.sampler', level='INFO') as logs:
            keys = await drain(sampler)

        self.assertEqual(len(keys), 10)
        self.assertEqual(len(set(keys[:4])), 4)
        self.assertTrue(set(keys) <= {f"data/obj-{i:03d}" for i in range(4)})
        self.assertTrue(sampler.with_replacement)
        self.assertEqual(
            sum("sampling with replacement" in line for line in logs.output), 1
        )

    async def test_empty_prefix(self):
        sampler = ReadSampler(make_storage(5), 10, prefix="missing")

        self.assertFalse(await sampler.prime())
        self.assertIsNone(await sampler.next_record())

    async def test_whole_bucket_without_prefix(self):
        sampler = ReadSampler(make_storage(3), 4)
        self.assertEqual(sampler.list_prefix, "")

        await sampler.prime()
        keys = await drain(sampler)

        self.assertEqual(set(keys), {"data/obj-000", "data/obj-001", "data/obj-002", "elsewhere/obj"})

    async def test_prefix_is_a_directory(self):
        storage = make_storage(2)
        storage.objects["database/obj"] = b"z"
        sampler = ReadSampler(storage, 10, prefix="data/")
        self.assertEqual(sampler.list_prefix, "data/")

        await sampler.prime()
        keys = await drain(sampler)

        self.assertNotIn("database/obj", keys)

    async def test_folder_markers_skipped(self):
        storage = make_storage(2)
        storage.objects["data/"] = b""
        storage.objects["data/sub/"] = b""
        sampler = ReadSampler(storage, 10, prefix="data")

        await sampler.prime()
        keys = await drain(sampler)

        self.assertFalse(any(key.endswith("/") for key in keys))
        self.assertEqual(sampler.observed_count, 2)

    async def test_listing_failure_while_priming(self):
        storage = make_storage(5)
        storage.fail_list = True
        sampler = ReadSampler(storage, 5, prefix="data")

        with self.assertRaises(ProvisioningError):
            await sampler.prime()

    async def test_listing_failure_mid_run_uses_observed_keys(self):
        storage = make_storage(6)
        sampler = ReadSampler(storage, 6, prefix="data", page_size=2, rng=random.Random(5))

        await sampler.prime()
        storage.fail_list = True
        keys = await drain(sampler)

        self.assertEqual(len(keys), 6)
        self.assertEqual(set(keys), {"data/obj-000", "data/obj-001"})
        self.assertTrue(sampler.with_replacement)


if __name__ == '__main__':
    unittest.main()

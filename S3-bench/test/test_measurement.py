"""
Tests for per-operation timing, throughput and latency thresholds.
"""

import asyncio
import os
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from configuration import MIN_DURATION_MS
from common.errors import OperationError
from common.measurement import Measurement, SystemClock
from common.metrics_utils import calculate_throughput_mbps, clamp_duration_ms, evaluate_latency
from fakes import FakeClock


class TestThroughput(unittest.TestCase):
    """Test the throughput formula."""

    def test_formula(self):
        for duration_ms, size_bytes in [(250.0, 10_000_000), (1.5, 1024), (1000.0, 0), (0.001, 1)]:
            with self.subTest(duration_ms=duration_ms, size_bytes=size_bytes):
                expected = (1000 / duration_ms) * size_bytes / 1_000_000
                self.assertEqual(calculate_throughput_mbps(duration_ms, size_bytes), expected)

    def test_known_value(self):
        self.assertEqual(calculate_throughput_mbps(250.0, 10_000_000), 40.0)

    def test_zero_duration_is_clamped(self):
        self.assertEqual(clamp_duration_ms(0.0), MIN_DURATION_MS)
        self.assertEqual(
            calculate_throughput_mbps(0.0, 1000),
            (1000 / MIN_DURATION_MS) * 1000 / 1_000_000,
        )


class TestLatencyThreshold(unittest.TestCase):

    def test_no_threshold_never_exceeds(self):
        self.assertFalse(evaluate_latency(10_000_000.0, None))

    def test_threshold(self):
        self.assertTrue(evaluate_latency(50.1, 50.0))
        self.assertFalse(evaluate_latency(50.0, 50.0))
        self.assertFalse(evaluate_latency(10.0, 50.0))


class TestMeasurement(unittest.IsolatedAsyncioTestCase):
    """Test Measurement with a controlled clock."""

    async def test_successful_sample(self):
        clock = FakeClock(readings=[10.0, 10.25])
        measurement = Measurement(clock=clock, max_latency_ms=200.0)

        async def operation():
            return 10_000_000

        sample = await measurement.measure(operation)

        self.assertEqual(sample.operation_start, 10.0)
        self.assertAlmostEqual(sample.duration_ms, 250.0)
        self.assertTrue(sample.exceeded_threshold)
        self.assertFalse(sample.failed)
        self.assertEqual(sample.size_bytes, 10_000_000)
        self.assertAlmostEqual(sample.throughput_mbps, 40.0)

    async def test_no_threshold(self):
        clock = FakeClock(readings=[0.0, 100.0])
        measurement = Measurement(clock=clock)

        async def operation():
            return 1

        sample = await measurement.measure(operation)
        self.assertFalse(sample.exceeded_threshold)

    async def test_zero_duration_clamped(self):
        clock = FakeClock(readings=[5.0, 5.0])
        measurement = Measurement(clock=clock)

        async def operation():
            return 1000

        with self.assertLogs('common.measurement', level='WARNING'):
            sample = await measurement.measure(operation)

        self.assertEqual(sample.duration_ms, MIN_DURATION_MS)
        self.assertGreater(sample.throughput_mbps, 0)

    async def test_operation_error_is_failed_sample(self):
        clock = FakeClock(readings=[1.0, 1.5])
        measurement = Measurement(clock=clock)

        async def operation():
            raise OperationError("PUT bench/key failed: InternalError (HTTP 500)")

        sample = await measurement.measure(operation)

        self.assertTrue(sample.failed)
        self.assertFalse(sample.timed_out)
        self.assertAlmostEqual(sample.duration_ms, 500.0)
        self.assertEqual(sample.throughput_mbps, 0.0)
        self.assertIn("HTTP 500", sample.error)

    async def test_throttling_is_flagged(self):
        measurement = Measurement(clock=FakeClock(step=0.01))

        async def operation():
            raise OperationError("PUT bench/key failed: SlowDown (HTTP 503)", status_code=503)

        sample = await measurement.measure(operation)

        self.assertTrue(sample.failed)
        self.assertTrue(sample.throttled)

    async def test_timeout_is_failed_sample(self):
        measurement = Measurement(clock=SystemClock(), timeout=0.01)

        async def operation():
            await asyncio.sleep(1)
            return 1

        sample = await measurement.measure(operation)

        self.assertTrue(sample.failed)
        self.assertTrue(sample.timed_out)
        self.assertGreaterEqual(sample.duration_ms, 5.0)

    async def test_unexpected_errors_propagate(self):
        measurement = Measurement(clock=FakeClock(step=0.1))

        async def operation():
            raise ValueError("bug")

        with self.assertRaises(ValueError):
            await measurement.measure(operation)

    async def test_wall_clock_not_used_for_duration(self):
        clock = FakeClock(readings=[0.0, 0.002])
        measurement = Measurement(clock=clock)

        async def operation():
            return 1

        await measurement.measure(operation)
        self.assertEqual(clock.wall_calls, 0)


if __name__ == '__main__':
    unittest.main()

"""
Tests for metrics documents, Parquet export and the Prometheus exporter.
"""

import os
import sys
import tempfile
import unittest

import pandas as pd
from prometheus_client import CollectorRegistry

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.measurement import LatencySample
from common.metrics_utils import calculate_latency_stats
from persistence.parquet import ParquetPersistence
from persistence.prom import SimplePrometheusExporter
from persistence.record import MetricsDocument


def make_document(key, latency_ms=10.0, failed=False):
    sample = LatencySample(
        operation_start=0.0,
        duration_ms=latency_ms,
        exceeded_threshold=latency_ms > 50.0,
        size_bytes=0 if failed else 1_000_000,
        failed=failed,
        error="GET bench/k failed: NoSuchKey (HTTP 404)" if failed else None,
    )
    return MetricsDocument.from_sample(
        sample, timestamp_ms=1_700_000_000_000, workload="read", size_label="1MB",
        object_key=key, source="host-1",
    )


class TestMetricsDocument(unittest.TestCase):
    """Test the document layout."""

    def test_fields(self):
        document = make_document("bench/k", latency_ms=100.0).to_dict()

        self.assertEqual(document, {
            'latency': 100.0,
            'latency_exceeded': True,
            'timestamp': 1_700_000_000_000,
            'workload': 'read',
            'size': '1MB',
            'size_in_bytes': 1_000_000,
            'throughput': 10.0,
            'object_name': 'bench/k',
            'source': 'host-1',
            'failed': False,
            'error': None,
        })

    def test_failed_document(self):
        document = make_document("bench/k", failed=True).to_dict()

        self.assertTrue(document['failed'])
        self.assertEqual(document['throughput'], 0.0)
        self.assertEqual(document['size_in_bytes'], 0)
        self.assertIn("NoSuchKey", document['error'])


class TestParquetPersistence(unittest.TestCase):
    """Test local storage and summary of documents."""

    def test_save_and_read_back(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_dir = os.path.join(tmpdir, "results")
            persistence = ParquetPersistence(output_dir)
            for i in range(5):
                persistence.store_document(make_document(f"bench/k{i}", latency_ms=10.0 + i))
            persistence.store_document(make_document("bench/missing", failed=True))

            filepath = persistence.save_to_file("read")

            self.assertTrue(os.path.exists(filepath))
            self.assertTrue(os.path.basename(filepath).startswith("read_"))
            df = pd.read_parquet(filepath)
            self.assertEqual(len(df), 6)
            self.assertEqual(int(df['failed'].sum()), 1)
            self.assertEqual(set(df['object_name']), {f"bench/k{i}" for i in range(5)} | {"bench/missing"})

    def test_nothing_to_save(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_dir = os.path.join(tmpdir, "results")
            persistence = ParquetPersistence(output_dir)

            self.assertIsNone(persistence.save_to_file())
            self.assertFalse(os.path.exists(output_dir))

    def test_summarize(self):
        persistence = ParquetPersistence()
        for latency in (10.0, 20.0, 30.0, 100.0):
            persistence.store_document(make_document("k", latency_ms=latency))
        persistence.store_document(make_document("k", latency_ms=5000.0, failed=True))

        stats = persistence.summarize()

        self.assertEqual(stats['operations'], 5)
        self.assertEqual(stats['failed_operations'], 1)
        self.assertEqual(stats['latency_exceeded'], 1)
        self.assertEqual(stats['total_bytes'], 4_000_000)
        self.assertAlmostEqual(stats['latency_ms']['avg'], 40.0)
        self.assertAlmostEqual(stats['latency_ms']['p50'], 25.0)

    def test_summarize_empty(self):
        stats = ParquetPersistence().summarize()

        self.assertEqual(stats['operations'], 0)
        self.assertEqual(stats['latency_ms']['p99'], 0.0)

    def test_latency_stats_without_failed_column(self):
        df = pd.DataFrame({'latency': [1.0, 2.0, 3.0]})
        self.assertAlmostEqual(calculate_latency_stats(df)['avg'], 2.0)


class TestPrometheusExporter(unittest.TestCase):
    """Test metric updates on a private registry."""

    def setUp(self):
        self.registry = CollectorRegistry()
        self.exporter = SimplePrometheusExporter(registry=self.registry)

    def value(self, name, labels=None):
        return self.registry.get_sample_value(name, labels or {})

    def test_record_operation(self):
        ok = LatencySample(operation_start=0.0, duration_ms=250.0, exceeded_threshold=False,
                           size_bytes=1024)
        failed = LatencySample(operation_start=0.0, duration_ms=5.0, exceeded_threshold=False,
                               failed=True, error="boom")

        self.exporter.record_operation("write", ok)
        self.exporter.record_operation("write", failed)

        self.assertEqual(self.value('s3_benchmark_operations_total',
                                    {'workload': 'write', 'status': 'success'}), 1.0)
        self.assertEqual(self.value('s3_benchmark_operations_total',
                                    {'workload': 'write', 'status': 'failed'}), 1.0)
        self.assertEqual(self.value('s3_benchmark_bytes_total', {'workload': 'write'}), 1024.0)
        self.assertEqual(self.value('s3_benchmark_operation_duration_seconds_count',
                                    {'workload': 'write'}), 2.0)
        self.assertAlmostEqual(self.value('s3_benchmark_operation_duration_seconds_sum',
                                          {'workload': 'write'}), 0.255)

    def test_counters_and_gauge(self):
        self.exporter.record_telemetry_drop()
        self.exporter.record_cleanup_failures(0)
        self.exporter.record_cleanup_failures(3)
        self.exporter.update_concurrency(16)

        self.assertEqual(self.value('s3_benchmark_telemetry_dropped_total'), 1.0)
        self.assertEqual(self.value('s3_benchmark_cleanup_failed_total'), 3.0)
        self.assertEqual(self.value('s3_benchmark_concurrency'), 16.0)


if __name__ == '__main__':
    unittest.main()

"""
Simple Prometheus metrics exporter for the S3 benchmark.
"""

import logging
from typing import Optional
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, REGISTRY, start_http_server

logger = logging.getLogger(__name__)


class SimplePrometheusExporter:
    """Simple Prometheus metrics exporter."""

    def __init__(self, port: int = 9100, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.registry = registry or REGISTRY
        self.server_started = False

        # Define metrics
        self.operations_total = Counter(
            's3_benchmark_operations_total', 'Total storage operations',
            ['workload', 'status'], registry=self.registry,
        )
        self.operation_duration = Histogram(
            's3_benchmark_operation_duration_seconds', 'Storage operation duration',
            ['workload'], registry=self.registry,
        )
        self.bytes_transferred = Counter(
            's3_benchmark_bytes_total', 'Total bytes transferred',
            ['workload'], registry=self.registry,
        )
        self.telemetry_dropped = Counter(
            's3_benchmark_telemetry_dropped_total', 'Metrics documents dropped after retries',
            registry=self.registry,
        )
        self.cleanup_failed = Counter(
            's3_benchmark_cleanup_failed_total', 'Objects that could not be deleted',
            registry=self.registry,
        )
        self.concurrency = Gauge(
            's3_benchmark_concurrency', 'Configured worker count', registry=self.registry,
        )

    def start_server(self):
        """Start the Prometheus HTTP server."""
        if not self.server_started:
            try:
                start_http_server(self.port, registry=self.registry)
                self.server_started = True
                logger.info(f"Prometheus server started on port {self.port}")
            except OSError as e:
                logger.error(f"Failed to start Prometheus server: {e}")

    def record_operation(self, workload: str, sample):
        """Record one measured operation."""
        status = 'failed' if sample.failed else 'success'
        self.operations_total.labels(workload=workload, status=status).inc()
        self.operation_duration.labels(workload=workload).observe(sample.duration_ms / 1000)
        if not sample.failed:
            self.bytes_transferred.labels(workload=workload).inc(sample.size_bytes)

    def record_telemetry_drop(self):
        self.telemetry_dropped.inc()

    def record_cleanup_failures(self, count: int):
        if count > 0:
            self.cleanup_failed.inc(count)

    def update_concurrency(self, concurrency: int):
        """Update concurrency metric."""
        self.concurrency.set(concurrency)

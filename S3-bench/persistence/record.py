"""
Metrics document emitted for every benchmark operation.
"""

from typing import Any, Dict, Optional


class MetricsDocument:
    """Data structure for one operation's metrics document.

    Field names match the s3-perf-index mapping: latency in ms, timestamp in
    epoch millis, throughput in MB/s.
    """

    def __init__(self, latency_ms: float, latency_exceeded: bool, timestamp_ms: int,
                 workload: str, size_label: str, size_bytes: int,
                 throughput_mbps: float, object_key: str, source: str,
                 failed: bool = False, error: Optional[str] = None):
        self.latency_ms = latency_ms
        self.latency_exceeded = latency_exceeded
        self.timestamp_ms = timestamp_ms
        self.workload = workload
        self.size_label = size_label
        self.size_bytes = size_bytes
        self.throughput_mbps = throughput_mbps
        self.object_key = object_key
        self.source = source
        self.failed = failed
        self.error = error

    @classmethod
    def from_sample(cls, sample, timestamp_ms: int, workload: str, size_label: str,
                    object_key: str, source: str) -> "MetricsDocument":
        """Build a document from a LatencySample."""
        return cls(
            latency_ms=sample.duration_ms,
            latency_exceeded=sample.exceeded_threshold,
            timestamp_ms=timestamp_ms,
            workload=workload,
            size_label=size_label,
            size_bytes=sample.size_bytes,
            throughput_mbps=sample.throughput_mbps,
            object_key=object_key,
            source=source,
            failed=sample.failed,
            error=sample.error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latency': self.latency_ms,
            'latency_exceeded': self.latency_exceeded,
            'timestamp': self.timestamp_ms,
            'workload': self.workload,
            'size': self.size_label,
            'size_in_bytes': self.size_bytes,
            'throughput': self.throughput_mbps,
            'object_name': self.object_key,
            'source': self.source,
            'failed': self.failed,
            'error': self.error,
        }

    def __repr__(self) -> str:
        return (
            f"MetricsDocument(object_key='{self.object_key}', latency_ms={self.latency_ms:.3f}, "
            f"failed={self.failed})"
        )

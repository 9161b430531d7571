"""
Shared utilities for benchmark metrics calculations: throughput, latency thresholds and summary statistics.
"""

import pandas as pd
import logging
from typing import Optional
from configuration import (
    BYTES_PER_DECIMAL_MB,
    MS_PER_SECOND,
    MIN_DURATION_MS,
)

logger = logging.getLogger(__name__)


def clamp_duration_ms(duration_ms: float) -> float:
    """
    Clamp a duration to the smallest positive duration a measurement can report.

    Args:
        duration_ms: Measured duration in milliseconds

    Returns:
        duration_ms, or MIN_DURATION_MS if duration_ms is not positive
    """
    if duration_ms <= 0:
        return MIN_DURATION_MS
    return duration_ms


def calculate_throughput_mbps(duration_ms: float, size_bytes: int) -> float:
    """
    Calculate throughput in megabytes per second (MB/s) from one operation.

    throughput = (1000 / latency_ms) * size_bytes / 1_000_000

    A non-positive duration is clamped instead of raising ZeroDivisionError.

    Args:
        duration_ms: Operation latency in milliseconds
        size_bytes: Bytes transferred by the operation

    Returns:
        Throughput in decimal megabytes per second
    """
    duration_ms = clamp_duration_ms(duration_ms)
    return (MS_PER_SECOND / duration_ms) * size_bytes / BYTES_PER_DECIMAL_MB


def evaluate_latency(duration_ms: float, max_latency_ms: Optional[float]) -> bool:
    """
    Check a latency against the configured threshold.

    Args:
        duration_ms: Operation latency in milliseconds
        max_latency_ms: Threshold in milliseconds, or None when not configured

    Returns:
        True only if a threshold is configured and the latency exceeds it
    """
    if max_latency_ms is None:
        return False
    return duration_ms > max_latency_ms


def calculate_latency_stats(data: pd.DataFrame, latency_col: str = 'latency') -> dict:
    """
    Calculate latency statistics (mean and percentiles) from a DataFrame.

    Only successful operations are considered.

    Args:
        data: DataFrame of metrics documents (uses the 'failed' column when present)
        latency_col: Column name for latency values (default: 'latency')

    Returns:
        Dictionary with avg, p50, p95, p99 latency statistics
    """
    if len(data) == 0 or latency_col not in data.columns:
        return {
            'avg': 0.0,
            'p50': 0.0,
            'p95': 0.0,
            'p99': 0.0
        }

    if 'failed' in data.columns:
        successful_data = data[~data['failed'].astype(bool)]
    else:
        successful_data = data

    if len(successful_data) == 0:
        return {
            'avg': 0.0,
            'p50': 0.0,
            'p95': 0.0,
            'p99': 0.0
        }

    latencies = successful_data[latency_col]

    return {
        'avg': float(latencies.mean()),
        'p50': float(latencies.quantile(0.5)),
        'p95': float(latencies.quantile(0.95)),
        'p99': float(latencies.quantile(0.99))
    }


def summarize_documents(data: pd.DataFrame) -> dict:
    """
    Aggregate a DataFrame of metrics documents into a small report.

    Args:
        data: DataFrame with 'latency', 'throughput', 'latency_exceeded',
            'size_in_bytes' and 'failed' columns

    Returns:
        Dictionary with operation counts, latency statistics and mean throughput
    """
    if len(data) == 0:
        return {
            'operations': 0,
            'failed_operations': 0,
            'latency_exceeded': 0,
            'total_bytes': 0,
            'avg_throughput_mbps': 0.0,
            'latency_ms': calculate_latency_stats(data),
        }

    failed_mask = data['failed'].astype(bool)
    successful_data = data[~failed_mask]

    return {
        'operations': int(len(data)),
        'failed_operations': int(failed_mask.sum()),
        'latency_exceeded': int(successful_data['latency_exceeded'].astype(bool).sum()),
        'total_bytes': int(successful_data['size_in_bytes'].sum()),
        'avg_throughput_mbps': (
            float(successful_data['throughput'].mean()) if len(successful_data) > 0 else 0.0
        ),
        'latency_ms': calculate_latency_stats(data),
    }

"""
Configuration constants for the S3 benchmark harness.

This module contains all configuration parameters including:
- Cloud credentials and endpoints
- Metrics backend (Elasticsearch) settings
- Workload defaults (concurrency, cleanup, page sizes)
- Timeouts, retry ceilings and grace periods
- Size constants and conversion factors
"""

import os
from typing import Dict

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

# Object storage configuration
BUCKET_NAME: str = os.getenv("BUCKET_NAME", "")

# Generic S3-compatible endpoint (AWS S3, MinIO, Ceph RGW ...)
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")

# Cloudflare R2 credentials and configuration
R2_ENDPOINT: str = os.getenv("R2_ENDPOINT", "")
R2_ACCESS_KEY_ID: str = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY: str = os.getenv("R2_SECRET_ACCESS_KEY", "")

# =============================================================================
# METRICS BACKEND CONFIGURATION
# =============================================================================

ELASTIC_URL: str = os.getenv("ELASTIC_URL", "http://localhost:9200")
ELASTIC_INDEX: str = os.getenv("ELASTIC_INDEX", "s3-perf-index")

# Optional Prometheus exporter (0 = disabled)
PROMETHEUS_PORT: int = int(os.getenv("PROMETHEUS_PORT", "0"))

# =============================================================================
# WORKLOAD DEFAULTS
# =============================================================================

DEFAULT_CONCURRENCY: int = 1  # Sequential run unless asked otherwise
MAX_CONCURRENCY: int = 512
DEFAULT_OBJECT_SIZE: str = "1MB"
DEFAULT_NUM_OBJECTS: int = 100

# Accepted values for the --cleanup flag
CLEANUP_YES_VALUES = ("yes", "y", "true")
CLEANUP_NO_VALUES = ("no", "n", "false")

# Payload byte used to fill written objects (content is irrelevant)
PAYLOAD_FILL_BYTE: bytes = b"a"

# =============================================================================
# READ SAMPLING
# =============================================================================

LIST_PAGE_SIZE: int = 1000  # ListObjectsV2 MaxKeys, also bounds the sample pool
READ_CHUNK_BYTES: int = 1024 * 1024  # Body drain chunk size for GETs

# =============================================================================
# ERROR HANDLING AND TIMEOUTS
# =============================================================================

# Per storage call (put/get/delete/list)
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
CONNECT_TIMEOUT_SECONDS: int = 5
READ_TIMEOUT_SECONDS: int = 60

# Telemetry emission
TELEMETRY_TIMEOUT_SECONDS: float = 5.0  # Per attempt
TELEMETRY_MAX_ATTEMPTS: int = 3
TELEMETRY_BACKOFF_SECONDS: float = 0.5  # Doubles on each retry
TELEMETRY_MAX_BACKOFF_SECONDS: float = 8.0
TELEMETRY_MAX_CONSECUTIVE_DROPS: int = 20  # Backend considered unreachable after this

# Time to wait for in-flight operations once the run stops
DRAIN_GRACE_SECONDS: float = 300.0

# Throttling responses worth highlighting in the logs
THROTTLING_STATUS_CODES = (429, 503)

# HTTP statuses from the metrics backend that are worth retrying
RETRYABLE_HTTP_STATUSES = (408, 429, 500, 502, 503, 504)

PROGRESS_INTERVAL: int = 50  # Log progress every N operations

# =============================================================================
# SIZE CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024
BYTES_PER_MB: int = 1024 * 1024
BYTES_PER_GB: int = 1024 * 1024 * 1024

# Suffix multipliers accepted by the object size parser (binary multiples)
SIZE_SUFFIXES: Dict[str, int] = {
    "KB": BYTES_PER_KB,
    "MB": BYTES_PER_MB,
    "GB": BYTES_PER_GB,
}

# Throughput is reported in decimal megabytes per second
BYTES_PER_DECIMAL_MB: int = 1_000_000
MS_PER_SECOND: int = 1000

# Smallest duration a measurement can report (one nanosecond)
MIN_DURATION_MS: float = 1e-6

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_OUTPUT_DIR: str = "results"

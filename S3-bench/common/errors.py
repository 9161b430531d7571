"""
Error taxonomy for the benchmark harness.

Only ConfigError, ProvisioningError and TelemetryUnavailableError stop a run.
Everything else is counted and reported in the run summary.
"""

from typing import Optional

from configuration import THROTTLING_STATUS_CODES


class BenchmarkError(Exception):
    """Base class for all benchmark errors."""


class ConfigError(BenchmarkError):
    """Invalid workload configuration (size string, workload mode, counts)."""


class ProvisioningError(BenchmarkError):
    """Bucket creation or read-sampler priming failed."""


class OperationError(BenchmarkError):
    """A single storage operation failed."""

    def __init__(self, message: str, key: Optional[str] = None, status_code: int = 0):
        super().__init__(message)
        self.key = key
        self.status_code = status_code

    @property
    def throttled(self) -> bool:
        return self.status_code in THROTTLING_STATUS_CODES


class TelemetryError(BenchmarkError):
    """A metrics document could not be delivered."""

    def __init__(self, message: str, retryable: bool = True, status_code: int = 0):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class TelemetryUnavailableError(BenchmarkError):
    """The metrics backend dropped too many documents in a row."""


class CleanupError(BenchmarkError):
    """Deleting one object recorded in the cleanup ledger failed."""

    def __init__(self, key: str, cause: Exception):
        super().__init__(f"Failed to delete {key}: {cause}")
        self.key = key
        self.cause = cause

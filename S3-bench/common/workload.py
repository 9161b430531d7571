"""
Workload definition: what a single benchmark run does.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from configuration import (
    CLEANUP_NO_VALUES,
    CLEANUP_YES_VALUES,
    DEFAULT_CONCURRENCY,
    MAX_CONCURRENCY,
)
from common.errors import ConfigError
from common.sizes import SizeSpec

logger = logging.getLogger(__name__)


class Workload(str, Enum):
    WRITE = "write"
    READ = "read"

    @classmethod
    def parse(cls, value: str) -> "Workload":
        normalized = (value or "").strip().lower()
        for workload in cls:
            if workload.value == normalized:
                return workload
        raise ConfigError(f"Invalid workload '{value}': must be 'read' or 'write'")


def parse_cleanup_flag(value: Optional[str]) -> bool:
    """Interpret the yes/no cleanup flag. A missing flag means no cleanup."""
    if value is None:
        return False
    normalized = value.strip().lower()
    if normalized in CLEANUP_YES_VALUES:
        return True
    if normalized in CLEANUP_NO_VALUES:
        return False
    raise ConfigError(f"Invalid cleanup flag '{value}': must be 'yes' or 'no'")


@dataclass(frozen=True)
class WorkloadSpec:
    """Immutable description of one run."""

    bucket: str
    object_size: SizeSpec
    object_count: int
    workload: Workload
    prefix: Optional[str] = None
    max_latency_ms: Optional[float] = None
    concurrency: int = DEFAULT_CONCURRENCY
    cleanup: bool = False

    @property
    def object_size_bytes(self) -> int:
        return self.object_size.size_bytes

    def validate(self) -> "WorkloadSpec":
        """Check the workload before anything touches the bucket.

        Raises:
            ConfigError: On the first invalid field
        """
        if not self.bucket:
            raise ConfigError("Bucket name is required")
        if not isinstance(self.workload, Workload):
            raise ConfigError(f"Invalid workload: {self.workload!r}")
        if self.object_size.size_bytes <= 0:
            raise ConfigError(
                f"Object size must be positive, got '{self.object_size.label}'"
            )
        if self.object_count <= 0:
            raise ConfigError(f"Object count must be positive, got {self.object_count}")
        if self.concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.concurrency > MAX_CONCURRENCY:
            raise ConfigError(
                f"Concurrency {self.concurrency} exceeds maximum {MAX_CONCURRENCY}"
            )
        if self.max_latency_ms is not None and self.max_latency_ms <= 0:
            raise ConfigError(
                f"Max latency must be positive, got {self.max_latency_ms}"
            )
        return self

    def describe(self) -> str:
        location = f"{self.bucket}/{self.prefix}" if self.prefix else self.bucket
        return (
            f"{self.workload.value} of {self.object_count} x {self.object_size.label} "
            f"objects on {location} with concurrency {self.concurrency}"
        )

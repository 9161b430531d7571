"""
Per-operation timing: latency samples and derived throughput.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from common.errors import OperationError
from common.metrics_utils import (
    calculate_throughput_mbps,
    clamp_duration_ms,
    evaluate_latency,
)

logger = logging.getLogger(__name__)


class SystemClock:
    """Monotonic clock for durations, wall clock for document timestamps.

    The two are never mixed: wall-clock adjustments must not leak into
    latencies and monotonic instants are meaningless as timestamps.
    """

    def monotonic(self) -> float:
        """Monotonic instant in seconds."""
        return time.perf_counter()

    def wall_ms(self) -> int:
        """Wall-clock time in epoch milliseconds."""
        return int(time.time() * 1000)


@dataclass(frozen=True)
class LatencySample:
    """Outcome of one measured storage call."""

    operation_start: float
    duration_ms: float
    exceeded_threshold: bool
    size_bytes: int = 0
    failed: bool = False
    timed_out: bool = False
    throttled: bool = False
    error: Optional[str] = None

    @property
    def throughput_mbps(self) -> float:
        if self.failed:
            return 0.0
        return calculate_throughput_mbps(self.duration_ms, self.size_bytes)


class Measurement:
    """Times storage calls and turns them into LatencySamples."""

    def __init__(
        self,
        clock: Optional[SystemClock] = None,
        max_latency_ms: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the measurement.

        Args:
            clock: Clock providing monotonic() (default: SystemClock)
            max_latency_ms: Latency threshold in ms, None to disable
            timeout: Per-call timeout in seconds, None to disable
        """
        self.clock = clock or SystemClock()
        self.max_latency_ms = max_latency_ms
        self.timeout = timeout

    async def measure(self, operation: Callable[[], Awaitable[int]]) -> LatencySample:
        """Run one storage call and time it.

        The operation must return the number of bytes it transferred, after
        the transfer is complete (reads must drain the body before returning).

        Storage errors and timeouts produce a failed sample whose duration is
        the time elapsed until the failure. Other exceptions propagate.
        """
        start = self.clock.monotonic()
        try:
            if self.timeout is not None:
                size_bytes = await asyncio.wait_for(operation(), timeout=self.timeout)
            else:
                size_bytes = await operation()
        except OperationError as e:
            return self._failed(start, str(e), throttled=e.throttled)
        except asyncio.TimeoutError:
            return self._failed(start, f"Timed out after {self.timeout}s", timed_out=True)
        end = self.clock.monotonic()

        duration_ms = self._duration_ms(start, end)
        return LatencySample(
            operation_start=start,
            duration_ms=duration_ms,
            exceeded_threshold=evaluate_latency(duration_ms, self.max_latency_ms),
            size_bytes=size_bytes,
        )

    def _failed(self, start: float, error: str, timed_out: bool = False,
                throttled: bool = False) -> LatencySample:
        duration_ms = self._duration_ms(start, self.clock.monotonic())
        return LatencySample(
            operation_start=start,
            duration_ms=duration_ms,
            exceeded_threshold=evaluate_latency(duration_ms, self.max_latency_ms),
            size_bytes=0,
            failed=True,
            timed_out=timed_out,
            throttled=throttled,
            error=error,
        )

    @staticmethod
    def _duration_ms(start: float, end: float) -> float:
        duration_ms = (end - start) * 1000
        if duration_ms <= 0:
            logger.warning(
                f"Suspicious zero duration measurement ({duration_ms} ms), clamping"
            )
        return clamp_duration_ms(duration_ms)

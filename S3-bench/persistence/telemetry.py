"""
Telemetry sink: ships metrics documents to the metrics backend with retry and backoff.
"""

import asyncio
import logging
from typing import Any, Dict

from configuration import (
    TELEMETRY_BACKOFF_SECONDS,
    TELEMETRY_MAX_ATTEMPTS,
    TELEMETRY_MAX_BACKOFF_SECONDS,
    TELEMETRY_MAX_CONSECUTIVE_DROPS,
    TELEMETRY_TIMEOUT_SECONDS,
)
from common.errors import TelemetryError, TelemetryUnavailableError

logger = logging.getLogger(__name__)


class TelemetrySink:
    """Delivers one document at a time, counting every document it gives up on."""

    def __init__(
        self,
        backend,
        max_attempts: int = None,
        attempt_timeout: float = None,
        backoff_seconds: float = None,
        max_backoff_seconds: float = None,
        max_consecutive_drops: int = None,
    ):
        """Initialize the sink.

        Args:
            backend: Metrics backend providing async index(document)
            max_attempts: Delivery attempts per document (default: from configuration)
            attempt_timeout: Timeout of a single attempt in seconds (default: from configuration)
            backoff_seconds: Delay before the first retry, doubled after each retry
            max_backoff_seconds: Upper bound for the retry delay
            max_consecutive_drops: Drops in a row after which the backend is
                considered unreachable (default: from configuration)
        """
        self.backend = backend
        self.max_attempts = max_attempts or TELEMETRY_MAX_ATTEMPTS
        self.attempt_timeout = attempt_timeout or TELEMETRY_TIMEOUT_SECONDS
        self.backoff_seconds = TELEMETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds or TELEMETRY_MAX_BACKOFF_SECONDS
        self.max_consecutive_drops = max_consecutive_drops or TELEMETRY_MAX_CONSECUTIVE_DROPS

        self.emitted_count = 0
        self.dropped_count = 0
        self.retry_count = 0
        self._consecutive_drops = 0
        self._lock = asyncio.Lock()

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_seconds * 2 ** (attempt - 1), self.max_backoff_seconds)

    async def emit(self, document: Dict[str, Any]) -> bool:
        """Deliver a document.

        Returns:
            True if the backend accepted the document, False if it was dropped

        Raises:
            TelemetryUnavailableError: If too many documents in a row were dropped
        """
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.wait_for(
                    self.backend.index(document), timeout=self.attempt_timeout
                )
                async with self._lock:
                    self.emitted_count += 1
                    self._consecutive_drops = 0
                return True

            except asyncio.TimeoutError:
                last_error = TelemetryError(
                    f"Timed out after {self.attempt_timeout}s", retryable=True
                )
            except TelemetryError as e:
                last_error = e

            if not last_error.retryable:
                logger.warning(f"Non-retryable telemetry error: {last_error}")
                break

            if attempt < self.max_attempts:
                delay = self._backoff(attempt)
                logger.debug(
                    f"Telemetry retry {attempt}/{self.max_attempts} in {delay:.2f}s: {last_error}"
                )
                async with self._lock:
                    self.retry_count += 1
                await asyncio.sleep(delay)

        async with self._lock:
            self.dropped_count += 1
            self._consecutive_drops += 1
            consecutive = self._consecutive_drops

        logger.warning(
            f"Dropped metrics document for {document.get('object_name')}: {last_error} "
            f"({self.dropped_count} dropped so far)"
        )

        if consecutive >= self.max_consecutive_drops:
            raise TelemetryUnavailableError(
                f"Metrics backend unreachable: {consecutive} documents dropped in a row "
                f"(last error: {last_error})"
            )
        return False

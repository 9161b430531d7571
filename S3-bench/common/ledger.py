"""
Cleanup ledger: every object written by this run, deleted on request at shutdown.
"""

import logging
import threading
from typing import Dict, List

from common.errors import CleanupError, OperationError

logger = logging.getLogger(__name__)


class CleanupReport:
    """Outcome of deleting the ledger's keys."""

    def __init__(self):
        self.attempted = 0
        self.deleted = 0
        self.failures: Dict[str, str] = {}

    @property
    def failed(self) -> int:
        return len(self.failures)

    def __repr__(self) -> str:
        return (
            f"CleanupReport(attempted={self.attempted}, deleted={self.deleted}, "
            f"failed={self.failed})"
        )


class CleanupLedger:
    """Thread-safe append-only log of keys written in this run.

    A key is tracked as pending right before its put is issued and committed
    once the put succeeds. Pending keys of abandoned operations can be
    promoted, since the put may have landed server-side even though the
    client gave up on it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Dict[str, None] = {}  # Insertion-ordered set
        self._pending: Dict[str, None] = {}
        self._drained = False

    def track_pending(self, key: str) -> None:
        with self._lock:
            self._pending[key] = None

    def commit(self, key: str) -> bool:
        """Record a successful write. Returns False for a duplicate key."""
        with self._lock:
            self._pending.pop(key, None)
            if self._drained:
                logger.warning(f"Ledger already drained, {key} will not be cleaned up")
                return False
            if key in self._keys:
                logger.warning(f"Duplicate key in cleanup ledger: {key}")
                return False
            self._keys[key] = None
            return True

    def discard_pending(self, key: str) -> None:
        with self._lock:
            self._pending.pop(key, None)

    def promote_pending(self) -> int:
        """Move every pending key into the ledger. Returns how many were added."""
        with self._lock:
            promoted = 0
            for key in self._pending:
                if key not in self._keys:
                    self._keys[key] = None
                    promoted += 1
            self._pending.clear()
        if promoted:
            logger.warning(f"Promoted {promoted} abandoned writes to the cleanup ledger")
        return promoted

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def drain(self) -> List[str]:
        """Return every recorded key and clear the ledger. Only allowed once."""
        with self._lock:
            if self._drained:
                raise RuntimeError("Cleanup ledger has already been drained")
            self._drained = True
            keys = list(self._keys)
            self._keys.clear()
            return keys

    async def delete_all(self, storage_system) -> CleanupReport:
        """Drain the ledger and delete every key, collecting failures.

        Args:
            storage_system: Storage backend providing delete_object(key)

        Returns:
            CleanupReport with per-key failures
        """
        report = CleanupReport()
        keys = self.drain()
        logger.info(f"Cleaning up {len(keys)} objects")

        for key in keys:
            report.attempted += 1
            try:
                await storage_system.delete_object(key)
                report.deleted += 1
            except OperationError as e:
                error = CleanupError(key, e)
                logger.warning(str(error))
                report.failures[key] = str(e)

        if report.failures:
            logger.error(
                f"Cleanup finished with {report.failed} failures "
                f"({report.deleted}/{report.attempted} deleted)"
            )
        else:
            logger.info(f"Cleanup deleted {report.deleted} objects")
        return report

"""
Workload executor: provisions the bucket, runs a bounded async worker pool over a
shared task source, ships one metrics document per operation and cleans up.
"""

import asyncio
import logging
import socket
import uuid
from typing import Any, Dict, List, Optional

from configuration import (
    DRAIN_GRACE_SECONDS,
    PROGRESS_INTERVAL,
    REQUEST_TIMEOUT_SECONDS,
)
from algorithms.sampler import ReadSampler
from common.errors import ProvisioningError, TelemetryUnavailableError
from common.ledger import CleanupLedger, CleanupReport
from common.measurement import Measurement, SystemClock
from common.phase_manager import PhaseManager, RunState
from common.sizes import ObjectNamer, ObjectRecord, build_payload
from common.workload import Workload, WorkloadSpec
from persistence.parquet import ParquetPersistence
from persistence.record import MetricsDocument

logger = logging.getLogger(__name__)


def make_source_id() -> str:
    """Identify this run in every document: host name followed by a random uuid."""
    return f"{socket.gethostname()}{uuid.uuid4()}"


class RunSummary:
    """Final counters of a run.

    A completed run is not a clean run: check all_succeeded (or the
    individual failure counters) before trusting the numbers. A run that
    stopped early or found nothing to read never counts as all_succeeded.
    """

    def __init__(self, state: RunState, workload: str):
        self.state = state
        self.workload = workload
        self.attempted = 0
        self.succeeded = 0
        self.failed = 0
        self.telemetry_emitted = 0
        self.telemetry_dropped = 0
        self.cleanup_attempted = 0
        self.cleanup_deleted = 0
        self.cleanup_failures: Dict[str, str] = {}
        self.requested = 0
        self.abandoned = 0
        self.telemetry_abandoned = 0
        self.empty_workload = False
        self.history: List[str] = []
        self.error: Optional[str] = None
        self.stats: Dict[str, Any] = {}

    @property
    def cleanup_failed(self) -> int:
        return len(self.cleanup_failures)

    @property
    def all_succeeded(self) -> bool:
        return (
            self.state == RunState.DONE
            and not self.empty_workload
            and self.attempted == self.requested
            and self.failed == 0
            and self.telemetry_dropped == 0
            and self.abandoned == 0
            and self.telemetry_abandoned == 0
            and self.cleanup_failed == 0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'workload': self.workload,
            'requested': self.requested,
            'attempted': self.attempted,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'telemetry_emitted': self.telemetry_emitted,
            'telemetry_dropped': self.telemetry_dropped,
            'cleanup_attempted': self.cleanup_attempted,
            'cleanup_deleted': self.cleanup_deleted,
            'cleanup_failed': self.cleanup_failed,
            'abandoned': self.abandoned,
            'telemetry_abandoned': self.telemetry_abandoned,
            'empty_workload': self.empty_workload,
            'error': self.error,
            'history': self.history,
            'all_succeeded': self.all_succeeded,
            'stats': self.stats,
        }

    def __repr__(self) -> str:
        return (
            f"RunSummary(state={self.state.value}, attempted={self.attempted}, "
            f"succeeded={self.succeeded}, failed={self.failed}, "
            f"telemetry_dropped={self.telemetry_dropped}, cleanup_failed={self.cleanup_failed})"
        )


class WorkloadExecutor:
    """Runs one workload end to end: provisioning, workers, draining, cleanup."""

    def __init__(
        self,
        spec: WorkloadSpec,
        storage_system,
        telemetry,
        ledger: Optional[CleanupLedger] = None,
        recorder: Optional[ParquetPersistence] = None,
        exporter=None,
        clock: Optional[SystemClock] = None,
        sampler: Optional[ReadSampler] = None,
        source: Optional[str] = None,
        request_timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS,
        drain_grace_seconds: float = DRAIN_GRACE_SECONDS,
    ):
        """Initialize the executor.

        Args:
            spec: Workload to run
            storage_system: Storage backend (already entered if it is a context manager)
            telemetry: TelemetrySink shipping documents to the metrics backend
            ledger: Cleanup ledger (default: a fresh one)
            recorder: Local store of every document (default: in-memory ParquetPersistence)
            exporter: Optional SimplePrometheusExporter
            clock: Clock for durations and timestamps (default: SystemClock)
            sampler: Read sampler (default: built from the workload for read runs)
            source: Source id stamped on every document (default: host name + uuid)
            request_timeout: Per storage call timeout in seconds, None to disable
            drain_grace_seconds: How long to wait for in-flight operations once the run stops
        """
        self.spec = spec
        self.storage_system = storage_system
        self.telemetry = telemetry
        self.ledger = ledger if ledger is not None else CleanupLedger()
        self.recorder = recorder if recorder is not None else ParquetPersistence()
        self.exporter = exporter
        self.clock = clock or SystemClock()
        self.source = source or make_source_id()
        self.drain_grace_seconds = drain_grace_seconds

        self.measurement = Measurement(
            clock=self.clock, max_latency_ms=spec.max_latency_ms, timeout=request_timeout
        )
        self.namer = ObjectNamer(spec.prefix)
        self.sampler = sampler
        if self.sampler is None and spec.workload == Workload.READ:
            self.sampler = ReadSampler(storage_system, spec.object_count, prefix=spec.prefix)

        self.phases = PhaseManager()
        self.cancel_event = asyncio.Event()

        # Write task source: index of the next object to generate
        self._next_index = 0
        self._payload: bytes = b""

        self._worker_tasks: List[asyncio.Task] = []
        self._in_flight: Dict[int, Optional[str]] = {}
        self._counters_lock = asyncio.Lock()
        self._attempted = 0
        self._succeeded = 0
        self._failed = 0
        self._abandoned = 0
        self._telemetry_abandoned = 0
        self._empty_workload = False
        self._cleanup_report: Optional[CleanupReport] = None

        logger.info(f"Initialized WorkloadExecutor: {spec.describe()}")

    @property
    def state(self) -> RunState:
        return self.phases.state

    def stop(self) -> None:
        """Ask workers to stop before their next operation, without failing the run."""
        logger.info("Stop requested, workers will finish their current operation")
        self.cancel_event.set()

    def _fail(self, reason: str) -> None:
        """Move the run to failed and stop handing out work."""
        if not self.phases.is_terminal():
            self.phases.fail(reason)
        self.cancel_event.set()

    def _advance(self, state: RunState) -> None:
        if not self.phases.failed:
            self.phases.begin(state)

    async def run(self) -> RunSummary:
        """Execute the workload and return the final summary.

        Raises:
            ConfigError: If the workload is invalid (nothing is touched)
        """
        self.spec.validate()

        self.phases.begin(RunState.PROVISIONING)
        proceed = False
        try:
            proceed = await self._provision()
        except ProvisioningError as e:
            self._fail(str(e))

        if proceed:
            self.phases.begin(RunState.RUNNING)
            await self._run_workers()
            self._advance(RunState.DRAINING)
            await self._drain()
        elif not self.phases.failed:
            # Nothing to read: done without touching a single object
            self.phases.begin(RunState.DONE)
            return self._build_summary()

        if self.spec.cleanup:
            self._advance(RunState.CLEANING_UP)
            self._cleanup_report = await self.ledger.delete_all(self.storage_system)
            if self.exporter:
                self.exporter.record_cleanup_failures(self._cleanup_report.failed)
        elif len(self.ledger):
            logger.info(f"Cleanup not requested, leaving {len(self.ledger)} objects in place")

        self._advance(RunState.DONE)
        return self._build_summary()

    async def _provision(self) -> bool:
        """Make sure the bucket is usable.

        Returns:
            True if workers should run, False for an empty read workload
        """
        exists = await self.storage_system.head_bucket()

        if not exists:
            if self.spec.workload == Workload.WRITE:
                logger.info(f"Bucket {self.spec.bucket} not found, creating it")
                await self.storage_system.create_bucket()
            else:
                logger.warning(f"Bucket {self.spec.bucket} not found, reads will probably fail")

        if self.spec.workload == Workload.WRITE:
            self._payload = build_payload(self.spec.object_size_bytes)
            return True

        has_objects = await self.sampler.prime()
        if not has_objects:
            self._empty_workload = True
            logger.warning(
                f"No objects under '{self.sampler.list_prefix}' in {self.spec.bucket}, "
                f"nothing to read"
            )
        return has_objects

    async def _run_workers(self) -> None:
        """Start the worker pool and wait until the task source is exhausted or the run stops."""
        worker_count = self.spec.concurrency
        if self.exporter:
            self.exporter.update_concurrency(worker_count)

        for worker_id in range(worker_count):
            self._in_flight[worker_id] = None
            task = asyncio.create_task(self._worker_task(worker_id))
            self._worker_tasks.append(task)

        logger.info(f"Started {worker_count} workers")

        stop_waiter = asyncio.create_task(self.cancel_event.wait())
        pending = set(self._worker_tasks)
        try:
            while pending and not self.cancel_event.is_set():
                done, _ = await asyncio.wait(
                    pending | {stop_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
        finally:
            stop_waiter.cancel()

    async def _drain(self) -> None:
        """Wait for in-flight operations, abandoning whatever outlives the grace period."""
        pending = {task for task in self._worker_tasks if not task.done()}
        if pending:
            logger.info(
                f"Draining {len(pending)} workers (grace period {self.drain_grace_seconds}s)"
            )
            _, pending = await asyncio.wait(pending, timeout=self.drain_grace_seconds)

        if pending:
            self._abandoned = sum(1 for key in self._in_flight.values() if key is not None)
            logger.warning(
                f"Abandoning {len(pending)} workers with {self._abandoned} operations in flight"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        # Writes that never reported back may still exist server-side
        self.ledger.promote_pending()

    async def _next_record(self) -> Optional[ObjectRecord]:
        """Take the next task from the shared task source."""
        if self.spec.workload == Workload.WRITE:
            # No await between the check and the increment: each index is claimed once
            if self._next_index >= self.spec.object_count:
                return None
            self._next_index += 1
            return self.namer.next_record(self.spec.object_size_bytes)
        return await self.sampler.next_record()

    async def _worker_task(self, worker_id: int) -> None:
        """Worker loop: take a task, execute it, repeat until told to stop."""
        try:
            while not self.cancel_event.is_set():
                record = await self._next_record()
                if record is None:
                    break
                await self._execute(worker_id, record)

        except TelemetryUnavailableError as e:
            logger.error(f"Worker {worker_id}: {e}")
            self._fail(str(e))
        except Exception as e:
            logger.error(f"Worker {worker_id} fatal error: {e}", exc_info=True)
            self._fail(f"Worker {worker_id} fatal error: {e}")

    async def _execute(self, worker_id: int, record: ObjectRecord) -> None:
        """Run one measured operation and report it."""
        workload = self.spec.workload
        key = record.key
        self._in_flight[worker_id] = key

        try:
            if workload == Workload.WRITE:
                self.ledger.track_pending(key)
                sample = await self.measurement.measure(
                    lambda: self.storage_system.put_object(key, self._payload)
                )
                if not sample.failed:
                    self.ledger.commit(key)
                elif not sample.timed_out:
                    self.ledger.discard_pending(key)
                # A timed-out put stays pending: it may still land server-side
            else:
                sample = await self.measurement.measure(
                    lambda: self.storage_system.get_object(key)
                )
                if not sample.failed:
                    record.size_bytes = sample.size_bytes
        finally:
            self._in_flight[worker_id] = None

        async with self._counters_lock:
            self._attempted += 1
            if sample.failed:
                self._failed += 1
            else:
                self._succeeded += 1
            attempted = self._attempted

        if sample.failed:
            throttled = " (throttled)" if sample.throttled else ""
            logger.warning(
                f"Worker {worker_id}: {workload.value} of {key} failed{throttled} after "
                f"{sample.duration_ms:.1f} ms: {sample.error}"
            )
        elif attempted % PROGRESS_INTERVAL == 0:
            logger.info(f"{attempted}/{self.spec.object_count} operations completed")

        document = MetricsDocument.from_sample(
            sample,
            timestamp_ms=self.clock.wall_ms(),
            workload=workload.value,
            size_label=self.spec.object_size.label,
            object_key=key,
            source=self.source,
        )
        self.recorder.store_document(document)
        if self.exporter:
            self.exporter.record_operation(workload.value, sample)

        try:
            delivered = await self.telemetry.emit(document.to_dict())
        except asyncio.CancelledError:
            # Cancelled after the drain grace period, the document never reached the backend
            self._telemetry_abandoned += 1
            logger.warning(f"Worker {worker_id}: metrics document for {key} abandoned")
            raise
        if not delivered and self.exporter:
            self.exporter.record_telemetry_drop()

    def _build_summary(self) -> RunSummary:
        summary = RunSummary(self.phases.state, self.spec.workload.value)
        summary.attempted = self._attempted
        summary.succeeded = self._succeeded
        summary.failed = self._failed
        summary.telemetry_emitted = self.telemetry.emitted_count
        summary.telemetry_dropped = self.telemetry.dropped_count
        summary.requested = self.spec.object_count
        summary.abandoned = self._abandoned
        summary.telemetry_abandoned = self._telemetry_abandoned
        summary.empty_workload = self._empty_workload
        summary.error = self.phases.failure_reason
        summary.history = self.phases.get_phase_info()['history']
        if self._cleanup_report is not None:
            summary.cleanup_attempted = self._cleanup_report.attempted
            summary.cleanup_deleted = self._cleanup_report.deleted
            summary.cleanup_failures = dict(self._cleanup_report.failures)
        summary.stats = self.recorder.summarize()

        log = logger.info if summary.all_succeeded else logger.warning
        log(
            f"Run {summary.state.value}: {summary.attempted}/{summary.requested} attempted, "
            f"{summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.telemetry_dropped} telemetry dropped, "
            f"{summary.abandoned} abandoned, "
            f"{summary.telemetry_abandoned} telemetry abandoned, "
            f"{summary.cleanup_deleted}/{summary.cleanup_attempted} cleaned up "
            f"({summary.cleanup_failed} cleanup failures)"
        )
        if summary.empty_workload:
            logger.warning("Empty workload: no objects were available to read")
        return summary

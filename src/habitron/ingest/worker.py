"""Ingestion worker pool.

A fixed set of threads consume ``IngestRequest`` items from one bounded
queue. Producers (the watcher's flusher and the resync coordinator) block
in :meth:`IngestionWorkerPool.submit` while the queue is full, so ingestion
is never flooded faster than workers can drain it.

For each request a worker runs: tracked-metric lookup, re-parse gate,
front-matter extraction, then one store transaction holding the file's
records and its fingerprint. Failures stay scoped to the file.
"""

from __future__ import annotations

import os
import queue
import threading
from collections import Counter
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from habitron.core.config_schema import DeletionPolicy
from habitron.core.events import FILE_FAILED, FILE_INGESTED, Event, EventBus
from habitron.core.exceptions import HabitronError
from habitron.journal.frontmatter import extract_metrics, read_entry_lines
from habitron.journal.gate import should_process
from habitron.journal.models import FileFingerprint
from habitron.store.metric_store import MetricStore
from habitron.store.settings import SettingsProvider

_SENTINEL = object()


class IngestOutcome(StrEnum):
    INGESTED = "ingested"
    UNCHANGED = "unchanged"  # Gate skipped it
    NO_TRACKED_METRICS = "no_tracked_metrics"
    MISSING = "missing"  # File gone, history kept
    PURGED = "purged"  # File gone, rows removed
    FAILED = "failed"


@dataclass(frozen=True)
class IngestRequest:
    """One "this file needs processing" signal.

    Attributes:
        path: Journal file path.
        force: Bypass the re-parse gate (tracked set changed, edited offline).
        tracked: Tracked-metric snapshot taken by the producer. ``None``
            means read the current set from settings at processing time.
    """

    path: str
    force: bool = False
    tracked: frozenset[str] | None = None


class IngestionWorkerPool:
    """Bounded pool of ingestion threads sharing one queue.

    Args:
        store: Shared metric store.
        settings: Source of the tracked-metric set.
        workers: Number of worker threads.
        queue_capacity: Maximum pending requests before ``submit`` blocks.
        deletion_policy: What to do when a requested file no longer exists.
        events: Optional bus for per-file ``ingested``/``failed`` events.
    """

    def __init__(
        self,
        store: MetricStore,
        settings: SettingsProvider,
        *,
        workers: int = 4,
        queue_capacity: int = 4,
        deletion_policy: DeletionPolicy = DeletionPolicy.KEEP,
        events: EventBus | None = None,
    ):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._store = store
        self._settings = settings
        self._num_workers = workers
        self._deletion_policy = DeletionPolicy(deletion_policy)
        self._events = events
        self._queue: queue.Queue = queue.Queue(maxsize=queue_capacity)
        self._threads: list[threading.Thread] = []
        self._closed = False
        self._state_lock = threading.Lock()
        self._stats: Counter[str] = Counter()

    # -- Lifecycle ----------------------------------------------------------

    def start(self) -> None:
        with self._state_lock:
            if self._closed:
                raise RuntimeError("Worker pool is closed")
            if self._threads:
                logger.warning("Ingestion worker pool already running")
                return
            for i in range(self._num_workers):
                thread = threading.Thread(target=self._consume_loop, name=f"ingest-worker-{i}", daemon=True)
                thread.start()
                self._threads.append(thread)
        logger.info(f"Ingestion worker pool started ({self._num_workers} workers)")

    @property
    def is_running(self) -> bool:
        return bool(self._threads) and not self._closed

    def submit(self, request: IngestRequest | str, timeout: float | None = None) -> None:
        """Queue a file for ingestion, blocking while the queue is full.

        Raises:
            RuntimeError: if the pool has been closed.
            queue.Full: if *timeout* elapses first.
        """
        if isinstance(request, str):
            request = IngestRequest(path=request)
        if self._closed:
            raise RuntimeError("Worker pool is closed")
        self._queue.put(request, timeout=timeout)

    def wait_idle(self) -> None:
        """Block until every queued request has been processed."""
        self._queue.join()

    def close(self, wait: bool = True) -> None:
        """Close the input channel; workers finish queued work and exit.

        One sentinel per worker is queued behind pending requests.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            threads = list(self._threads)
        for _ in threads:
            self._queue.put(_SENTINEL)
        if wait:
            for thread in threads:
                thread.join()
        logger.info("Ingestion worker pool stopped")

    @property
    def stats(self) -> dict[str, int]:
        with self._state_lock:
            return dict(self._stats)

    # -- Processing ---------------------------------------------------------

    def _consume_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SENTINEL:
                self._queue.task_done()
                break
            try:
                self.process(item)
            except Exception:
                logger.exception(f"Unhandled error ingesting {item.path}")
            finally:
                self._queue.task_done()

    def process(self, request: IngestRequest) -> IngestOutcome:
        """Process one request synchronously on the calling thread."""
        outcome = self._process(request)
        with self._state_lock:
            self._stats[outcome.value] += 1
        return outcome

    def _process(self, request: IngestRequest) -> IngestOutcome:
        path = request.path
        try:
            tracked = request.tracked if request.tracked is not None else self._settings.get_tracked_metric_names()
            if not tracked:
                return IngestOutcome.NO_TRACKED_METRICS

            if not os.path.exists(path):
                return self._handle_missing(path)

            if not request.force and not should_process(path, self._store):
                logger.trace(f"Unchanged, skipping {path}")
                return IngestOutcome.UNCHANGED

            # Stat before reading: a write landing mid-read leaves a newer
            # mtime behind, so the next event for this file re-parses it.
            fingerprint = FileFingerprint.of(path)
            records = extract_metrics(read_entry_lines(path), tracked, path)
            self._store.record_file(fingerprint, records)
        except (HabitronError, OSError) as e:
            logger.warning(f"Failed to ingest {path}: {e}")
            self._emit(FILE_FAILED, {"path": path, "error": str(e)})
            return IngestOutcome.FAILED

        logger.debug(f"Ingested {path}: {len(records)} metrics")
        self._emit(FILE_INGESTED, {"path": path, "metrics": len(records)})
        return IngestOutcome.INGESTED

    def _handle_missing(self, path: str) -> IngestOutcome:
        if self._deletion_policy is DeletionPolicy.PURGE:
            removed = self._store.delete_file(path)
            logger.info(f"Journal entry deleted, purged {removed} metrics: {path}")
            return IngestOutcome.PURGED
        logger.debug(f"Journal entry missing, keeping history: {path}")
        return IngestOutcome.MISSING

    def _emit(self, name: str, payload: dict) -> None:
        if self._events is not None:
            self._events.emit_sync(Event(name=name, payload=payload, source="ingest"))

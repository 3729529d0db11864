"""Full resync of a journal root with throttled progress reporting.

Progress is throttled twice: the coordinator only forwards a percentage
when it differs from the last one forwarded, and ``ProgressReporter``
emits the latest pending value at most once per interval. A scan of a few
thousand files finishes in milliseconds; the UI should see a handful of
updates, not thousands.
"""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from habitron.core.events import SYNC_COMPLETE, SYNC_PROGRESS, SYNC_START, Event, EventBus
from habitron.core.exceptions import ConfigurationError
from habitron.core.types import PathLike
from habitron.ingest.worker import IngestRequest
from habitron.journal.scanner import scan_directory
from habitron.store.metric_store import MetricStore
from habitron.store.settings import SettingsProvider

_SENTINEL = object()


class ProgressReporter:
    """Forward sync percentages to the event bus from a dedicated thread.

    The first value is emitted immediately; later values are held and only
    the most recent is emitted once ``interval`` has passed since the last
    emission. ``close()`` flushes the pending value and then emits
    ``sync-complete``.
    """

    def __init__(self, events: EventBus, *, interval: float = 0.5, source: str = "resync"):
        self._events = events
        self._interval = interval
        self._source = source
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="sync-progress", daemon=True)
        self._thread.start()

    def report(self, percent: int) -> None:
        self._queue.put(percent)

    def close(self) -> None:
        self._queue.put(_SENTINEL)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _emit(self, name: str, payload: dict) -> None:
        self._events.emit_sync(Event(name=name, payload=payload, source=self._source))

    def _run(self) -> None:
        pending: int | None = None
        last_emit: float | None = None
        while True:
            timeout = None
            if pending is not None and last_emit is not None:
                timeout = max(0.0, last_emit + self._interval - time.monotonic())
            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                self._emit(SYNC_PROGRESS, {"percent": pending})
                pending, last_emit = None, time.monotonic()
                continue

            if item is _SENTINEL:
                if pending is not None:
                    self._emit(SYNC_PROGRESS, {"percent": pending})
                self._emit(SYNC_COMPLETE, {})
                return

            pending = item
            now = time.monotonic()
            if last_emit is None or now - last_emit >= self._interval:
                self._emit(SYNC_PROGRESS, {"percent": pending})
                pending, last_emit = None, now


@dataclass
class ResyncResult:
    root: str
    total: int = 0
    forced: int = 0
    tracked_metrics: frozenset[str] = field(default_factory=frozenset)


class ResyncCoordinator:
    """Scan a journal root and feed every entry to the ingestion pool.

    Args:
        store: Shared metric store (fingerprints are refreshed by the scan).
        settings: Source of the journal root and the tracked-metric set,
            both read once per resync.
        submit: Queues a request on the worker pool; may block.
        events: Bus receiving ``sync-start``/``sync-progress``/``sync-complete``.
        recursive: Scan subdirectories.
        progress_interval: Minimum seconds between progress events.
    """

    def __init__(
        self,
        store: MetricStore,
        settings: SettingsProvider,
        submit: Callable[[IngestRequest], None],
        *,
        events: EventBus,
        recursive: bool = False,
        progress_interval: float = 0.5,
    ):
        self._store = store
        self._settings = settings
        self._submit = submit
        self._events = events
        self._recursive = recursive
        self._progress_interval = progress_interval
        self._lock = threading.Lock()  # one resync at a time

    def resync(self, root: PathLike | None = None, *, force: bool = False) -> ResyncResult:
        """Scan *root* (default: the configured journal root) and submit every entry.

        Files the scan found edited since their last fingerprint are forced
        past the re-parse gate; with ``force`` every file is. Returns once
        all paths are submitted; ingestion itself continues on the pool.

        Raises:
            ScanError: if the root cannot be listed. Nothing is submitted.
            ConfigurationError: if no root is given or configured.
        """
        with self._lock:
            snapshot = self._settings.snapshot()
            target = str(root) if root is not None else snapshot.journal_root
            if not target:
                raise ConfigurationError("No journal root configured")

            scan = scan_directory(target, self._store, recursive=self._recursive)
            result = ResyncResult(root=scan.root, total=len(scan), tracked_metrics=snapshot.tracked_metrics)

            logger.info(f"Resync of {scan.root} started: {result.total} entries")
            self._events.emit_sync(Event(name=SYNC_START, payload={"root": scan.root, "total": result.total}, source="resync"))

            reporter = ProgressReporter(self._events, interval=self._progress_interval)
            reporter.start()
            try:
                last_percent: int | None = None
                for index, path in enumerate(scan.paths):
                    forced = force or path in scan.changed
                    result.forced += forced
                    self._submit(IngestRequest(path=path, force=forced, tracked=snapshot.tracked_metrics))
                    percent = round(100 * (index + 1) / result.total)
                    if percent != last_percent:
                        reporter.report(percent)
                        last_percent = percent
                if result.total == 0:
                    reporter.report(100)
            finally:
                reporter.close()
                reporter.join()

            logger.info(f"Resync of {scan.root} submitted {result.total} entries ({result.forced} forced)")
            return result

"""Incremental ingestion pipeline: change watcher, worker pool and resync."""

from .resync import ProgressReporter, ResyncCoordinator, ResyncResult
from .watcher import ChangeWatcher, CoalescingBuffer, JournalEventHandler, WatchCommand, WatcherState
from .worker import IngestionWorkerPool, IngestOutcome, IngestRequest

__all__ = [
    "ChangeWatcher",
    "CoalescingBuffer",
    "IngestOutcome",
    "IngestRequest",
    "IngestionWorkerPool",
    "JournalEventHandler",
    "ProgressReporter",
    "ResyncCoordinator",
    "ResyncResult",
    "WatchCommand",
    "WatcherState",
]

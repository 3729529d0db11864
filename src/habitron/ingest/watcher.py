"""
File-system change watcher.

Three threads cooperate:

* the watchdog observer thread delivers OS events to ``JournalEventHandler``,
  which only filters and drops paths into a ``CoalescingBuffer``;
* the buffer's flusher thread drains batches of distinct paths into the
  ingestion pool (and may block there when the pool is saturated);
* the command thread applies ``watch``/``unwatch``/``stop`` commands.

Editors often emit several modify events per save; the buffer is a set, so
a burst on one file becomes a single ingestion request.
"""

from __future__ import annotations

import os
import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from habitron.core.events import WATCHER_STARTED, WATCHER_STOPPED, Event, EventBus
from habitron.ingest.worker import IngestRequest
from habitron.journal.scanner import JOURNAL_SUFFIX


class WatchAction(StrEnum):
    WATCH = "watch"
    UNWATCH = "unwatch"
    STOP = "stop"


@dataclass(frozen=True)
class WatchCommand:
    """A message on the watch-control channel. No acknowledgment is sent."""

    action: WatchAction
    path: str | None = None

    @classmethod
    def watch(cls, path: str | Path) -> WatchCommand:
        return cls(WatchAction.WATCH, str(path))

    @classmethod
    def unwatch(cls, path: str | Path) -> WatchCommand:
        return cls(WatchAction.UNWATCH, str(path))

    @classmethod
    def stop(cls) -> WatchCommand:
        return cls(WatchAction.STOP)


class WatcherState(StrEnum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


# ---------------------------------------------------------------------------
# Coalescing buffer
# ---------------------------------------------------------------------------


class CoalescingBuffer:
    """Deduplicating path buffer drained by a background flusher.

    A batch is flushed when the buffer holds ``max_size`` paths, or when
    ``flush_interval`` seconds have passed since the first path of the
    current cycle arrived, whichever comes first. Flushing takes the whole
    set; the next path starts a new cycle.

    ``add`` only takes the condition lock briefly. The sink is called without
    the lock held, so a slow sink delays flushing but never ``add``.
    """

    def __init__(
        self,
        sink: Callable[[list[str]], None],
        *,
        flush_interval: float = 1.0,
        max_size: int = 64,
        name: str = "journal-flusher",
    ):
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._sink = sink
        self._flush_interval = flush_interval
        self._max_size = max_size
        self._name = name
        self._pending: set[str] = set()
        self._cycle_started: float | None = None
        self._cond = threading.Condition()
        self._stopped = False
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def add(self, path: str) -> None:
        with self._cond:
            if self._stopped:
                return
            starts_cycle = not self._pending
            if starts_cycle:
                self._cycle_started = time.monotonic()
            self._pending.add(path)
            # The first path wakes the flusher so it starts timing the cycle
            if starts_cycle or len(self._pending) >= self._max_size:
                self._cond.notify()

    def __len__(self) -> int:
        with self._cond:
            return len(self._pending)

    def stop(self) -> None:
        """Stop the flusher. Paths still buffered are dropped."""
        with self._cond:
            self._stopped = True
            dropped = len(self._pending)
            self._pending.clear()
            self._cond.notify_all()
        if dropped:
            logger.debug(f"Dropped {dropped} buffered paths on stop")
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def _next_batch(self) -> list[str] | None:
        """Wait for a batch to be due. Returns None once stopped."""
        with self._cond:
            while True:
                if self._stopped:
                    return None
                if self._pending:
                    due = self._cycle_started + self._flush_interval
                    remaining = due - time.monotonic()
                    if len(self._pending) >= self._max_size or remaining <= 0:
                        batch = sorted(self._pending)
                        self._pending.clear()
                        self._cycle_started = None
                        return batch
                    self._cond.wait(timeout=remaining)
                else:
                    self._cond.wait()

    def _run(self) -> None:
        while (batch := self._next_batch()) is not None:
            try:
                self._sink(batch)
            except Exception:
                logger.exception(f"Flushing {len(batch)} journal paths failed")


# ---------------------------------------------------------------------------
# watchdog handler
# ---------------------------------------------------------------------------


class JournalEventHandler(FileSystemEventHandler):
    """Forward Markdown file changes to a callback.

    Creations, modifications and move destinations (atomic-save editors
    write a temp file and rename it) are forwarded. Deletions and move
    sources are forwarded only when ``include_deletions`` is set.
    """

    def __init__(self, on_path: Callable[[str], None], *, include_deletions: bool = False):
        super().__init__()
        self._on_path = on_path
        self._include_deletions = include_deletions

    def _offer(self, raw_path: str | bytes) -> None:
        path = os.fsdecode(raw_path)
        if path.endswith(JOURNAL_SUFFIX):
            self._on_path(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._offer(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._offer(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._offer(event.dest_path)
        if self._include_deletions:
            self._offer(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if self._include_deletions and not event.is_directory:
            self._offer(event.src_path)


# ---------------------------------------------------------------------------
# ChangeWatcher
# ---------------------------------------------------------------------------


class ChangeWatcher:
    """Continuous source of ingestion requests for watched journal roots.

    Args:
        submit: Called with an ``IngestRequest`` per flushed path; typically
            ``IngestionWorkerPool.submit``. May block.
        flush_interval: Seconds a coalescing cycle may last.
        max_buffer_size: Distinct paths that force an early flush.
        recursive: Watch subdirectories of each root.
        include_deletions: Forward deleted paths (deletion policy ``purge``).
        observer_factory: Builds the watchdog observer; replaceable in tests.
        events: Optional bus for ``watcher.started``/``watcher.stopped``.
    """

    def __init__(
        self,
        submit: Callable[[IngestRequest], None],
        *,
        flush_interval: float = 1.0,
        max_buffer_size: int = 64,
        recursive: bool = False,
        include_deletions: bool = False,
        observer_factory: Callable[[], object] = Observer,
        events: EventBus | None = None,
    ):
        self._submit = submit
        self._recursive = recursive
        self._events = events
        self._buffer = CoalescingBuffer(self._flush, flush_interval=flush_interval, max_size=max_buffer_size)
        self._handler = JournalEventHandler(self._buffer.add, include_deletions=include_deletions)
        self._observer = observer_factory()
        self._commands: queue.Queue[WatchCommand] = queue.Queue()
        self._watches: dict[str, object] = {}
        self._state = WatcherState.CREATED
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def watched_paths(self) -> list[str]:
        return sorted(self._watches)

    @property
    def handler(self) -> JournalEventHandler:
        return self._handler

    # -- Lifecycle ----------------------------------------------------------

    def start(self, paths: Iterable[str | Path] = ()) -> None:
        """Start the observer and command loop, then watch *paths*."""
        with self._state_lock:
            if self._state is not WatcherState.CREATED:
                logger.warning(f"Cannot start watcher in state {self._state}")
                return
            self._observer.start()
            self._buffer.start()
            self._thread = threading.Thread(target=self._command_loop, name="journal-watcher", daemon=True)
            self._thread.start()
            self._state = WatcherState.RUNNING
        for path in paths:
            self.watch(path)
        logger.info("Change watcher started")
        self._emit(WATCHER_STARTED, {})

    def send(self, command: WatchCommand) -> None:
        """Post a command. Fire-and-forget; dropped once the watcher is stopped."""
        if self._state is WatcherState.STOPPED:
            logger.debug(f"Watcher stopped, ignoring {command.action} {command.path or ''}")
            return
        self._commands.put(command)

    def watch(self, path: str | Path) -> None:
        self.send(WatchCommand.watch(path))

    def unwatch(self, path: str | Path) -> None:
        self.send(WatchCommand.unwatch(path))

    def stop(self, timeout: float | None = 5.0) -> None:
        """Send ``stop`` and wait for the command loop to wind down."""
        with self._state_lock:
            if self._state is WatcherState.CREATED:
                self._state = WatcherState.STOPPED
                return
        self.send(WatchCommand.stop())
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def join_commands(self) -> None:
        """Block until every command posted so far has been applied."""
        self._commands.join()

    # -- Command loop -------------------------------------------------------

    def _command_loop(self) -> None:
        while True:
            command = self._commands.get()
            try:
                if command.action is WatchAction.STOP:
                    self._teardown()
                    return
                if command.action is WatchAction.WATCH:
                    self._apply_watch(command.path)
                elif command.action is WatchAction.UNWATCH:
                    self._apply_unwatch(command.path)
            except Exception:
                logger.exception(f"Watch command {command.action} failed")
            finally:
                self._commands.task_done()

    def _apply_watch(self, path: str | None) -> None:
        if not path:
            return
        key = str(Path(path).expanduser())
        if key in self._watches:
            logger.debug(f"Already watching {key}")
            return
        if not os.path.isdir(key):
            logger.error(f"Failed to watch {key}: not a directory")
            return
        try:
            self._watches[key] = self._observer.schedule(self._handler, key, recursive=self._recursive)
        except OSError as e:
            logger.error(f"Failed to watch {key}: {e}")
            return
        logger.info(f"Watching {key}")

    def _apply_unwatch(self, path: str | None) -> None:
        if not path:
            return
        key = str(Path(path).expanduser())
        watch = self._watches.pop(key, None)
        if watch is None:
            logger.warning(f"Failed to unwatch {key}: not watched")
            return
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as e:
            logger.error(f"Failed to unwatch {key}: {e}")
            return
        logger.info(f"Unwatching {key}")

    def _teardown(self) -> None:
        with self._state_lock:
            self._state = WatcherState.STOPPED
        self._buffer.stop()
        self._observer.unschedule_all()
        self._observer.stop()
        self._observer.join()
        self._watches.clear()
        logger.info("Change watcher stopped")
        self._emit(WATCHER_STOPPED, {})

    # -- Flushing -----------------------------------------------------------

    def _flush(self, paths: list[str]) -> None:
        logger.debug(f"Flushing {len(paths)} changed journal entries")
        for path in paths:
            try:
                self._submit(IngestRequest(path=path))
            except RuntimeError as e:
                logger.warning(f"Dropping {path}: {e}")

    def _emit(self, name: str, payload: dict) -> None:
        if self._events is not None:
            self._events.emit_sync(Event(name=name, payload=payload, source="watcher"))

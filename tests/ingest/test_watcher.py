"""Tests for habitron.ingest.watcher."""

import threading
import time

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from habitron.core.events import WATCHER_STARTED, WATCHER_STOPPED, EventBus
from habitron.ingest.watcher import (
    ChangeWatcher,
    CoalescingBuffer,
    JournalEventHandler,
    WatchCommand,
    WatcherState,
)


class Collector:
    def __init__(self):
        self.batches: list[list[str]] = []
        self.flushed = threading.Event()

    def __call__(self, batch):
        self.batches.append(batch)
        self.flushed.set()


class TestCoalescingBuffer:
    def test_burst_becomes_one_batch(self):
        sink = Collector()
        buf = CoalescingBuffer(sink, flush_interval=0.1, max_size=100)
        buf.start()
        try:
            for _ in range(20):
                buf.add("/j/2024-03-01.md")
            buf.add("/j/2024-03-02.md")
            assert sink.flushed.wait(2.0)
        finally:
            buf.stop()
        assert sink.batches == [["/j/2024-03-01.md", "/j/2024-03-02.md"]]

    def test_single_path_flushes_on_interval(self):
        sink = Collector()
        buf = CoalescingBuffer(sink, flush_interval=0.1, max_size=64)
        buf.start()
        try:
            for _ in range(5):
                buf.add("/j/2024-03-01.md")
            assert sink.flushed.wait(3.0)
        finally:
            buf.stop()
        assert sink.batches == [["/j/2024-03-01.md"]]

    def test_max_size_flushes_early(self):
        sink = Collector()
        buf = CoalescingBuffer(sink, flush_interval=30.0, max_size=3)
        buf.start()
        try:
            for d in range(1, 4):
                buf.add(f"/j/2024-03-0{d}.md")
            assert sink.flushed.wait(2.0)
        finally:
            buf.stop()
        assert len(sink.batches[0]) == 3

    def test_interval_counts_from_first_path(self):
        sink = Collector()
        buf = CoalescingBuffer(sink, flush_interval=0.3, max_size=100)
        buf.start()
        try:
            started = time.monotonic()
            buf.add("/j/a.md")
            time.sleep(0.2)
            buf.add("/j/b.md")
            assert sink.flushed.wait(2.0)
            elapsed = time.monotonic() - started
        finally:
            buf.stop()
        assert sink.batches == [["/j/a.md", "/j/b.md"]]
        assert elapsed < 0.45

    def test_stop_drops_pending(self):
        sink = Collector()
        buf = CoalescingBuffer(sink, flush_interval=30.0)
        buf.start()
        buf.add("/j/a.md")
        assert len(buf) == 1
        buf.stop()
        buf.add("/j/b.md")
        assert len(buf) == 0
        assert sink.batches == []

    def test_sink_error_keeps_flusher_alive(self):
        calls = []
        done = threading.Event()

        def sink(batch):
            calls.append(batch)
            if len(calls) == 1:
                raise RuntimeError("boom")
            done.set()

        buf = CoalescingBuffer(sink, flush_interval=0.05)
        buf.start()
        try:
            buf.add("/j/a.md")
            time.sleep(0.2)
            buf.add("/j/b.md")
            assert done.wait(2.0)
        finally:
            buf.stop()
        assert calls == [["/j/a.md"], ["/j/b.md"]]

    @pytest.mark.parametrize("kwargs", [{"flush_interval": 0}, {"max_size": 0}])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            CoalescingBuffer(lambda batch: None, **kwargs)


class TestJournalEventHandler:
    def _handler(self, include_deletions=False):
        seen: list[str] = []
        return JournalEventHandler(seen.append, include_deletions=include_deletions), seen

    def test_forwards_markdown_changes(self):
        handler, seen = self._handler()
        handler.dispatch(FileCreatedEvent("/j/2024-03-01.md"))
        handler.dispatch(FileModifiedEvent("/j/2024-03-02.md"))
        handler.dispatch(FileModifiedEvent("/j/notes.txt"))
        handler.dispatch(DirCreatedEvent("/j/sub.md"))
        assert seen == ["/j/2024-03-01.md", "/j/2024-03-02.md"]

    def test_move_forwards_destination(self):
        handler, seen = self._handler()
        handler.dispatch(FileMovedEvent("/j/.2024-03-01.md.tmp", "/j/2024-03-01.md"))
        assert seen == ["/j/2024-03-01.md"]

    def test_deletions_ignored_by_default(self):
        handler, seen = self._handler()
        handler.dispatch(FileDeletedEvent("/j/2024-03-01.md"))
        assert seen == []

    def test_deletions_forwarded_when_enabled(self):
        handler, seen = self._handler(include_deletions=True)
        handler.dispatch(FileDeletedEvent("/j/2024-03-01.md"))
        handler.dispatch(FileMovedEvent("/j/2024-03-02.md", "/j/2024-03-03.md"))
        assert seen == ["/j/2024-03-01.md", "/j/2024-03-03.md", "/j/2024-03-02.md"]


@pytest.fixture
def submitted():
    return []


@pytest.fixture
def watcher(observer, submitted):
    w = ChangeWatcher(submitted.append, flush_interval=0.05, observer_factory=lambda: observer)
    yield w
    w.stop()


class TestChangeWatcher:
    def test_start_watches_paths(self, watcher, observer, journal_dir):
        events = []
        bus = EventBus()
        bus.on(WATCHER_STARTED, events.append)
        watcher._events = bus

        watcher.start([journal_dir])
        watcher.join_commands()
        assert observer.started
        assert watcher.state is WatcherState.RUNNING
        assert watcher.watched_paths == [str(journal_dir)]
        assert len(events) == 1

    def test_watch_missing_directory_is_logged_not_raised(self, watcher, observer, tmp_dir):
        watcher.start([f"{tmp_dir}/missing"])
        watcher.join_commands()
        assert watcher.watched_paths == []
        assert watcher.state is WatcherState.RUNNING

    def test_unwatch(self, watcher, observer, journal_dir):
        watcher.start([journal_dir])
        watcher.unwatch(journal_dir)
        watcher.unwatch(journal_dir)  # second one only warns
        watcher.join_commands()
        assert watcher.watched_paths == []
        assert observer.scheduled == {}

    def test_events_become_requests(self, watcher, submitted, journal_dir):
        watcher.start([journal_dir])
        path = str(journal_dir / "2024-03-01.md")
        for _ in range(5):
            watcher.handler.dispatch(FileModifiedEvent(path))

        deadline = time.monotonic() + 2.0
        while not submitted and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.1)
        assert [r.path for r in submitted] == [path]
        assert not submitted[0].force

    def test_stop_tears_down(self, watcher, observer, journal_dir):
        events = []
        bus = EventBus()
        bus.on(WATCHER_STOPPED, events.append)
        watcher._events = bus
        watcher.start([journal_dir])
        watcher.stop()

        assert watcher.state is WatcherState.STOPPED
        assert observer.stopped and observer.joined
        assert watcher.watched_paths == []
        assert len(events) == 1

    def test_commands_after_stop_are_dropped(self, watcher, journal_dir):
        watcher.start()
        watcher.stop()
        watcher.send(WatchCommand.watch(journal_dir))
        assert watcher.watched_paths == []

    def test_stop_before_start(self, observer, submitted):
        w = ChangeWatcher(submitted.append, observer_factory=lambda: observer)
        w.stop()
        assert w.state is WatcherState.STOPPED
        assert not observer.started
        w.start()
        assert not observer.started

    def test_closed_pool_does_not_break_flushing(self, observer, journal_dir):
        def submit(request):
            raise RuntimeError("Worker pool is closed")

        w = ChangeWatcher(submit, observer_factory=lambda: observer)
        w._flush(["/j/2024-03-01.md"])
        w.stop()

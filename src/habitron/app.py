"""
Application wiring.

``HabitronApp`` owns the long-lived pieces (store, worker pool, change
watcher, resync coordinator, event bus) and exposes the commands a UI
or the CLI calls: settings changes that trigger resyncs, and read-only
analytics queries.

Usage:
    app = HabitronApp(Config())
    app.events.on(SYNC_PROGRESS, lambda e: print(e.payload["percent"]))
    app.start()
    app.set_journal_root("~/journal")
    ...
    app.stop()
"""

from __future__ import annotations

import threading
from datetime import date
from pathlib import Path
from typing import Any

from loguru import logger
from watchdog.observers import Observer

from habitron.analytics import dashboard, rollups, streaks
from habitron.analytics.models import (
    AnalyticsSummary,
    DashboardMetrics,
    DataPoint,
    HabitSeries,
    HeatmapPoint,
    TrackedMetric,
)
from habitron.core.config import Config, get_config
from habitron.core.config_schema import DeletionPolicy, HabitronConfig, Weekday
from habitron.core.events import SHUTDOWN, STARTUP, Event, EventBus
from habitron.core.exceptions import ConfigurationError, ScanError
from habitron.core.types import PathLike
from habitron.ingest.resync import ResyncCoordinator, ResyncResult
from habitron.ingest.watcher import ChangeWatcher
from habitron.ingest.worker import IngestionWorkerPool
from habitron.store.metric_store import MetricStore
from habitron.store.settings import SettingsProvider


class HabitronApp:
    """The habit tracker's command surface.

    Args:
        config: Configuration; defaults to the global ``get_config()``.
        store: Pre-built store (tests); otherwise opened at ``paths.db_path``.
        events: Event bus for progress and lifecycle events.
        observer_factory: Builds the watchdog observer.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        store: MetricStore | None = None,
        events: EventBus | None = None,
        observer_factory=Observer,
    ):
        self.config = config or get_config()
        self.options: HabitronConfig = self.config.validated()
        opts = self.options

        self.events = events or EventBus()
        self._owns_store = store is None
        if store is None:
            self.config.ensure_directories()
            store = MetricStore(opts.paths.db_path, lock_timeout=opts.store.lock_timeout)
        self.store = store
        self.settings = SettingsProvider(self.store)

        self.pool = IngestionWorkerPool(
            self.store,
            self.settings,
            workers=opts.ingest.workers,
            queue_capacity=opts.ingest.queue_capacity,
            deletion_policy=opts.ingest.deleted_files,
            events=self.events,
        )
        self.watcher = ChangeWatcher(
            self.pool.submit,
            flush_interval=opts.watcher.flush_interval,
            max_buffer_size=opts.watcher.max_buffer_size,
            recursive=opts.journal.recursive,
            include_deletions=opts.ingest.deleted_files is DeletionPolicy.PURGE,
            observer_factory=observer_factory,
            events=self.events,
        )
        self.resyncer = ResyncCoordinator(
            self.store,
            self.settings,
            self.pool.submit,
            events=self.events,
            recursive=opts.journal.recursive,
            progress_interval=opts.sync.progress_interval,
        )
        self._root_lock = threading.Lock()
        self._started = False

    # -- Lifecycle ----------------------------------------------------------

    def start(self, *, initial_sync: bool = True) -> None:
        """Start workers and the watcher, then catch up on the configured root.

        A root that has gone missing is logged, not raised: the app still
        starts so the user can point it somewhere else.
        """
        if self._started:
            return
        self.pool.start()
        self.watcher.start()
        self._started = True

        root = self.settings.get_journal_root()
        if root:
            if initial_sync:
                try:
                    self.resyncer.resync(root)
                except ScanError as e:
                    logger.warning(f"Initial sync skipped: {e}")
            self.watcher.watch(root)
        self.events.emit_sync(Event(name=STARTUP, payload={"journal_root": root}, source="app"))

    def stop(self) -> None:
        """Stop watching, drain the worker pool, and close the store if owned."""
        self.watcher.stop()
        self.pool.close()
        if self._started:
            self._started = False
            self.events.emit_sync(Event(name=SHUTDOWN, source="app"))
        if self._owns_store:
            self.store.close()

    def _ensure_workers(self) -> None:
        # Resyncs submit to a bounded queue; without consumers they would block.
        if not self.pool.is_running:
            self.pool.start()

    def wait_idle(self) -> None:
        """Block until all submitted files have been ingested."""
        self.pool.wait_idle()

    def __enter__(self) -> HabitronApp:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    # -- Journal root -------------------------------------------------------

    def is_journal_path_configured(self) -> bool:
        return self.settings.get_journal_root() is not None

    def set_journal_root(self, path: PathLike) -> ResyncResult:
        """Move to a new journal root: unwatch old, resync new, persist, watch new.

        If the new root cannot be scanned the old root is watched again and
        the setting is left unchanged.

        Raises:
            ScanError: if *path* is not a readable directory.
        """
        new_root = str(Path(path).expanduser().resolve())
        self._ensure_workers()
        with self._root_lock:
            old_root = self.settings.get_journal_root()
            if old_root:
                self.watcher.unwatch(old_root)
            try:
                result = self.resyncer.resync(new_root)
            except ScanError:
                if old_root:
                    self.watcher.watch(old_root)
                raise
            self.settings.set_journal_root(new_root)
            self.watcher.watch(new_root)
        logger.info(f"Journal root set to {new_root}")
        return result

    def resync(self, *, force: bool = False) -> ResyncResult:
        """Resync the configured journal root.

        Raises:
            ConfigurationError: if no journal root is configured.
            ScanError: if the root cannot be scanned.
        """
        self._ensure_workers()
        return self.resyncer.resync(force=force)

    def _backfill(self) -> ResyncResult | None:
        # New or renamed habits need older entries re-read even though their
        # fingerprints are unchanged.
        if not self.is_journal_path_configured():
            return None
        self._ensure_workers()
        return self.resyncer.resync(force=True)

    # -- Tracked metrics ----------------------------------------------------

    def add_metric(self, name: str) -> ResyncResult | None:
        """Track *name* and back-fill it from existing entries."""
        if not self.settings.add_tracked_metric(name):
            logger.info(f"Metric '{name.strip()}' already tracked")
            return None
        return self._backfill()

    def remove_metric(self, name: str) -> bool:
        """Stop tracking *name*; its history stays in the store."""
        return self.settings.remove_tracked_metric(name)

    def delete_metric(self, name: str) -> int:
        """Stop tracking *name* and delete its stored rows. Returns rows deleted."""
        self.settings.remove_tracked_metric(name)
        deleted = self.store.delete_metric(name)
        logger.info(f"Deleted metric '{name}' ({deleted} rows)")
        return deleted

    def rename_metric(self, old_name: str, new_name: str) -> ResyncResult | None:
        """Rename a tracked habit and its stored rows, then re-read entries
        so files using the new key are picked up."""
        if old_name.strip() == new_name.strip():
            raise ConfigurationError("New metric name must differ from the old one")
        self.settings.rename_tracked_metric(old_name, new_name)
        self.store.rename_metric(old_name, new_name.strip())
        return self._backfill()

    def get_settings(self) -> dict[str, Any]:
        snapshot = self.settings.snapshot()
        return {
            "trackedMetrics": [m.to_dict() for m in self.tracked_metrics()],
            "journalFilesPath": snapshot.journal_root,
        }

    def tracked_metrics(self) -> list[TrackedMetric]:
        return dashboard.tracked_metric_overview(self.store, self.settings.get_tracked_metric_names())

    # -- Queries ------------------------------------------------------------

    @property
    def week_start(self) -> Weekday:
        return self.options.analytics.week_start

    def dashboard_metrics(self, *, today: date | None = None) -> list[DashboardMetrics]:
        return dashboard.dashboard_metrics(self.store, week_start=self.week_start, today=today)

    def analytics_summary(self) -> AnalyticsSummary:
        return dashboard.analytics_summary(self.store)

    def current_streak(self, habit: str, *, today: date | None = None) -> int:
        return streaks.current_streak(self.store, habit, today=today)

    def longest_streak(self, habit: str) -> int:
        return streaks.longest_streak(self.store, habit)

    def trend(self, habit: str, days: int = 30, *, today: date | None = None) -> list[DataPoint]:
        return rollups.trend_series(self.store, habit, days, today=today)

    def heatmap(self, habit: str, days: int = 365, *, today: date | None = None) -> list[HeatmapPoint]:
        return rollups.heatmap(self.store, habit, days, today=today)

    def monthly_heatmap(self, habit: str, year: int, month: int) -> list[HeatmapPoint]:
        return rollups.monthly_heatmap(self.store, habit, year, month)

    def all_habit_trends(self, days: int = 30, *, today: date | None = None) -> dict[str, list[DataPoint]]:
        return rollups.all_habit_trends(self.store, days, today=today)

    def recent_activity(self, *, today: date | None = None) -> list[HabitSeries]:
        return rollups.recent_activity(self.store, today=today)

    def month_range_activity(self, year: int, month: int) -> list[HabitSeries]:
        return rollups.month_range_activity(self.store, year, month)

    def weekly_activity(self, *, today: date | None = None) -> list[DataPoint]:
        return rollups.weekly_activity(
            self.store,
            self.settings.get_tracked_metric_names(),
            week_start=self.week_start,
            today=today,
        )

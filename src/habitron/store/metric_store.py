"""
Metric store backed by SQLite.

Holds three tables: ``metrics`` (one row per file/metric/date), ``file_meta``
(modification fingerprints used by the re-parse gate) and ``settings``
(string key/value pairs for the journal root and tracked metrics).

A single connection is shared by every thread and guarded by a lock. Each
public method holds the lock for exactly one logical operation and never
while a journal file is being read, so UI queries interleave with ingestion.
A query can observe a file between two ingestion transactions but never a
half-written file: a file's records and its fingerprint commit together.

SQLite and lock-timeout failures surface as ``StoreError`` to the caller of
the failing operation only; the connection stays usable afterwards.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from loguru import logger

from habitron.core.exceptions import StoreError
from habitron.core.types import PathLike
from habitron.journal.models import (
    FileFingerprint,
    MetricRecord,
    format_date,
    now_timestamp,
    parse_date,
    parse_timestamp,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS file_meta (
    file_path TEXT PRIMARY KEY,
    last_modified TEXT
);

CREATE TABLE IF NOT EXISTS metrics (
    file_path TEXT NOT NULL,
    name TEXT NOT NULL,
    value INTEGER,
    date TEXT NOT NULL,
    updated_at TEXT,
    PRIMARY KEY (file_path, name, date)
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_file ON metrics(file_path);
CREATE INDEX IF NOT EXISTS idx_name_date ON metrics(name, date);
"""

_UPSERT_METRIC = (
    "INSERT OR REPLACE INTO metrics (file_path, name, value, date, updated_at) VALUES (?, ?, ?, ?, ?)"
)
_UPSERT_FINGERPRINT = "INSERT OR REPLACE INTO file_meta (file_path, last_modified) VALUES (?, ?)"


class MetricStore:
    """Thread-safe SQLite store for habit metrics, fingerprints and settings."""

    def __init__(self, db_path: PathLike = ":memory:", *, lock_timeout: float = 10.0):
        """
        Args:
            db_path: SQLite database file, or ``":memory:"`` for tests.
            lock_timeout: Seconds to wait for the store lock before raising
                ``StoreError``.
        """
        self._db_path = str(db_path)
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    def _init_db(self) -> None:
        in_memory = self._db_path == ":memory:"
        if not in_memory:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # isolation_level=None gives manual transaction control (BEGIN IMMEDIATE)
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
            if not in_memory:
                # WAL lets a second process (e.g. the CLI) read while the app writes
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize metric store at {self._db_path}: {e}") from e
        logger.debug(f"Metric store ready at {self._db_path}")

    @property
    def db_path(self) -> str:
        return self._db_path

    # -- Locking ------------------------------------------------------------

    @contextmanager
    def _locked(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Hold the store lock for one operation, translating SQLite errors."""
        if self._conn is None:
            raise StoreError(f"{operation}: metric store is closed")
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StoreError(f"{operation}: timed out after {self._lock_timeout}s waiting for the store lock")
        try:
            yield self._conn
        except sqlite3.Error as e:
            raise StoreError(f"{operation} failed: {e}") from e
        finally:
            self._lock.release()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run several statements atomically under the store lock."""
        with self._locked(operation) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def close(self) -> None:
        """Close the underlying connection. Further calls raise ``StoreError``."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # -- Fingerprints -------------------------------------------------------

    def set_fingerprint(self, fingerprint: FileFingerprint) -> None:
        with self._locked("set_fingerprint") as conn:
            conn.execute(_UPSERT_FINGERPRINT, (fingerprint.file_path, fingerprint.last_modified))

    def get_fingerprint(self, file_path: PathLike) -> str | None:
        """Return the stored ``last_modified`` for *file_path*, if any."""
        with self._locked("get_fingerprint") as conn:
            row = conn.execute(
                "SELECT last_modified FROM file_meta WHERE file_path = ?", (str(file_path),)
            ).fetchone()
        return row[0] if row else None

    def delete_file(self, file_path: PathLike) -> int:
        """Forget a journal file: its metric rows and its fingerprint.

        Returns:
            Number of metric rows removed.
        """
        with self._transaction("delete_file") as conn:
            cursor = conn.execute("DELETE FROM metrics WHERE file_path = ?", (str(file_path),))
            conn.execute("DELETE FROM file_meta WHERE file_path = ?", (str(file_path),))
            return cursor.rowcount

    # -- Metric writes ------------------------------------------------------

    def upsert_metric(self, record: MetricRecord) -> None:
        """Insert or replace one metric row, bumping ``updated_at``."""
        with self._locked("upsert_metric") as conn:
            conn.execute(_UPSERT_METRIC, self._metric_params(record, now_timestamp()))

    def record_file(self, fingerprint: FileFingerprint, records: Iterable[MetricRecord]) -> int:
        """Upsert a file's extracted records and refresh its fingerprint atomically.

        Returns:
            Number of metric rows written.
        """
        stamp = now_timestamp()
        params = [self._metric_params(r, stamp) for r in records]
        with self._transaction("record_file") as conn:
            if params:
                conn.executemany(_UPSERT_METRIC, params)
            conn.execute(_UPSERT_FINGERPRINT, (fingerprint.file_path, fingerprint.last_modified))
        return len(params)

    @staticmethod
    def _metric_params(record: MetricRecord, stamp: str) -> tuple:
        return (record.file_path, record.name, record.value, format_date(record.date), stamp)

    def delete_metric(self, name: str) -> int:
        """Remove every stored row for habit *name*. Returns rows deleted."""
        with self._locked("delete_metric") as conn:
            return conn.execute("DELETE FROM metrics WHERE name = ?", (name,)).rowcount

    def rename_metric(self, old_name: str, new_name: str) -> int:
        """Rename a habit in stored rows; renamed rows replace conflicting *new_name* rows."""
        with self._locked("rename_metric") as conn:
            return conn.execute("UPDATE OR REPLACE metrics SET name = ? WHERE name = ?", (new_name, old_name)).rowcount

    # -- Metric reads -------------------------------------------------------

    def has_metrics(self, file_path: PathLike) -> bool:
        with self._locked("has_metrics") as conn:
            row = conn.execute("SELECT 1 FROM metrics WHERE file_path = ? LIMIT 1", (str(file_path),)).fetchone()
        return row is not None

    def get_file_metrics(self, file_path: PathLike) -> list[MetricRecord]:
        with self._locked("get_file_metrics") as conn:
            rows = conn.execute(
                "SELECT file_path, name, value, date, updated_at FROM metrics WHERE file_path = ? ORDER BY name, date",
                (str(file_path),),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: tuple) -> MetricRecord:
        file_path, name, value, raw_date, updated_at = row
        return MetricRecord(
            file_path=file_path,
            name=name,
            value=value or 0,
            date=parse_date(raw_date),
            updated_at=parse_timestamp(updated_at) if updated_at else None,
        )

    def count_metrics(self) -> int:
        with self._locked("count_metrics") as conn:
            return conn.execute("SELECT COUNT(*) FROM metrics").fetchone()[0]

    def all_habits(self) -> list[str]:
        """Distinct habit names with at least one stored row."""
        with self._locked("all_habits") as conn:
            rows = conn.execute("SELECT DISTINCT name FROM metrics ORDER BY name").fetchall()
        return [r[0] for r in rows]

    def qualifying_dates(self, name: str | None = None) -> list[date]:
        """Distinct dates with ``value > 0``, ascending.

        Args:
            name: Restrict to one habit. ``None`` pools every habit.
        """
        sql = "SELECT DISTINCT date FROM metrics WHERE value > 0"
        params: tuple = ()
        if name is not None:
            sql += " AND name = ?"
            params = (name,)
        with self._locked("qualifying_dates") as conn:
            rows = conn.execute(sql + " ORDER BY date ASC", params).fetchall()
        return [parse_date(r[0]) for r in rows]

    def values_between(self, name: str, start: date, end: date) -> dict[date, int]:
        """Per-day totals for *name* in ``[start, end]``. Days without rows are absent."""
        with self._locked("values_between") as conn:
            rows = conn.execute(
                "SELECT date, SUM(value) FROM metrics WHERE name = ? AND date >= ? AND date <= ? GROUP BY date",
                (name, format_date(start), format_date(end)),
            ).fetchall()
        return {parse_date(d): v or 0 for d, v in rows}

    def metrics_between(self, start: date, end: date) -> dict[tuple[str, date], int]:
        """Per-habit, per-day totals for every habit in ``[start, end]``."""
        with self._locked("metrics_between") as conn:
            rows = conn.execute(
                "SELECT name, date, SUM(value) FROM metrics WHERE date BETWEEN ? AND ? GROUP BY name, date",
                (format_date(start), format_date(end)),
            ).fetchall()
        return {(name, parse_date(d)): v or 0 for name, d, v in rows}

    def average_between(self, name: str, start: date, end: date) -> float | None:
        """SQL ``AVG(value)`` over existing rows; ``None`` when there are none."""
        with self._locked("average_between") as conn:
            row = conn.execute(
                "SELECT AVG(value) FROM metrics WHERE name = ? AND date >= ? AND date <= ?",
                (name, format_date(start), format_date(end)),
            ).fetchone()
        return row[0]

    def sum_between(self, name: str, start: date, end: date) -> int:
        with self._locked("sum_between") as conn:
            row = conn.execute(
                "SELECT SUM(value) FROM metrics WHERE name = ? AND date >= ? AND date <= ?",
                (name, format_date(start), format_date(end)),
            ).fetchone()
        return row[0] or 0

    def completed_per_day(self, start: date, end: date, names: Iterable[str]) -> dict[date, int]:
        """Number of the given habits with ``value > 0`` on each day in ``[start, end]``."""
        names = list(names)
        if not names:
            return {}
        placeholders = ", ".join("?" for _ in names)
        with self._locked("completed_per_day") as conn:
            rows = conn.execute(
                f"SELECT date, COUNT(DISTINCT name) FROM metrics "
                f"WHERE value > 0 AND date BETWEEN ? AND ? AND name IN ({placeholders}) "
                f"GROUP BY date ORDER BY date ASC",
                (format_date(start), format_date(end), *names),
            ).fetchall()
        return {parse_date(d): count for d, count in rows}

    def date_bounds(self) -> tuple[date, date] | None:
        """Earliest and latest stored dates, or ``None`` for an empty store."""
        with self._locked("date_bounds") as conn:
            lo, hi = conn.execute("SELECT MIN(date), MAX(date) FROM metrics").fetchone()
        if lo is None or hi is None:
            return None
        return parse_date(lo), parse_date(hi)

    def count_successes(self) -> int:
        """Rows with ``value > 0``."""
        with self._locked("count_successes") as conn:
            return conn.execute("SELECT COUNT(*) FROM metrics WHERE value > 0").fetchone()[0]

    def count_habits(self, *, completed_only: bool = False) -> int:
        sql = "SELECT COUNT(DISTINCT name) FROM metrics"
        if completed_only:
            sql += " WHERE value > 0"
        with self._locked("count_habits") as conn:
            return conn.execute(sql).fetchone()[0]

    def count_active_days(self) -> int:
        """Distinct days on which any habit has ``value > 0``."""
        with self._locked("count_active_days") as conn:
            return conn.execute("SELECT COUNT(DISTINCT date) FROM metrics WHERE value > 0").fetchone()[0]

    def last_updated(self, name: str) -> datetime | None:
        with self._locked("last_updated") as conn:
            row = conn.execute("SELECT MAX(updated_at) FROM metrics WHERE name = ?", (name,)).fetchone()
        return parse_timestamp(row[0]) if row and row[0] else None

    def metric_overview(self) -> list[tuple[str, datetime | None, int]]:
        """``(name, last_updated, entries)`` per habit, most recently updated first."""
        with self._locked("metric_overview") as conn:
            rows = conn.execute(
                "SELECT name, MAX(updated_at) AS last, COUNT(*) FROM metrics GROUP BY name ORDER BY last DESC"
            ).fetchall()
        return [(name, parse_timestamp(last) if last else None, entries) for name, last, entries in rows]

    # -- Settings -----------------------------------------------------------

    def get_setting(self, key: str) -> str | None:
        with self._locked("get_setting") as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self._locked("set_setting") as conn:
            conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value))

    def delete_setting(self, key: str) -> None:
        with self._locked("delete_setting") as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

"""Shared test fixtures for habitron."""

import os
import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest

from habitron.core.config import Config, reset_config
from habitron.journal.models import MetricRecord
from habitron.store.metric_store import MetricStore
from habitron.store.settings import SettingsProvider


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture(autouse=True)
def _reset_singleton():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def store():
    s = MetricStore(":memory:", lock_timeout=2.0)
    yield s
    s.close()


@pytest.fixture
def settings(store):
    return SettingsProvider(store)


@pytest.fixture
def journal_dir(tmp_dir):
    path = Path(tmp_dir) / "journal"
    path.mkdir()
    return path


@pytest.fixture
def write_entry(journal_dir):
    """Write a journal entry with the given front matter; returns its path as str."""

    def _write(name: str, metrics: dict[str, object] | None = None, body: str = "notes", mtime: float | None = None):
        lines = ["---"]
        for key, value in (metrics or {}).items():
            lines.append(f"{key}: {value}")
        lines.append("---")
        lines.append(body)
        path = journal_dir / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return str(path)

    return _write


@pytest.fixture
def seed(store):
    """Insert ``value`` for *habit* on each date, one file per date."""

    def _seed(habit: str, days: dict[date, int]) -> None:
        for day, value in days.items():
            store.upsert_metric(
                MetricRecord(file_path=f"/journal/{day.isoformat()}.md", name=habit, value=value, date=day)
            )

    return _seed


@pytest.fixture
def today():
    return date(2024, 6, 19)  # a Wednesday


@pytest.fixture
def days_back(today):
    def _back(n: int) -> date:
        return today - timedelta(days=n)

    return _back


@pytest.fixture
def tmp_config(tmp_dir):
    """Config isolated from the environment, with its database under tmp_dir."""
    return Config(data_dir=os.path.join(tmp_dir, "data"), env_prefix="", config_file=os.path.join(tmp_dir, "none.yaml"))


class FakeObserver:
    """Stands in for watchdog's Observer; tests feed events through the handler."""

    def __init__(self):
        self.scheduled: dict[str, tuple[object, bool]] = {}
        self.started = False
        self.stopped = False
        self.joined = False

    def start(self):
        self.started = True

    def schedule(self, handler, path, recursive=False):
        watch = object()
        self.scheduled[path] = (watch, recursive)
        return watch

    def unschedule(self, watch):
        for path, (w, _) in list(self.scheduled.items()):
            if w is watch:
                del self.scheduled[path]
                return
        raise KeyError(watch)

    def unschedule_all(self):
        self.scheduled.clear()

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        self.joined = True


@pytest.fixture
def observer():
    return FakeObserver()

"""Persistence: the SQLite metric store and the settings kept inside it."""

from .metric_store import MetricStore
from .settings import JOURNAL_ROOT_KEY, TRACKED_METRICS_KEY, SettingsProvider, SettingsSnapshot

__all__ = [
    "JOURNAL_ROOT_KEY",
    "TRACKED_METRICS_KEY",
    "MetricStore",
    "SettingsProvider",
    "SettingsSnapshot",
]

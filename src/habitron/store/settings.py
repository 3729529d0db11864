"""Settings persisted in the metric store's ``settings`` table.

Two keys matter to the pipeline: the journal root directory and the set of
tracked metric (habit) names. Tracked names are stored as a JSON list.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from habitron.core.exceptions import ConfigurationError
from habitron.core.types import PathLike
from habitron.store.metric_store import MetricStore

JOURNAL_ROOT_KEY = "journal_files_path"
TRACKED_METRICS_KEY = "tracked_metrics"


@dataclass(frozen=True)
class SettingsSnapshot:
    """Settings read once for one logical operation (a resync, a dashboard query)."""

    journal_root: str | None = None
    tracked_metrics: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_journal_path_configured(self) -> bool:
        return bool(self.journal_root)


class SettingsProvider:
    """Read and write user settings through a ``MetricStore``.

    Every getter goes to the store, so a change made through one provider
    (or from the CLI in another process) is visible on the next read.
    """

    def __init__(self, store: MetricStore):
        self._store = store

    # -- Journal root -------------------------------------------------------

    def get_journal_root(self) -> str | None:
        return self._store.get_setting(JOURNAL_ROOT_KEY) or None

    def set_journal_root(self, path: PathLike) -> None:
        self._store.set_setting(JOURNAL_ROOT_KEY, str(Path(path).expanduser()))

    # -- Tracked metrics ----------------------------------------------------

    def get_tracked_metric_names(self) -> frozenset[str]:
        raw = self._store.get_setting(TRACKED_METRICS_KEY)
        if not raw:
            return frozenset()
        try:
            names = json.loads(raw)
        except json.JSONDecodeError:
            names = None
        if not isinstance(names, list):
            logger.warning(f"Ignoring malformed {TRACKED_METRICS_KEY} setting: {raw!r}")
            return frozenset()
        return frozenset(str(n) for n in names if str(n).strip())

    def _save_tracked(self, names: frozenset[str] | set[str]) -> None:
        self._store.set_setting(TRACKED_METRICS_KEY, json.dumps(sorted(names)))

    def add_tracked_metric(self, name: str) -> bool:
        """Start tracking *name*. Returns False if it was already tracked."""
        name = _clean_name(name)
        names = set(self.get_tracked_metric_names())
        if name in names:
            return False
        names.add(name)
        self._save_tracked(names)
        return True

    def remove_tracked_metric(self, name: str) -> bool:
        """Stop tracking *name*. Stored rows are left alone. Returns False if untracked."""
        names = set(self.get_tracked_metric_names())
        if name not in names:
            return False
        names.discard(name)
        self._save_tracked(names)
        return True

    def rename_tracked_metric(self, old_name: str, new_name: str) -> None:
        """Replace *old_name* with *new_name* in the tracked set.

        Raises:
            ConfigurationError: if *old_name* is not tracked or *new_name* already is.
        """
        new_name = _clean_name(new_name)
        names = set(self.get_tracked_metric_names())
        if old_name not in names:
            raise ConfigurationError(f"Metric '{old_name}' is not tracked")
        if new_name in names:
            raise ConfigurationError(f"Metric '{new_name}' is already tracked")
        names.discard(old_name)
        names.add(new_name)
        self._save_tracked(names)

    def snapshot(self) -> SettingsSnapshot:
        return SettingsSnapshot(
            journal_root=self.get_journal_root(),
            tracked_metrics=self.get_tracked_metric_names(),
        )


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ConfigurationError("Metric name must not be empty")
    if ":" in cleaned:
        raise ConfigurationError(f"Metric name must not contain ':': {name!r}")
    return cleaned

"""Re-parse gate: decide whether a journal file needs extraction."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from habitron.core.types import PathLike
from habitron.journal.models import format_mtime

if TYPE_CHECKING:
    from habitron.store.metric_store import MetricStore


def should_process(path: PathLike, store: MetricStore) -> bool:
    """Return False only if *path* exists, is unchanged since its stored
    fingerprint, and already has metrics in the store.

    A missing file returns True; the caller decides what a deletion means.
    A file that produced no metrics is revisited, so a habit tracked later
    is picked up from older entries once they are touched or resynced.

    Raises:
        StoreError: if the store lookup fails.
    """
    p = Path(path)
    try:
        current = format_mtime(p.stat().st_mtime)
    except FileNotFoundError:
        return True
    except OSError:
        # Unreadable metadata: let extraction surface the real error
        return True

    if store.get_fingerprint(str(p)) != current:
        return True
    return not store.has_metrics(str(p))

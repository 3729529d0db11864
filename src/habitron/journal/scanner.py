"""One-shot enumeration of a journal directory."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from habitron.core.exceptions import ScanError
from habitron.core.types import PathLike
from habitron.journal.models import FileFingerprint

if TYPE_CHECKING:
    from habitron.store.metric_store import MetricStore

JOURNAL_SUFFIX = ".md"
_DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


@dataclass
class ScanResult:
    """Candidate entries found by a scan.

    Attributes:
        paths: Matching journal files, sorted.
        changed: Subset of *paths* whose stored fingerprint existed but no
            longer matches the file (edited while nobody was watching).
    """

    root: str
    paths: list[str] = field(default_factory=list)
    changed: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.paths)


def is_journal_entry(path: PathLike) -> bool:
    """True for ``*.md`` names starting with a ``YYYY-MM-DD`` date."""
    name = os.path.basename(str(path))
    return name.endswith(JOURNAL_SUFFIX) and bool(_DATE_PREFIX_RE.match(name))


def _iter_candidates(root: Path, recursive: bool):
    if not recursive:
        with os.scandir(root) as it:
            for entry in it:
                yield entry.path
        return

    def _on_error(err: OSError) -> None:
        if Path(err.filename or "") == root:
            raise err
        logger.warning(f"Skipping unreadable directory {err.filename}: {err}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in filenames:
            yield os.path.join(dirpath, name)


def scan_directory(root: PathLike, store: MetricStore, *, recursive: bool = False) -> ScanResult:
    """List journal entries under *root* and refresh their fingerprints.

    Every matching file gets its fingerprint written, whether or not it will
    be ingested. Non-matching entries are skipped silently.

    Raises:
        ScanError: if *root* is missing or cannot be listed.
        StoreError: if a fingerprint cannot be written.
    """
    root_path = Path(root).expanduser()
    if not root_path.is_dir():
        raise ScanError(f"Journal root is not a directory: {root_path}")

    result = ScanResult(root=str(root_path))
    try:
        candidates = sorted(p for p in _iter_candidates(root_path, recursive) if is_journal_entry(p))
    except OSError as e:
        raise ScanError(f"Cannot read journal root {root_path}: {e}") from e

    for path in candidates:
        if not os.path.isfile(path):
            continue
        try:
            fingerprint = FileFingerprint.of(path)
        except OSError:
            logger.debug(f"Journal entry vanished during scan: {path}")
            continue
        previous = store.get_fingerprint(path)
        if previous is not None and previous != fingerprint.last_modified:
            result.changed.add(path)
        store.set_fingerprint(fingerprint)
        result.paths.append(path)

    logger.info(f"Scanned {root_path}: {len(result.paths)} entries ({len(result.changed)} changed)")
    return result

"""Core data models for journal ingestion.

A journal entry is a Markdown file named ``YYYY-MM-DD.md``. Ingesting it
produces one ``MetricRecord`` per tracked front-matter key, and every
successful scan or ingestion refreshes the file's ``FileFingerprint``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

from habitron.core.types import PathLike

DB_DATE_FORMAT = "%Y-%m-%d"


@dataclass
class MetricRecord:
    """One habit measurement taken from one journal entry.

    Attributes:
        file_path: Journal file the value was read from.
        name: Tracked metric (habit) name, e.g. ``"workout"``.
        value: Non-negative integer value.
        date: Calendar day, taken from the file name.
        updated_at: When the row was last written. ``None`` until stored.
    """

    file_path: str
    name: str
    value: int
    date: date
    updated_at: datetime | None = None

    def __post_init__(self):
        if self.value < 0:
            raise ValueError("Metric values must be non-negative")

    def __repr__(self) -> str:
        return f"MetricRecord(name='{self.name}', value={self.value}, date={self.date.isoformat()})"


@dataclass(frozen=True)
class FileFingerprint:
    """A file's last-known modification time.

    ``last_modified`` is stored as an ISO-8601 UTC string with microseconds,
    so two saves within the same second still yield different fingerprints.
    """

    file_path: str
    last_modified: str

    @classmethod
    def of(cls, path: PathLike) -> FileFingerprint:
        """Fingerprint *path* as it is on disk right now.

        Raises:
            OSError: if the file cannot be stat'ed.
        """
        p = Path(path)
        return cls(file_path=str(p), last_modified=format_mtime(p.stat().st_mtime))


def format_mtime(st_mtime: float) -> str:
    """Render an ``os.stat`` mtime the way fingerprints are stored."""
    return datetime.fromtimestamp(st_mtime, tz=timezone.utc).isoformat(timespec="microseconds")


def format_date(d: date) -> str:
    return d.strftime(DB_DATE_FORMAT)


def parse_date(raw: str) -> date:
    return datetime.strptime(raw, DB_DATE_FORMAT).date()


def now_timestamp() -> str:
    """Local wall-clock time in the ``updated_at`` column format."""
    return datetime.now().isoformat(sep=" ", timespec="microseconds")


def parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw)

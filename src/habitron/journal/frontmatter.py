"""Front-matter metric extraction.

A journal entry looks like::

    ---
    workout: 45
    reading: 20
    mood: good
    ---
    Free-form notes...

Only lines between the first two ``---`` lines are considered. The date of
every record comes from the file name (``2024-03-07.md``), never from the
content.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

from loguru import logger

from habitron.core.exceptions import EntryDateError, JournalReadError
from habitron.core.types import PathLike
from habitron.journal.models import DB_DATE_FORMAT, MetricRecord

FRONTMATTER_DELIMITER = "---"

_DIGITS_RE = re.compile(r"\d+")
_MAX_VALUE = 2**32 - 1


def parse_entry_date(path: PathLike) -> date:
    """Parse the calendar date encoded in a journal file's name.

    Raises:
        EntryDateError: if the stem is not ``YYYY-MM-DD``.
    """
    stem = Path(path).stem
    try:
        return datetime.strptime(stem, DB_DATE_FORMAT).date()
    except ValueError as e:
        raise EntryDateError(f"Failed to parse the date from the file name {stem!r}") from e


def read_entry_lines(path: PathLike) -> list[str]:
    """Read a journal entry as a list of lines.

    Raises:
        JournalReadError: if the file is gone, unreadable or not valid UTF-8.
    """
    try:
        return Path(path).read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise JournalReadError(f"Cannot read journal entry {path}: {e}") from e


def frontmatter_block(lines: Iterable[str]) -> list[str]:
    """Return the lines strictly between the first two delimiter lines.

    An entry without a delimiter, or whose block is never closed, has no
    front matter.
    """
    block: list[str] = []
    inside = False
    for line in lines:
        if line.strip() == FRONTMATTER_DELIMITER:
            if inside:
                return block
            inside = True
            continue
        if inside:
            block.append(line)
    return []


def parse_value(raw: str) -> int:
    """Parse a metric value; anything but a plain non-negative integer is 0."""
    raw = raw.strip()
    if not _DIGITS_RE.fullmatch(raw):
        return 0
    value = int(raw)
    return value if value <= _MAX_VALUE else 0


def extract_metrics(lines: Iterable[str], tracked: Iterable[str], path: PathLike) -> list[MetricRecord]:
    """Extract tracked metrics from an entry's front matter.

    Args:
        lines: The entry's text, line by line.
        tracked: Metric names to look for. A line is considered only when the
            raw line starts with one of them, so indented (nested) keys never
            match. Unlike a plain prefix match, the trimmed key before the
            first ``:`` must also equal the name exactly, so ``workout_type``
            is not stored when ``workout`` is tracked.
        path: The entry's path, used for the record date and ``file_path``.

    Returns:
        One record per matched name; the last occurrence of a name wins.

    Raises:
        EntryDateError: if a tracked key matches but the file name is not a date.
    """
    names = {n for n in tracked if n}
    if not names:
        return []

    file_path = str(path)
    entry_date: date | None = None
    found: dict[str, int] = {}

    for line in frontmatter_block(lines):
        if not any(line.startswith(name) for name in names):
            continue
        stripped = line.strip()
        key, sep, raw_value = stripped.partition(":")
        if not sep:
            logger.debug(f"Skipping front-matter line without ':' in {file_path}: {stripped!r}")
            continue
        key = key.strip()
        if key not in names:
            continue
        if entry_date is None:
            entry_date = parse_entry_date(path)
        found[key] = parse_value(raw_value)

    if entry_date is None:
        return []
    return [MetricRecord(file_path=file_path, name=name, value=value, date=entry_date) for name, value in found.items()]

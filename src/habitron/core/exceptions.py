"""
Habitron exception hierarchy.

All habitron exceptions inherit from HabitronError, so callers can catch
library-level errors while still distinguishing per-file failures (which the
ingestion pipeline logs and skips) from configuration and store failures
(which surface to the caller of the operation).
"""


class HabitronError(Exception):
    """Base exception class for all habitron errors."""


class ConfigurationError(HabitronError):
    """Raised for configuration errors (missing keys, invalid values, bad journal root)."""


class StoreError(HabitronError):
    """Raised when the metric store fails (SQLite error, lock timeout)."""


class ExtractionError(HabitronError):
    """Raised when a journal entry cannot be turned into metric records."""


class EntryDateError(ExtractionError):
    """Raised when a journal file name does not encode a calendar date."""


class FileIOError(HabitronError):
    """Raised for file I/O errors."""


class JournalReadError(FileIOError):
    """Raised when a journal entry cannot be read (vanished, permissions, encoding)."""


class ScanError(FileIOError):
    """Raised when the journal root directory cannot be enumerated."""

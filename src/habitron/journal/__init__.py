"""Journal entry parsing.

Provides the metric record models, front-matter extraction, the re-parse
gate, and the directory scanner. Store access is passed in by callers.
"""

from .frontmatter import FRONTMATTER_DELIMITER, extract_metrics, parse_entry_date, read_entry_lines
from .gate import should_process
from .models import FileFingerprint, MetricRecord
from .scanner import ScanResult, is_journal_entry, scan_directory

__all__ = [
    "FRONTMATTER_DELIMITER",
    "FileFingerprint",
    "MetricRecord",
    "ScanResult",
    "extract_metrics",
    "is_journal_entry",
    "parse_entry_date",
    "read_entry_lines",
    "scan_directory",
    "should_process",
]

"""Habitron: habit tracking from daily Markdown journals.

Watches a directory of ``YYYY-MM-DD.md`` journal entries, extracts
front-matter metrics into a local SQLite store, and serves streaks,
rollups and heatmaps over them.
"""

__version__ = "0.1.0"

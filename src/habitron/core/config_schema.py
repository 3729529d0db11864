"""Pydantic models for config validation.

``Config.validated()`` returns a typed ``HabitronConfig``.  Values coming from
environment variables arrive as strings; pydantic coerces them here so the
rest of the code can rely on real ints, floats and enums.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeletionPolicy(StrEnum):
    """What to do with stored metrics when their journal file disappears."""

    KEEP = "keep"  # Keep rows as historical record
    PURGE = "purge"  # Delete rows and fingerprint for the file


class Weekday(StrEnum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def number(self) -> int:
        """Python weekday number (Monday == 0)."""
        return list(Weekday).index(self)


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    db_path: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "db_path", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            if v == ":memory:":
                return Path(v)
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class JournalConfig(BaseModel):
    recursive: bool = False


class WatcherConfig(BaseModel):
    """Coalescing knobs for the change watcher."""

    flush_interval: float = Field(default=1.0, gt=0)
    max_buffer_size: int = Field(default=64, ge=1)


class IngestConfig(BaseModel):
    workers: int = Field(default=4, ge=1)
    queue_capacity: int = Field(default=4, ge=1)
    deleted_files: DeletionPolicy = DeletionPolicy.KEEP


class SyncConfig(BaseModel):
    progress_interval: float = Field(default=0.5, gt=0)


class StoreConfig(BaseModel):
    lock_timeout: float = Field(default=10.0, gt=0)


class AnalyticsConfig(BaseModel):
    week_start: Weekday = Weekday.SUNDAY

    @field_validator("week_start", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class HabitronConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so embedding applications can bolt on custom
    sections without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(
        data_dir=Path("~/.habitron-data"),
        db_path=Path("~/.habitron-data/habitron.db"),
    )
    journal: JournalConfig = JournalConfig()
    watcher: WatcherConfig = WatcherConfig()
    ingest: IngestConfig = IngestConfig()
    sync: SyncConfig = SyncConfig()
    store: StoreConfig = StoreConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    logging: LoggingConfig = LoggingConfig()

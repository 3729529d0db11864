"""Tests for habitron.journal.models."""

import os
from datetime import date, datetime

import pytest

from habitron.journal.models import (
    FileFingerprint,
    MetricRecord,
    format_date,
    format_mtime,
    now_timestamp,
    parse_date,
    parse_timestamp,
)


class TestMetricRecord:
    def test_defaults(self):
        r = MetricRecord(file_path="/j/2024-03-01.md", name="workout", value=45, date=date(2024, 3, 1))
        assert r.updated_at is None
        assert "workout" in repr(r)
        assert "2024-03-01" in repr(r)

    def test_negative_value_rejected(self):
        with pytest.raises(ValueError):
            MetricRecord(file_path="/j/2024-03-01.md", name="workout", value=-1, date=date(2024, 3, 1))


class TestFingerprint:
    def test_of_reads_mtime(self, write_entry):
        path = write_entry("2024-03-01.md", mtime=1_700_000_000.5)
        fp = FileFingerprint.of(path)
        assert fp.file_path == path
        assert fp.last_modified == "2023-11-14T22:13:20.500000+00:00"

    def test_of_missing_file(self, tmp_dir):
        with pytest.raises(OSError):
            FileFingerprint.of(os.path.join(tmp_dir, "2024-03-01.md"))

    def test_microseconds_distinguish_saves(self):
        assert format_mtime(1_700_000_000.25) != format_mtime(1_700_000_000.75)


class TestFormats:
    def test_dates(self):
        assert format_date(date(2024, 3, 7)) == "2024-03-07"
        assert parse_date("2024-03-07") == date(2024, 3, 7)

    def test_timestamp_roundtrip(self):
        raw = now_timestamp()
        assert " " in raw
        assert isinstance(parse_timestamp(raw), datetime)

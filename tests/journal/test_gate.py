"""Tests for habitron.journal.gate."""

import os
from datetime import date

from habitron.journal.gate import should_process
from habitron.journal.models import FileFingerprint, MetricRecord


def _ingest(store, path, names=("workout",)):
    records = [MetricRecord(file_path=path, name=n, value=1, date=date(2024, 3, 1)) for n in names]
    store.record_file(FileFingerprint.of(path), records)


class TestShouldProcess:
    def test_never_fingerprinted(self, store, write_entry):
        path = write_entry("2024-03-01.md", {"workout": 1})
        assert should_process(path, store)

    def test_unchanged_with_metrics_is_skipped(self, store, write_entry):
        path = write_entry("2024-03-01.md", {"workout": 1})
        _ingest(store, path)
        assert not should_process(path, store)

    def test_unchanged_without_metrics_is_processed(self, store, write_entry):
        path = write_entry("2024-03-01.md", {"mood": "ok"})
        store.set_fingerprint(FileFingerprint.of(path))
        assert should_process(path, store)

    def test_modified_file_is_processed(self, store, write_entry):
        path = write_entry("2024-03-01.md", {"workout": 1}, mtime=1_700_000_000)
        _ingest(store, path)
        os.utime(path, (1_700_000_100, 1_700_000_100))
        assert should_process(path, store)

    def test_subsecond_edit_is_detected(self, store, write_entry):
        path = write_entry("2024-03-01.md", {"workout": 1}, mtime=1_700_000_000.25)
        _ingest(store, path)
        os.utime(path, (1_700_000_000.75, 1_700_000_000.75))
        assert should_process(path, store)

    def test_missing_file_is_processed(self, store, tmp_dir):
        assert should_process(f"{tmp_dir}/2024-03-01.md", store)

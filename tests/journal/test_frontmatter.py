"""Tests for habitron.journal.frontmatter."""

from datetime import date

import pytest

from habitron.core.exceptions import EntryDateError, JournalReadError
from habitron.journal.frontmatter import (
    extract_metrics,
    frontmatter_block,
    parse_entry_date,
    parse_value,
    read_entry_lines,
)

PATH = "/journal/2024-03-07.md"


def _entry(*front: str, body: str = "Some notes") -> list[str]:
    return ["---", *front, "---", body]


def _as_dict(records):
    return {r.name: r.value for r in records}


@pytest.mark.smoke
class TestExtractMetrics:
    def test_basic_metric(self):
        records = extract_metrics(_entry("workout: 45"), {"workout"}, PATH)
        assert len(records) == 1
        assert records[0].name == "workout"
        assert records[0].value == 45
        assert records[0].date == date(2024, 3, 7)
        assert records[0].file_path == PATH

    def test_non_numeric_value_defaults_to_zero(self):
        assert _as_dict(extract_metrics(_entry("workout: abc"), {"workout"}, PATH)) == {"workout": 0}

    def test_line_outside_frontmatter_never_matches(self):
        lines = _entry("reading: 10", body="workout: 45")
        assert _as_dict(extract_metrics(lines, {"workout", "reading"}, PATH)) == {"reading": 10}

    def test_multiple_metrics(self):
        lines = _entry("workout: 45", "reading: 20", "mood: good")
        assert _as_dict(extract_metrics(lines, {"workout", "reading"}, PATH)) == {"workout": 45, "reading": 20}

    def test_last_occurrence_wins(self):
        lines = _entry("workout: 10", "workout: 30")
        assert _as_dict(extract_metrics(lines, {"workout"}, PATH)) == {"workout": 30}

    def test_prefix_must_be_whole_key(self):
        lines = _entry("workout_type: 5", "workouts: 7")
        assert extract_metrics(lines, {"workout"}, PATH) == []

    def test_line_without_colon_is_skipped(self):
        lines = _entry("workout 45", "reading: 3")
        assert _as_dict(extract_metrics(lines, {"workout", "reading"}, PATH)) == {"reading": 3}

    def test_value_after_first_colon(self):
        lines = _entry("workout: 12:30")
        assert _as_dict(extract_metrics(lines, {"workout"}, PATH)) == {"workout": 0}

    def test_whitespace_is_trimmed(self):
        lines = _entry("workout   :   45  ")
        assert _as_dict(extract_metrics(lines, {"workout"}, PATH)) == {"workout": 45}

    def test_indented_key_is_not_a_metric(self):
        lines = _entry("stats:", "  workout: 30")
        assert extract_metrics(lines, {"workout"}, PATH) == []

    def test_no_frontmatter(self):
        assert extract_metrics(["workout: 45", "just text"], {"workout"}, PATH) == []

    def test_unterminated_frontmatter(self):
        assert extract_metrics(["---", "workout: 45", "text"], {"workout"}, PATH) == []

    def test_empty_tracked_set(self):
        assert extract_metrics(_entry("workout: 45"), set(), PATH) == []

    def test_bad_date_is_an_error_for_the_file(self):
        with pytest.raises(EntryDateError):
            extract_metrics(_entry("workout: 45"), {"workout"}, "/journal/notes.md")

    def test_bad_date_without_matches_is_not_an_error(self):
        assert extract_metrics(_entry("mood: ok"), {"workout"}, "/journal/notes.md") == []

    def test_delimiter_with_trailing_whitespace(self):
        lines = ["---  ", "workout: 5", " ---"]
        assert _as_dict(extract_metrics(lines, {"workout"}, PATH)) == {"workout": 5}


class TestHelpers:
    def test_frontmatter_block(self):
        assert frontmatter_block(["intro", "---", "a: 1", "---", "b: 2", "---"]) == ["a: 1"]

    @pytest.mark.parametrize(
        "raw,expected",
        [("45", 45), (" 7 ", 7), ("0", 0), ("-3", 0), ("+3", 0), ("4.5", 0), ("", 0), ("1_000", 0), ("99999999999", 0)],
    )
    def test_parse_value(self, raw, expected):
        assert parse_value(raw) == expected

    def test_parse_entry_date(self):
        assert parse_entry_date("/x/2023-12-31.md") == date(2023, 12, 31)

    @pytest.mark.parametrize("name", ["2024-02-30.md", "notes.md", "2024-03-07-extra.md"])
    def test_parse_entry_date_rejects(self, name):
        with pytest.raises(EntryDateError):
            parse_entry_date(f"/x/{name}")

    def test_read_entry_lines(self, tmp_dir):
        path = f"{tmp_dir}/2024-03-07.md"
        with open(path, "w", encoding="utf-8") as f:
            f.write("---\nworkout: 1\n---\n")
        assert read_entry_lines(path) == ["---", "workout: 1", "---"]

    def test_read_missing_entry(self, tmp_dir):
        with pytest.raises(JournalReadError):
            read_entry_lines(f"{tmp_dir}/2024-03-07.md")

    def test_read_invalid_utf8(self, tmp_dir):
        path = f"{tmp_dir}/2024-03-07.md"
        with open(path, "wb") as f:
            f.write(b"---\nworkout: \xff\xfe\n---\n")
        with pytest.raises(JournalReadError):
            read_entry_lines(path)

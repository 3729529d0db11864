"""Tests for the CLI entry point."""

import os

import pytest
from click.testing import CliRunner

from habitron.cli import main


@pytest.fixture
def run(tmp_dir):
    """Invoke the CLI against an isolated data directory."""
    runner = CliRunner()
    base = ["--config", os.path.join(tmp_dir, "none.yaml"), "--data-dir", os.path.join(tmp_dir, "data")]

    def _run(*args, **kwargs):
        return runner.invoke(main, [*base, *args], catch_exceptions=False, **kwargs)

    return _run


class TestCliGroup:
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Habitron" in result.output
        for command in ("watch", "sync", "set-root", "metrics", "stats", "streak", "heatmap"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config_value(self, tmp_dir):
        config = os.path.join(tmp_dir, "bad.yaml")
        with open(config, "w") as f:
            f.write("ingest:\n  workers: 0\n")
        result = CliRunner().invoke(main, ["--config", config, "metrics", "list"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestMetricsCommands:
    def test_add_and_list(self, run):
        result = run("metrics", "add", "workout")
        assert result.exit_code == 0
        assert "Set a journal directory" in result.output

        result = run("metrics", "list")
        assert result.exit_code == 0
        assert "workout" in result.output

    def test_list_empty(self, run):
        result = run("metrics", "list")
        assert "No tracked metrics" in result.output

    def test_add_invalid_name(self, run):
        result = run("metrics", "add", "bad:name")
        assert result.exit_code == 1

    def test_remove_untracked(self, run):
        result = run("metrics", "remove", "workout")
        assert result.exit_code == 1
        assert "not tracked" in result.output

    def test_rename_and_delete(self, run):
        run("metrics", "add", "run")
        assert run("metrics", "rename", "run", "running").exit_code == 0
        assert "running" in run("metrics", "list").output

        result = run("metrics", "delete", "running", "--yes")
        assert result.exit_code == 0
        assert "No tracked metrics" in run("metrics", "list").output


class TestSyncCommands:
    def test_sync_without_root(self, run):
        result = run("sync")
        assert result.exit_code == 1
        assert "No journal directory configured" in result.output

    def test_watch_without_root(self, run):
        result = run("watch", "--no-sync")
        assert result.exit_code == 1

    def test_set_root_then_sync(self, run, write_entry, journal_dir):
        run("metrics", "add", "workout")
        write_entry("2024-03-01.md", {"workout": 45})
        write_entry("2024-03-02.md", {"workout": 30})

        result = run("set-root", str(journal_dir))
        assert result.exit_code == 0
        assert "2 ingested" in result.output

        result = run("sync")
        assert result.exit_code == 0
        assert "2 unchanged" in result.output

        result = run("sync", "--force")
        assert "2 ingested" in result.output

    def test_set_root_missing_directory(self, run, tmp_dir):
        result = run("set-root", os.path.join(tmp_dir, "missing"))
        assert result.exit_code == 1


class TestStatsCommands:
    @pytest.fixture
    def populated(self, run, write_entry, journal_dir):
        run("metrics", "add", "workout")
        for day in range(1, 4):
            write_entry(f"2024-03-0{day}.md", {"workout": 10 * day})
        run("set-root", str(journal_dir))
        return run

    def test_stats_json(self, populated):
        result = populated("stats", "--json")
        assert result.exit_code == 0
        assert '"longestStreak": 3' in result.output
        assert '"activeDays": 3' in result.output

    def test_stats_table(self, populated):
        result = populated("stats")
        assert result.exit_code == 0
        assert "Workout" in result.output

    def test_stats_empty(self, run):
        result = run("stats")
        assert "No habit data yet" in result.output

    def test_streak(self, populated):
        result = populated("streak", "workout")
        assert result.exit_code == 0
        assert "longest 3 days" in result.output

    def test_heatmap_month(self, populated):
        result = populated("heatmap", "workout", "--month", "2024-03")
        assert result.exit_code == 0
        assert "2024-03-01 .. 2024-03-31" in result.output
        assert "total 60, logged 3 of 31 days" in result.output

    @pytest.mark.parametrize("month", ["2024-13", "march"])
    def test_heatmap_bad_month(self, run, month):
        result = run("heatmap", "workout", "--month", month)
        assert result.exit_code == 2

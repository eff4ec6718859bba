"""Tests for brio/cli.py

Runs the command end to end against a temporary SQLite database and
checks the JSON printed on stdout.
"""

import json
import logging

import pytest
import structlog

from brio.cli import build_parser, main


@pytest.fixture(autouse=True)
def restore_logging():
    """main() installs a root handler on the capsys stream; undo it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def run(temp_db, capsys):
    """Invoke the CLI against temp_db; returns (exit_code, parsed_json)."""

    def _run(*argv):
        code = main(["--db", str(temp_db), "--log-level", "WARNING", *argv])
        out = capsys.readouterr().out
        return code, json.loads(out)

    return _run


class TestParser:
    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_priority_choices_enforced(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["suggest", "--title", "x", "--priority", "urgent"])

    @pytest.mark.parametrize("level", ["1.5", "-0.1", "half"])
    def test_battery_bounded(self, level):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--battery", level, "stats"])

    def test_battery_in_range(self):
        assert build_parser().parse_args(["--battery", "0.1", "stats"]).battery == 0.1


class TestStorageFailures:
    @pytest.fixture
    def blocked_db(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        return blocker / "brio.db"

    @pytest.mark.parametrize("argv", [["stats"], ["achievements"], ["record", "--at", "2026-10-19T09:00"]])
    def test_unopenable_database_reports_failure(self, blocked_db, capsys, argv):
        code = main(["--db", str(blocked_db), "--log-level", "WARNING", *argv])

        result = json.loads(capsys.readouterr().out)
        assert code == 1
        assert result["success"] is False
        assert "open failed" in result["error"]


class TestSuggestCommand:
    def test_fresh_database_uses_priority_default(self, run):
        code, result = run("suggest", "--title", "Book flights", "--priority", "low")

        assert code == 0
        assert result["success"] is True
        assert result["reason"] == "Based on low priority"
        assert result["confidence"] == 0.5
        assert result["confident"] is False
        assert len(result["alternatives"]) == 2

    def test_invalid_due_date_fails(self, run):
        code, result = run("suggest", "--title", "Book flights", "--due", "someday")

        assert code == 1
        assert result["success"] is False
        assert "--due" in result["error"]


class TestRecordCommand:
    def test_first_completion_unlocks_achievements(self, run):
        code, result = run("record", "--title", "Pay rent", "--at", "2026-10-19T09:30")

        assert code == 0
        assert result["stats"]["total_tasks_completed"] == 1
        assert result["stats"]["current_streak"] == 1
        assert {a["name"] for a in result["newly_unlocked"]} == {"First Task", "Daily Spark"}

    def test_repeat_completion_unlocks_nothing_new(self, run):
        run("record", "--at", "2026-10-19T09:30")

        _, result = run("record", "--at", "2026-10-19T11:00")

        assert result["stats"]["total_tasks_completed"] == 2
        assert result["newly_unlocked"] == []

    def test_invalid_timestamp_fails(self, run):
        code, result = run("record", "--at", "yesterday")

        assert code == 1
        assert "--at" in result["error"]


class TestLearnedPatterns:
    @pytest.fixture
    def working_week(self, run):
        for day in range(12, 17):
            run("record", "--title", "Standup notes", "--at", f"2026-10-{day}T09:15")

    def test_stats_reflect_history(self, run, working_week):
        code, result = run("stats")

        assert code == 0
        assert result["stats"]["total_tasks_completed"] == 5
        assert result["stats"]["current_streak"] == 5
        assert result["stats"]["longest_streak"] == 5
        assert result["patterns"]["sufficient_data"] is True
        assert result["patterns"]["peak_hours"] == [{"hour": 9, "count": 5}]
        assert result["optimal_hour"] == 9

    def test_predict_peak_slot(self, run, working_week):
        # Tuesday 09:00: both the hour and the weekday are at their peak
        code, result = run("predict", "--at", "2026-10-20T09:00")

        assert code == 0
        assert result["probability"] == 0.9

    def test_predict_quiet_slot_is_floored(self, run, working_week):
        _, result = run("predict", "--at", "2026-10-18T03:00")

        assert result["probability"] == 0.1

    def test_achievements_listing(self, run, working_week):
        code, result = run("achievements", "--type", "streak")

        assert code == 0
        unlocked = {a["name"] for a in result["achievements"] if a["unlocked"]}
        assert unlocked == {"Daily Spark", "3-Day Streak", "5-Day Flow"}
        seven = next(a for a in result["achievements"] if a["name"] == "7-Day Streak")
        assert seven["percent"] == pytest.approx(71.4)
        assert result["summary"]["total"] == 41

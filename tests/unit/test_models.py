"""
Unit tests for harvester models.
"""

import pytest
from pydantic import ValidationError

from src.harvester.models import RunMode, RunSummary, Target, TargetLevel, TargetOutcome


class TestRunMode:
    """Tests for RunMode.parse."""

    @pytest.mark.parametrize("value,expected", [
        ("single", RunMode.SINGLE),
        ("contacts", RunMode.SINGLE),
        ("groups", RunMode.ALL_COMMUNITIES),
        ("all_communities", RunMode.ALL_COMMUNITIES),
        ("LISTS", RunMode.SEGMENTS),
        (" newsubs ", RunMode.BOTS_AND_STEPS),
        ("bots-and-steps", RunMode.BOTS_AND_STEPS),
    ])
    def test_names_and_aliases(self, value, expected):
        assert RunMode.parse(value) == expected

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown mode"):
            RunMode.parse("everything")

    def test_empty_mode(self):
        with pytest.raises(ValueError):
            RunMode.parse("")


class TestTarget:
    """Tests for Target."""

    def test_display_label_falls_back_to_key(self):
        assert Target(level=TargetLevel.BOT, key="12").display_label == "12"
        assert Target(level=TargetLevel.BOT, key="12", label=" Бот ").display_label == "Бот"

    def test_empty_key_rejected(self):
        with pytest.raises(ValidationError):
            Target(level=TargetLevel.COMMUNITY, key="")

    def test_frozen(self):
        target = Target(level=TargetLevel.COMMUNITY, key="1")
        with pytest.raises(ValidationError):
            target.key = "2"


class TestRunSummary:
    """Tests for RunSummary."""

    def test_collected_and_skipped(self):
        summary = RunSummary(mode="groups")
        summary.record_success("group_A", TargetLevel.COMMUNITY, 3, pages=2, artifact="out/a.txt")
        summary.record_skip("group_B", TargetLevel.COMMUNITY, "SelectionError: no control")

        assert summary.mode == RunMode.ALL_COMMUNITIES.value
        assert [o.label for o in summary.collected] == ["group_A"]
        assert [o.label for o in summary.skipped] == ["group_B"]

    def test_summary_lines(self):
        summary = RunSummary(mode=RunMode.SEGMENTS)
        summary.record_success("list_A", TargetLevel.SEGMENT, 7, artifact="a.txt")
        summary.record_skip("list_B", TargetLevel.SEGMENT, "")

        lines = summary.summary_lines()
        assert lines[0] == "Run summary (segments): 1 collected, 1 skipped"
        assert "list_A: 7 ids -> a.txt" in lines[1]
        assert lines[2].endswith("list_B: unknown")

    def test_finish_sets_timestamp(self):
        summary = RunSummary(mode=RunMode.SINGLE)
        assert summary.finished_at is None
        summary.finish()
        assert summary.finished_at is not None

    def test_outcome_count_non_negative(self):
        with pytest.raises(ValidationError):
            TargetOutcome(label="x", level=TargetLevel.BOT, count=-1)

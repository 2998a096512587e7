"""
Unit tests for artifact writing.
"""

import json
import random
import re
from datetime import datetime

import pytest

from src.harvester.file_manager import ArtifactSink, unique_in_order
from src.harvester.models import CommunityInfo, RunMode, RunSummary, TargetLevel

FIXED_NOW = datetime(2025, 11, 6, 22, 53, 1)


@pytest.fixture
def sink(tmp_path):
    return ArtifactSink(tmp_path / "out", rng=random.Random(3), clock=lambda: FIXED_NOW)


class TestUniqueInOrder:
    def test_first_seen_order(self):
        assert unique_in_order(["2", "1", "2", "3", "1"]) == ["2", "1", "3"]

    def test_empty(self):
        assert unique_in_order([]) == []


class TestArtifactSink:
    """Tests for ArtifactSink."""

    def test_name_format(self, sink):
        name = sink.artifact_name("group_Птичка Наличка")
        assert re.fullmatch(r"bothunter_ids_06112025225301_group_Птичка_Наличка_[a-z0-9]{6}\.txt", name)

    def test_write_one_id_per_line(self, sink):
        path = sink.write("group_Alpha", ["3", "1", "3", "2"])
        assert path.parent == sink.out_dir
        assert path.read_text("utf-8") == "3\n1\n2"

    def test_empty_target_still_writes_file(self, sink):
        path = sink.write("list_Отказ", [])
        assert path.exists()
        assert path.read_text("utf-8") == ""

    def test_same_label_twice_never_overwrites(self, tmp_path):
        # Fixed clock and a suffix that repeats once, so the second name collides
        class RepeatingRandom(random.Random):
            def __init__(self):
                super().__init__(0)
                self.calls = 0

            def choice(self, seq):
                self.calls += 1
                return seq[0] if self.calls <= 12 else seq[self.calls % len(seq)]

        sink = ArtifactSink(tmp_path / "out", rng=RepeatingRandom(), clock=lambda: FIXED_NOW)
        first = sink.write("group_Alpha", ["1"])
        second = sink.write("group_Alpha", ["2"])
        assert first != second
        assert first.read_text("utf-8") == "1"
        assert second.read_text("utf-8") == "2"

    def test_custom_prefix(self, tmp_path):
        sink = ArtifactSink(tmp_path, prefix="ids", clock=lambda: FIXED_NOW)
        assert sink.artifact_name("x").startswith("ids_06112025225301_x_")

    def test_write_result(self, sink):
        info = CommunityInfo(name="Alpha", url="https://vk.com/club1", identifier="1")
        path = sink.write_result(info, ["5", "6", "5"], "result.json")

        assert path == sink.out_dir / "result.json"
        doc = json.loads(path.read_text("utf-8"))
        assert doc["community"]["name"] == "Alpha"
        assert doc["user_ids"] == ["5", "6"]
        assert doc["total_users"] == 2
        assert "timestamp" in doc
        assert (sink.out_dir / "result_ids.txt").read_text("utf-8") == "5\n6"

    def test_write_result_absolute_path(self, sink, tmp_path):
        target = tmp_path / "elsewhere" / "res.json"
        assert sink.write_result(CommunityInfo(), [], str(target)) == target
        assert target.exists()

    def test_write_manifest(self, sink):
        summary = RunSummary(mode=RunMode.SEGMENTS)
        summary.record_success("list_Отказ", TargetLevel.SEGMENT, 4, pages=2, artifact="a.txt")
        summary.record_skip("list_В работе", TargetLevel.SEGMENT, "SelectionError: gone")
        summary.finish()

        path = sink.write_manifest(summary)
        assert path.name == "bothunter_ids_06112025225301_segments.manifest.json"
        doc = json.loads(path.read_text("utf-8"))
        assert doc["mode"] == "segments"
        assert doc["outcomes"][0]["count"] == 4
        assert doc["outcomes"][1]["skipped_reason"] == "SelectionError: gone"

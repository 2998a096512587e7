"""
Unit tests for markup scanning (target discovery over captured HTML).
"""

import pytest

from src.harvester.markup import SiteMarkup, TargetRule
from src.harvester.models import Target, TargetLevel
from src.harvester.scanner import (
    dedupe_by_key,
    filter_by_keywords,
    scan_communities,
    scan_community_info,
    scan_dropdown_group,
    scan_segments,
    scan_targets,
)
from tests.fakes import read_fixture


@pytest.fixture
def markup() -> SiteMarkup:
    return SiteMarkup()


def _segments(*labels):
    return [Target(level=TargetLevel.SEGMENT, key=f"/contacts/lists/1/{n}", label=l)
            for n, l in enumerate(labels)]


class TestScanCommunities:
    """Tests for community discovery on the groups page."""

    def test_keys_and_labels_in_page_order(self, markup):
        targets = scan_communities(read_fixture("groups_page.html"), markup)
        assert [(t.key, t.label) for t in targets] == [
            ("218450917", "Птичка Наличка"),
            ("219004411", "Займы Онлайн"),
            ("220777001", "Кредитный Клуб"),
        ]

    def test_duplicate_keys_first_seen_wins(self, markup):
        targets = scan_communities(read_fixture("groups_page.html"), markup)
        keys = [t.key for t in targets]
        assert keys.count("218450917") == 1
        assert "дубль" not in targets[0].label

    def test_all_targets_are_communities(self, markup):
        targets = scan_communities(read_fixture("groups_page.html"), markup)
        assert all(t.level == TargetLevel.COMMUNITY for t in targets)

    def test_empty_page(self, markup):
        assert scan_communities("<html><body></body></html>", markup) == []


class TestScanSegments:
    """Tests for segment discovery on the lists page."""

    def test_segments_from_fixture(self, markup):
        targets = scan_segments(read_fixture("lists_page.html"), markup)
        assert [t.label for t in targets] == ["В работе", "Отказ", "Одобрен", "Клик по офферу", "Случайное"]
        assert targets[0].key == "/contacts/lists/1/5501"

    def test_duplicate_href_dropped(self, markup):
        targets = scan_segments(read_fixture("lists_page.html"), markup)
        assert len({t.key for t in targets}) == len(targets)
        assert all("копия" not in t.label for t in targets)


class TestScanTargets:
    """Tests for the generic rule application."""

    def test_label_falls_back_to_key(self):
        rule = TargetRule(selector="a", attribute="data-go", pattern=r"go:(\w+)")
        targets = scan_targets('<a data-go="go:alpha"></a>', rule, TargetLevel.SEGMENT)
        assert targets[0].label == "alpha"

    def test_elements_without_key_ignored(self):
        rule = TargetRule(selector="a", attribute="data-go", pattern=r"go:(\w+)")
        html = '<a data-go="nothing">x</a><a>y</a><a data-go="go:b">B</a>'
        assert [t.key for t in scan_targets(html, rule, TargetLevel.SEGMENT)] == ["b"]

    def test_rule_requires_capture_group(self):
        with pytest.raises(ValueError, match="capture group"):
            TargetRule(selector="a", pattern=r"go:\w+")


class TestDedupeByKey:
    """Tests for key-based deduplication."""

    def test_keeps_first_seen_order(self):
        targets = [
            Target(level=TargetLevel.BOT, key="2", label="two"),
            Target(level=TargetLevel.BOT, key="1", label="one"),
            Target(level=TargetLevel.BOT, key="2", label="two again"),
        ]
        assert [t.label for t in dedupe_by_key(targets)] == ["two", "one"]


class TestFilterByKeywords:
    """Tests for keyword narrowing of segments."""

    def test_single_keyword_match(self):
        segments = _segments("В работе", "Отказ", "Случайное")
        assert [t.label for t in filter_by_keywords(segments, ["отказ"])] == ["Отказ"]

    def test_no_match_falls_back_to_all(self):
        segments = _segments("В работе", "Отказ", "Случайное")
        result = filter_by_keywords(segments, ["нет такого"])
        assert [t.label for t in result] == ["В работе", "Отказ", "Случайное"]

    def test_case_insensitive(self):
        segments = _segments("КЛИК ПО ОФФЕРУ", "Отказ")
        assert [t.label for t in filter_by_keywords(segments, ["клик"])] == ["КЛИК ПО ОФФЕРУ"]

    def test_empty_keywords_keep_everything(self):
        segments = _segments("A", "B")
        assert filter_by_keywords(segments, []) == segments
        assert filter_by_keywords(segments, None) == segments

    def test_order_preserved(self):
        segments = _segments("Одобрен", "Случайное", "В работе")
        result = filter_by_keywords(segments, ["в работе", "одобрен"])
        assert [t.label for t in result] == ["Одобрен", "В работе"]


class TestScanDropdownGroup:
    """Tests for grouped dropdown scanning."""

    def test_active_group_items(self, markup):
        html = read_fixture("bot_dropdown.html")
        bots = scan_dropdown_group(html, markup.bot_dropdown, "Активные")
        assert [(b.key, b.label) for b in bots] == [("12", "Приветственный бот"), ("15", "Бот займов")]
        assert all(b.level == TargetLevel.BOT for b in bots)

    def test_group_match_is_case_insensitive_substring(self, markup):
        html = read_fixture("bot_dropdown.html")
        bots = scan_dropdown_group(html, markup.bot_dropdown, "активные")
        assert len(bots) == 2

    def test_missing_group_returns_none(self, markup):
        html = read_fixture("bot_dropdown.html")
        assert scan_dropdown_group(html, markup.bot_dropdown, "Удалённые") is None

    def test_unmaterialized_group_returns_empty(self, markup):
        html = read_fixture("bot_dropdown.html")
        assert scan_dropdown_group(html, markup.bot_dropdown, "Черновики") == []

    def test_ungrouped_dropdown_rejected(self, markup):
        with pytest.raises(ValueError):
            scan_dropdown_group("<ul></ul>", markup.step_dropdown, "Активные")

    def test_dropdown_items_without_key_use_label(self, markup):
        html = (
            '<ul><li class="select2-results__option" role="group">'
            '<strong class="select2-results__group">Активные</strong><ul>'
            '<li class="select2-results__option" role="option">Бот А</li>'
            '<li class="select2-results__option" role="option">Бот Б</li>'
            "</ul></li></ul>"
        )
        bots = scan_dropdown_group(html, markup.bot_dropdown, "Активные")
        assert [(b.key, b.label) for b in bots] == [("Бот А", "Бот А"), ("Бот Б", "Бот Б")]


class TestScanCommunityInfo:
    """Tests for the community header."""

    def test_header_fields(self, markup):
        info = scan_community_info(read_fixture("contacts_page.html"), markup)
        assert info.name == "Птичка Наличка"
        assert info.url == "https://vk.com/club218450917"
        assert info.identifier == "218450917"

    def test_defaults_when_missing(self, markup):
        info = scan_community_info("<html><body><p>nothing</p></body></html>", markup)
        assert info.name == "Unknown Community"
        assert info.url == ""
        assert info.identifier == ""

    def test_russian_identifier_label(self, markup):
        html = '<body><a class="dark-link" href="/">Клуб</a><p>Идентификатор: 4242</p></body>'
        assert scan_community_info(html, markup).identifier == "4242"

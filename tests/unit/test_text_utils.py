"""
Unit tests for text helpers.
"""

import random

from src.utils.text_utils import first_label_line, normalize_text, random_suffix, slugify, text_lines


class TestSlugify:
    """Tests for slugify function."""

    def test_keeps_cyrillic_and_joins_words(self):
        assert slugify("group_Птичка Наличка!") == "group_Птичка_Наличка"

    def test_strips_diacritics(self):
        assert slugify("Café  déjà vu") == "Cafe_deja_vu"

    def test_fallback_when_nothing_left(self):
        assert slugify("???") == "item"
        assert slugify(None) == "item"
        assert slugify("", fallback="x") == "x"

    def test_length_cap(self):
        assert len(slugify("a" * 100)) == 40
        assert slugify("abcdef", max_len=3) == "abc"

    def test_keeps_dash_and_underscore(self):
        assert slugify("list_клик-по офферу") == "list_клик-по_офферу"


class TestRandomSuffix:
    """Tests for random_suffix function."""

    def test_length_and_alphabet(self):
        s = random_suffix(6)
        assert len(s) == 6
        assert s.isalnum()
        assert s == s.lower()

    def test_seeded_rng_is_deterministic(self):
        assert random_suffix(6, random.Random(7)) == random_suffix(6, random.Random(7))


class TestLabels:
    """Tests for label cleanup helpers."""

    def test_text_lines_drops_blanks(self):
        assert text_lines("  a \n\n b\n  ") == ["a", "b"]
        assert text_lines(None) == []

    def test_first_label_line_skips_hashtags(self):
        assert first_label_line("#VK\nАльфа\nBeta", r"^#") == "Альфа"

    def test_first_label_line_falls_back_to_first(self):
        assert first_label_line("#VK\n#OK", r"^#") == "#VK"
        assert first_label_line("") == ""

    def test_normalize_text(self):
        assert normalize_text("  Бот \n  займов\t") == "Бот займов"
        assert normalize_text(None) == ""

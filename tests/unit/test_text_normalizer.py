"""Unit tests for songmatch.utils.text_normalizer."""

from __future__ import annotations

import pytest

from songmatch.utils.text_normalizer import clean_text, contains_word, fuzzy_match, tokenize


class TestCleanText:
    def test_lowercases_and_strips_punctuation(self) -> None:
        assert clean_text("Don't STOP, believin'!!") == "don't stop believin'"

    def test_collapses_whitespace(self) -> None:
        assert clean_text("  purple \t\n rain  ") == "purple rain"

    def test_empty(self) -> None:
        assert clean_text("") == ""
        assert clean_text("?!...") == ""


class TestTokenize:
    def test_splits_cleaned_text(self) -> None:
        assert tokenize("Hello, New York!") == ["hello", "new", "york"]

    def test_empty_message_has_no_tokens(self) -> None:
        assert tokenize("   ") == []


class TestContainsWord:
    def test_whole_word(self) -> None:
        assert contains_word("the rain falls", "rain")

    def test_word_inside_longer_word(self) -> None:
        assert not contains_word("a rainy day", "rain")

    def test_multi_word_term(self) -> None:
        assert contains_word("back in new york city", "new york")


class TestFuzzyMatch:
    def test_close_typo_matches(self) -> None:
        result = fuzzy_match("concret jungle", ["concrete jungle", "new york"])
        assert result is not None
        match, score = result
        assert match == "concrete jungle"
        assert score == pytest.approx(0.9655, abs=1e-3)

    def test_below_threshold(self) -> None:
        assert fuzzy_match("purple haze", ["purple rain"], threshold=0.95) is None

    def test_empty_inputs(self) -> None:
        assert fuzzy_match("", ["x"]) is None
        assert fuzzy_match("x", []) is None

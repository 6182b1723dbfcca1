"""
Unit tests for the suggestion matcher.

Tests cover:
- Novelty: blank never novel, case-insensitive exact match never novel
- Picklist filtering (substring, blank input, de-duplication)
- Loading vocabularies from a JSON file
"""
import json
import logging

import pytest

from orderdesk.engine.suggestions import (
    DEFAULT_VOCABULARIES,
    SuggestionCategory,
    filter_suggestions,
    is_known,
    is_novel,
    load_vocabularies,
)

VOCAB = {
    SuggestionCategory.CUSTOMER: ["Sharif", "Uruma"],
    SuggestionCategory.MODEL: ["9070", "9078", "D-02", "X-21"],
    SuggestionCategory.COLOR: ["363-6", "363-11", "M9011-2", "HJ001"],
}


# ============================================================================
# is_novel / is_known
# ============================================================================

class TestIsNovel:
    @pytest.mark.parametrize("value", [None, "", "   ", "\t"])
    def test_blank_is_never_novel(self, value):
        assert is_novel(value, SuggestionCategory.CUSTOMER, VOCAB) is False

    @pytest.mark.parametrize("value", ["Sharif", "sharif", "  SHARIF  "])
    def test_case_insensitive_match_is_not_novel(self, value):
        assert is_novel(value, SuggestionCategory.CUSTOMER, VOCAB) is False

    def test_unknown_value_is_novel(self):
        assert is_novel("Acme", SuggestionCategory.CUSTOMER, VOCAB) is True

    def test_substring_is_still_novel(self):
        # "Shar" appears in the picklist filter but is not an exact entry
        assert is_novel("Shar", SuggestionCategory.CUSTOMER, VOCAB) is True

    def test_lookup_is_per_category(self):
        assert is_novel("9070", SuggestionCategory.COLOR, VOCAB) is True
        assert is_novel("9070", SuggestionCategory.MODEL, VOCAB) is False

    def test_missing_category_makes_everything_novel(self):
        assert is_novel("Sharif", SuggestionCategory.CUSTOMER, {}) is True

    def test_blank_is_not_known(self):
        assert is_known("", SuggestionCategory.MODEL, VOCAB) is False


# ============================================================================
# filter_suggestions
# ============================================================================

class TestFilterSuggestions:
    def test_blank_returns_whole_list(self):
        assert filter_suggestions("", SuggestionCategory.COLOR, VOCAB) == VOCAB[SuggestionCategory.COLOR]

    def test_none_returns_whole_list(self):
        assert filter_suggestions(None, SuggestionCategory.MODEL, VOCAB) == VOCAB[SuggestionCategory.MODEL]

    def test_substring_match(self):
        assert filter_suggestions("363", SuggestionCategory.COLOR, VOCAB) == ["363-6", "363-11"]

    def test_case_insensitive(self):
        assert filter_suggestions("hj", SuggestionCategory.COLOR, VOCAB) == ["HJ001"]
        assert filter_suggestions("d-0", SuggestionCategory.MODEL, VOCAB) == ["D-02"]

    def test_no_match(self):
        assert filter_suggestions("zzz", SuggestionCategory.CUSTOMER, VOCAB) == []

    def test_duplicates_dropped_first_wins(self):
        vocab = {SuggestionCategory.MODEL: ["9807", "9808", "9807", "9807 "]}
        assert filter_suggestions("98", SuggestionCategory.MODEL, vocab) == ["9807", "9808"]


# ============================================================================
# load_vocabularies
# ============================================================================

class TestLoadVocabularies:
    def test_none_returns_defaults(self):
        assert load_vocabularies(None) == DEFAULT_VOCABULARIES

    def test_file_overrides_listed_categories(self, tmp_path):
        path = tmp_path / "vocab.json"
        path.write_text(json.dumps({"customer": ["Acme", "Globex"]}), encoding="utf-8")

        vocab = load_vocabularies(path)

        assert vocab[SuggestionCategory.CUSTOMER] == ("Acme", "Globex")
        assert vocab[SuggestionCategory.COLOR] == DEFAULT_VOCABULARIES[SuggestionCategory.COLOR]

    def test_unknown_category_ignored_with_warning(self, tmp_path, caplog):
        path = tmp_path / "vocab.json"
        path.write_text(json.dumps({"fabric": ["silk"]}), encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="orderdesk.engine.suggestions"):
            vocab = load_vocabularies(path)

        assert set(vocab) == set(SuggestionCategory)
        assert "fabric" in caplog.text

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "vocab.json"
        path.write_text(json.dumps(["Sharif"]), encoding="utf-8")

        with pytest.raises(ValueError):
            load_vocabularies(path)

"""Tests for the word corpus and batch generation."""
import json
import logging

import pytest

from typedrill.ml import extract_patterns_for_word
from typedrill.services.corpus import WordGenerator, WordIndexer

WORDS = ["The", "then", "  ", "red", "bed", "apple"]


@pytest.fixture
def indexer():
    return WordIndexer(WORDS, flow_word_count=2)


class TestExtractPatterns:
    """Tests for pattern extraction from a word."""

    def test_short_word(self):
        assert extract_patterns_for_word("The") == ["t", "th", "the", "h", "he", "e"]

    def test_duplicates_removed(self):
        patterns = extract_patterns_for_word("apple")
        assert patterns.count("p") == 1
        assert "pp" in patterns
        assert "ppl" in patterns

    def test_single_letter(self):
        assert extract_patterns_for_word("a") == ["a"]


class TestWordIndexer:
    """Tests for the pattern index."""

    def test_normalises_words(self, indexer):
        assert indexer.words_containing("the") == ["the", "then"]

    def test_words_containing(self, indexer):
        assert indexer.words_containing("th") == ["the", "then"]
        assert indexer.words_containing("ed") == ["red", "bed"]
        assert indexer.words_containing("zz") == []

    def test_same_finger_lookup_uses_pair(self, indexer):
        assert indexer.words_containing("same_finger:ed") == ["red", "bed"]

    def test_flow_words(self, indexer):
        assert indexer.flow_words() == ["the", "then"]

    def test_patterns_for_stage(self, indexer):
        assert indexer.patterns_for_stage("unigram") == [
            "t", "h", "e", "n", "r", "d", "b", "a", "p", "l",
        ]
        bigrams = indexer.patterns_for_stage("bigram")
        assert bigrams[-1] == "same_finger:ed"
        assert "same_finger:pp" not in bigrams, "Repeated letters are not same-finger pairs"

    def test_stage_sizes(self, indexer):
        assert indexer.stage_sizes() == {"unigram": 10, "bigram": 11, "trigram": 7}

    def test_from_json_list(self, tmp_path):
        path = tmp_path / "words.json"
        path.write_text(json.dumps(["one", "two"]), encoding="utf-8")
        assert WordIndexer.from_json(path).flow_words() == ["one", "two"]

    def test_from_json_object(self, tmp_path):
        path = tmp_path / "words.json"
        path.write_text(json.dumps({"words": ["One", "two"]}), encoding="utf-8")
        assert WordIndexer.from_json(str(path)).words_containing("o") == ["one", "two"]


class TestWordGenerator:
    """Tests for focused batch generation."""

    def test_batch_contains_focus(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch("th", history=[], batch_size=5)

        assert len(batch) == 5
        for candidate in batch:
            assert candidate.word in ("the", "then")
            assert candidate.target_matches[0].pattern == "th"
            assert candidate.target_matches[0].start_index == 0
            assert not candidate.is_flow_word

    def test_prefers_words_not_in_history(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch("th", history=["the"], batch_size=1)
        assert batch[0].word == "then"

    def test_history_exhausted_reuses_candidates(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch(
            "th", history=["the", "then"], batch_size=3
        )
        assert len(batch) == 3

    def test_same_finger_focus(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch("same_finger:ed", history=[], batch_size=4)
        for candidate in batch:
            assert candidate.target_matches[0].pattern == "same_finger:ed"
            assert candidate.target_matches[0].start_index == 1

    def test_unknown_pattern_falls_back_to_flow(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch("zz", history=[], batch_size=3)
        assert all(c.is_flow_word and c.word in ("the", "then") for c in batch)
        assert all(c.target_matches == [] for c in batch)

    def test_no_focus(self, indexer, rng):
        batch = WordGenerator(indexer, rng).generate_batch(None, history=[], batch_size=2)
        assert all(c.is_flow_word for c in batch)

    def test_empty_corpus(self, rng, caplog):
        with caplog.at_level(logging.WARNING):
            batch = WordGenerator(WordIndexer([]), rng).generate_batch("th", history=[])
        assert batch == []
        assert "No words available" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

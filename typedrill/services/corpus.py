"""
Word corpus - indexes words by the patterns they contain and builds
practice batches that focus on a single pattern.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

import numpy as np
from pydantic import BaseModel

from typedrill.ml import (
    STAGES,
    Stage,
    base_pattern,
    extract_patterns_for_word,
    get_pattern_stage,
    is_same_finger,
    make_same_finger_id,
)

logger = logging.getLogger(__name__)

DEFAULT_FLOW_WORD_COUNT = 100


class TargetMatch(BaseModel):
    pattern: str
    start_index: int


class WordCandidate(BaseModel):
    """A word in a practice batch."""
    word: str
    target_matches: list[TargetMatch] = []
    is_flow_word: bool = False


class Corpus(Protocol):
    """Word source used by the scheduler."""

    def words_containing(self, pattern_id: str) -> list[str]:
        """Words containing the pattern. May be empty."""
        ...

    def flow_words(self) -> list[str]:
        """Neutral words for warm-up and fallback."""
        ...

    def patterns_for_stage(self, stage: Stage) -> list[str]:
        """Every pattern id of a stage found in the corpus."""
        ...


class WordIndexer:
    """In-memory corpus: pattern -> words containing it.

    The first words of the list (most common, for a frequency-sorted list)
    form the flow word pool.
    """

    def __init__(self, words: Sequence[str], flow_word_count: int = DEFAULT_FLOW_WORD_COUNT):
        self._words = [w.strip().lower() for w in words if w and w.strip()]
        self._flow_words = self._words[:flow_word_count]
        self._index: dict[str, list[str]] = {}
        self._build_index()

    @classmethod
    def from_json(
        cls,
        path: Union[str, Path],
        flow_word_count: int = DEFAULT_FLOW_WORD_COUNT,
    ) -> "WordIndexer":
        """Load a word list from JSON: a list of strings or {"words": [...]}."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        words = data["words"] if isinstance(data, dict) else data
        return cls(words, flow_word_count=flow_word_count)

    def _build_index(self) -> None:
        for word in self._words:
            for pattern in extract_patterns_for_word(word):
                self._index.setdefault(pattern, []).append(word)

    def words_containing(self, pattern_id: str) -> list[str]:
        return list(self._index.get(base_pattern(pattern_id).lower(), []))

    def flow_words(self) -> list[str]:
        return list(self._flow_words)

    def patterns_for_stage(self, stage: Stage) -> list[str]:
        """Patterns of a stage in first-seen order.

        Same-finger pairs are bigram patterns of their own.
        """
        patterns = [p for p in self._index if get_pattern_stage(p) == stage]
        if stage == "bigram":
            patterns += [
                make_same_finger_id(p) for p in list(patterns) if is_same_finger(p[0], p[1])
            ]
        return patterns

    def stage_sizes(self) -> dict[Stage, int]:
        return {stage: len(self.patterns_for_stage(stage)) for stage in STAGES}


class WordGenerator:
    """Builds batches of words for a focus pattern."""

    def __init__(self, corpus: Corpus, rng: np.random.Generator):
        self.corpus = corpus
        self.rng = rng

    def _choice(self, words: Sequence[str]) -> str:
        return words[int(self.rng.integers(len(words)))]

    def generate_batch(
        self,
        focus_pattern: Optional[str],
        history: Sequence[str],
        batch_size: int = 10,
    ) -> list[WordCandidate]:
        """Generate a batch where every word contains the focus pattern.

        Recently shown words (history) are avoided when possible. Without a
        focus pattern, or when no word contains it, flow words are used.
        """
        history_set = set(history)
        flow_words = self.corpus.flow_words()
        candidates = self.corpus.words_containing(focus_pattern) if focus_pattern else []
        text = base_pattern(focus_pattern).lower() if focus_pattern else ""

        batch: list[WordCandidate] = []
        for _ in range(batch_size):
            word: Optional[str] = None
            matches: list[TargetMatch] = []

            if candidates:
                fresh = [w for w in candidates if w not in history_set]
                word = self._choice(fresh or candidates)
                index = word.find(text)
                if index >= 0:
                    matches.append(TargetMatch(pattern=focus_pattern, start_index=index))
            elif flow_words:
                fresh = [w for w in flow_words if w not in history_set]
                word = self._choice(fresh or flow_words)

            if word is None:
                logger.warning("No words available for pattern %r", focus_pattern)
                break

            batch.append(WordCandidate(
                word=word,
                target_matches=matches,
                is_flow_word=not matches,
            ))
            history_set.add(word)

        return batch

"""
Keystroke attributor - turns keystrokes into pattern observations.

A session types a queue of target words separated by a delimiter. Each
keystroke is checked against the expected character, and correct keystrokes
attribute their inter-keystroke interval (IKSI) to the unigram, bigram,
trigram and same-finger pair ending at that character.

Timing rules:
- The first character of a word is never timed (reading/reaction time).
- An interval >= 2000ms is a distraction: nothing is attributed, but the
  cursor still advances.
- The correct keystroke right after a mismatch is not timed either.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from typedrill.ml import AttributionEvent, is_same_finger, make_same_finger_id

logger = logging.getLogger(__name__)

DELIMITER = " "
MAX_LATENCY_MS = 2000.0


@dataclass(frozen=True)
class EngineInputState:
    """Input state of one typing session.

    active_char_index == len(current word) means the delimiter is expected.
    is_error is display feedback only and never blocks input.
    invalidated suppresses the next latency attribution.
    """
    words: tuple[str, ...] = ()
    active_word_index: int = 0
    active_char_index: int = 0
    typed_so_far: str = ""
    is_error: bool = False
    last_accepted_at: Optional[float] = None
    invalidated: bool = False

    @property
    def current_word(self) -> Optional[str]:
        if 0 <= self.active_word_index < len(self.words):
            return self.words[self.active_word_index]
        return None

    @property
    def is_exhausted(self) -> bool:
        """True once every queued word has been completed."""
        return self.active_word_index >= len(self.words)

    @property
    def awaiting_delimiter(self) -> bool:
        word = self.current_word
        return word is not None and self.active_char_index == len(word)

    def with_words(self, words: Iterable[str]) -> "EngineInputState":
        """Append words to the queue."""
        return replace(self, words=self.words + tuple(words))


def _latency_events(word: str, index: int, latency_ms: float) -> list[AttributionEvent]:
    char = word[index]
    prev = word[index - 1]
    pair = prev + char

    pattern_ids = [char, pair]
    if index > 1:
        pattern_ids.append(word[index - 2:index + 1])
    if is_same_finger(prev, char):
        pattern_ids.append(make_same_finger_id(pair))

    return [AttributionEvent(pattern_id=p, latency_ms=latency_ms) for p in pattern_ids]


def _error_events(word: str, index: int) -> list[AttributionEvent]:
    expected = word[index]
    pattern_ids = [expected]
    if index > 0:
        prev = word[index - 1]
        pattern_ids.append(prev + expected)
        if is_same_finger(prev, expected):
            pattern_ids.append(make_same_finger_id(prev + expected))

    return [AttributionEvent(pattern_id=p, is_error=True) for p in pattern_ids]


def handle_keystroke(
    state: EngineInputState,
    key: str,
    now: float,
) -> tuple[EngineInputState, list[AttributionEvent]]:
    """Process one keystroke.

    Args:
        state: Current input state.
        key: The typed character.
        now: Timestamp of the keystroke in ms.

    Returns:
        (new_state, attribution_events)
    """
    word = state.current_word
    if word is None:
        logger.debug("Keystroke %r with no active word ignored", key)
        return state, []

    index = state.active_char_index

    # End of word: only the delimiter leaves it
    if index == len(word):
        if key == DELIMITER:
            return replace(
                state,
                active_word_index=state.active_word_index + 1,
                active_char_index=0,
                typed_so_far="",
                is_error=False,
            ), []
        return replace(state, is_error=True), []

    expected = word[index]

    if key != expected:
        return replace(state, is_error=True, invalidated=True), _error_events(word, index)

    events: list[AttributionEvent] = []
    if index > 0 and not state.invalidated and state.last_accepted_at is not None:
        delta = now - state.last_accepted_at
        if 0 <= delta < MAX_LATENCY_MS:
            events = _latency_events(word, index, delta)

    return replace(
        state,
        active_char_index=index + 1,
        typed_so_far=state.typed_so_far + key,
        is_error=False,
        invalidated=False,
        last_accepted_at=now,
    ), events


class KeystrokeAttributor:
    """Stateful wrapper around handle_keystroke for one session.

    Also counts keystrokes for session accuracy and speed.
    """

    def __init__(self, words: Iterable[str] = ()):
        self.state = EngineInputState(words=tuple(words))
        self.total_keystrokes = 0
        self.error_keystrokes = 0

    @property
    def correct_keystrokes(self) -> int:
        return self.total_keystrokes - self.error_keystrokes

    def queue_words(self, words: Iterable[str]) -> None:
        self.state = self.state.with_words(words)

    def reset(self, words: Iterable[str] = ()) -> None:
        """Start over with a new word queue. Keystroke counts are kept."""
        self.state = EngineInputState(words=tuple(words))

    def handle_key(self, key: str, now: float) -> list[AttributionEvent]:
        if self.state.current_word is None:
            return []

        self.state, events = handle_keystroke(self.state, key, now)
        self.total_keystrokes += 1
        if self.state.is_error:
            self.error_keystrokes += 1
        return events

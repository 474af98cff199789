"""Pattern identifiers and keyboard geometry.

A pattern id is the literal text of an n-gram ("e", "th", "the") or a
same-finger tagged pair ("same_finger:ed") tracked separately from the plain
pair.
"""

from typing import Optional

SAME_FINGER_PREFIX = "same_finger:"

# Same-finger transitions are anatomically slower; their sampled latency is
# scaled by this factor before comparing against the target.
SAME_FINGER_LENIENCY = 0.85


def _build_finger_mapping() -> dict[str, tuple[str, str]]:
    """Build mapping from QWERTY character to ``(hand, finger)``.

    Follows standard touch-typing finger assignments.
    """
    mapping: dict[str, tuple[str, str]] = {}

    for key in "`1qaz":
        mapping[key] = ("left", "pinky")
    for key in "2wsx":
        mapping[key] = ("left", "ring")
    for key in "3edc":
        mapping[key] = ("left", "middle")
    for key in "45rtfgvb":
        mapping[key] = ("left", "index")

    for key in "67yuhjnm":
        mapping[key] = ("right", "index")
    for key in "8ik,":
        mapping[key] = ("right", "middle")
    for key in "9ol.":
        mapping[key] = ("right", "ring")
    for key in "0p;/-=[]'\\":
        mapping[key] = ("right", "pinky")

    return mapping


FINGER_MAP = _build_finger_mapping()


def finger_for(char: str) -> Optional[tuple[str, str]]:
    """Get the (hand, finger) that types a character, or None if unmapped."""
    return FINGER_MAP.get(char.lower())


def is_same_finger(prev: str, curr: str) -> bool:
    """True if two different characters are typed by the same finger."""
    if prev.lower() == curr.lower():
        return False
    finger = finger_for(prev)
    return finger is not None and finger == finger_for(curr)


def make_same_finger_id(pair: str) -> str:
    return f"{SAME_FINGER_PREFIX}{pair}"


def is_same_finger_id(pattern_id: str) -> bool:
    return pattern_id.startswith(SAME_FINGER_PREFIX)


def base_pattern(pattern_id: str) -> str:
    """Strip the same-finger tag, leaving the literal text."""
    if is_same_finger_id(pattern_id):
        return pattern_id[len(SAME_FINGER_PREFIX):]
    return pattern_id


def extract_patterns_for_word(word: str) -> list[str]:
    """All distinct unigrams, bigrams and trigrams in a word, lower-cased.

    Order of first occurrence is preserved.
    """
    lower = word.lower()
    patterns: dict[str, None] = {}

    for i in range(len(lower)):
        patterns[lower[i]] = None
        if i + 1 < len(lower):
            patterns[lower[i:i + 2]] = None
        if i + 2 < len(lower):
            patterns[lower[i:i + 3]] = None

    return list(patterns)

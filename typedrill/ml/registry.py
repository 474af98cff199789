"""Stage registry.

Each pattern belongs to exactly one stage, decided by the shape of its id:
- one symbol: unigram
- two symbols, or a same-finger tagged pair: bigram
- three symbols: trigram

Stages unlock progressively; a stage's prerequisites must all be mastered.
"""

import string
from typing import Optional

from pydantic import BaseModel

from .patterns import base_pattern, is_same_finger, is_same_finger_id
from .types import Stage, STAGES


class StageConfig(BaseModel):
    """Configuration for a stage."""
    stage: Stage
    ngram_length: int
    prerequisites: list[Stage] = []  # stages that must reach the unlock threshold


STAGE_CONFIGS: dict[Stage, StageConfig] = {
    "unigram": StageConfig(stage="unigram", ngram_length=1),
    "bigram": StageConfig(
        stage="bigram",
        ngram_length=2,
        prerequisites=["unigram"],
    ),
    "trigram": StageConfig(
        stage="trigram",
        ngram_length=3,
        prerequisites=["unigram", "bigram"],
    ),
}


def get_stage_config(stage: str) -> StageConfig:
    """Get stage config by name."""
    if stage not in STAGE_CONFIGS:
        raise KeyError(f"Unknown stage: {stage}. "
                       f"Known stages: {list(STAGE_CONFIGS.keys())}")
    return STAGE_CONFIGS[stage]  # type: ignore[index]


def get_pattern_stage(pattern_id: str) -> Optional[Stage]:
    """Classify a pattern id by shape. Returns None for unclassifiable ids."""
    if is_same_finger_id(pattern_id):
        return "bigram" if len(base_pattern(pattern_id)) == 2 else None

    for config in STAGE_CONFIGS.values():
        if len(pattern_id) == config.ngram_length:
            return config.stage
    return None


def alphabet_stage_sizes(alphabet: str = string.ascii_lowercase) -> dict[Stage, int]:
    """Theoretical number of patterns per stage for an alphabet.

    The bigram universe holds every plain pair plus a same-finger tagged
    variant for each ordered pair of different letters typed by one finger.
    26 letters give 26 unigrams, 676 + 82 bigrams and 17576 trigrams.
    """
    letters = sorted(set(alphabet.lower()))
    sizes = {
        stage: len(letters) ** STAGE_CONFIGS[stage].ngram_length
        for stage in STAGES
    }
    sizes["bigram"] += sum(1 for a in letters for b in letters if is_same_finger(a, b))
    return sizes

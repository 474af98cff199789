"""
Stage gate - aggregate mastery per stage and stage unlocking.

Progression:
1. unigram - always unlocked
2. bigram  - unlocked while unigram mastery >= 85%
3. trigram - unlocked while unigram and bigram mastery >= 85%

Unlocking is re-evaluated on every call, so a stage can lock again if
mastery regresses; resolve_stage falls back to the highest unlocked stage.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from pydantic import BaseModel

from typedrill.ml import (
    STAGE_CONFIGS,
    STAGES,
    PatternRecord,
    Stage,
    get_pattern_stage,
    get_stage_config,
)

UNLOCK_THRESHOLD = 85  # percent
MIN_STAGE_SAMPLES = 3  # a pattern needs this many attempts to count


class StageReport(BaseModel):
    """Mastery percentage and unlock status for every stage."""
    mastery: dict[str, int]
    unlocked: dict[str, bool]


def stage_mastery(
    records: Iterable[PatternRecord],
    stage: Stage,
    target_latency_ms: float,
    total_possible: int,
) -> int:
    """Share of the stage universe that is fast enough, in 0..100.

    Divides by the full universe size, not the observed subset, so unseen
    patterns count as not yet mastered.
    """
    get_stage_config(stage)
    if total_possible <= 0:
        return 0

    mastered_count = sum(
        1
        for r in records
        if get_pattern_stage(r.id) == stage
        and r.sample_count >= MIN_STAGE_SAMPLES
        and r.ewma_latency <= target_latency_ms
    )
    return min(100, round(mastered_count / total_possible * 100))


def unlock_status(mastery: Mapping[str, int]) -> dict[str, bool]:
    """Derive which stages are unlocked from per-stage mastery."""
    return {
        stage: all(
            mastery.get(prereq, 0) >= UNLOCK_THRESHOLD
            for prereq in STAGE_CONFIGS[stage].prerequisites
        )
        for stage in STAGES
    }


def resolve_stage(requested: str, unlocked: Mapping[str, bool]) -> Stage:
    """The requested stage if unlocked, else the highest unlocked stage below it."""
    get_stage_config(requested)
    position = STAGES.index(requested)  # type: ignore[arg-type]
    for stage in reversed(STAGES[: position + 1]):
        if unlocked.get(stage, False):
            return stage
    return STAGES[0]


def evaluate(
    records: Iterable[PatternRecord],
    target_latency_ms: float,
    stage_sizes: Mapping[str, int],
) -> StageReport:
    """Compute mastery and unlock status for all stages."""
    records = list(records)
    mastery = {
        stage: stage_mastery(records, stage, target_latency_ms, stage_sizes.get(stage, 0))
        for stage in STAGES
    }
    return StageReport(mastery=mastery, unlocked=unlock_status(mastery))

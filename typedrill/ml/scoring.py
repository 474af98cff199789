"""Priority scoring for patterns.

Higher score = more urgent to drill. The score balances exploration
(uncertainty, stochastic latency sampling) against exploitation (latency
gap to the target, error rate), with a recency boost for spaced repetition
and a large penalty that takes stably mastered patterns out of rotation.

    score = w_unc * sqrt(var)
          + w_weak * max(0, latency_sample - target)
          + w_time * minutes_since_seen
          + w_error * error_rate * 100
          - 1000 * stably_mastered
"""

import math
from typing import Iterable, Optional

import numpy as np

from .mastery import is_stably_mastered, mastery_percent
from .patterns import SAME_FINGER_LENIENCY, is_same_finger_id
from .types import PatternRecord, RankMode, ScoredPattern, ScoringWeights

MASTERY_PENALTY = 1000.0
MS_PER_MINUTE = 60000.0


def sample_normal(mean: float, variance: float, rng: np.random.Generator) -> float:
    """Draw from N(mean, variance) with the Box-Muller transform."""
    u1 = 1.0 - rng.random()  # (0, 1], keeps log finite
    u2 = rng.random()
    z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return z0 * math.sqrt(max(0.0, variance)) + mean


def score_pattern(
    record: PatternRecord,
    target_latency_ms: float,
    weights: ScoringWeights,
    *,
    deterministic: bool,
    include_recency_boost: bool,
    now: float,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """Compute the priority score of one pattern.

    Args:
        record: Pattern statistics.
        target_latency_ms: Current latency goal.
        weights: Term weights.
        deterministic: Use ewma_latency instead of a sampled latency.
        include_recency_boost: Add one point per minute since last seen.
        now: Current time in ms.
        rng: Generator for the latency sample; required unless deterministic.

    Returns:
        Priority score.
    """
    if deterministic:
        latency = record.ewma_latency
    else:
        if rng is None:
            raise ValueError("rng is required for stochastic scoring")
        latency = sample_normal(record.ewma_latency, record.ewma_variance, rng)

    if is_same_finger_id(record.id):
        latency *= SAME_FINGER_LENIENCY

    gap = max(0.0, latency - target_latency_ms)
    time_boost = (now - record.last_seen_at) / MS_PER_MINUTE if include_recency_boost else 0.0
    penalty = MASTERY_PENALTY if is_stably_mastered(record) else 0.0

    return (
        weights.uncertainty * math.sqrt(max(0.0, record.ewma_variance))
        + weights.weakness * gap
        + weights.recency * time_boost
        + weights.error * record.error_rate * 100
        - penalty
    )


def rank_all(
    records: Iterable[PatternRecord],
    target_latency_ms: float,
    weights: ScoringWeights,
    mode: RankMode,
    now: float,
    rng: Optional[np.random.Generator] = None,
) -> list[ScoredPattern]:
    """Score every record and sort descending by score.

    DISPLAY mode is deterministic without the recency boost, so the view
    does not jitter between passes; SELECTION mode samples and boosts.
    """
    deterministic = mode == RankMode.DISPLAY
    scored = [
        ScoredPattern(
            id=record.id,
            record=record,
            score=score_pattern(
                record,
                target_latency_ms,
                weights,
                deterministic=deterministic,
                include_recency_boost=not deterministic,
                now=now,
                rng=rng,
            ),
            mastery_percent=mastery_percent(record, target_latency_ms),
        )
        for record in records
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def select_top_patterns(
    records: Iterable[PatternRecord],
    target_latency_ms: float,
    weights: ScoringWeights,
    now: float,
    rng: np.random.Generator,
    k: int = 1,
) -> list[str]:
    """Ids of the k highest stochastic scores."""
    ranked = rank_all(records, target_latency_ms, weights, RankMode.SELECTION, now, rng)
    return [s.id for s in ranked[:k]]

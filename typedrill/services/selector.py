"""
Pattern selector - picks the next pattern to drill.

Two interchangeable policies, chosen by LearningMode:
- reinforced: weighted random toward weakness (or top stochastic score)
- sequential: strict worst-first within the current stage

Absence of candidates is a result, not an error: see Selection.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from typedrill.ml import (
    LearningMode,
    PatternRecord,
    ScoringWeights,
    Stage,
    get_pattern_stage,
    is_mastered,
    mastery_percent,
    select_top_patterns,
)

logger = logging.getLogger(__name__)

# Every candidate keeps at least this weight so mastered patterns can resurface
MIN_WEIGHT = 5


class ReinforcedMethod(str, Enum):
    WEIGHTED = "weighted"  # draw with weight max(5, 100 - mastery%)
    TOP_SCORE = "top_score"  # highest stochastic priority score


class Selection(BaseModel):
    """Outcome of a selection pass.

    status:
    - "selected": pattern_id is set
    - "stage_finished": every candidate in the stage is mastered
    - "empty": no candidates at all; caller should use a warm-up word
    """
    status: Literal["selected", "stage_finished", "empty"]
    pattern_id: Optional[str] = None

    @classmethod
    def selected(cls, pattern_id: str) -> "Selection":
        return cls(status="selected", pattern_id=pattern_id)

    @classmethod
    def stage_finished(cls) -> "Selection":
        return cls(status="stage_finished")

    @classmethod
    def empty(cls) -> "Selection":
        return cls(status="empty")

    @property
    def is_selected(self) -> bool:
        return self.status == "selected"


def weighted_sample(weights: Sequence[float], rng: np.random.Generator) -> Optional[int]:
    """Sample an index proportional to weights.

    Cumulative walk: r uniform in [0, total), subtract weights until r <= 0.
    Returns None if the total weight is not positive.
    """
    total = sum(weights)
    if total <= 0:
        return None

    r = rng.random() * total
    for i, w in enumerate(weights):
        r -= w
        if r <= 0:
            return i
    return len(weights) - 1


class PatternSelector:
    """Selects the next pattern from candidate records.

    The learning mode is dispatched once in select(); each policy is a
    separate method so they can be tested independently.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        weights: Optional[ScoringWeights] = None,
        reinforced_method: ReinforcedMethod = ReinforcedMethod.WEIGHTED,
    ):
        self.rng = rng
        self.weights = weights or ScoringWeights()
        self.reinforced_method = reinforced_method

    def select(
        self,
        records: Sequence[PatternRecord],
        mode: LearningMode,
        stage: Stage,
        target_latency_ms: float,
        now: float = 0.0,
    ) -> Selection:
        """Pick the next pattern.

        Args:
            records: Candidate records (typically the stage universe).
            mode: Learning mode.
            stage: Current stage.
            target_latency_ms: Current latency goal.
            now: Current time in ms (used by the top-score method).
        """
        if mode == LearningMode.SEQUENTIAL:
            selection = self.select_sequential(records, stage, target_latency_ms)
        else:
            selection = self.select_reinforced(records, target_latency_ms, now)

        logger.debug("Selected %s (mode=%s, stage=%s)", selection, mode.value, stage)
        return selection

    def select_reinforced(
        self,
        records: Sequence[PatternRecord],
        target_latency_ms: float,
        now: float = 0.0,
    ) -> Selection:
        """Weighted random draw toward weak patterns."""
        if not records:
            return Selection.empty()

        if self.reinforced_method == ReinforcedMethod.TOP_SCORE:
            top = select_top_patterns(
                records, target_latency_ms, self.weights, now, self.rng, k=1
            )
            return Selection.selected(top[0])

        weights = [
            max(MIN_WEIGHT, 100 - mastery_percent(r, target_latency_ms))
            for r in records
        ]
        index = weighted_sample(weights, self.rng)
        if index is None:
            return Selection.empty()
        return Selection.selected(records[index].id)

    def select_sequential(
        self,
        records: Sequence[PatternRecord],
        stage: Stage,
        target_latency_ms: float,
    ) -> Selection:
        """Worst absolute latency gap first among unmastered stage patterns."""
        in_stage = [r for r in records if get_pattern_stage(r.id) == stage]
        if not in_stage:
            return Selection.empty()

        remaining = [r for r in in_stage if not is_mastered(r, target_latency_ms)]
        if not remaining:
            return Selection.stage_finished()

        # sorted() is stable: ties keep their original order
        ordered = sorted(
            remaining,
            key=lambda r: r.ewma_latency - target_latency_ms,
            reverse=True,
        )
        return Selection.selected(ordered[0].id)

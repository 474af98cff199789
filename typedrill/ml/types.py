"""Pydantic models for the ML layer.

These models define the interface between the scheduler layer and the
statistics/scoring layer.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

# Prior values for a pattern nobody has typed yet
INITIAL_LATENCY_MS = 300.0  # conservative start
INITIAL_VARIANCE = 1000.0  # total uncertainty
PRIOR_COUNT = 1.0  # Beta(1, 1) is a uniform prior

Stage = Literal["unigram", "bigram", "trigram"]
STAGES: list[Stage] = ["unigram", "bigram", "trigram"]


class LearningMode(str, Enum):
    """Policy used to pick the next pattern to drill."""
    REINFORCED = "reinforced"  # weighted random toward weakness
    SEQUENTIAL = "sequential"  # strict worst-first within a stage


class RankMode(str, Enum):
    """How priority scores are computed for a ranking pass."""
    DISPLAY = "display"  # deterministic, no recency boost (stable heatmap)
    SELECTION = "selection"  # stochastic latency sample, recency boost


class PatternRecord(BaseModel):
    """Running statistics for one pattern.

    success_count / failure_count are Beta pseudo-counts and start at the
    prior, so they are always >= 1. sample_count counts raw attempts.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    sample_count: int = 0
    ewma_latency: float = INITIAL_LATENCY_MS
    ewma_variance: float = INITIAL_VARIANCE
    success_count: float = PRIOR_COUNT
    failure_count: float = PRIOR_COUNT
    last_seen_at: float = 0.0  # ms timestamp
    trend: float = 0.0  # positive = getting slower

    @property
    def total_evidence(self) -> float:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> float:
        """Posterior mean of P(correct)."""
        return self.success_count / self.total_evidence

    @property
    def error_rate(self) -> float:
        return self.failure_count / self.total_evidence


class Observation(BaseModel):
    """One observed attempt at a pattern."""
    is_error: bool
    latency_ms: Optional[float] = None


class AttributionEvent(BaseModel):
    """A keystroke attributed to a pattern.

    Error events never carry a latency.
    """
    model_config = ConfigDict(frozen=True)

    pattern_id: str
    latency_ms: Optional[float] = None
    is_error: bool = False

    def to_observation(self) -> Observation:
        return Observation(is_error=self.is_error, latency_ms=self.latency_ms)


class ScoringWeights(BaseModel):
    """Weights of the priority score terms."""
    uncertainty: float = 1.0
    weakness: float = 2.0
    recency: float = 1.2
    error: float = 5.0


class ScoredPattern(BaseModel):
    """A pattern with its priority score from one ranking pass."""
    id: str
    record: PatternRecord
    score: float
    mastery_percent: int

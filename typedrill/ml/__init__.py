"""ML layer for pattern statistics and prioritisation.

This module provides:
- PatternRecord, Observation, AttributionEvent, ScoredPattern: Data models
- PatternStatStore, update_record: Statistics store and update rule
- is_mastered, mastery_percent: Mastery evaluation
- score_pattern, rank_all: Priority scoring
- STAGE_CONFIGS, get_pattern_stage: Stage registry
"""

from .types import (
    PatternRecord,
    Observation,
    AttributionEvent,
    ScoredPattern,
    ScoringWeights,
    LearningMode,
    RankMode,
    Stage,
    STAGES,
)
from .stats import (
    EWMA_ALPHA,
    PatternStatStore,
    create_initial_record,
    update_record,
)
from .mastery import (
    is_mastered,
    is_stably_mastered,
    mastery_percent,
    target_latency_from_wpm,
)
from .scoring import (
    sample_normal,
    score_pattern,
    rank_all,
    select_top_patterns,
)
from .registry import (
    StageConfig,
    STAGE_CONFIGS,
    get_stage_config,
    get_pattern_stage,
    alphabet_stage_sizes,
)
from .patterns import (
    SAME_FINGER_PREFIX,
    base_pattern,
    extract_patterns_for_word,
    is_same_finger,
    is_same_finger_id,
    make_same_finger_id,
)

__all__ = [
    # Types
    "PatternRecord",
    "Observation",
    "AttributionEvent",
    "ScoredPattern",
    "ScoringWeights",
    "LearningMode",
    "RankMode",
    "Stage",
    "STAGES",
    # Statistics
    "EWMA_ALPHA",
    "PatternStatStore",
    "create_initial_record",
    "update_record",
    # Mastery
    "is_mastered",
    "is_stably_mastered",
    "mastery_percent",
    "target_latency_from_wpm",
    # Scoring
    "sample_normal",
    "score_pattern",
    "rank_all",
    "select_top_patterns",
    # Registry
    "StageConfig",
    "STAGE_CONFIGS",
    "get_stage_config",
    "get_pattern_stage",
    "alphabet_stage_sizes",
    # Patterns
    "SAME_FINGER_PREFIX",
    "base_pattern",
    "extract_patterns_for_word",
    "is_same_finger",
    "is_same_finger_id",
    "make_same_finger_id",
]

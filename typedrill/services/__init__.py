"""Scheduler layer: attribution, selection, stage gating, corpus and persistence."""

from .attributor import EngineInputState, KeystrokeAttributor, handle_keystroke
from .corpus import Corpus, WordCandidate, WordGenerator, WordIndexer
from .selector import PatternSelector, ReinforcedMethod, Selection, weighted_sample
from .stage_gate import StageReport, evaluate, resolve_stage, stage_mastery, unlock_status
from .state_persistence import PatternPersistence, SchedulerConfig, SqlPatternPersistence
from .scheduler import PatternScheduler, SessionStats

__all__ = [
    "EngineInputState",
    "KeystrokeAttributor",
    "handle_keystroke",
    "Corpus",
    "WordCandidate",
    "WordGenerator",
    "WordIndexer",
    "PatternSelector",
    "ReinforcedMethod",
    "Selection",
    "weighted_sample",
    "StageReport",
    "evaluate",
    "resolve_stage",
    "stage_mastery",
    "unlock_status",
    "PatternPersistence",
    "SchedulerConfig",
    "SqlPatternPersistence",
    "PatternScheduler",
    "SessionStats",
]

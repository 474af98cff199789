"""
Pattern scheduler - the entry point a host application talks to.

Owns the pattern store for one active session and wires together the
attributor, scorer, selector, stage gate, corpus and persistence. Every
collaborator (corpus, persistence, clock, random generator) is injected.

Collaborator failures never propagate: they are logged and the scheduler
keeps working in memory.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Mapping, Optional

import numpy as np
from pydantic import BaseModel

from typedrill.config import Settings, get_settings
from typedrill.database import make_engine
from typedrill.ml import (
    STAGES,
    AttributionEvent,
    LearningMode,
    Observation,
    PatternRecord,
    PatternStatStore,
    RankMode,
    ScoredPattern,
    Stage,
    alphabet_stage_sizes,
    get_pattern_stage,
    rank_all,
    target_latency_from_wpm,
)
from typedrill.services.attributor import KeystrokeAttributor
from typedrill.services.corpus import Corpus, WordCandidate, WordGenerator, WordIndexer
from typedrill.services.selector import PatternSelector, Selection
from typedrill.services.stage_gate import StageReport, evaluate, resolve_stage
from typedrill.services.state_persistence import (
    PatternPersistence,
    SchedulerConfig,
    SqlPatternPersistence,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

BOTTLENECK_MIN_SAMPLES = 5


def system_clock_ms() -> float:
    return time.time() * 1000


class SessionStats(BaseModel):
    """Live statistics of the current session."""
    wpm: int = 0
    accuracy: int = 100  # percent
    session_time_s: int = 0
    current_pattern: str = ""
    top_bottleneck: str = ""
    current_stage: str = "unigram"
    is_stage_finished: bool = False


class PatternScheduler:
    """Adaptive pattern scheduler for one typing session.

    Args:
        corpus: Word source; without one, no word batches are produced.
        persistence: Durable store; without one, state lives in memory only.
        settings: Configuration (defaults to get_settings()).
        clock: Returns the current time in ms.
        rng: Random generator for stochastic scoring and word choice.
        stage_sizes: Theoretical pattern count per stage. Defaults to the
            corpus universe, or the 26-letter alphabet without a corpus.
        strict: Raise ValueError on invalid input instead of ignoring it.
    """

    def __init__(
        self,
        corpus: Optional[Corpus] = None,
        persistence: Optional[PatternPersistence] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        rng: Optional[np.random.Generator] = None,
        stage_sizes: Optional[Mapping[str, int]] = None,
        strict: bool = False,
    ):
        self.settings = settings or get_settings()
        self.corpus = corpus
        self.persistence = persistence
        self.clock = clock or system_clock_ms
        self.rng = rng if rng is not None else np.random.default_rng()
        self.strict = strict

        self.config = SchedulerConfig(
            target_wpm=self.settings.TARGET_WPM,
            learning_mode=self.settings.LEARNING_MODE,
            current_stage=self.settings.CURRENT_STAGE,
        )
        self.weights = self.settings.scoring_weights
        self.store = PatternStatStore()
        self.selector = PatternSelector(self.rng, self.weights)
        self.generator = WordGenerator(corpus, self.rng) if corpus is not None else None
        self.attributor = KeystrokeAttributor()

        self._stage_sizes = dict(stage_sizes) if stage_sizes is not None else None
        self._dirty: set[str] = set()
        self._last_flush_at = self.clock()
        self._session_start: Optional[float] = None
        self._history: list[str] = []
        self.current_pattern: Optional[str] = None
        self.is_stage_finished = False

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "PatternScheduler":
        """Build a scheduler with the corpus and database named in settings.

        WORDS_PATH (if set) is loaded as the corpus; DATABASE_URL backs
        persistence. Extra keyword arguments go to the constructor.
        """
        settings = settings or get_settings()
        corpus = None
        if settings.WORDS_PATH:
            corpus = WordIndexer.from_json(
                settings.WORDS_PATH, flow_word_count=settings.FLOW_WORD_COUNT
            )
        persistence = SqlPatternPersistence(make_engine(settings.DATABASE_URL))
        return cls(corpus=corpus, persistence=persistence, settings=settings, **kwargs)

    # ------------------------
    # Configuration
    # ------------------------

    @property
    def target_latency_ms(self) -> float:
        return target_latency_from_wpm(self.config.target_wpm)

    @property
    def learning_mode(self) -> LearningMode:
        return LearningMode(self.config.learning_mode)

    @property
    def current_stage(self) -> Stage:
        return self.config.current_stage

    def set_target_wpm(self, target_wpm: int) -> None:
        """Change the speed goal; stages that no longer meet it lock again."""
        if target_wpm <= 0:
            self._reject(f"target_wpm must be positive, got {target_wpm}")
            return
        self.config = self.config.model_copy(update={"target_wpm": target_wpm})
        self._refresh_stage()
        self._save_config()
        self.reset_words()

    def set_learning_mode(self, mode: LearningMode | str) -> None:
        try:
            mode = LearningMode(mode)
        except ValueError:
            self._reject(f"Unknown learning mode: {mode}")
            return
        self.config = self.config.model_copy(update={"learning_mode": mode.value})
        self._save_config()
        self.reset_words()

    def set_stage(self, stage: str) -> None:
        """Switch stage. A locked stage is clamped to the highest unlocked one."""
        if stage not in STAGES:
            self._reject(f"Unknown stage: {stage}")
            return
        resolved = resolve_stage(stage, self.stage_report().unlocked)
        if resolved != stage:
            if self.strict:
                raise ValueError(f"Stage {stage} is locked")
            logger.warning("Stage %s is locked, using %s", stage, resolved)
        self.config = self.config.model_copy(update={"current_stage": resolved})
        self._save_config()
        self.reset_words()

    def _save_config(self) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save_config(self.config)
        except Exception as exc:
            logger.warning("Failed to save scheduler config: %s", exc)

    def _reject(self, message: str) -> None:
        if self.strict:
            raise ValueError(message)
        logger.warning("%s; ignored", message)

    # ------------------------
    # Loading and flushing
    # ------------------------

    def load(self) -> None:
        """Load records and configuration, then queue the first batch."""
        if self.persistence is not None:
            try:
                records = self.persistence.load_all()
                self.store.load(records)
                logger.info("Loaded %d pattern records", len(records))
            except Exception as exc:
                logger.warning("Failed to load pattern records, starting fresh: %s", exc)

            try:
                config = self.persistence.load_config()
                if config is not None:
                    self.config = config
            except Exception as exc:
                logger.warning("Failed to load scheduler config: %s", exc)

        self._refresh_stage()
        self.reset_words()

    def flush(self, now: Optional[float] = None) -> int:
        """Hand dirty records to persistence. Returns the number saved.

        On failure the records stay dirty for the next flush.
        """
        self._last_flush_at = self.clock() if now is None else now
        if not self._dirty or self.persistence is None:
            return 0

        pattern_ids = sorted(self._dirty)
        self._dirty.clear()
        batch = [self.store.get(pattern_id) for pattern_id in pattern_ids]
        try:
            self.persistence.save_batch(batch)
        except Exception as exc:
            logger.warning("Failed to save %d pattern records: %s", len(batch), exc)
            self._dirty.update(pattern_ids)
            return 0

        logger.debug("Flushed %d pattern records", len(batch))
        return len(batch)

    def maybe_flush(self, now: Optional[float] = None) -> int:
        """Flush if the flush interval has elapsed."""
        now = self.clock() if now is None else now
        if now - self._last_flush_at < self.settings.FLUSH_INTERVAL_MS:
            return 0
        return self.flush(now)

    def close(self) -> None:
        """Tear down the session, flushing best-effort."""
        self.flush()

    @property
    def dirty_ids(self) -> set[str]:
        return set(self._dirty)

    # ------------------------
    # Statistics updates
    # ------------------------

    def update_pattern(
        self,
        pattern_id: str,
        is_error: bool,
        latency_ms: Optional[float] = None,
        now: Optional[float] = None,
    ) -> Optional[PatternRecord]:
        """Apply one observation to a pattern and mark it dirty.

        Returns the updated record, or None for an invalid pattern id.
        """
        if get_pattern_stage(pattern_id) is None:
            self._reject(f"Invalid pattern id: {pattern_id!r}")
            return None

        now = self.clock() if now is None else now
        observation = Observation(is_error=is_error, latency_ms=latency_ms)
        record = self.store.update(pattern_id, observation, now)
        self._dirty.add(pattern_id)
        return record

    def apply_events(
        self,
        events: Iterable[AttributionEvent],
        now: Optional[float] = None,
    ) -> None:
        now = self.clock() if now is None else now
        for event in events:
            self.update_pattern(event.pattern_id, event.is_error, event.latency_ms, now)

    def handle_key(self, key: str, now: Optional[float] = None) -> list[AttributionEvent]:
        """Process one keystroke of the active session.

        Non-character keys are ignored. When the word queue runs out the
        stage gate is re-evaluated and a new batch is queued.
        """
        if len(key) != 1:
            return []

        now = self.clock() if now is None else now
        if self._session_start is None:
            self._session_start = now

        events = self.attributor.handle_key(key, now)
        self.apply_events(events, now)

        if self.attributor.state.words and self.attributor.state.is_exhausted:
            self._refresh_stage()
            self.next_batch()

        self.maybe_flush(now)
        return events

    # ------------------------
    # Ranking and selection
    # ------------------------

    def stage_sizes(self) -> dict[str, int]:
        if self._stage_sizes is not None:
            return dict(self._stage_sizes)
        if self.corpus is not None:
            try:
                return {s: len(self.corpus.patterns_for_stage(s)) for s in STAGES}
            except Exception as exc:
                logger.warning("Failed to read stage sizes from corpus: %s", exc)
        return dict(alphabet_stage_sizes())

    def stage_universe(self, stage: Stage) -> list[str]:
        """Pattern ids of a stage: the corpus universe plus any stored ids."""
        pattern_ids: list[str] = []
        if self.corpus is not None:
            try:
                pattern_ids = list(self.corpus.patterns_for_stage(stage))
            except Exception as exc:
                logger.warning("Failed to list %s patterns from corpus: %s", stage, exc)

        known = set(pattern_ids)
        for record in self.store.records():
            if record.id not in known and get_pattern_stage(record.id) == stage:
                pattern_ids.append(record.id)
        return pattern_ids

    def score_and_rank(
        self,
        mode: RankMode = RankMode.DISPLAY,
        records: Optional[Iterable[PatternRecord]] = None,
    ) -> list[ScoredPattern]:
        """Rank records (default: every stored record) by priority score."""
        if records is None:
            records = self.store.records()
        return rank_all(
            records,
            self.target_latency_ms,
            self.weights,
            mode,
            self.clock(),
            self.rng,
        )

    def heatmap(self, stage: Optional[Stage] = None) -> list[ScoredPattern]:
        """Every pattern of a stage, weakest mastery first, for display."""
        stage = stage or self.current_stage
        records = self.store.records_for(self.stage_universe(stage))
        ranked = self.score_and_rank(RankMode.DISPLAY, records)
        return sorted(ranked, key=lambda s: s.mastery_percent)

    def stage_report(self) -> StageReport:
        return evaluate(self.store.records(), self.target_latency_ms, self.stage_sizes())

    def _refresh_stage(self) -> None:
        """Fall back to the highest unlocked stage if the current one locked."""
        report = self.stage_report()
        stage = resolve_stage(self.current_stage, report.unlocked)
        if stage != self.current_stage:
            logger.info("Stage %s is locked, falling back to %s", self.current_stage, stage)
            self.config = self.config.model_copy(update={"current_stage": stage})

    def select_next(self, stage: Optional[Stage] = None) -> Selection:
        """Select the next pattern to drill in a stage (default: current)."""
        stage = stage or self.current_stage
        records = self.store.records_for(self.stage_universe(stage))
        selection = self.selector.select(
            records,
            self.learning_mode,
            stage,
            self.target_latency_ms,
            self.clock(),
        )
        self.is_stage_finished = selection.status == "stage_finished"
        return selection

    # ------------------------
    # Word batches
    # ------------------------

    def reset_words(self) -> list[WordCandidate]:
        """Drop the queued words and start a fresh batch."""
        self.attributor.reset()
        return self.next_batch()

    def next_batch(self) -> list[WordCandidate]:
        """Select a pattern and queue a batch of words that drill it.

        Falls back to neutral flow words when nothing was selected or the
        corpus fails.
        """
        if self.generator is None:
            return []

        selection = self.select_next()
        self.current_pattern = selection.pattern_id
        batch_size = self.settings.BATCH_SIZE

        try:
            batch = self.generator.generate_batch(self.current_pattern, self._history, batch_size)
        except Exception as exc:
            logger.warning("Corpus lookup failed for %r: %s", self.current_pattern, exc)
            try:
                batch = self.generator.generate_batch(None, self._history, batch_size)
            except Exception as exc:
                logger.warning("Flow words unavailable: %s", exc)
                batch = []

        words = [candidate.word for candidate in batch]
        if self.attributor.state.is_exhausted:
            self.attributor.reset(words)
        else:
            self.attributor.queue_words(words)
        self._history = (self._history + words)[-self.settings.HISTORY_SIZE:]
        return batch

    # ------------------------
    # Session statistics
    # ------------------------

    def top_bottleneck(self) -> str:
        """Slowest pattern with enough samples, as "<id> (<ms>ms)"."""
        worst: Optional[PatternRecord] = None
        for record in self.store.records():
            if record.sample_count > BOTTLENECK_MIN_SAMPLES and (
                worst is None or record.ewma_latency > worst.ewma_latency
            ):
                worst = record
        if worst is None:
            return ""
        return f"{worst.id} ({round(worst.ewma_latency)}ms)"

    def session_stats(self, now: Optional[float] = None) -> SessionStats:
        now = self.clock() if now is None else now
        stats = SessionStats(
            current_pattern=self.current_pattern or "",
            top_bottleneck=self.top_bottleneck(),
            current_stage=self.current_stage,
            is_stage_finished=self.is_stage_finished,
        )
        if self._session_start is None:
            return stats

        elapsed_ms = now - self._session_start
        minutes = elapsed_ms / 60000
        if minutes > 0:
            # WPM = (characters / 5) / minutes
            stats.wpm = round(self.attributor.correct_keystrokes / 5 / minutes)
        if self.attributor.total_keystrokes > 0:
            stats.accuracy = round(
                self.attributor.correct_keystrokes / self.attributor.total_keystrokes * 100
            )
        stats.session_time_s = int(elapsed_ms // 1000)
        return stats

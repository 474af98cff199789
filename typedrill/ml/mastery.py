"""Mastery verdicts and display percentages."""

from .types import PatternRecord

MIN_MASTERY_SAMPLES = 10  # need strictly more than this
MIN_SUCCESS_RATE = 0.98  # < 2% error, prior-adjusted
LOW_VAR_THRESHOLD = 400.0  # ms^2, implies std dev 20ms


def is_stably_mastered(record: PatternRecord) -> bool:
    """Enough evidence, accurate and consistent. Speed is not checked."""
    return (
        record.sample_count > MIN_MASTERY_SAMPLES
        and record.success_rate > MIN_SUCCESS_RATE
        and record.ewma_variance < LOW_VAR_THRESHOLD
    )


def is_mastered(record: PatternRecord, target_latency_ms: float) -> bool:
    """Stably mastered and at least as fast as the target."""
    return is_stably_mastered(record) and record.ewma_latency <= target_latency_ms


def mastery_percent(record: PatternRecord, target_latency_ms: float) -> int:
    """Speed-only mastery in 0..100 for display.

    Not gated by is_mastered, so a barely seen pattern still shows a
    provisional value. Lower latency never gives a lower percentage.
    """
    if record.sample_count == 0:
        return 0
    speed_ratio = min(1.0, target_latency_ms / max(1.0, record.ewma_latency))
    return max(0, round(speed_ratio * 100))


def target_latency_from_wpm(target_wpm: float) -> float:
    """Milliseconds per character for a words-per-minute goal.

    A word is 5 characters: ms/char = 60000 / (wpm * 5).
    """
    if target_wpm <= 0:
        raise ValueError(f"target_wpm must be positive, got {target_wpm}")
    return 60000 / (target_wpm * 5)

from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PatternStat(SQLModel, table=True):
    """Persisted statistics for one pattern.

    Mirrors typedrill.ml.PatternRecord; one row per pattern id.
    """
    __tablename__ = "pattern_stats"

    id: str = Field(primary_key=True)  # e.g. "t", "th", "the", "same_finger:ed"
    sample_count: int = Field(default=0)
    ewma_latency: float = Field(default=300.0)
    ewma_variance: float = Field(default=1000.0)
    success_count: float = Field(default=1.0)
    failure_count: float = Field(default=1.0)
    last_seen_at: float = Field(default=0.0)
    trend: float = Field(default=0.0)
    updated_at: datetime = Field(default_factory=utc_now)


class UserConfig(SQLModel, table=True):
    """Scheduler configuration chosen by the user. Single row."""
    __tablename__ = "user_config"

    id: str = Field(default="user_config", primary_key=True)
    target_wpm: int = Field(default=80)
    learning_mode: str = Field(default="reinforced")
    current_stage: str = Field(default="unigram")
    updated_at: datetime = Field(default_factory=utc_now)

"""State persistence for pattern records and scheduler configuration.

The scheduler only depends on the PatternPersistence protocol;
SqlPatternPersistence is the SQLModel-backed implementation.
"""

from __future__ import annotations

from typing import Iterable, Literal, Optional, Protocol

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from typedrill.database import init_db
from typedrill.ml import PatternRecord
from typedrill.models.pattern import PatternStat, UserConfig, utc_now

USER_CONFIG_ID = "user_config"

RECORD_FIELDS = (
    "sample_count",
    "ewma_latency",
    "ewma_variance",
    "success_count",
    "failure_count",
    "last_seen_at",
    "trend",
)


class SchedulerConfig(BaseModel):
    """User-chosen scheduler settings that survive restarts."""
    target_wpm: int = 80
    learning_mode: Literal["reinforced", "sequential"] = "reinforced"
    current_stage: Literal["unigram", "bigram", "trigram"] = "unigram"


class PatternPersistence(Protocol):
    """Durable store for pattern records and configuration."""

    def load_all(self) -> list[PatternRecord]:
        ...

    def save_batch(self, records: list[PatternRecord]) -> None:
        ...

    def load_config(self) -> Optional[SchedulerConfig]:
        ...

    def save_config(self, config: SchedulerConfig) -> None:
        ...


def _to_record(row: PatternStat) -> PatternRecord:
    return PatternRecord(id=row.id, **{name: getattr(row, name) for name in RECORD_FIELDS})


class SqlPatternPersistence:
    """Pattern records and configuration stored with SQLModel."""

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        if create_tables:
            init_db(engine)

    def load_all(self) -> list[PatternRecord]:
        """Load every stored pattern record."""
        with Session(self.engine) as session:
            rows = session.exec(select(PatternStat)).all()
            return [_to_record(row) for row in rows]

    def save_batch(self, records: Iterable[PatternRecord]) -> None:
        """Insert or update a batch of records in one transaction."""
        now = utc_now()
        with Session(self.engine) as session:
            for record in records:
                row = session.get(PatternStat, record.id)
                if row is None:
                    row = PatternStat(id=record.id)
                for name in RECORD_FIELDS:
                    setattr(row, name, getattr(record, name))
                row.updated_at = now
                session.add(row)
            session.commit()

    def load_config(self) -> Optional[SchedulerConfig]:
        """Load the stored configuration, or None if never saved."""
        with Session(self.engine) as session:
            row = session.get(UserConfig, USER_CONFIG_ID)
            if row is None:
                return None
            return SchedulerConfig(
                target_wpm=row.target_wpm,
                learning_mode=row.learning_mode,
                current_stage=row.current_stage,
            )

    def save_config(self, config: SchedulerConfig) -> None:
        with Session(self.engine) as session:
            row = session.get(UserConfig, USER_CONFIG_ID)
            if row is None:
                row = UserConfig(id=USER_CONFIG_ID)
            row.target_wpm = config.target_wpm
            row.learning_mode = config.learning_mode
            row.current_stage = config.current_stage
            row.updated_at = utc_now()
            session.add(row)
            session.commit()

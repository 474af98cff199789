from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal, Optional

from typedrill.ml.types import ScoringWeights


class Settings(BaseSettings):
    # Target speed: target latency is derived from words-per-minute
    TARGET_WPM: int = 80

    # Selection
    LEARNING_MODE: Literal["reinforced", "sequential"] = "reinforced"
    CURRENT_STAGE: Literal["unigram", "bigram", "trigram"] = "unigram"

    # Priority score weights
    W_UNCERTAINTY: float = 1.0
    W_WEAKNESS: float = 2.0
    W_RECENCY: float = 1.2
    W_ERROR: float = 5.0

    # Word batches
    BATCH_SIZE: int = 10
    HISTORY_SIZE: int = 20
    FLOW_WORD_COUNT: int = 100
    WORDS_PATH: Optional[str] = None

    # Persistence
    # SQLite file for development: sqlite:///./data/typedrill.db
    # In-memory for tests: sqlite://
    DATABASE_URL: str = "sqlite:///./data/typedrill.db"
    FLUSH_INTERVAL_MS: int = 1000

    @property
    def target_latency_ms(self) -> float:
        """Milliseconds per character at TARGET_WPM (5 characters per word)."""
        return 60000 / (self.TARGET_WPM * 5)

    @property
    def scoring_weights(self) -> ScoringWeights:
        return ScoringWeights(
            uncertainty=self.W_UNCERTAINTY,
            weakness=self.W_WEAKNESS,
            recency=self.W_RECENCY,
            error=self.W_ERROR,
        )

    class Config:
        env_prefix = "TYPEDRILL_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()

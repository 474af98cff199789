"""Per-pattern statistics and their update rule.

update_record is pure: it receives a record and returns a new one.
PatternStatStore owns the id -> record mapping for a session and is the
only place records are replaced.
"""

from typing import Iterable, Optional

from .types import Observation, PatternRecord

# EWMA smoothing. Larger reacts faster but is noisier.
EWMA_ALPHA = 0.15


def create_initial_record(pattern_id: str) -> PatternRecord:
    """Create a record with prior values."""
    return PatternRecord(id=pattern_id)


def update_record(
    record: PatternRecord,
    observation: Observation,
    now: float,
) -> PatternRecord:
    """Apply one observation to a record.

    Errors only move the failure count: an error carries no usable
    timing signal. Latency, variance and trend move only on a success with
    a measured latency.

    Args:
        record: Current record.
        observation: The attempt (error flag and optional latency in ms).
        now: Timestamp of the attempt in ms.

    Returns:
        New record.
    """
    changes: dict = {
        "sample_count": record.sample_count + 1,
        "last_seen_at": now,
    }

    if observation.is_error:
        changes["failure_count"] = record.failure_count + 1
        return record.model_copy(update=changes)

    changes["success_count"] = record.success_count + 1

    if observation.latency_ms is not None:
        delta = observation.latency_ms - record.ewma_latency
        changes["ewma_latency"] = record.ewma_latency + EWMA_ALPHA * delta
        # Var(t) = (1-a)*Var(t-1) + a*delta^2
        changes["ewma_variance"] = (
            (1 - EWMA_ALPHA) * record.ewma_variance + EWMA_ALPHA * delta * delta
        )
        changes["trend"] = (1 - EWMA_ALPHA) * record.trend + EWMA_ALPHA * delta

    return record.model_copy(update=changes)


class PatternStatStore:
    """Keyed store of pattern records.

    Records are immutable, so handing them out never aliases mutable state.
    """

    def __init__(self, records: Optional[Iterable[PatternRecord]] = None):
        self._records: dict[str, PatternRecord] = {}
        if records is not None:
            self.load(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, pattern_id: str) -> bool:
        return pattern_id in self._records

    def load(self, records: Iterable[PatternRecord]) -> None:
        """Replace stored records with a snapshot (e.g. from persistence)."""
        for record in records:
            self._records[record.id] = record

    def get(self, pattern_id: str) -> PatternRecord:
        """Get the stored record, or a fresh prior record (not inserted)."""
        record = self._records.get(pattern_id)
        if record is None:
            return create_initial_record(pattern_id)
        return record

    def get_or_create(self, pattern_id: str) -> PatternRecord:
        record = self._records.get(pattern_id)
        if record is None:
            record = create_initial_record(pattern_id)
            self._records[pattern_id] = record
        return record

    def update(
        self,
        pattern_id: str,
        observation: Observation,
        now: float,
    ) -> PatternRecord:
        """Apply an observation, creating the record lazily."""
        updated = update_record(self.get_or_create(pattern_id), observation, now)
        self._records[pattern_id] = updated
        return updated

    def records(self) -> list[PatternRecord]:
        """Snapshot of all stored records."""
        return list(self._records.values())

    def records_for(self, pattern_ids: Iterable[str]) -> list[PatternRecord]:
        """Records for a universe of ids, creating missing ones lazily."""
        return [self.get_or_create(pattern_id) for pattern_id in pattern_ids]

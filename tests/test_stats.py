"""Tests for pattern statistics and the statistics store."""
import pytest
from pydantic import ValidationError

from typedrill.ml import (
    EWMA_ALPHA,
    Observation,
    PatternRecord,
    PatternStatStore,
    create_initial_record,
    update_record,
)


class TestInitialRecord:
    """Tests for prior values."""

    def test_prior_values(self):
        record = create_initial_record("th")
        assert record.id == "th"
        assert record.sample_count == 0
        assert record.ewma_latency == 300.0
        assert record.ewma_variance == 1000.0
        assert record.success_count == 1.0
        assert record.failure_count == 1.0
        assert record.trend == 0.0

    def test_prior_error_rate_is_uniform(self):
        """Beta(1, 1) prior gives 50% error rate."""
        assert create_initial_record("a").error_rate == 0.5


class TestUpdateRecord:
    """Tests for the EWMA update rule."""

    def test_single_correct_observation(self):
        """One 100ms observation moves 300 -> 300 + 0.15 * (100 - 300) = 270."""
        record = PatternRecord(
            id="h", success_count=1, failure_count=1,
            ewma_latency=300, ewma_variance=1000, sample_count=0,
        )
        updated = update_record(record, Observation(is_error=False, latency_ms=100), now=5000)

        assert updated.ewma_latency == pytest.approx(270.0)
        assert updated.ewma_variance == pytest.approx(0.85 * 1000 + 0.15 * 200 ** 2)
        assert updated.trend == pytest.approx(-30.0)
        assert updated.sample_count == 1
        assert updated.success_count == 2
        assert updated.failure_count == 1
        assert updated.last_seen_at == 5000

    def test_update_does_not_mutate_input(self):
        record = create_initial_record("a")
        update_record(record, Observation(is_error=False, latency_ms=100), now=1)
        assert record == create_initial_record("a")

    def test_error_leaves_timing_untouched(self):
        """Errors change only sample_count, failure_count and last_seen_at."""
        record = PatternRecord(id="a", ewma_latency=220, ewma_variance=350, trend=-4.0, sample_count=7)
        updated = update_record(record, Observation(is_error=True), now=10)

        assert updated.ewma_latency == record.ewma_latency
        assert updated.ewma_variance == record.ewma_variance
        assert updated.trend == record.trend
        assert updated.success_count == record.success_count
        assert updated.failure_count == record.failure_count + 1
        assert updated.sample_count == record.sample_count + 1

    def test_error_ignores_latency(self):
        """Even if a latency is passed with an error, it is not used."""
        record = create_initial_record("a")
        updated = update_record(record, Observation(is_error=True, latency_ms=50), now=0)
        assert updated.ewma_latency == record.ewma_latency

    def test_success_without_latency(self):
        """A success with no measured latency counts but does not move timing."""
        record = create_initial_record("a")
        updated = update_record(record, Observation(is_error=False), now=0)

        assert updated.success_count == 2
        assert updated.sample_count == 1
        assert updated.ewma_latency == record.ewma_latency
        assert updated.ewma_variance == record.ewma_variance

    @pytest.mark.parametrize("target", [80.0, 150.0, 450.0, 1999.0])
    def test_converges_monotonically(self, target):
        """Constant latency L: |ewma - L| strictly decreases every step."""
        record = create_initial_record("a")
        distance = abs(record.ewma_latency - target)

        for step in range(40):
            record = update_record(record, Observation(is_error=False, latency_ms=target), now=step)
            new_distance = abs(record.ewma_latency - target)
            assert new_distance < distance, f"Step {step}: {new_distance} >= {distance}"
            distance = new_distance

        assert distance == pytest.approx(abs(300.0 - target) * (1 - EWMA_ALPHA) ** 40)

    def test_counts_never_decrease(self):
        record = create_initial_record("a")
        observations = [True, False, True, True, False]
        for i, is_error in enumerate(observations):
            updated = update_record(record, Observation(is_error=is_error, latency_ms=200), now=i)
            assert updated.sample_count > record.sample_count
            assert updated.success_count >= record.success_count
            assert updated.failure_count >= record.failure_count
            record = updated

        assert record.success_count == 1 + 2
        assert record.failure_count == 1 + 3


class TestPatternStatStore:
    """Tests for the keyed record store."""

    def test_get_unknown_returns_prior_without_inserting(self):
        store = PatternStatStore()
        record = store.get("zz")
        assert record == create_initial_record("zz")
        assert "zz" not in store
        assert len(store) == 0

    def test_update_creates_lazily(self):
        store = PatternStatStore()
        updated = store.update("th", Observation(is_error=False, latency_ms=100), now=1)

        assert "th" in store
        assert store.get("th") == updated
        assert updated.ewma_latency == pytest.approx(270.0)

    def test_records_for_materialises_universe(self):
        store = PatternStatStore()
        store.update("a", Observation(is_error=True), now=1)

        records = store.records_for(["a", "b", "c"])

        assert [r.id for r in records] == ["a", "b", "c"]
        assert records[0].failure_count == 2
        assert records[1].sample_count == 0
        assert len(store) == 3

    def test_load_snapshot(self):
        store = PatternStatStore([PatternRecord(id="a", sample_count=4)])
        store.load([PatternRecord(id="a", sample_count=9), PatternRecord(id="b")])

        assert store.get("a").sample_count == 9
        assert {r.id for r in store.records()} == {"a", "b"}

    def test_records_are_immutable(self):
        """Records handed out cannot be mutated behind the store's back."""
        store = PatternStatStore()
        record = store.get_or_create("a")
        with pytest.raises(ValidationError):
            record.sample_count = 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Tests for mastery evaluation."""
import pytest

from typedrill.ml import (
    PatternRecord,
    is_mastered,
    is_stably_mastered,
    mastery_percent,
    target_latency_from_wpm,
)


def make_record(**kwargs) -> PatternRecord:
    """A record that passes every mastery check unless overridden."""
    defaults = dict(
        id="a",
        sample_count=20,
        ewma_latency=120.0,
        ewma_variance=100.0,
        success_count=100.0,
        failure_count=1.0,
    )
    defaults.update(kwargs)
    return PatternRecord(**defaults)


class TestIsMastered:
    """Tests for the compound mastery verdict."""

    def test_all_criteria_met(self):
        assert is_mastered(make_record(), target_latency_ms=150)

    @pytest.mark.parametrize("sample_count", [0, 1, 5, 10])
    def test_too_few_samples(self, sample_count):
        """Never mastered with sample_count <= 10, whatever the other fields."""
        record = make_record(sample_count=sample_count, ewma_latency=50.0, ewma_variance=1.0)
        assert not is_mastered(record, target_latency_ms=1000)
        assert not is_stably_mastered(record)

    def test_eleven_samples_is_enough(self):
        assert is_mastered(make_record(sample_count=11), target_latency_ms=150)

    def test_error_rate_boundary(self):
        """Success rate must be strictly above 98%."""
        at_boundary = make_record(success_count=49.0, failure_count=1.0)  # exactly 0.98
        above = make_record(success_count=50.0, failure_count=1.0)
        assert not is_mastered(at_boundary, 150)
        assert is_mastered(above, 150)

    def test_variance_boundary(self):
        assert not is_mastered(make_record(ewma_variance=400.0), 150)
        assert is_mastered(make_record(ewma_variance=399.0), 150)

    def test_too_slow(self):
        """Stable but slower than the target: stably mastered only."""
        record = make_record(ewma_latency=180.0)
        assert not is_mastered(record, target_latency_ms=150)
        assert is_stably_mastered(record)

    def test_latency_equal_to_target(self):
        assert is_mastered(make_record(ewma_latency=150.0), target_latency_ms=150)


class TestMasteryPercent:
    """Tests for the display mastery percentage."""

    def test_no_samples_is_zero(self):
        record = PatternRecord(id="a", ewma_latency=10.0)
        assert mastery_percent(record, 150) == 0

    def test_half_speed(self):
        assert mastery_percent(make_record(ewma_latency=300.0), 150) == 50

    def test_faster_than_target_caps_at_100(self):
        assert mastery_percent(make_record(ewma_latency=60.0), 150) == 100

    def test_not_gated_by_mastery(self):
        """A barely seen pattern still shows a provisional value."""
        record = PatternRecord(id="a", sample_count=1, ewma_latency=200.0)
        assert not is_mastered(record, 150)
        assert mastery_percent(record, 150) == 75

    def test_tiny_latency_is_clamped(self):
        """Latency below 1ms is treated as 1ms."""
        assert mastery_percent(make_record(ewma_latency=0.0), 150) == 100

    def test_monotonic_in_latency(self):
        """Lower latency never gives a lower percentage, always in [0, 100]."""
        target = 170.0
        previous = 100
        for latency in range(0, 3000, 7):
            percent = mastery_percent(make_record(ewma_latency=float(latency)), target)
            assert 0 <= percent <= 100
            assert percent <= previous, f"Not monotonic at {latency}ms"
            previous = percent


class TestTargetLatency:
    """Tests for words-per-minute conversion."""

    @pytest.mark.parametrize("wpm,expected", [(80, 150.0), (60, 200.0), (120, 100.0)])
    def test_conversion(self, wpm, expected):
        assert target_latency_from_wpm(wpm) == pytest.approx(expected)

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            target_latency_from_wpm(0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

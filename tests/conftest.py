"""Shared fixtures: seeded generators and a controllable clock."""
import numpy as np
import pytest


class FakeClock:
    """Clock returning a settable time in ms."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def clock():
    return FakeClock(1_000_000.0)

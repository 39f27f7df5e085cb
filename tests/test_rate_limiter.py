from __future__ import annotations

import pytest

from scripts.userpool_backup.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def test_successive_calls_are_spaced() -> None:
    clock = FakeClock()
    limiter = RateLimiter(2000, clock=clock, sleep=clock.sleep)
    starts: list[float] = []

    for _ in range(3):
        limiter.call(lambda: starts.append(clock.now))

    assert starts[2] - starts[0] >= 4.0
    assert starts[1] - starts[0] == pytest.approx(2.0)


def test_no_wait_when_interval_already_elapsed() -> None:
    clock = FakeClock()
    slept: list[float] = []
    limiter = RateLimiter(1000, clock=clock, sleep=slept.append)

    limiter.call(lambda: None)
    clock.now += 5
    limiter.call(lambda: None)

    assert slept == []


def test_returns_result_and_passes_arguments() -> None:
    limiter = RateLimiter(0)
    assert limiter.call(lambda a, b=0: a + b, 2, b=3) == 5


def test_negative_interval_rejected() -> None:
    with pytest.raises(ValueError):
        RateLimiter(-1)

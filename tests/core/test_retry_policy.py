from __future__ import annotations

import asyncio

import pytest

from unmask.core.retry import RetryCancelled, RetryPolicy, TimedRetry


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


async def collect(retry: TimedRetry) -> list[int]:
    return [attempt async for attempt in retry.attempts()]


def test_fixed_policy_sleeps_between_attempts_only():
    clock = FakeClock()
    retry = TimedRetry(RetryPolicy(max_attempts=3, interval=5), sleep=clock.sleep, clock=clock)

    assert asyncio.run(collect(retry)) == [1, 2, 3]
    assert clock.sleeps == [5, 5]
    assert retry.exhausted_by == "attempts"


def test_exponential_backoff_is_capped():
    policy = RetryPolicy(max_attempts=5, interval=1, backoff="exponential", multiplier=3, max_interval=5)
    assert list(policy.delays()) == [1, 3, 5, 5]


def test_deadline_stops_before_exceeding_budget():
    clock = FakeClock()
    policy = RetryPolicy(max_attempts=10, interval=4, deadline=10)
    retry = TimedRetry(policy, sleep=clock.sleep, clock=clock)

    attempts = asyncio.run(collect(retry))

    assert attempts == [1, 2, 3]
    assert retry.exhausted_by == "deadline"
    assert clock.now <= 10


def test_cancel_event_raises():
    clock = FakeClock()
    event = asyncio.Event()
    retry = TimedRetry(RetryPolicy(max_attempts=5, interval=1), sleep=clock.sleep, clock=clock, cancel_event=event)

    async def run() -> list[int]:
        seen = []
        async for attempt in retry.attempts():
            seen.append(attempt)
            if attempt == 2:
                event.set()
        return seen

    with pytest.raises(RetryCancelled):
        asyncio.run(run())
    assert retry.cancelled


def test_overrides_keep_other_settings():
    policy = RetryPolicy(max_attempts=36, interval=5, backoff="exponential")
    overridden = policy.with_overrides(max_attempts=3)
    assert overridden.max_attempts == 3
    assert overridden.interval == 5
    assert overridden.backoff == "exponential"


def test_invalid_policy_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)

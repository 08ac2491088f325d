"""Timed retry abstraction with bounded backoff, deadline and cancellation."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterator, Literal

BackoffKind = Literal["fixed", "exponential"]


class RetryCancelled(Exception):
    """Raised from :meth:`TimedRetry.attempts` once the cancel event is set."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them."""

    max_attempts: int = 36
    interval: float = 5.0
    backoff: BackoffKind = "fixed"
    multiplier: float = 2.0
    max_interval: float = 60.0
    deadline: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must be non-negative")

    def delays(self) -> Iterator[float]:
        """Delay before each attempt after the first."""
        delay = self.interval
        for _ in range(self.max_attempts - 1):
            yield min(delay, self.max_interval) if self.backoff == "exponential" else delay
            if self.backoff == "exponential":
                delay *= self.multiplier

    def with_overrides(
        self,
        *,
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=max_attempts if max_attempts is not None else self.max_attempts,
            interval=interval if interval is not None else self.interval,
            backoff=self.backoff,
            multiplier=self.multiplier,
            max_interval=self.max_interval,
            deadline=self.deadline,
        )


class TimedRetry:
    """Yield attempt numbers, sleeping between them, until the policy is exhausted.

    ``exhausted_by`` reports why iteration stopped without the caller breaking
    out: ``"attempts"`` or ``"deadline"``.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._policy = policy
        self._sleep = sleep
        self._clock = clock
        self._cancel_event = cancel_event
        self.exhausted_by: str | None = None

    @property
    def cancelled(self) -> bool:
        return bool(self._cancel_event and self._cancel_event.is_set())

    async def attempts(self) -> AsyncIterator[int]:
        started = self._clock()
        delays = self._policy.delays()
        attempt = 1
        while True:
            if self.cancelled:
                raise RetryCancelled()
            yield attempt
            delay = next(delays, None)
            if delay is None:
                self.exhausted_by = "attempts"
                return
            deadline = self._policy.deadline
            if deadline is not None and self._clock() - started + delay > deadline:
                self.exhausted_by = "deadline"
                return
            await self._sleep(delay)
            attempt += 1


__all__ = ["BackoffKind", "RetryCancelled", "RetryPolicy", "TimedRetry"]

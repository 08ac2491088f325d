"""Bridge synchronous requests to slow external jobs by polling for completion."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal

import structlog

from .retry import RetryCancelled, RetryPolicy, TimedRetry

JobState = Literal["running", "completed", "failed"]


@dataclass(slots=True)
class JobHandle:
    """Identifier returned when an external job is started."""

    job_id: str
    is_existing: bool = False


@dataclass(slots=True)
class JobStatus:
    """One observation of an external job."""

    status: str
    data: Any = None


@dataclass(slots=True)
class ProcessingJob:
    """State of one polling session."""

    job_id: str
    is_existing: bool
    status: JobState = "running"
    attempts: int = 0
    last_status: str = "unknown"


class PollOutcome(str, Enum):
    COMPLETED = "completed"
    NOT_ACCESSIBLE = "not_accessible"
    EMPTY_SNAPSHOT = "empty_snapshot"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class PollResult:
    outcome: PollOutcome
    job: ProcessingJob
    data: Any = None
    transitions: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is PollOutcome.COMPLETED


StartJob = Callable[[], Awaitable[JobHandle]]
CheckJob = Callable[..., Awaitable[JobStatus]]


def has_payload(data: Any) -> bool:
    if data is None:
        return False
    if isinstance(data, (list, tuple, dict, str)):
        return len(data) > 0
    return True


class JobPoller:
    """Start an external job and wait for a terminal status.

    The poller never re-submits a job; a failed or timed-out job is reported
    to the caller, who decides whether to retry at a higher level.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._logger = structlog.get_logger(__name__)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run_to_completion(
        self,
        start_job: StartJob,
        check_job: CheckJob,
        *,
        max_attempts: int | None = None,
        interval: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollResult:
        handle = await start_job()
        job = ProcessingJob(job_id=handle.job_id, is_existing=handle.is_existing)

        if handle.is_existing:
            return await self._check_existing(job, check_job)

        policy = self._policy.with_overrides(max_attempts=max_attempts, interval=interval)
        retry = TimedRetry(policy, sleep=self._sleep, cancel_event=cancel_event)
        transitions: list[tuple[str, str]] = []

        try:
            async for attempt in retry.attempts():
                job.attempts = attempt
                observed = await check_job(job.job_id)
                if observed.status != job.last_status:
                    self._logger.info(
                        "poller.status_changed",
                        job_id=job.job_id,
                        previous=job.last_status,
                        current=observed.status,
                        attempt=attempt,
                        max_attempts=policy.max_attempts,
                    )
                    transitions.append((job.last_status, observed.status))
                    job.last_status = observed.status

                if observed.status == "completed" and has_payload(observed.data):
                    job.status = "completed"
                    return PollResult(PollOutcome.COMPLETED, job, observed.data, transitions)
                if observed.status in ("failed", "completed"):
                    job.status = "failed"
                    self._logger.warning(
                        "poller.not_accessible",
                        job_id=job.job_id,
                        status=observed.status,
                        attempt=attempt,
                    )
                    return PollResult(PollOutcome.NOT_ACCESSIBLE, job, None, transitions)
        except RetryCancelled:
            job.status = "failed"
            self._logger.info("poller.cancelled", job_id=job.job_id, attempts=job.attempts)
            return PollResult(PollOutcome.CANCELLED, job, None, transitions)

        job.status = "failed"
        self._logger.warning(
            "poller.timeout",
            job_id=job.job_id,
            attempts=job.attempts,
            exhausted_by=retry.exhausted_by,
        )
        return PollResult(PollOutcome.TIMEOUT, job, None, transitions)

    async def _check_existing(self, job: ProcessingJob, check_job: CheckJob) -> PollResult:
        job.attempts = 1
        observed = await check_job(job.job_id, existing_only=True)
        job.last_status = observed.status
        if has_payload(observed.data):
            job.status = "completed"
            self._logger.info("poller.reused_snapshot", job_id=job.job_id)
            return PollResult(PollOutcome.COMPLETED, job, observed.data)
        job.status = "failed"
        self._logger.warning("poller.empty_snapshot", job_id=job.job_id)
        return PollResult(PollOutcome.EMPTY_SNAPSHOT, job)


__all__ = [
    "JobHandle",
    "JobPoller",
    "JobStatus",
    "PollOutcome",
    "PollResult",
    "ProcessingJob",
    "has_payload",
]

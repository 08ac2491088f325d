"""Worker queue that hands ingestion requests to background tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import structlog

from .errors import NotFoundError, PreconditionError
from .retry import RetryPolicy, TimedRetry

if TYPE_CHECKING:
    from ..pipeline import IngestionReport, IngestionSources

IngestFn = Callable[[str, "IngestionSources"], Awaitable["IngestionReport"]]

# Retrying these can never succeed.
NON_RETRYABLE: tuple[type[BaseException], ...] = (PreconditionError, NotFoundError)


@dataclass(slots=True)
class IngestionTicket:
    applicant_id: str
    sources: "IngestionSources"
    future: asyncio.Future
    attempts: int = 0


@dataclass(slots=True)
class QueueStats:
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "retried": self.retried,
        }


class IngestionQueue:
    """Fixed pool of worker tasks draining an :class:`asyncio.Queue`.

    ``submit`` returns a future resolved with the ingestion report, or with
    the last exception once the retry policy is exhausted.
    """

    def __init__(
        self,
        ingest: IngestFn,
        *,
        workers: int = 2,
        max_attempts: int = 3,
        retry_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._ingest = ingest
        self._workers = workers
        self._policy = RetryPolicy(max_attempts=max_attempts, interval=retry_interval)
        self._sleep = sleep
        self._queue: asyncio.Queue[IngestionTicket | None] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self.stats = QueueStats()
        self._logger = structlog.get_logger(__name__)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(index), name=f"ingestion-worker-{index}")
            for index in range(self._workers)
        ]
        self._logger.info("queue.started", workers=self._workers)

    def submit(self, applicant_id: str, sources: "IngestionSources") -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(IngestionTicket(applicant_id, sources, future))
        self.stats.submitted += 1
        self._logger.info("queue.submitted", applicant_id=applicant_id, depth=self._queue.qsize())
        return future

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        """Drain outstanding work, then shut the workers down."""
        if not self._tasks:
            return
        await self._queue.join()
        for _ in self._tasks:
            self._queue.put_nowait(None)
        await asyncio.gather(*self._tasks)
        self._tasks = []
        self._logger.info("queue.stopped", **self.stats.to_dict())

    async def __aenter__(self) -> "IngestionQueue":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def _worker(self, index: int) -> None:
        while True:
            ticket = await self._queue.get()
            try:
                if ticket is None:
                    return
                await self._run(ticket, index)
            finally:
                self._queue.task_done()

    async def _run(self, ticket: IngestionTicket, index: int) -> None:
        log = self._logger.bind(applicant_id=ticket.applicant_id, worker=index)
        retry = TimedRetry(self._policy, sleep=self._sleep)
        last_error: BaseException | None = None

        async for attempt in retry.attempts():
            ticket.attempts = attempt
            if attempt > 1:
                self.stats.retried += 1
                log.info("queue.retrying", attempt=attempt)
            try:
                report = await self._ingest(ticket.applicant_id, ticket.sources)
            except NON_RETRYABLE as exc:
                last_error = exc
                break
            except Exception as exc:  # noqa: BLE001 - retried, then surfaced on the future
                last_error = exc
                log.warning("queue.attempt_failed", attempt=attempt, error=str(exc))
                continue
            self.stats.completed += 1
            if not ticket.future.done():
                ticket.future.set_result(report)
            return

        self.stats.failed += 1
        log.error("queue.failed", attempts=ticket.attempts, error=str(last_error))
        if not ticket.future.done():
            ticket.future.set_exception(last_error or RuntimeError("ingestion failed"))


__all__ = ["IngestionQueue", "IngestionTicket", "QueueStats"]

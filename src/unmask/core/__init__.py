"""Core processing logic: state machine, claim protocol, polling and sync."""

from __future__ import annotations

from .errors import (
    AnalysisUnavailableError,
    ConflictError,
    InvalidTransitionError,
    JobTimeoutError,
    NotAccessibleError,
    NotFoundError,
    PreconditionError,
    ProcessorError,
    SyncInProgressError,
)
from .retry import RetryCancelled, RetryPolicy, TimedRetry
from .status import derive_overall_status, initial_statuses
from .scoring import base_score, derive_score
from .poller import JobHandle, JobPoller, JobStatus, PollOutcome, PollResult
from .orchestrator import OutcomeCode, ProcessingOrchestrator, ProcessingOutcome
from .sync import DirectorySyncEngine, SyncMode, SyncReport, SyncSummary
from .queue import IngestionQueue

__all__ = [
    "AnalysisUnavailableError",
    "ConflictError",
    "DirectorySyncEngine",
    "IngestionQueue",
    "InvalidTransitionError",
    "JobHandle",
    "JobPoller",
    "JobStatus",
    "JobTimeoutError",
    "NotAccessibleError",
    "NotFoundError",
    "OutcomeCode",
    "PollOutcome",
    "PollResult",
    "PreconditionError",
    "ProcessingOrchestrator",
    "ProcessingOutcome",
    "ProcessorError",
    "RetryCancelled",
    "RetryPolicy",
    "SyncInProgressError",
    "SyncMode",
    "SyncReport",
    "SyncSummary",
    "TimedRetry",
    "base_score",
    "derive_overall_status",
    "derive_score",
    "initial_statuses",
]

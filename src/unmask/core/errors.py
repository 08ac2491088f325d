"""Error taxonomy for source processing and directory sync."""

from __future__ import annotations

from ..schemas import ProcessingStatus


class PreconditionError(ValueError):
    """Required input is missing. Raised before any state is mutated."""


class NotFoundError(LookupError):
    """The applicant (or cache entry) does not exist."""


class ConflictError(RuntimeError):
    """A claim lost a race. Nothing was mutated; retrying later is safe."""


class SyncInProgressError(ConflictError):
    """Another directory sync already holds the per-user claim."""

    def __init__(self, user_id: str):
        super().__init__(f"Directory sync already running for user {user_id!r}")
        self.user_id = user_id


class InvalidTransitionError(ValueError):
    """A write would move a status field backwards in the state machine."""


class ProcessorError(RuntimeError):
    """A source processor failed. Recorded as a terminal status with a message."""

    terminal_status: ProcessingStatus = ProcessingStatus.ERROR


class JobTimeoutError(ProcessorError, TimeoutError):
    """An external job never reached a terminal status."""


class NotAccessibleError(ProcessorError):
    """The external resource exists but cannot be read (private or blocked)."""

    terminal_status = ProcessingStatus.NOT_PROVIDED


class AnalysisUnavailableError(ProcessorError):
    """The analysis backend could not produce a result."""


__all__ = [
    "AnalysisUnavailableError",
    "ConflictError",
    "InvalidTransitionError",
    "JobTimeoutError",
    "NotAccessibleError",
    "NotFoundError",
    "PreconditionError",
    "ProcessorError",
    "SyncInProgressError",
]

"""Claim, execute and complete one source for one applicant."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

import pendulum
import structlog
from pydantic import ValidationError

from ..schemas import Applicant, ProcessingStatus, Source, SourceData, SourceFailure
from ..store.base import RecordStore, StoreError
from .errors import JobTimeoutError, NotAccessibleError, PreconditionError
from .status import CLAIMABLE_STATUSES

ProcessorFn = Callable[[Applicant], Awaitable[dict[str, Any]]]

# Claim is refused from every status outside CLAIMABLE_STATUSES.
UNCLAIMABLE = frozenset(ProcessingStatus) - CLAIMABLE_STATUSES


class OutcomeCode(str, Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    VALIDATION_FAILURE = "validation_failure"
    PROCESSING_FAILURE = "processing_failure"
    TIMEOUT = "timeout"
    NOT_ACCESSIBLE = "not_accessible"


HTTP_STATUS = {
    OutcomeCode.SUCCESS: 200,
    OutcomeCode.CONFLICT: 409,
    OutcomeCode.NOT_FOUND: 404,
    OutcomeCode.VALIDATION_FAILURE: 400,
    OutcomeCode.PROCESSING_FAILURE: 500,
    OutcomeCode.TIMEOUT: 504,
    # A private profile is a normal answer, not a server failure.
    OutcomeCode.NOT_ACCESSIBLE: 200,
}


@dataclass(slots=True)
class ProcessingOutcome:
    """Result of one claim-and-process invocation."""

    code: OutcomeCode
    applicant_id: str
    source: Source
    data: dict[str, Any] | None = None
    error: str | None = None
    status: ProcessingStatus | None = None
    processed: bool = False

    @property
    def ok(self) -> bool:
        return self.code is OutcomeCode.SUCCESS

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.code]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "http_status": self.http_status,
            "applicant_id": self.applicant_id,
            "source": self.source.value,
            "status": self.status.value if self.status else None,
            "data": self.data,
            "error": self.error,
        }


def _as_payload(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Processor returned {type(data).__name__}, expected a mapping")
    return dict(data)


class ProcessingOrchestrator:
    """Run a source processor under the store-level claim protocol.

    The claim is a single conditional update on the source's status field.
    Whoever wins it owns the source until exactly one terminal write.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        now_provider: Callable[[], Any] = pendulum.now,
    ) -> None:
        self._store = store
        self._now = now_provider
        self._logger = structlog.get_logger(__name__)

    async def claim_and_process(
        self,
        applicant_id: str,
        source: Source,
        processor_fn: ProcessorFn,
    ) -> ProcessingOutcome:
        log = self._logger.bind(applicant_id=applicant_id, source=source.value)

        claim = await self._store.conditional_update_status(
            applicant_id,
            source.status_field,
            expected_not=UNCLAIMABLE,
            new_value=ProcessingStatus.PROCESSING,
        )
        if not claim.ok:
            return await self._claim_refused(applicant_id, source, log)

        if claim.applicant is None:
            raise StoreError(f"Claim on {source.status_field} returned no applicant snapshot")
        log.info("orchestrator.claimed")

        try:
            data = await processor_fn(claim.applicant)
        except NotAccessibleError as exc:
            return await self._fail(
                applicant_id, source, exc, ProcessingStatus.NOT_PROVIDED,
                OutcomeCode.NOT_ACCESSIBLE, log,
            )
        except JobTimeoutError as exc:
            return await self._fail(
                applicant_id, source, exc, ProcessingStatus.ERROR, OutcomeCode.TIMEOUT, log
            )
        except (PreconditionError, ValidationError) as exc:
            return await self._fail(
                applicant_id, source, exc, ProcessingStatus.ERROR,
                OutcomeCode.VALIDATION_FAILURE, log,
            )
        except Exception as exc:  # noqa: BLE001 - processor failures are recorded, not raised
            return await self._fail(
                applicant_id, source, exc, ProcessingStatus.ERROR,
                OutcomeCode.PROCESSING_FAILURE, log,
            )

        try:
            payload = SourceData(payload=_as_payload(data))
        except (TypeError, ValueError) as exc:
            return await self._fail(
                applicant_id, source, exc, ProcessingStatus.ERROR,
                OutcomeCode.PROCESSING_FAILURE, log,
            )

        try:
            await self._store.update_applicant(
                applicant_id,
                {source.status_field: ProcessingStatus.READY, source.data_field: payload},
            )
        except StoreError as exc:
            # The field stays in ``processing`` until someone intervenes.
            log.error("orchestrator.completion_write_failed", error=str(exc))
            return ProcessingOutcome(
                OutcomeCode.PROCESSING_FAILURE,
                applicant_id,
                source,
                data=payload.payload,
                error=f"Failed to record result: {exc}",
                status=ProcessingStatus.PROCESSING,
                processed=True,
            )

        log.info("orchestrator.completed", status=ProcessingStatus.READY.value)
        return ProcessingOutcome(
            OutcomeCode.SUCCESS,
            applicant_id,
            source,
            data=payload.payload,
            status=ProcessingStatus.READY,
            processed=True,
        )

    async def _claim_refused(
        self, applicant_id: str, source: Source, log: Any
    ) -> ProcessingOutcome:
        current = await self._store.get_applicant(applicant_id)
        if current is None:
            log.info("orchestrator.not_found")
            return ProcessingOutcome(
                OutcomeCode.NOT_FOUND, applicant_id, source, error="Applicant not found"
            )

        status = current.status_of(source)
        if status is ProcessingStatus.PROCESSING:
            log.info("orchestrator.conflict")
            return ProcessingOutcome(
                OutcomeCode.CONFLICT,
                applicant_id,
                source,
                error=f"{source.label} processing already in progress",
                status=status,
            )
        if status is ProcessingStatus.READY:
            log.info("orchestrator.already_ready")
            return ProcessingOutcome(
                OutcomeCode.SUCCESS,
                applicant_id,
                source,
                data=current.payload_of(source),
                status=status,
            )

        log.warning("orchestrator.claim_failed", status=status.value)
        return ProcessingOutcome(
            OutcomeCode.PROCESSING_FAILURE,
            applicant_id,
            source,
            error="Failed to start processing",
            status=status,
        )

    async def _fail(
        self,
        applicant_id: str,
        source: Source,
        exc: BaseException,
        terminal: ProcessingStatus,
        code: OutcomeCode,
        log: Any,
    ) -> ProcessingOutcome:
        message = str(exc) or exc.__class__.__name__
        failure = SourceFailure(error=message, processed_at=self._now().to_iso8601_string())
        log.warning(
            "orchestrator.processor_failed",
            status=terminal.value,
            outcome=code.value,
            error=message,
            error_type=exc.__class__.__name__,
        )
        try:
            await self._store.update_applicant(
                applicant_id,
                {source.status_field: terminal, source.data_field: failure},
            )
        except StoreError as write_exc:
            log.error("orchestrator.completion_write_failed", error=str(write_exc))
            terminal = ProcessingStatus.PROCESSING
        return ProcessingOutcome(
            code, applicant_id, source, error=message, status=terminal, processed=True
        )


__all__ = ["HTTP_STATUS", "OutcomeCode", "ProcessingOrchestrator", "ProcessingOutcome", "ProcessorFn"]

from __future__ import annotations

import asyncio

import pendulum
import pytest

from unmask.core.errors import JobTimeoutError, NotAccessibleError, PreconditionError
from unmask.core.orchestrator import OutcomeCode, ProcessingOrchestrator
from unmask.schemas import Applicant, OverallStatus, ProcessingStatus, Source, SourceFailure
from unmask.store import ClaimResult, InMemoryRecordStore, StoreError

FIXED_NOW = pendulum.datetime(2024, 5, 1, 12, 0, 0)


def setup(**fields) -> tuple[InMemoryRecordStore, ProcessingOrchestrator]:
    store = InMemoryRecordStore(now_provider=lambda: FIXED_NOW)
    asyncio.run(store.create_applicant(Applicant(id="A-1", cv_path="cv.pdf", **fields)))
    return store, ProcessingOrchestrator(store, now_provider=lambda: FIXED_NOW)


class CountingProcessor:
    def __init__(self, result: dict | None = None, *, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.calls = 0
        self._result = result or {"name": "Ada Lovelace"}
        self._error = error
        self._gate = gate

    async def __call__(self, applicant: Applicant) -> dict:
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return self._result


def test_success_writes_ready_and_payload():
    store, orchestrator = setup()
    processor = CountingProcessor({"name": "Ada"})

    outcome = asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, processor))

    assert outcome.code is OutcomeCode.SUCCESS
    assert outcome.http_status == 200
    assert outcome.data == {"name": "Ada"}
    stored = asyncio.run(store.get_applicant("A-1"))
    assert stored.cv_status is ProcessingStatus.READY
    assert stored.payload_of(Source.CV) == {"name": "Ada"}


def test_concurrent_claims_run_processor_once():
    store, orchestrator = setup()

    async def race():
        gate = asyncio.Event()
        processor = CountingProcessor(gate=gate)
        first = asyncio.create_task(orchestrator.claim_and_process("A-1", Source.CV, processor))
        await asyncio.sleep(0)
        second = await orchestrator.claim_and_process("A-1", Source.CV, processor)
        gate.set()
        return await first, second, processor.calls

    first, second, calls = asyncio.run(race())

    assert calls == 1
    assert first.code is OutcomeCode.SUCCESS
    assert second.code is OutcomeCode.CONFLICT
    assert second.http_status == 409
    assert second.processed is False


def test_ready_source_is_returned_without_reprocessing():
    store, orchestrator = setup()
    processor = CountingProcessor({"name": "Ada"})
    asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, processor))

    again = asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, processor))

    assert processor.calls == 1
    assert again.code is OutcomeCode.SUCCESS
    assert again.data == {"name": "Ada"}
    assert again.processed is False


def test_unknown_applicant_is_not_found():
    _, orchestrator = setup()
    processor = CountingProcessor()

    outcome = asyncio.run(orchestrator.claim_and_process("missing", Source.CV, processor))

    assert outcome.code is OutcomeCode.NOT_FOUND
    assert outcome.http_status == 404
    assert processor.calls == 0


def test_processor_error_records_error_payload():
    store, orchestrator = setup()

    outcome = asyncio.run(
        orchestrator.claim_and_process("A-1", Source.GITHUB, CountingProcessor(error=RuntimeError("rate limited")))
    )

    assert outcome.code is OutcomeCode.PROCESSING_FAILURE
    assert outcome.http_status == 500
    stored = asyncio.run(store.get_applicant("A-1"))
    assert stored.gh_status is ProcessingStatus.ERROR
    assert stored.gh_data == SourceFailure(error="rate limited", processed_at=FIXED_NOW.to_iso8601_string())


def test_cv_error_marks_applicant_failed():
    store, orchestrator = setup()

    outcome = asyncio.run(
        orchestrator.claim_and_process("A-1", Source.CV, CountingProcessor(error=PreconditionError("missing file")))
    )

    assert outcome.code is OutcomeCode.VALIDATION_FAILURE
    assert outcome.http_status == 400
    assert asyncio.run(store.get_applicant("A-1")).status is OverallStatus.FAILED


def test_not_accessible_profile_becomes_not_provided():
    store, orchestrator = setup(linkedin_url="https://linkedin.com/in/private")

    outcome = asyncio.run(
        orchestrator.claim_and_process(
            "A-1", Source.LINKEDIN, CountingProcessor(error=NotAccessibleError("profile is private"))
        )
    )

    assert outcome.code is OutcomeCode.NOT_ACCESSIBLE
    assert outcome.status is ProcessingStatus.NOT_PROVIDED
    stored = asyncio.run(store.get_applicant("A-1"))
    assert stored.li_status is ProcessingStatus.NOT_PROVIDED
    assert stored.li_data.error == "profile is private"


def test_timeout_maps_to_504_and_error_status():
    store, orchestrator = setup()

    outcome = asyncio.run(
        orchestrator.claim_and_process("A-1", Source.LINKEDIN, CountingProcessor(error=JobTimeoutError("36 checks")))
    )

    assert outcome.code is OutcomeCode.TIMEOUT
    assert outcome.http_status == 504
    assert asyncio.run(store.get_applicant("A-1")).li_status is ProcessingStatus.ERROR


def test_errored_source_can_be_retried():
    store, orchestrator = setup()
    asyncio.run(orchestrator.claim_and_process("A-1", Source.GITHUB, CountingProcessor(error=RuntimeError("x"))))

    retry = asyncio.run(orchestrator.claim_and_process("A-1", Source.GITHUB, CountingProcessor({"username": "ada"})))

    assert retry.code is OutcomeCode.SUCCESS
    assert asyncio.run(store.get_applicant("A-1")).gh_status is ProcessingStatus.READY


def test_failed_completion_write_leaves_source_processing(monkeypatch):
    store, orchestrator = setup()

    async def broken_update(applicant_id, fields):
        raise StoreError("connection reset")

    monkeypatch.setattr(store, "update_applicant", broken_update)

    outcome = asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, CountingProcessor()))

    assert outcome.code is OutcomeCode.PROCESSING_FAILURE
    assert outcome.status is ProcessingStatus.PROCESSING
    assert asyncio.run(store.get_applicant("A-1")).cv_status is ProcessingStatus.PROCESSING


def test_non_mapping_result_is_recorded_as_error():
    store, orchestrator = setup()

    async def returns_records(applicant: Applicant) -> list:
        return [{"name": "Ada", "email": "ada@example.com"}]

    outcome = asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, returns_records))

    assert outcome.code is OutcomeCode.PROCESSING_FAILURE
    assert outcome.status is ProcessingStatus.ERROR
    stored = asyncio.run(store.get_applicant("A-1"))
    assert stored.cv_status is ProcessingStatus.ERROR
    assert "expected a mapping" in stored.cv_data.error


def test_none_result_is_stored_as_empty_payload():
    store, orchestrator = setup()

    async def returns_nothing(applicant: Applicant) -> None:
        return None

    outcome = asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, returns_nothing))

    assert outcome.ok
    assert asyncio.run(store.get_applicant("A-1")).payload_of(Source.CV) == {}


def test_claim_without_snapshot_raises_store_error(monkeypatch):
    store, orchestrator = setup()
    processor = CountingProcessor()

    async def empty_claim(*args, **kwargs):
        return ClaimResult(ok=True)

    monkeypatch.setattr(store, "conditional_update_status", empty_claim)

    with pytest.raises(StoreError):
        asyncio.run(orchestrator.claim_and_process("A-1", Source.CV, processor))
    assert processor.calls == 0

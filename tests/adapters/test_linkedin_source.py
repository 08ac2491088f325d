from __future__ import annotations

import asyncio

import pytest

import unmask.adapters.linkedin as linkedin
from unmask.adapters.http import HttpError
from unmask.adapters.linkedin import (
    BrightDataLinkedInClient,
    LinkedInSource,
    normalize_profile,
    normalize_url,
)
from unmask.adapters import LinkedInJobClient
from unmask.core.errors import JobTimeoutError, NotAccessibleError, PreconditionError, ProcessorError
from unmask.core.orchestrator import OutcomeCode, ProcessingOrchestrator
from unmask.core.poller import JobHandle, JobPoller, JobStatus
from unmask.core.retry import RetryPolicy
from unmask.schemas import Applicant, ProcessingStatus, Source
from unmask.store import InMemoryRecordStore

RAW_PROFILE = {
    "name": "Ada Lovelace",
    "position": "Senior Engineer",
    "about": "Numerical computing",
    "city": "London",
    "connections": 500,
    "followers": 800,
    "url": "https://www.linkedin.com/in/ada",
    "current_company": {"name": "Analytical Engines", "title": "Senior Engineer"},
    "experience": [
        {"company": "Analytical Engines", "title": "Senior Engineer", "start_date": "2019", "end_date": "Present"},
    ],
    "education": [{"title": "University of London", "degree": "BSc", "start_year": "2011", "end_year": "2015"}],
    "languages": [{"title": "English"}],
}


async def no_sleep(_delay: float) -> None:
    return None


class FakeJobClient:
    def __init__(self, statuses: list[JobStatus], *, existing: bool = False) -> None:
        self.statuses = list(statuses)
        self.existing = existing
        self.checks: list[tuple[str, bool]] = []

    async def start_job(self, url: str) -> JobHandle:
        return JobHandle("snap-1", is_existing=self.existing)

    async def check_job(self, job_id: str, existing_only: bool = False) -> JobStatus:
        self.checks.append((job_id, existing_only))
        return self.statuses.pop(0)


def _source(client: FakeJobClient, max_attempts: int = 5) -> LinkedInSource:
    poller = JobPoller(RetryPolicy(max_attempts=max_attempts, interval=0), sleep=no_sleep)
    return LinkedInSource(client, poller)


def test_normalize_profile_maps_fields():
    profile = normalize_profile([RAW_PROFILE])

    assert profile["name"] == "Ada Lovelace"
    assert profile["current_company"] == "Analytical Engines"
    assert profile["location"] == "London"
    assert profile["experience"][0]["duration"] == "2019 - Present"
    assert profile["education"][0]["years"] == "2011 - 2015"
    assert profile["languages"] == ["English"]


def test_normalize_url_ignores_scheme_and_trailing_slash():
    assert normalize_url("https://www.LinkedIn.com/in/ada/") == normalize_url("linkedin.com/in/ada")


def test_process_returns_normalized_profile():
    client = FakeJobClient([JobStatus("running"), JobStatus("completed", [RAW_PROFILE])])

    profile = asyncio.run(_source(client).process("https://linkedin.com/in/ada"))

    assert profile["name"] == "Ada Lovelace"
    assert len(client.checks) == 2


def test_empty_reused_snapshot_is_a_processing_error():
    client = FakeJobClient([JobStatus("completed", [])], existing=True)

    with pytest.raises(ProcessorError) as excinfo:
        asyncio.run(_source(client).process("https://linkedin.com/in/ada"))
    assert client.checks == [("snap-1", True)]
    assert not isinstance(excinfo.value, NotAccessibleError)


def test_failed_job_is_not_accessible():
    client = FakeJobClient([JobStatus("failed")])

    with pytest.raises(NotAccessibleError):
        asyncio.run(_source(client).process("https://linkedin.com/in/ada"))


def test_exhausted_attempts_raise_timeout():
    client = FakeJobClient([JobStatus("running")] * 3)

    with pytest.raises(JobTimeoutError):
        asyncio.run(_source(client, max_attempts=3).process("https://linkedin.com/in/ada"))


def test_missing_url_is_precondition():
    with pytest.raises(PreconditionError):
        asyncio.run(_source(FakeJobClient([])).process(""))


class FakeApi:
    """Route request_json calls by URL path fragment."""

    def __init__(self, routes: dict[str, object]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str]] = []

    def __call__(self, url, *, method="GET", payload=None, headers=None, timeout=30.0):
        self.calls.append((method, url))
        for fragment, response in self.routes.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected request {url}")


def test_client_reuses_oldest_matching_snapshot(monkeypatch):
    api = FakeApi(
        {
            "/snapshots?": [
                {"id": "s-new", "created_at": "2024-05-01"},
                {"id": "s-old", "created_at": "2024-01-01"},
            ],
            "/snapshot/s-new": {"input": [{"url": "https://linkedin.com/in/ada/"}]},
            "/snapshot/s-old": {"input": [{"url": "https://www.linkedin.com/in/ada"}]},
        }
    )
    monkeypatch.setattr(linkedin, "request_json", api)

    handle = BrightDataLinkedInClient("key").start_job_sync("https://linkedin.com/in/ada")

    assert handle == JobHandle("s-old", is_existing=True)
    assert all(method == "GET" for method, _ in api.calls)


def test_client_triggers_job_when_no_snapshot_matches(monkeypatch):
    api = FakeApi({"/snapshots?": [], "/trigger?": {"snapshot_id": "s-9"}})
    monkeypatch.setattr(linkedin, "request_json", api)

    handle = BrightDataLinkedInClient("key").start_job_sync("https://linkedin.com/in/ada")

    assert handle == JobHandle("s-9", is_existing=False)
    assert api.calls[-1][0] == "POST"


def test_check_job_reports_progress_then_downloads(monkeypatch):
    client = BrightDataLinkedInClient("key")

    monkeypatch.setattr(linkedin, "request_json", FakeApi({"/progress/s-1": {"status": "running"}}))
    assert client.check_job_sync("s-1").status == "running"

    monkeypatch.setattr(
        linkedin,
        "request_json",
        FakeApi({"/progress/s-1": {"status": "ready"}, "/snapshot/s-1": [RAW_PROFILE]}),
    )
    status = client.check_job_sync("s-1")
    assert status.status == "completed"
    assert status.data == [RAW_PROFILE]


def test_empty_snapshot_download_is_failed(monkeypatch):
    monkeypatch.setattr(
        linkedin,
        "request_json",
        FakeApi({"/snapshot/s-1": HttpError("bad", status=400, body="Snapshot is empty")}),
    )

    assert BrightDataLinkedInClient("key").check_job_sync("s-1", existing_only=True).status == "failed"


def test_missing_api_key_is_precondition():
    with pytest.raises(PreconditionError):
        BrightDataLinkedInClient(None, reuse_snapshots=False).start_job_sync("https://linkedin.com/in/ada")


def test_empty_reused_snapshot_is_stored_as_error():
    client = FakeJobClient([JobStatus("completed", None)], existing=True)
    source = _source(client)
    store = InMemoryRecordStore()
    orchestrator = ProcessingOrchestrator(store)

    async def scenario():
        await store.create_applicant(
            Applicant(id="A-1", cv_path="cv.pdf", linkedin_url="https://linkedin.com/in/ada")
        )
        outcome = await orchestrator.claim_and_process(
            "A-1", Source.LINKEDIN, lambda applicant: source.process(applicant.linkedin_url)
        )
        return outcome, await store.get_applicant("A-1")

    outcome, applicant = asyncio.run(scenario())

    assert outcome.code is OutcomeCode.PROCESSING_FAILURE
    assert applicant.li_status is ProcessingStatus.ERROR
    assert "existing snapshot" in applicant.li_data.error


def test_clients_satisfy_job_client_protocol():
    assert isinstance(FakeJobClient([]), LinkedInJobClient)
    assert isinstance(BrightDataLinkedInClient("key"), LinkedInJobClient)

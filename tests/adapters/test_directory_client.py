from __future__ import annotations

import asyncio
import base64

import pytest

import unmask.adapters.directory as directory
from unmask.adapters.directory import AshbyDirectoryClient, normalize_candidate
from unmask.core.errors import PreconditionError, ProcessorError

RAW_CANDIDATE = {
    "id": "cand-1",
    "name": "Ada Lovelace",
    "createdAt": "2024-01-02T00:00:00Z",
    "primaryEmailAddress": {"value": "ada@example.com", "type": "Work", "isPrimary": True},
    "primaryPhoneNumber": {"value": "+44 20 7946 0958", "type": "Mobile", "isPrimary": True},
    "socialLinks": [
        {"type": "LinkedIn", "url": "https://linkedin.com/in/ada"},
        {"type": "Website", "url": "https://github.com/ada-l"},
    ],
    "resumeFileHandle": {"id": "f1", "name": "cv.pdf", "handle": "handle-1"},
    "tags": [{"id": "t1", "title": "Senior"}, "Remote"],
    "position": "Engineer",
}


class FakeTransport:
    def __init__(self, responses: list[dict]) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    def __call__(self, url, *, method="GET", payload=None, headers=None, timeout=30.0):
        self.requests.append({"url": url, "method": method, "payload": payload, "headers": headers})
        return self.responses.pop(0)


def test_normalize_candidate():
    candidate = normalize_candidate(RAW_CANDIDATE)

    assert candidate.external_id == "cand-1"
    assert candidate.email == "ada@example.com"
    assert candidate.phone == "+44 20 7946 0958"
    assert candidate.linkedin_url == "https://linkedin.com/in/ada"
    assert candidate.github_url == "https://github.com/ada-l"
    assert candidate.resume_file_handle == "handle-1"
    assert candidate.tags == ["Senior", "Remote"]


def test_list_candidates_posts_with_basic_auth(monkeypatch):
    transport = FakeTransport(
        [{"success": True, "results": [RAW_CANDIDATE], "moreDataAvailable": True, "nextCursor": "cur-2"}]
    )
    monkeypatch.setattr(directory, "request_json", transport)
    client = AshbyDirectoryClient("secret", base_url="https://api.example.com")

    page = asyncio.run(client.list_candidates(limit=10, cursor="cur-1"))

    request = transport.requests[0]
    assert request["url"] == "https://api.example.com/candidate.list"
    assert request["method"] == "POST"
    assert request["payload"] == {"limit": 10, "includeArchived": False, "cursor": "cur-1"}
    expected = base64.b64encode(b"secret:").decode("ascii")
    assert request["headers"]["Authorization"] == f"Basic {expected}"
    assert page.next_cursor == "cur-2"
    assert page.more_data_available is True
    assert [candidate.external_id for candidate in page.results] == ["cand-1"]


def test_get_resume_url_prefers_download_url(monkeypatch):
    transport = FakeTransport([{"success": True, "results": {"downloadUrl": "https://files/1", "url": "x"}}])
    monkeypatch.setattr(directory, "request_json", transport)

    url = asyncio.run(AshbyDirectoryClient("secret").get_resume_url("handle-1"))

    assert url == "https://files/1"
    assert transport.requests[0]["payload"] == {"fileHandle": "handle-1"}


def test_api_errors_raise(monkeypatch):
    monkeypatch.setattr(directory, "request_json", FakeTransport([{"success": False, "errors": ["forbidden"]}]))

    with pytest.raises(ProcessorError):
        asyncio.run(AshbyDirectoryClient("secret").list_candidates(limit=5))


def test_missing_api_key():
    with pytest.raises(PreconditionError):
        asyncio.run(AshbyDirectoryClient(None).list_candidates(limit=5))

from __future__ import annotations

import asyncio

import pendulum
import pytest

import unmask.llm as llm
from unmask.adapters.http import HttpError
from unmask.core.errors import AnalysisUnavailableError
from unmask.llm import HTTPAnalysisClient, build_analysis_payload, normalize_analysis
from unmask.schemas import Applicant, SourceData, SourceFailure

FIXED_NOW = pendulum.datetime(2024, 6, 1, tz="UTC")


def _applicant() -> Applicant:
    return Applicant(
        id="app-1",
        name="Ada Lovelace",
        role="Engineer",
        cv_data=SourceData(payload={"name": "Ada Lovelace"}),
        li_data=SourceFailure(error="private", processed_at="2024-06-01T00:00:00Z"),
    )


def test_payload_lists_only_usable_sources():
    payload = build_analysis_payload(_applicant())

    assert payload["available_sources"] == ["cv"]
    assert payload["data"] == {"cv": {"name": "Ada Lovelace"}}
    assert payload["candidate"]["role"] == "Engineer"


def test_normalize_analysis_clamps_and_defaults():
    result = normalize_analysis(
        {
            "score": 140,
            "flags": [{"type": "purple", "message": "odd", "severity": 42}, {"severity": "high"}],
            "suggestedQuestions": ["Why?"],
        },
        now_provider=lambda: FIXED_NOW,
    )

    assert result["score"] == 100
    assert result["flags"][0] == {"type": "yellow", "category": "verification", "message": "odd", "severity": 10}
    assert result["flags"][1]["severity"] == 5
    assert result["suggested_questions"] == ["Why?"]
    assert result["analysis_date"] == FIXED_NOW.to_iso8601_string()


def test_analyze_posts_payload(monkeypatch):
    captured = {}

    def fake_request(url, *, method="GET", payload=None, headers=None, timeout=30.0):
        captured.update(url=url, method=method, payload=payload, headers=headers)
        return {"score": 72, "summary": "fine"}

    monkeypatch.setattr(llm, "request_json", fake_request)
    client = HTTPAnalysisClient("https://scoring.example/v1", "secret", now_provider=lambda: FIXED_NOW)

    result = asyncio.run(client.analyze(_applicant()))

    assert result["score"] == 72
    assert captured["method"] == "POST"
    assert captured["headers"] == {"Authorization": "Bearer secret"}
    assert captured["payload"]["applicant_id"] == "app-1"


def test_missing_endpoint_is_unavailable():
    with pytest.raises(AnalysisUnavailableError):
        asyncio.run(HTTPAnalysisClient(None).analyze(_applicant()))


def test_transport_errors_are_unavailable(monkeypatch):
    def failing_request(url, **kwargs):
        raise HttpError("boom", status=503)

    monkeypatch.setattr(llm, "request_json", failing_request)

    with pytest.raises(AnalysisUnavailableError):
        HTTPAnalysisClient("https://scoring.example/v1").score({})

from __future__ import annotations

import asyncio

import pendulum

from unmask.adapters.analysis import HeuristicAnalyzer
from unmask.schemas import Applicant, SourceData

FIXED_NOW = pendulum.datetime(2024, 6, 1, tz="UTC")


def _applicant(cv=None, li=None, gh=None) -> Applicant:
    return Applicant(
        id="app-1",
        cv_data=SourceData(payload=cv) if cv else None,
        li_data=SourceData(payload=li) if li else None,
        gh_data=SourceData(payload=gh) if gh else None,
    )


def _analyzer() -> HeuristicAnalyzer:
    return HeuristicAnalyzer(now_provider=lambda: FIXED_NOW)


CV = {"name": "Ada Lovelace", "experiences": [{"company": "Analytical Engines"}]}


def test_consistent_sources_score_high():
    li = {
        "name": "Ada Lovelace",
        "connections": 500,
        "experience": [{"company": "Analytical Engines Ltd"}],
    }

    result = _analyzer().evaluate(_applicant(cv=CV, li=li))

    assert result.score == 80
    assert all(flag.type == "green" for flag in result.flags)
    assert result.analysis_date == FIXED_NOW.to_iso8601_string()


def test_name_and_employer_mismatch_raise_red_flags():
    li = {"name": "Grace Hopper", "connections": 500, "experience": [{"company": "Initech"}]}

    result = _analyzer().evaluate(_applicant(cv=CV, li=li))

    red = [flag for flag in result.flags if flag.type == "red"]
    assert len(red) == 2
    assert any(flag.severity == 8 for flag in red)
    assert result.score == 25
    assert len(result.suggested_questions) == 2


def test_cv_only_is_penalized_for_missing_linkedin():
    result = _analyzer().evaluate(_applicant(cv=CV))

    assert result.score == 55
    assert result.sources == [
        {"type": "cv", "available": True},
        {"type": "linkedin", "available": False},
        {"type": "github", "available": False},
    ]


def test_score_is_clamped():
    li = {
        "name": "Grace Hopper",
        "connections": 3,
        "experience": [{"company": "Initech"}],
    }
    cv = {
        "name": "Ada Lovelace",
        "experiences": [{"company": "Alpha"}, {"company": "Beta"}, {"company": "Gamma"}],
    }
    gh = {"name": "Someone Else", "repository_summary": {"own": 0}}

    result = _analyzer().evaluate(_applicant(cv=cv, li=li, gh=gh))

    assert result.score == 0


def test_analyze_returns_json_payload():
    payload = asyncio.run(_analyzer().analyze(_applicant(cv=CV)))

    assert payload["score"] == 55
    assert payload["degraded"] is False

from __future__ import annotations

import pendulum
import pytest

from unmask.core.scoring import (
    base_score,
    degraded_analysis,
    derive_score,
    insufficient_data_analysis,
)
from unmask.schemas import Applicant, SourceData, SourceFailure

FIXED_NOW = pendulum.datetime(2024, 5, 1, 12, 0, 0)


@pytest.mark.parametrize(
    ("has_linkedin", "has_cv", "expected"),
    [(True, True, 30), (True, False, 20), (False, True, 15), (False, False, 10)],
)
def test_base_score(has_linkedin, has_cv, expected):
    assert base_score(has_linkedin=has_linkedin, has_cv=has_cv) == expected


def test_derive_score_prefers_analysis_score():
    applicant = Applicant(
        id="A-1",
        cv_path="cv.pdf",
        ai_data=SourceData(payload={"score": 130}),
    )
    assert derive_score(applicant) == 100


def test_derive_score_falls_back_to_completeness():
    applicant = Applicant(
        id="A-1",
        linkedin_url="https://linkedin.com/in/ada",
        ai_data=SourceFailure(error="boom", processed_at="2024-05-01T12:00:00Z"),
    )
    assert derive_score(applicant) == 20


def test_insufficient_data_analysis_is_neutral():
    payload = insufficient_data_analysis(0, now_provider=lambda: FIXED_NOW)
    assert payload["score"] == 50
    assert payload["flags"][0]["type"] == "yellow"
    assert payload["flags"][0]["severity"] == 5
    assert payload["analysis_date"].startswith("2024-05-01T12:00:00")
    assert payload["degraded"] is False


def test_degraded_analysis_carries_error():
    payload = degraded_analysis("timeout", score=40, now_provider=lambda: FIXED_NOW)
    assert payload["score"] == 40
    assert payload["degraded"] is True
    assert payload["error"] == "timeout"

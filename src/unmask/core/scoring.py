"""Score heuristics and neutral analysis payloads."""

from __future__ import annotations

from typing import Any, Callable

import pendulum

from ..schemas import DATA_SOURCES, AnalysisFlag, AnalysisResult, Applicant, Source

NEUTRAL_SCORE = 50


def base_score(*, has_linkedin: bool, has_cv: bool) -> int:
    """Data-completeness score used before any analysis exists."""
    if has_linkedin and has_cv:
        return 30
    if has_linkedin:
        return 20
    if has_cv:
        return 15
    return 10


def derive_score(applicant: Applicant) -> int:
    analysis = applicant.payload_of(Source.ANALYSIS)
    if analysis and analysis.get("score") is not None:
        return max(0, min(100, int(analysis["score"])))
    return base_score(
        has_linkedin=bool(applicant.linkedin_url),
        has_cv=bool(applicant.cv_path),
    )


def available_sources(applicant: Applicant) -> list[Source]:
    """Data sources that produced a usable payload."""
    return [source for source in DATA_SOURCES if applicant.payload_of(source)]


def insufficient_data_analysis(
    available: int,
    *,
    score: int = NEUTRAL_SCORE,
    now_provider: Callable[[], Any] = pendulum.now,
) -> dict[str, Any]:
    if available == 0:
        summary = "No data sources available for credibility analysis."
        message = "No data sources (CV, LinkedIn, or GitHub) available for analysis."
        question = "Could you provide a CV, LinkedIn profile, or GitHub profile for analysis?"
        severity = 5
    else:
        summary = "Analysis completed with limited data sources."
        message = (
            f"Analysis performed with {available}/3 data sources. "
            "Additional sources would improve accuracy."
        )
        question = (
            "Could you provide additional information sources "
            "(CV, LinkedIn, or GitHub) to improve analysis accuracy?"
        )
        severity = 3
    result = AnalysisResult(
        score=score,
        summary=summary,
        flags=[AnalysisFlag(type="yellow", category="verification", message=message, severity=severity)],
        suggested_questions=[question],
        analysis_date=now_provider().to_iso8601_string(),
    )
    return result.model_dump(mode="json")


def degraded_analysis(
    error: str | None = None,
    *,
    score: int = NEUTRAL_SCORE,
    now_provider: Callable[[], Any] = pendulum.now,
) -> dict[str, Any]:
    """Fallback payload stored when the analyzer raised."""
    result = AnalysisResult(
        score=score,
        summary="Analysis could not be completed due to technical error.",
        flags=[
            AnalysisFlag(
                type="yellow",
                category="verification",
                message="Analysis could not be completed due to technical error",
                severity=5,
            )
        ],
        suggested_questions=["Could you provide additional information about your background?"],
        analysis_date=now_provider().to_iso8601_string(),
        degraded=True,
        error=error,
    )
    return result.model_dump(mode="json")


__all__ = [
    "NEUTRAL_SCORE",
    "available_sources",
    "base_score",
    "degraded_analysis",
    "derive_score",
    "insufficient_data_analysis",
]

"""Offline credibility analyzer that cross-references the collected sources."""

from __future__ import annotations

from typing import Any, Callable

import pendulum
import structlog
from rapidfuzz import fuzz, process

from ..schemas import AnalysisFlag, AnalysisResult, Applicant, Source

NAME_MATCH_THRESHOLD = 80
COMPANY_MATCH_THRESHOLD = 80
MIN_CONNECTIONS = 30


def _cv_companies(cv: dict[str, Any]) -> list[str]:
    return [item["company"] for item in cv.get("experiences") or [] if item.get("company")]


def _linkedin_companies(li: dict[str, Any]) -> list[str]:
    companies = [item["company"] for item in li.get("experience") or [] if item.get("company")]
    if li.get("current_company"):
        companies.append(li["current_company"])
    return companies


class HeuristicAnalyzer:
    """Score consistency between CV, LinkedIn and GitHub without an external model.

    Starts from a neutral score and moves it for every confirmation or
    inconsistency found. Name and employer comparisons use fuzzy token
    matching so that ordering and punctuation differences are tolerated.
    """

    base_score = 60

    def __init__(self, *, now_provider: Callable[[], Any] = pendulum.now):
        self._now = now_provider
        self._logger = structlog.get_logger(__name__)

    async def analyze(self, applicant: Applicant) -> dict[str, Any]:
        result = self.evaluate(applicant)
        self._logger.info(
            "analysis.completed",
            applicant_id=applicant.id,
            score=result.score,
            flags=len(result.flags),
        )
        return result.model_dump(mode="json")

    def evaluate(self, applicant: Applicant) -> AnalysisResult:
        cv = applicant.payload_of(Source.CV)
        li = applicant.payload_of(Source.LINKEDIN)
        gh = applicant.payload_of(Source.GITHUB)

        score = self.base_score
        flags: list[AnalysisFlag] = []

        if cv and li:
            score += self._compare_names(cv.get("name"), li.get("name"), "LinkedIn", flags)
            score += self._compare_companies(cv, li, flags)
        if li:
            connections = li.get("connections") or 0
            if connections < MIN_CONNECTIONS:
                flags.append(AnalysisFlag(
                    type="yellow",
                    category="activity",
                    message=f"LinkedIn profile has only {connections} connections",
                    severity=4,
                ))
                score -= 5
        if gh:
            score += self._github_signals(cv, gh, flags)
        if not li:
            flags.append(AnalysisFlag(
                type="yellow",
                category="verification",
                message="No LinkedIn profile available to cross-check the CV",
                severity=3,
            ))
            score -= 5

        score = max(0, min(100, score))
        red = [flag for flag in flags if flag.type == "red"]
        if red:
            summary = f"{len(red)} inconsistencies found across sources."
        elif score >= 70:
            summary = "Profile is consistent across the available sources."
        else:
            summary = "No major inconsistencies, but verification is limited."

        return AnalysisResult(
            score=score,
            summary=summary,
            flags=flags,
            suggested_questions=[f"Could you clarify: {flag.message.lower()}?" for flag in red[:3]],
            analysis_date=self._now().to_iso8601_string(),
            sources=[
                {"type": source.label.lower(), "available": applicant.payload_of(source) is not None}
                for source in (Source.CV, Source.LINKEDIN, Source.GITHUB)
            ],
        )

    def _compare_names(
        self, cv_name: str | None, other: str | None, label: str, flags: list[AnalysisFlag]
    ) -> int:
        if not cv_name or not other:
            return 0
        ratio = fuzz.token_set_ratio(cv_name.lower(), other.lower())
        if ratio >= NAME_MATCH_THRESHOLD:
            flags.append(AnalysisFlag(
                type="green",
                category="consistency",
                message=f"Name on CV matches {label}",
                severity=1,
            ))
            return 10
        flags.append(AnalysisFlag(
            type="red",
            category="consistency",
            message=f"Name on CV ({cv_name}) differs from {label} ({other})",
            severity=8,
        ))
        return -25

    def _compare_companies(
        self, cv: dict[str, Any], li: dict[str, Any], flags: list[AnalysisFlag]
    ) -> int:
        cv_companies = _cv_companies(cv)
        li_companies = _linkedin_companies(li)
        if not cv_companies or not li_companies:
            return 0

        delta = 0
        missing = []
        for company in cv_companies:
            match = process.extractOne(company, li_companies, scorer=fuzz.token_set_ratio)
            if match is None or match[1] < COMPANY_MATCH_THRESHOLD:
                missing.append(company)
        for company in missing[:3]:
            flags.append(AnalysisFlag(
                type="red",
                category="consistency",
                message=f"Employer {company} listed on CV is missing from LinkedIn",
                severity=6,
            ))
            delta -= 10
        if not missing:
            flags.append(AnalysisFlag(
                type="green",
                category="consistency",
                message="Employment history on CV matches LinkedIn",
                severity=1,
            ))
            delta += 10
        return delta

    def _github_signals(
        self, cv: dict[str, Any] | None, gh: dict[str, Any], flags: list[AnalysisFlag]
    ) -> int:
        summary = gh.get("repository_summary") or {}
        delta = 0
        if not summary.get("own"):
            flags.append(AnalysisFlag(
                type="yellow",
                category="activity",
                message="GitHub account has no original repositories",
                severity=3,
            ))
            delta -= 5
        elif summary.get("total_stars", 0) >= 10 or summary.get("own", 0) >= 5:
            flags.append(AnalysisFlag(
                type="green",
                category="activity",
                message="GitHub account shows sustained original work",
                severity=1,
            ))
            delta += 5
        if cv and gh.get("name"):
            delta += min(0, self._compare_names(cv.get("name"), gh["name"], "GitHub", flags))
        return delta


__all__ = ["HeuristicAnalyzer"]
